import asyncio
import logging
from typing import Optional

from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractQueue

from thumbs.message_queue.consume_message import parse_message
from thumbs.message_queue.consumer import Consumer, ConsumeStatus
from thumbs.service.errors import InvalidMessageError


class SubscriptionClosedError(Exception):
    pass


class AmqpSubscriber:
    """Pulls deliveries off the work queue until ``stop`` is set.

    Each delivery is handled to completion before the next one is taken,
    so setting ``stop`` never interrupts a unit of work. A closed channel
    or queue ends the loop with ``SubscriptionClosedError``.
    """

    def __init__(
        self,
        channel: AbstractChannel,
        queue: AbstractQueue,
        requeue_on_failure: bool = True,
        source_bucket: Optional[str] = None,
    ):
        self._channel = channel
        self._queue = queue
        self.requeue_on_failure = requeue_on_failure
        self.source_bucket = source_bucket

    async def subscribe(self, stop: asyncio.Event, consumer: Consumer) -> None:
        loop = asyncio.get_running_loop()
        closed = loop.create_future()

        def on_close(*args):
            if closed.done():
                return
            cause = next((a for a in args if isinstance(a, BaseException)), None)
            closed.set_exception(SubscriptionClosedError(f"channel closed: {cause}"))

        self._channel.close_callbacks.add(on_close)
        stop_waiter = asyncio.ensure_future(stop.wait())

        logging.info(f"📡 consuming from queue {self._queue.name}")
        try:
            async with self._queue.iterator() as queue_iter:
                while not stop.is_set():
                    receive = asyncio.ensure_future(queue_iter.__anext__())
                    done, _ = await asyncio.wait(
                        {receive, stop_waiter, closed},
                        return_when=asyncio.FIRST_COMPLETED,
                    )

                    if receive not in done:
                        receive.cancel()
                        await asyncio.wait({receive})
                        if closed in done:
                            closed.result()
                        break

                    try:
                        message = receive.result()
                    except StopAsyncIteration:
                        raise SubscriptionClosedError("queue iterator closed") from None

                    await self._handle(message, consumer)
            logging.info("🛑 stop requested, left receive loop")
        finally:
            stop_waiter.cancel()
            self._channel.close_callbacks.discard(on_close)
            if not closed.done():
                closed.cancel()
            elif not closed.cancelled():
                closed.exception()

    async def _handle(self, message: AbstractIncomingMessage, consumer: Consumer) -> None:
        logging.info(f"📩 message received: {message.delivery_tag}")

        try:
            inbound = parse_message(message, self.source_bucket)
        except InvalidMessageError as e:
            logging.info(f"⏭️ skipping message: {e}")
            await message.ack()
            return

        if inbound is None:
            logging.warning("⚠️ dropping malformed message")
            await message.reject(requeue=False)
            return

        try:
            status = await consumer.consume(inbound)
        except Exception:
            logging.exception(f"❌ unexpected error processing {inbound.filename}")
            status = ConsumeStatus.FAILED

        if status is ConsumeStatus.SUCCESS:
            await message.ack()
        elif status is ConsumeStatus.INVALID:
            await message.reject(requeue=False)
        else:
            await message.nack(requeue=self.requeue_on_failure)

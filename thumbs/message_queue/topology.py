import logging
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue


async def declare_exchange(channel: AbstractChannel, exchange_name: str) -> AbstractExchange:
    return await channel.declare_exchange(
        exchange_name,
        aio_pika.ExchangeType.FANOUT,
        durable=True,
        auto_delete=False,
    )


async def declare_and_bind_queue(
    channel: AbstractChannel,
    queue_name: str,
    exchange: AbstractExchange,
    dead_letter_exchange: Optional[str] = None,
) -> AbstractQueue:
    arguments = {}
    if dead_letter_exchange:
        arguments["x-dead-letter-exchange"] = dead_letter_exchange

    queue = await channel.declare_queue(
        queue_name,
        durable=True,
        exclusive=False,
        auto_delete=False,
        arguments=arguments or None,
    )
    await queue.bind(exchange, routing_key="")
    return queue


async def declare_topology(
    channel: AbstractChannel,
    bucket_exchange_name: str,
    worker_exchange_name: str,
    queue_name: str,
    dead_letter_exchange: Optional[str] = None,
) -> AbstractQueue:
    """Declares the exchanges and the work queue, binding it to the inbound exchange.

    Every declaration is durable and idempotent, so running this on each
    start against an existing broker is a no-op.
    """
    bucket_exchange = await declare_exchange(channel, bucket_exchange_name)
    await declare_exchange(channel, worker_exchange_name)
    if dead_letter_exchange:
        await declare_exchange(channel, dead_letter_exchange)

    queue = await declare_and_bind_queue(
        channel, queue_name, bucket_exchange, dead_letter_exchange
    )
    logging.info(
        f"✅ topology ready: {bucket_exchange_name} -> {queue_name}, "
        f"publish to {worker_exchange_name}"
    )
    return queue

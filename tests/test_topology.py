from unittest.mock import AsyncMock, MagicMock, call

import aio_pika
import pytest

from thumbs.message_queue.topology import declare_topology


@pytest.fixture
def channel():
    exchanges = {}

    async def declare_exchange(name, *args, **kwargs):
        return exchanges.setdefault(name, MagicMock(name=f"exchange:{name}"))

    queue = MagicMock()
    queue.bind = AsyncMock()

    channel = MagicMock()
    channel.declare_exchange = AsyncMock(side_effect=declare_exchange)
    channel.declare_queue = AsyncMock(return_value=queue)
    channel.exchanges = exchanges
    return channel


@pytest.mark.asyncio
async def test_declares_durable_fanout_topology(channel):
    queue = await declare_topology(
        channel,
        bucket_exchange_name="bucket",
        worker_exchange_name="worker",
        queue_name="thumbs",
    )

    assert channel.declare_exchange.await_args_list == [
        call("bucket", aio_pika.ExchangeType.FANOUT, durable=True, auto_delete=False),
        call("worker", aio_pika.ExchangeType.FANOUT, durable=True, auto_delete=False),
    ]
    channel.declare_queue.assert_awaited_once_with(
        "thumbs", durable=True, exclusive=False, auto_delete=False, arguments=None
    )
    queue.bind.assert_awaited_once_with(channel.exchanges["bucket"], routing_key="")


@pytest.mark.asyncio
async def test_declaring_twice_is_identical(channel):
    for _ in range(2):
        await declare_topology(
            channel,
            bucket_exchange_name="bucket",
            worker_exchange_name="worker",
            queue_name="thumbs",
        )

    first, second = channel.declare_queue.await_args_list
    assert first == second
    assert channel.declare_exchange.await_args_list[:2] == channel.declare_exchange.await_args_list[2:]


@pytest.mark.asyncio
async def test_dead_letter_exchange_is_declared_and_wired(channel):
    await declare_topology(
        channel,
        bucket_exchange_name="bucket",
        worker_exchange_name="worker",
        queue_name="thumbs",
        dead_letter_exchange="thumbs.dlx",
    )

    assert "thumbs.dlx" in channel.exchanges
    kwargs = channel.declare_queue.await_args.kwargs
    assert kwargs["arguments"] == {"x-dead-letter-exchange": "thumbs.dlx"}


@pytest.mark.asyncio
async def test_declare_failure_propagates(channel):
    channel.declare_exchange.side_effect = ConnectionError("no broker")

    with pytest.raises(ConnectionError):
        await declare_topology(
            channel,
            bucket_exchange_name="bucket",
            worker_exchange_name="worker",
            queue_name="thumbs",
        )

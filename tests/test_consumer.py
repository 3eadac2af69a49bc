from unittest.mock import AsyncMock, MagicMock

import pytest

from thumbs.message_queue.consume_message import InboundMessage
from thumbs.message_queue.consumer import Consumer, ConsumeStatus
from thumbs.service.errors import StorageError
from thumbs.service.thumbnail_result import ThumbnailRequest


@pytest.fixture
def worker():
    worker = MagicMock()
    worker.request_for.side_effect = lambda filename, trace_id=None: ThumbnailRequest(
        filename=filename, dimensions=[100], trace_id=trace_id
    )
    worker.process = AsyncMock()
    return worker


@pytest.mark.asyncio
async def test_consume_success(worker):
    status = await Consumer(worker).consume(InboundMessage(filename="photo123.jpg", trace_id="t"))

    assert status is ConsumeStatus.SUCCESS
    request = worker.process.await_args.args[0]
    assert request.filename == "photo123.jpg"
    assert request.trace_id == "t"


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["", "   "])
async def test_consume_rejects_empty_filename(worker, filename):
    status = await Consumer(worker).consume(InboundMessage(filename=filename))

    assert status is ConsumeStatus.INVALID
    worker.process.assert_not_awaited()


@pytest.mark.asyncio
async def test_consume_reports_pipeline_failure(worker):
    worker.process.side_effect = StorageError("bucket down")

    status = await Consumer(worker).consume(InboundMessage(filename="photo123.jpg"))

    assert status is ConsumeStatus.FAILED
    worker.process.assert_awaited_once()

import logging
from enum import Enum

from thumbs.message_queue.consume_message import InboundMessage
from thumbs.service.errors import PipelineError
from thumbs.service.worker import ThumbsWorker


class ConsumeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    INVALID = "invalid"


class Consumer:
    def __init__(self, worker: ThumbsWorker):
        self.worker = worker

    async def consume(self, message: InboundMessage) -> ConsumeStatus:
        filename = (message.filename or "").strip()
        if not filename:
            logging.warning("⚠️ message has no source filename")
            return ConsumeStatus.INVALID

        request = self.worker.request_for(filename, trace_id=message.trace_id)
        try:
            await self.worker.process(request)
        except PipelineError as e:
            logging.error(f"❌ {type(e).__name__}: {e}")
            return ConsumeStatus.FAILED

        logging.info(f"✅ thumbnails done: {filename}")
        return ConsumeStatus.SUCCESS

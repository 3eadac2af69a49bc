import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange
from aio_pika.exceptions import AMQPError
from uuid_extensions import uuid7str

from thumbs.message_queue.publish_message import (
    EVENT_TYPE,
    PublishMessageBody,
    PublishMessageHeader,
    ThumbnailData,
)
from thumbs.service.errors import PublishError
from thumbs.service.thumbnail_result import ThumbnailResult


class AmqpPublisher:
    """Publishes persistent messages to fanout exchanges.

    Owns no channel: the caller passes one that nobody else writes to.
    """

    def __init__(self, channel: AbstractChannel):
        self._channel = channel
        self._exchanges: dict[str, AbstractExchange] = {}

    async def _exchange(self, exchange_name: str) -> AbstractExchange:
        exchange = self._exchanges.get(exchange_name)
        if exchange is None:
            exchange = await self._channel.get_exchange(exchange_name)
            self._exchanges[exchange_name] = exchange
        return exchange

    async def publish(
        self, exchange_name: str, payload: bytes, headers: Optional[dict] = None
    ) -> None:
        message = aio_pika.Message(
            body=payload,
            headers=headers or {},
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        try:
            exchange = await self._exchange(exchange_name)
            await exchange.publish(message=message, routing_key="")
        except (AMQPError, ConnectionError) as e:
            raise PublishError(f"publish to {exchange_name} failed: {e}") from e
        logging.info(f"📤 published to {exchange_name}")


class CompletionProducer:
    def __init__(self, publisher: AmqpPublisher, exchange_name: str, source_service: str):
        self.publisher = publisher
        self.exchange_name = exchange_name
        self.source_service = source_service

    async def produce(self, result: ThumbnailResult, trace_id: Optional[str] = None) -> None:
        now = datetime.now(timezone.utc).isoformat()

        header = PublishMessageHeader(
            event_id=uuid7str(),
            event_type=EVENT_TYPE,
            trace_id=trace_id,
            timestamp=now,
            source_service=self.source_service,
        )
        body = PublishMessageBody(
            filename=result.filename,
            status="success",
            completed_at=now,
            thumbnails=[
                ThumbnailData(filename=t.filename, dimension=t.dimension)
                for t in result.thumbnails
            ],
        )

        headers = {k: v for k, v in asdict(header).items() if v is not None}
        await self.publisher.publish(
            self.exchange_name,
            json.dumps(asdict(body)).encode("utf-8"),
            headers=headers,
        )

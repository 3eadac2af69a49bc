import asyncio
import logging
import sys
from contextlib import AsyncExitStack

import aio_pika
from pydantic import ValidationError

from thumbs.api.thumbs_api import create_app
from thumbs.config.custom_logger import configure_logging
from thumbs.config.env_config import Settings, get_settings
from thumbs.db import database
from thumbs.db.repository import PhotoRepository
from thumbs.lifecycle import (
    EXIT_FAILURE,
    build_http_server,
    install_shutdown_signals,
    supervise,
)
from thumbs.message_queue.consumer import Consumer
from thumbs.message_queue.publisher import AmqpPublisher, CompletionProducer
from thumbs.message_queue.subscriber import AmqpSubscriber
from thumbs.message_queue.topology import declare_topology
from thumbs.service.thumbnail_service import ThumbnailService
from thumbs.service.worker import ThumbsWorker, WorkerBundle
from thumbs.storage.backend import open_buckets


async def run(settings: Settings) -> int:
    async with AsyncExitStack() as stack:
        try:
            engine = database.create_engine(settings.sqlalchemy_url)
            stack.push_async_callback(engine.dispose)
            await database.connect(engine)
            repository = PhotoRepository(database.create_session_factory(engine))

            buckets = await open_buckets(settings, stack)

            connection = await aio_pika.connect(settings.rabbitmq_url)
            stack.push_async_callback(connection.close)
            logging.info("✅ RabbitMQ connected")

            consume_channel = await connection.channel()
            stack.push_async_callback(consume_channel.close)
            await consume_channel.set_qos(prefetch_count=settings.prefetch_count)
            publish_channel = await connection.channel()
            stack.push_async_callback(publish_channel.close)

            queue = await declare_topology(
                consume_channel,
                bucket_exchange_name=settings.bucket_exchange_name,
                worker_exchange_name=settings.worker_exchange_name,
                queue_name=settings.queue_name,
                dead_letter_exchange=settings.dead_letter_exchange,
            )
        except Exception:
            logging.critical("💥 startup failed", exc_info=True)
            return EXIT_FAILURE

        producer = CompletionProducer(
            AmqpPublisher(publish_channel),
            exchange_name=settings.worker_exchange_name,
            source_service=settings.source_service,
        )
        worker = ThumbsWorker(
            WorkerBundle(
                photo_storage=buckets.photos,
                thumb_storage=buckets.thumbs,
                repository=repository,
                processor=ThumbnailService(),
                producer=producer,
                dimensions=settings.thumbnail_dimensions,
            )
        )
        consumer = Consumer(worker)
        subscriber = AmqpSubscriber(
            consume_channel,
            queue,
            requeue_on_failure=settings.requeue_on_failure,
            source_bucket=settings.photos_bucket,
        )
        server = build_http_server(
            create_app(buckets.thumbs), settings.http_host, settings.http_port
        )

        stop = asyncio.Event()
        install_shutdown_signals(stop)
        logging.info(f"🚀 thumbs worker started, dimensions={settings.thumbnail_dimensions}")

        exit_code = await supervise(stop, subscriber.subscribe(stop, consumer), server)

    logging.info("✅ resources released")
    return exit_code


def main() -> int:
    try:
        settings = get_settings()
    except (ValidationError, OSError, ValueError) as e:
        configure_logging()
        logging.critical(f"💥 configuration error: {e}")
        return EXIT_FAILURE

    configure_logging(settings.log_level)
    return asyncio.run(run(settings))


if __name__ == "__main__":
    sys.exit(main())

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass

from thumbs.config.env_config import Settings
from thumbs.storage.object_store import ObjectStore


@dataclass
class Buckets:
    photos: ObjectStore
    thumbs: ObjectStore


async def open_buckets(settings: Settings, stack: AsyncExitStack) -> Buckets:
    """Builds the photo and thumbnail stores for the configured backend.

    The underlying client is registered on ``stack`` and closed with it.
    """
    if settings.storage_backend == "gcs":
        from google.cloud import storage

        from thumbs.storage.gcs import GcsObjectStore

        client = storage.Client(project=settings.gcs_project)
        stack.callback(client.close)
        logging.info("✅ GCS client ready")
        return Buckets(
            photos=GcsObjectStore(client, settings.photos_bucket),
            thumbs=GcsObjectStore(client, settings.thumbs_bucket),
        )

    from thumbs.storage.aio_boto import AioBoto, S3ObjectStore

    client = AioBoto(
        endpoint_url=settings.minio_url,
        access_key=settings.minio_root_user,
        secret_key=settings.minio_root_password,
    )
    await client.connect()
    stack.push_async_callback(client.close)
    return Buckets(
        photos=S3ObjectStore(client, settings.photos_bucket),
        thumbs=S3ObjectStore(client, settings.thumbs_bucket),
    )

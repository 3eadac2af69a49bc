import asyncio
import functools
import logging
from typing import BinaryIO, Optional

import requests
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import TransportError
from google.cloud import storage

from thumbs.config.custom_logger import time_logger
from thumbs.storage.object_store import (
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
    StoredObject,
)

CHUNK_SIZE = 256 * 1024

_BACKEND_ERRORS = (GoogleAPIError, TransportError, requests.RequestException)


async def _run_blocking(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


class GcsObjectStore(ObjectStore):
    """Google Cloud Storage bucket behind the ``ObjectStore`` contract.

    The client library is blocking, so every network call runs in the
    loop's default executor.
    """

    def __init__(self, client: storage.Client, bucket: str):
        self.client = client
        self.bucket = bucket
        self._bucket = client.bucket(bucket)

    @time_logger
    async def put(
        self, key: str, stream: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        blob = self._bucket.blob(key)
        try:
            await _run_blocking(blob.upload_from_file, stream, content_type=content_type)
        except _BACKEND_ERRORS as e:
            raise ObjectStoreError(f"upload {self.bucket}/{key} failed: {e}") from e
        logging.info(f"✅ uploaded: {key} (Bucket: {self.bucket})")

    @time_logger
    async def get(self, key: str) -> StoredObject:
        try:
            blob = await _run_blocking(self._bucket.get_blob, key)
        except NotFound as e:
            raise ObjectNotFoundError(self.bucket, key) from e
        except _BACKEND_ERRORS as e:
            raise ObjectStoreError(f"download {self.bucket}/{key} failed: {e}") from e

        if blob is None:
            raise ObjectNotFoundError(self.bucket, key)

        return StoredObject(
            key=key,
            content_type=blob.content_type,
            size=blob.size,
            chunks=self._iter_blob(blob),
        )

    async def _iter_blob(self, blob):
        reader = None
        try:
            reader = await _run_blocking(blob.open, "rb", chunk_size=CHUNK_SIZE)
            while True:
                chunk = await _run_blocking(reader.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        except _BACKEND_ERRORS as e:
            raise ObjectStoreError(f"reading {self.bucket}/{blob.name} failed: {e}") from e
        finally:
            if reader is not None:
                await _run_blocking(reader.close)

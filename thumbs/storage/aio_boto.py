import asyncio
import logging
from typing import BinaryIO, Optional

import aioboto3
import aiohttp
from botocore.exceptions import BotoCoreError, ClientError

from thumbs.config.custom_logger import time_logger
from thumbs.storage.object_store import (
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
    StoredObject,
)

CHUNK_SIZE = 64 * 1024

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
_TRANSPORT_ERRORS = (BotoCoreError, aiohttp.ClientError, asyncio.TimeoutError)


class AioBoto:
    def __init__(self, endpoint_url: str, access_key: str, secret_key: str):
        self.endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self._session = None
        self.s3_client_cm = None
        self.s3_client = None

    async def connect(self):
        if self.s3_client:
            return

        self._session = aioboto3.Session()
        self.s3_client_cm = self._session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self._access_key,
            aws_secret_access_key=self._secret_key,
        )
        self.s3_client = await self.s3_client_cm.__aenter__()
        logging.info(f"✅ S3 client ready: {self.endpoint_url}")

    async def close(self):
        if self.s3_client_cm:
            await self.s3_client_cm.__aexit__(None, None, None)
            self.s3_client_cm = None
            self.s3_client = None
        logging.info("🔴 S3 client closed")


class S3ObjectStore(ObjectStore):
    def __init__(self, client: AioBoto, bucket: str):
        self.client = client
        self.bucket = bucket

    @time_logger
    async def put(
        self, key: str, stream: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        await self.client.connect()
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            await self.client.s3_client.upload_fileobj(
                stream, Bucket=self.bucket, Key=key, ExtraArgs=extra_args
            )
        except (ClientError, *_TRANSPORT_ERRORS) as e:
            raise ObjectStoreError(f"upload {self.bucket}/{key} failed: {e}") from e
        logging.info(f"✅ uploaded: {key} (Bucket: {self.bucket})")

    @time_logger
    async def get(self, key: str) -> StoredObject:
        await self.client.connect()
        try:
            response = await self.client.s3_client.get_object(
                Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(self.bucket, key) from e
            raise ObjectStoreError(f"download {self.bucket}/{key} failed: {e}") from e
        except _TRANSPORT_ERRORS as e:
            raise ObjectStoreError(f"download {self.bucket}/{key} failed: {e}") from e

        return StoredObject(
            key=key,
            content_type=response.get("ContentType"),
            size=response.get("ContentLength"),
            chunks=self._iter_body(key, response["Body"]),
        )

    async def _iter_body(self, key: str, body):
        try:
            async with body as stream:
                async for chunk in stream.iter_chunks(CHUNK_SIZE):
                    yield chunk
        except (ClientError, *_TRANSPORT_ERRORS) as e:
            raise ObjectStoreError(f"reading {self.bucket}/{key} failed: {e}") from e

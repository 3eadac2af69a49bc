import io
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from thumbs.storage.object_store import (
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
    StoredObject,
)


class MemoryObjectStore(ObjectStore):
    def __init__(self, bucket: str = "memory", fail_on=()):
        self.bucket = bucket
        self.objects: dict[str, tuple[bytes, Optional[str]]] = {}
        self.put_calls: list[str] = []
        self.fail_on = set(fail_on)

    async def put(self, key, stream, content_type=None):
        self.put_calls.append(key)
        if key in self.fail_on:
            raise ObjectStoreError(f"put {key} failed")
        self.objects[key] = (stream.read(), content_type)

    async def get(self, key):
        if key in self.fail_on:
            raise ObjectStoreError(f"get {key} failed")
        if key not in self.objects:
            raise ObjectNotFoundError(self.bucket, key)
        data, content_type = self.objects[key]

        async def chunks():
            for i in range(0, len(data), 1024):
                yield data[i : i + 1024]

        return StoredObject(key=key, content_type=content_type, size=len(data), chunks=chunks())


def _image_bytes(size=(800, 600), image_format="JPEG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, "red").save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return _image_bytes()


@pytest.fixture
def png_bytes():
    return _image_bytes(image_format="PNG", mode="RGBA")


@pytest.fixture
def memory_store():
    return MemoryObjectStore


def make_message(body: bytes, headers=None, delivery_tag=1):
    message = MagicMock()
    message.body = body
    message.headers = headers or {}
    message.delivery_tag = delivery_tag
    message.ack = AsyncMock()
    message.reject = AsyncMock()
    message.nack = AsyncMock()
    return message


@pytest.fixture
def message_factory():
    return make_message

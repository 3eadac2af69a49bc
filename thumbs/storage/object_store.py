from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, BinaryIO, Optional


class ObjectStoreError(Exception):
    pass


class ObjectNotFoundError(ObjectStoreError):
    def __init__(self, bucket: str, key: str):
        super().__init__(f"object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


@dataclass
class StoredObject:
    key: str
    content_type: Optional[str]
    size: Optional[int]
    chunks: AsyncIterator[bytes]

    async def read(self) -> bytes:
        buffer = bytearray()
        async for chunk in self.chunks:
            buffer.extend(chunk)
        return bytes(buffer)


class ObjectStore(ABC):
    """Put/Get of named byte streams in a single bucket.

    ``put`` returns only once the object is fully written. ``get`` resolves
    the object eagerly (so a missing key raises ``ObjectNotFoundError``
    before any byte is consumed) and streams its content lazily.
    """

    bucket: str

    @abstractmethod
    async def put(
        self, key: str, stream: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> StoredObject:
        pass

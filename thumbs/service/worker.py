import asyncio
import io
import logging
from dataclasses import dataclass

from thumbs.db.repository import PhotoRepository
from thumbs.message_queue.publisher import CompletionProducer
from thumbs.service.errors import (
    PersistenceError,
    SourceFetchError,
    StorageError,
    TransformError,
)
from thumbs.service.thumbnail_result import Thumbnail, ThumbnailRequest, ThumbnailResult
from thumbs.service.thumbnail_service import (
    ThumbnailService,
    generate_thumbnail_object_key,
    guess_content_type,
)
from thumbs.storage.object_store import ObjectStore, ObjectStoreError


@dataclass
class WorkerBundle:
    photo_storage: ObjectStore
    thumb_storage: ObjectStore
    repository: PhotoRepository
    processor: ThumbnailService
    producer: CompletionProducer
    dimensions: list[int]


class ThumbsWorker:
    """Runs one unit of work: fetch, transform, store, persist, publish.

    Steps run strictly in that order. Every thumbnail is rendered before
    any is stored, so a transform failure leaves nothing behind. A storage
    failure may leave already stored thumbnails orphaned, but the photo
    record is only written once all of them are stored.
    """

    def __init__(self, bundle: WorkerBundle):
        self.photo_storage = bundle.photo_storage
        self.thumb_storage = bundle.thumb_storage
        self.repository = bundle.repository
        self.processor = bundle.processor
        self.producer = bundle.producer
        self.dimensions = list(bundle.dimensions)

    def request_for(self, filename: str, trace_id=None) -> ThumbnailRequest:
        return ThumbnailRequest(
            filename=filename, dimensions=list(self.dimensions), trace_id=trace_id
        )

    async def process(self, request: ThumbnailRequest) -> ThumbnailResult:
        original = await self._fetch(request.filename)
        logging.info(f"✅ fetched original: {request.filename} ({len(original)} bytes)")

        result = await self._transform(request, original)
        await self._store(result)

        try:
            await self.repository.save(result.filename, result.thumbnail_filenames)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"saving photo record {result.filename} failed: {e}") from e
        logging.info(f"✅ photo record saved: {result.filename}")

        try:
            await self.producer.produce(result, trace_id=request.trace_id)
        except Exception as e:
            logging.error(f"❌ completion publish failed for {result.filename}: {e}")

        return result

    async def _fetch(self, filename: str) -> bytes:
        try:
            stored = await self.photo_storage.get(filename)
            return await stored.read()
        except ObjectStoreError as e:
            raise SourceFetchError(f"fetching {filename} failed: {e}") from e

    async def _transform(self, request: ThumbnailRequest, original: bytes) -> ThumbnailResult:
        loop = asyncio.get_running_loop()
        result = ThumbnailResult(filename=request.filename)
        for dimension in request.dimensions:
            try:
                data = await loop.run_in_executor(
                    None, self.processor.generate_thumbnail, original, dimension
                )
            except Exception as e:
                raise TransformError(
                    f"resizing {request.filename} to {dimension} failed: {e}"
                ) from e

            thumbnail_filename = generate_thumbnail_object_key(request.filename, dimension)
            result.thumbnails.append(
                Thumbnail(
                    filename=thumbnail_filename,
                    dimension=dimension,
                    content=io.BytesIO(data),
                    content_type=guess_content_type(thumbnail_filename),
                )
            )
        return result

    async def _store(self, result: ThumbnailResult) -> None:
        for thumbnail in result.thumbnails:
            try:
                await self.thumb_storage.put(
                    thumbnail.filename, thumbnail.content, thumbnail.content_type
                )
            except ObjectStoreError as e:
                raise StorageError(f"storing {thumbnail.filename} failed: {e}") from e
            finally:
                thumbnail.content.close()

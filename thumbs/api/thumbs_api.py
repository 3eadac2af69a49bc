import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from thumbs.service.thumbnail_service import guess_content_type
from thumbs.storage.object_store import ObjectNotFoundError, ObjectStore, ObjectStoreError


def create_app(thumb_storage: ObjectStore) -> FastAPI:
    app = FastAPI(title="thumbs")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/thumbs/{filename:path}")
    async def get_thumb(filename: str):
        try:
            stored = await thumb_storage.get(filename)
        except ObjectNotFoundError:
            raise HTTPException(status_code=404, detail="thumbnail not found")
        except ObjectStoreError as e:
            logging.error(f"❌ thumbnail fetch failed: {filename}: {e}")
            raise HTTPException(status_code=502, detail="storage backend error")

        media_type = (
            stored.content_type
            or guess_content_type(filename)
            or "application/octet-stream"
        )
        headers = {}
        if stored.size is not None:
            headers["Content-Length"] = str(stored.size)
        return StreamingResponse(stored.chunks, media_type=media_type, headers=headers)

    return app

import io
import mimetypes
import posixpath
from typing import Optional

from PIL import Image, UnidentifiedImageError

from thumbs.config.custom_logger import time_logger


def generate_thumbnail_object_key(filename: str, dimension: int) -> str:
    # "photos/photo123.jpg", 100 -> "photos/photo123_100.jpg"
    root, ext = posixpath.splitext(filename)
    return f"{root}_{dimension}{ext}"


def guess_content_type(filename: str) -> Optional[str]:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type


class ThumbnailService:
    def __init__(self, default_format: str = "JPEG"):
        self.default_format = default_format

    @time_logger
    def generate_thumbnail(self, data: bytes, dimension: int) -> bytes:
        """Fits the image into a ``dimension`` x ``dimension`` box.

        Aspect ratio is kept and images already smaller than the box are
        left at their size. The output keeps the source format.
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image_format = image.format or self.default_format
                thumbnail_image = image.copy()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"cannot decode image: {e}") from e

        thumbnail_image.thumbnail((dimension, dimension), Image.Resampling.LANCZOS)
        if image_format == "JPEG" and thumbnail_image.mode not in ("RGB", "L"):
            thumbnail_image = thumbnail_image.convert("RGB")

        thumbnail_buffer = io.BytesIO()
        thumbnail_image.save(thumbnail_buffer, format=image_format)
        return thumbnail_buffer.getvalue()

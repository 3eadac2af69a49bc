from dataclasses import dataclass, field
from typing import BinaryIO, Optional


@dataclass
class ThumbnailRequest:
    filename: str
    dimensions: list[int]
    trace_id: Optional[str] = None


@dataclass
class Thumbnail:
    filename: str
    dimension: int
    content: BinaryIO
    content_type: Optional[str] = None


@dataclass
class ThumbnailResult:
    filename: str
    thumbnails: list[Thumbnail] = field(default_factory=list)

    @property
    def thumbnail_filenames(self) -> list[str]:
        return [thumbnail.filename for thumbnail in self.thumbnails]

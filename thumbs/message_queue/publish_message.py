from dataclasses import dataclass, field
from typing import Literal, Optional

EVENT_TYPE = "photo.thumbnails.created"


@dataclass
class PublishMessageHeader:
    event_id: str
    event_type: Literal["photo.thumbnails.created"]
    trace_id: Optional[str]
    timestamp: str
    source_service: str


@dataclass
class ThumbnailData:
    filename: str
    dimension: int


@dataclass
class PublishMessageBody:
    filename: str
    status: Literal["success", "fail"]
    completed_at: str
    thumbnails: list[ThumbnailData] = field(default_factory=list)

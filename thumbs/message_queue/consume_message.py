import json
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote_plus

from aio_pika.abc import AbstractIncomingMessage

from thumbs.service.errors import InvalidMessageError

_FILENAME_KEYS = ("filename", "key", "object_key")
_CREATED_EVENT_PREFIX = "s3:ObjectCreated:"


@dataclass
class InboundMessage:
    filename: str
    bucket: Optional[str] = None
    trace_id: Optional[str] = None


def _from_bucket_notification(body: dict) -> tuple[Any, Optional[str]]:
    # S3 / MinIO event: {"Records": [{"eventName": ..., "s3": {"bucket": {...}, "object": {"key": ...}}}]}
    record = body["Records"][0]
    event_name = record.get("eventName") or body.get("EventName")
    if event_name is not None and not str(event_name).startswith(_CREATED_EVENT_PREFIX):
        raise InvalidMessageError(f"ignoring bucket event {event_name}")

    s3 = record["s3"]
    key = s3["object"]["key"]
    if not isinstance(key, str):
        raise TypeError("object key must be a string")
    return unquote_plus(key), s3.get("bucket", {}).get("name")


def _from_flat_body(body: dict) -> tuple[Any, Optional[str]]:
    for name in _FILENAME_KEYS:
        if name in body:
            return body[name], body.get("bucket")
    raise KeyError("filename")


def decode_body(
    raw: bytes, headers: Optional[dict] = None, source_bucket: Optional[str] = None
) -> InboundMessage:
    body = json.loads(raw.decode("utf-8"))
    if not isinstance(body, dict):
        raise TypeError("message body must be a JSON object")

    if "Records" in body:
        filename, bucket = _from_bucket_notification(body)
    else:
        filename, bucket = _from_flat_body(body)

    if not isinstance(filename, str):
        raise TypeError("filename must be a string")
    if source_bucket and bucket and bucket != source_bucket:
        raise InvalidMessageError(f"ignoring event for bucket {bucket}")

    trace_id = (headers or {}).get("trace_id")
    if trace_id is not None:
        trace_id = str(trace_id)

    return InboundMessage(filename=filename, bucket=bucket, trace_id=trace_id)


def parse_message(
    message: AbstractIncomingMessage, source_bucket: Optional[str] = None
) -> Optional[InboundMessage]:
    """Decodes a delivery, returning None when it is malformed.

    Well-formed events this worker does not handle raise InvalidMessageError.
    """
    try:
        return decode_body(message.body, message.headers, source_bucket)
    except (
        json.JSONDecodeError,
        UnicodeDecodeError,
        KeyError,
        IndexError,
        TypeError,
        ValueError,
        AttributeError,
    ) as e:
        logging.error(f"❌ message decode failed: {e}")
        return None

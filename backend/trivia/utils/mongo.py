from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId

from .clock import as_utc

PRIVATE_FIELDS = ("password",)


def to_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as exc:
        raise ValueError(f"Invalid ObjectId: {value!r}") from exc


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, dict):
        return {key: _serialize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Render a Mongo document for API output: ``_id`` becomes ``id``, ObjectIds
    and datetimes become strings, and secret fields are dropped."""
    if doc is None:
        return None
    result: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in PRIVATE_FIELDS:
            continue
        if key == "_id":
            result["id"] = str(value)
            continue
        result[key] = _serialize_value(value)
    return result

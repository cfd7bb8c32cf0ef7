"""
Streaming JSON encoding and typed JSON decoding.
"""
import json
from typing import Any, Callable, Iterator, Optional

from pydantic import BaseModel, TypeAdapter

from ..config import JSON_CONTENT_TYPE
from .body_stream import BodyStream

SEPARATORS = (",", ":")


def _default(obj: Any) -> Any:
    """Convert values json does not know (models, dataclasses, datetimes...)."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    try:
        return TypeAdapter(type(obj)).dump_python(obj, mode="json")
    except Exception as exc:
        raise TypeError(
            f"Object of type {type(obj).__name__} is not JSON serializable"
        ) from exc


def _encoder() -> json.JSONEncoder:
    return json.JSONEncoder(separators=SEPARATORS, default=_default)


def dumps_json(value: Any) -> str:
    """Serialize value in one piece, exactly as the streamed body would be."""
    return _encoder().encode(value)


def iter_json(value: Any) -> Iterator[str]:
    """Serialize value lazily, piece by piece."""
    return _encoder().iterencode(value)


def json_body_stream(value: Any) -> BodyStream:
    """Body stream producing the compact JSON encoding of value."""
    return BodyStream(lambda: iter_json(value), JSON_CONTENT_TYPE)


def json_decoder(target: Optional[Any] = None) -> Callable[[bytes], Any]:
    """Return a decoder that parses bytes as JSON.

    With a target type (model, dataclass, TypedDict, list[...], ...) the
    document is validated into it; without one the plain JSON value is
    returned.
    """
    if target is None:
        return json.loads

    adapter = TypeAdapter(target)

    def decode(data: bytes) -> Any:
        return adapter.validate_json(data)

    return decode

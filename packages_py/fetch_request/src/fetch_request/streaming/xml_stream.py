"""
Streaming XML encoding and XML decoding.

Encodable values:
- an ``xml.etree.ElementTree.Element`` (written as-is)
- a pydantic model or dataclass instance (root tag is the class name,
  one child element per field)
- a mapping with exactly one key (the root tag)

Inside a value, mappings/models/dataclasses become nested elements, lists
and tuples repeat the element, None omits it and scalars become text.
Keys starting with "@" are written as attributes.
"""
import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional
from xml.etree import ElementTree
from xml.sax.saxutils import escape, quoteattr

from pydantic import BaseModel, TypeAdapter

from ..config import XML_CONTENT_TYPE
from .body_stream import BodyStream

ATTRIBUTE_PREFIX = "@"


def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return value
    return None


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _scalar_text(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _check_tag(tag: Any) -> str:
    if not isinstance(tag, str) or not tag or tag[0].isdigit() or any(ch.isspace() for ch in tag):
        raise ValueError(f"invalid XML element name: {tag!r}")
    return tag


def _iter_element(elem: ElementTree.Element) -> Iterator[str]:
    tag = _check_tag(elem.tag)
    attrs = "".join(f" {k}={quoteattr(str(v))}" for k, v in elem.attrib.items())
    yield f"<{tag}{attrs}>"
    if elem.text:
        yield escape(elem.text)
    for child in elem:
        yield from _iter_element(child)
    yield f"</{tag}>"
    if elem.tail:
        yield escape(elem.tail)


def _iter_value(tag: str, value: Any) -> Iterator[str]:
    if value is None:
        return
    if isinstance(value, ElementTree.Element):
        yield from _iter_element(value)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_value(tag, item)
        return

    tag = _check_tag(tag)
    mapping = _as_mapping(value)
    if mapping is None:
        yield f"<{tag}>{escape(_scalar_text(value))}</{tag}>"
        return

    attrs = "".join(
        f" {_check_tag(key[len(ATTRIBUTE_PREFIX):])}={quoteattr(_scalar_text(item))}"
        for key, item in mapping.items()
        if isinstance(key, str) and key.startswith(ATTRIBUTE_PREFIX) and item is not None
    )
    yield f"<{tag}{attrs}>"
    for key, item in mapping.items():
        if isinstance(key, str) and key.startswith(ATTRIBUTE_PREFIX):
            continue
        yield from _iter_value(key, item)
    yield f"</{tag}>"


def iter_xml(value: Any) -> Iterator[str]:
    """Serialize value lazily as an XML document (no declaration)."""
    if isinstance(value, ElementTree.Element):
        yield from _iter_element(value)
        return
    if isinstance(value, BaseModel) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        yield from _iter_value(type(value).__name__, value)
        return
    if isinstance(value, Mapping):
        if len(value) != 1:
            raise TypeError(
                f"a mapping needs exactly one key to name the XML root, got {len(value)}"
            )
        ((root, content),) = value.items()
        yield from _iter_value(root, content)
        return
    raise TypeError(f"cannot encode {type(value).__name__} as an XML document")


def dumps_xml(value: Any) -> str:
    """Serialize value in one piece, exactly as the streamed body would be."""
    return "".join(iter_xml(value))


def xml_body_stream(value: Any) -> BodyStream:
    """Body stream producing the XML encoding of value."""
    return BodyStream(lambda: iter_xml(value), XML_CONTENT_TYPE)


def element_to_python(elem: ElementTree.Element) -> Any:
    """Convert an element to plain Python data.

    A leaf without attributes becomes its text. Otherwise the result is a
    dict of "@attr" entries and child tags; repeated tags collect into a
    list. Whitespace-only text between children is dropped.
    """
    children = list(elem)
    if not children and not elem.attrib:
        return elem.text or ""

    result: Dict[str, Any] = {
        f"{ATTRIBUTE_PREFIX}{key}": value for key, value in elem.attrib.items()
    }
    for child in children:
        value = element_to_python(child)
        if child.tag in result:
            existing = result[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[child.tag] = [existing, value]
        else:
            result[child.tag] = value

    text = (elem.text or "").strip()
    if text:
        result["#text"] = text
    return result


def xml_decoder(target: Optional[Any] = None) -> Callable[[bytes], Any]:
    """Return a decoder that parses bytes as XML.

    Without a target (or with ``Element``) the root element is returned;
    otherwise the root is converted with element_to_python and validated
    into target.
    """
    if target is None or target is ElementTree.Element:
        return ElementTree.fromstring

    adapter = TypeAdapter(target)

    def decode(data: bytes) -> Any:
        return adapter.validate_python(element_to_python(ElementTree.fromstring(data)))

    return decode

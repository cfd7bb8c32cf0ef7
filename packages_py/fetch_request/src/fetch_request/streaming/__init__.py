"""
Streaming body encoders and response decoders.
"""
from .body_stream import BodyStream
from .json_stream import dumps_json, iter_json, json_body_stream, json_decoder
from .xml_stream import (
    dumps_xml,
    element_to_python,
    iter_xml,
    xml_body_stream,
    xml_decoder,
)

__all__ = [
    "BodyStream",
    "dumps_json",
    "iter_json",
    "json_body_stream",
    "json_decoder",
    "dumps_xml",
    "element_to_python",
    "iter_xml",
    "xml_body_stream",
    "xml_decoder",
]

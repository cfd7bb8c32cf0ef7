"""
Core module for fetch_request.
"""
from .request_builder import RequestBuilder, new
from .result import Result, ResultDecoder

__all__ = [
    "RequestBuilder",
    "new",
    "Result",
    "ResultDecoder",
]

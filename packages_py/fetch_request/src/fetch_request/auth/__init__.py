"""
Auth module for fetch_request.
"""
from .auth_header import (
    basic_auth_value,
    bearer_auth_value,
    mask_auth_value,
)

__all__ = [
    "basic_auth_value",
    "bearer_auth_value",
    "mask_auth_value",
]

"""
Authorization header values for fetch_request.
"""
import base64
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def _base64_encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("utf-8")


def mask_auth_value(val: Optional[str], visible_chars: int = 10) -> str:
    """Mask sensitive value for logging, showing the first visible_chars chars."""
    if not val:
        return "<empty>"
    if len(val) <= visible_chars:
        return "*" * len(val)
    return val[:visible_chars] + "*" * (len(val) - visible_chars)


def basic_auth_value(username: str, password: str) -> str:
    """Return "Basic <base64(username:password)>" (RFC 7617)."""
    value = f"Basic {_base64_encode(f'{username}:{password}')}"
    logger.debug(f"basic_auth_value: username={username!r} -> Authorization={mask_auth_value(value)}")
    return value


def bearer_auth_value(token: str) -> str:
    """Return "Bearer <token>"."""
    return f"Bearer {token}"

"""
Configuration for fetch_request.

DEFAULT_CLIENT_TIMEOUT is process-wide state. Reassign it at start-up only;
changing it while requests are in flight races with default client
construction.
"""
import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

import httpx

logger = logging.getLogger("fetch_request.config")

TIMEOUT_ENV_VAR = "FETCH_REQUEST_DEFAULT_TIMEOUT"

# Default values
FALLBACK_CLIENT_TIMEOUT = 60.0
JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

TimeoutValue = Union[float, int, timedelta]


def _timeout_from_env() -> float:
    """Read the default timeout (seconds) from the environment, if set."""
    raw = os.environ.get(TIMEOUT_ENV_VAR, "").strip()
    if not raw:
        return FALLBACK_CLIENT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning(
            f"Ignoring {TIMEOUT_ENV_VAR}={raw!r}: not a number, "
            f"using {FALLBACK_CLIENT_TIMEOUT}s"
        )
        return FALLBACK_CLIENT_TIMEOUT


# Timeout (seconds) for clients built when none is supplied.
DEFAULT_CLIENT_TIMEOUT: float = _timeout_from_env()


def is_ssl_verify_disabled_by_env() -> bool:
    """
    Check if SSL verification is disabled via environment variables.

    Returns True if any of these are set:
    - NODE_TLS_REJECT_UNAUTHORIZED=0
    - SSL_CERT_VERIFY=0
    """
    node_tls = os.environ.get("NODE_TLS_REJECT_UNAUTHORIZED", "")
    ssl_cert_verify = os.environ.get("SSL_CERT_VERIFY", "")
    return node_tls == "0" or ssl_cert_verify == "0"


@dataclass(frozen=True)
class DefaultClientConfig:
    """Settings used to build a default client."""

    timeout: float
    verify: bool = True


def default_client_config() -> DefaultClientConfig:
    """Snapshot the current process-wide defaults."""
    return DefaultClientConfig(
        timeout=DEFAULT_CLIENT_TIMEOUT,
        verify=not is_ssl_verify_disabled_by_env(),
    )


def normalize_timeout(timeout: Optional[TimeoutValue]) -> Optional[float]:
    """Convert a timeout to seconds.

    Returns None for "no override". Values <= 0 are kept as-is; they mean
    "no timeout" once applied.
    """
    if timeout is None:
        return None
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise TypeError(
            f"timeout must be seconds or a timedelta, got {type(timeout).__name__}"
        )
    return float(timeout)


def to_httpx_timeout(seconds: Optional[float]) -> httpx.Timeout:
    """Build an httpx.Timeout; None or <= 0 disables all timeouts."""
    if seconds is None or seconds <= 0:
        return httpx.Timeout(None)
    return httpx.Timeout(seconds)

"""Exception taxonomy.

Proxy-side errors know their HTTP status and render themselves as the
uniform error envelope ``{"error", "message", "details"}``. Pipeline-side
errors (ModelOutputParseError, RunAbortedError) never reach HTTP.
"""

from __future__ import annotations

import socket
from typing import Any, Dict, Optional

import httpx

NETWORK_HINT = "Network error: Unable to reach Copernicus servers. Check your internet connection."


class ChronoverifyError(Exception):
    """Base class for every error raised by this package."""


class ProxyError(ChronoverifyError):
    status_code: int = 500
    error_kind: str = "Request failed"

    def __init__(self, message: str, *, error_kind: Optional[str] = None, is_network: bool = False):
        super().__init__(message)
        self.message = message
        if error_kind:
            self.error_kind = error_kind
        self.is_network = is_network

    @property
    def details(self) -> str:
        return NETWORK_HINT if self.is_network else self.message

    def to_envelope(self) -> Dict[str, Any]:
        return {"error": self.error_kind, "message": self.message, "details": self.details}


class ValidationError(ProxyError):
    """Missing or out-of-range caller input. Never retried."""
    status_code = 400
    error_kind = "Missing required parameters"


class AuthConfigurationError(ProxyError):
    """Upstream client credentials are not configured."""
    error_kind = "Authentication not configured"


class UpstreamAuthError(ProxyError):
    """Token acquisition against the identity provider failed."""
    error_kind = "Authentication failed"


class UpstreamRequestError(ProxyError):
    """A catalogue search or thumbnail request failed."""
    error_kind = "Search failed"


class ModelOutputParseError(ChronoverifyError):
    """The completion service returned text that is not the expected JSON shape."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class UnsupportedMediaError(ChronoverifyError, ValueError):
    """The file is not an image the completion service can analyze."""


class RunAbortedError(ChronoverifyError):
    """A pipeline run stopped on an unrecovered error; the message is the cause's message."""

    def __init__(self, message: str, phase: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase


def is_network_failure(exc: BaseException) -> bool:
    """True when exc (or anything in its cause chain) is a DNS/connectivity failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (httpx.ConnectError, httpx.ConnectTimeout, socket.gaierror)):
            return True
        current = current.__cause__ or current.__context__
    return False

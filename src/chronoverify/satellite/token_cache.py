"""Expiring bearer-token cache.

Holds one access token and its expiry; a new token is fetched only when the
cached one is missing, expired (minus a safety skew) or explicitly invalidated.
"""

import threading
import time
from typing import Callable, Optional

from pydantic import BaseModel


class AccessToken(BaseModel):
    access_token: str
    expires_in: int = 0


class TokenCache:
    def __init__(
        self,
        fetch: Callable[[], AccessToken],
        skew_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._skew = skew_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def get(self, force_refresh: bool = False) -> str:
        # Proxy handlers run in a threadpool; one fetch at a time
        with self._lock:
            now = self._clock()
            if not force_refresh and self._token is not None and now < self._expires_at:
                return self._token

            fresh = self._fetch()
            self._token = fresh.access_token
            self._expires_at = now + max(0, fresh.expires_in - self._skew)
            return self._token

    def invalidate(self):
        with self._lock:
            self._token = None
            self._expires_at = 0.0

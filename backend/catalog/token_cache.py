"""
Access token cache

Holds one bearer token for the Spotify client-credentials flow and renews it
shortly before it expires. Safe to share between request threads: at most
one caller performs the token exchange while the others wait for it.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# (access_token, expires_in_seconds)
TokenFetcher = Callable[[], tuple[str, int]]


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TokenCache:
    def __init__(
        self,
        fetch: TokenFetcher,
        refresh_margin: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    def get(self) -> str:
        """Return a valid token, fetching a new one if needed."""
        token = self._token
        if token is not None and not token.is_expired(self._clock()):
            return token.value

        with self._lock:
            token = self._token
            if token is not None and not token.is_expired(self._clock()):
                return token.value

            value, expires_in = self._fetch()
            token = AccessToken(
                value=value,
                expires_at=self._clock() + expires_in - self._refresh_margin,
            )
            self._token = token
            logger.debug("Access token renewed (expires in %ds)", expires_in)
            return token.value

    def invalidate(self) -> None:
        """Drop the cached token so the next get() fetches a fresh one."""
        with self._lock:
            self._token = None

    @property
    def expires_at(self) -> float | None:
        token = self._token
        return token.expires_at if token else None

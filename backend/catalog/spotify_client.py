"""Spotify Web API client for track lookups and search."""

from __future__ import annotations

import base64
import http.client
import json
import logging
import threading
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from . import config
from .errors import UpstreamFailure
from .models import CatalogTrack, parse_track
from .token_cache import TokenCache

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Client for the Spotify Web API using the Client Credentials flow."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_cache: TokenCache | None = None,
    ):
        self.client_id = config.SPOTIFY_CLIENT_ID if client_id is None else client_id
        self.client_secret = (
            config.SPOTIFY_CLIENT_SECRET if client_secret is None else client_secret
        )
        self.token_cache = token_cache or TokenCache(
            self._request_access_token,
            refresh_margin=config.SPOTIFY_TOKEN_REFRESH_MARGIN,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _request_access_token(self) -> tuple[str, int]:
        if not self.configured:
            raise UpstreamFailure("Spotify API credentials not configured")

        credentials = f"{self.client_id}:{self.client_secret}"
        credentials_b64 = base64.b64encode(credentials.encode()).decode()

        headers = {
            "Authorization": f"Basic {credentials_b64}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        data = b"grant_type=client_credentials"
        request = urllib.request.Request(
            config.SPOTIFY_TOKEN_URL, data=data, headers=headers, method="POST"
        )

        try:
            with urllib.request.urlopen(request, timeout=config.SPOTIFY_TOKEN_TIMEOUT) as response:
                result = json.loads(response.read().decode())
        except urllib.error.HTTPError as e:
            raise UpstreamFailure(
                f"Failed to get Spotify access token (HTTP {e.code})"
            ) from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise UpstreamFailure(f"Failed to get Spotify access token: {e}") from e

        try:
            return str(result["access_token"]), int(result["expires_in"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamFailure("Malformed Spotify token response") from e

    def _request(self, endpoint: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """Make one authenticated GET request. Failures are not retried."""
        token = self.token_cache.get()

        url = f"{config.SPOTIFY_API_BASE_URL}/{endpoint}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        request = urllib.request.Request(url, headers=headers)

        try:
            with urllib.request.urlopen(request, timeout=config.SPOTIFY_REQUEST_TIMEOUT) as response:
                payload = json.loads(response.read().decode())
        except urllib.error.HTTPError as e:
            if e.code == 401:
                # Token revoked or expired early; renew on the next call.
                self.token_cache.invalidate()
            if e.code == 429:
                retry_after = e.headers.get("Retry-After") if e.headers else None
                logger.warning("Spotify rate limit hit on %s (Retry-After=%s)", endpoint, retry_after)
                raise UpstreamFailure("Spotify rate limit exceeded, try again later") from e
            raise UpstreamFailure(f"Spotify request failed (HTTP {e.code})") from e
        except (OSError, http.client.HTTPException) as e:
            # Also covers errors raised while reading the body.
            raise UpstreamFailure(f"Spotify request failed: {e}") from e
        except ValueError as e:
            raise UpstreamFailure("Spotify returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise UpstreamFailure("Spotify returned an unexpected payload")
        return payload

    def get_track_payload(self, track_id: str) -> dict[str, Any]:
        return self._request(f"tracks/{urllib.parse.quote(track_id)}")

    def get_track(self, track_id: str) -> CatalogTrack:
        """Get a track by Spotify ID, parsed into a CatalogTrack."""
        return parse_track(self.get_track_payload(track_id))

    def search_tracks(self, query: str, limit: int = config.SEARCH_DEFAULT_LIMIT) -> list[dict[str, Any]]:
        result = self._request(
            "search", {"q": query, "type": "track", "limit": str(limit)}
        )
        tracks = result.get("tracks") or {}
        items = tracks.get("items") if isinstance(tracks, dict) else None
        return [item for item in items or [] if isinstance(item, dict)]


# Global client instance
_spotify_client: SpotifyClient | None = None
_spotify_client_lock = threading.Lock()


def get_spotify_client() -> SpotifyClient:
    """Get or create the process-wide Spotify client."""
    global _spotify_client
    if _spotify_client is not None:
        return _spotify_client
    with _spotify_client_lock:
        if _spotify_client is None:
            _spotify_client = SpotifyClient()
        return _spotify_client

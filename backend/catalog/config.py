from __future__ import annotations

import os

SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")

SPOTIFY_TOKEN_URL = os.environ.get(
    "SPOTIFY_TOKEN_URL", "https://accounts.spotify.com/api/token"
)
SPOTIFY_API_BASE_URL = os.environ.get(
    "SPOTIFY_API_BASE_URL", "https://api.spotify.com/v1"
).rstrip("/")

SPOTIFY_TOKEN_TIMEOUT = float(os.environ.get("SPOTIFY_TOKEN_TIMEOUT", "10"))
SPOTIFY_REQUEST_TIMEOUT = float(os.environ.get("SPOTIFY_REQUEST_TIMEOUT", "15"))

# Tokens are renewed this many seconds before Spotify says they expire.
SPOTIFY_TOKEN_REFRESH_MARGIN = int(os.environ.get("SPOTIFY_TOKEN_REFRESH_MARGIN", "60"))

SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 50

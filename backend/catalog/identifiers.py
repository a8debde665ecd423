from __future__ import annotations

import re

from .errors import InvalidIdentifier

_TRACK_URL_RE = re.compile(r"spotify\.com/(?:intl-[a-z-]+/)?track/([A-Za-z0-9]+)")
_BARE_ID_RE = re.compile(r"[A-Za-z0-9]{22}")


def extract_track_id(value: str | None) -> str:
    """Return the Spotify track ID from a track URL or a bare 22-char ID.

    ``https://open.spotify.com/track/<id>?si=...`` and
    ``https://open.spotify.com/intl-de/track/<id>`` both yield ``<id>``.
    Raises InvalidIdentifier for anything else.
    """
    text = (value or "").strip()
    if not text:
        raise InvalidIdentifier(value)

    match = _TRACK_URL_RE.search(text)
    if match:
        return match.group(1)

    if _BARE_ID_RE.fullmatch(text):
        return text

    raise InvalidIdentifier(value)

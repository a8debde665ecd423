from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import UpstreamFailure


@dataclass(frozen=True)
class CatalogArtist:
    spotify_id: str
    name: str


@dataclass(frozen=True)
class CatalogAlbum:
    spotify_id: str
    title: str
    image_urls: list[str] = field(default_factory=list)
    release_date: str | None = None

    @property
    def cover_url(self) -> str | None:
        return self.image_urls[0] if self.image_urls else None


@dataclass(frozen=True)
class CatalogTrack:
    """A Spotify track as returned by ``GET /tracks/{id}``.

    ``raw`` keeps the untouched payload so it can be stored alongside the
    track row.
    """

    spotify_id: str
    title: str
    duration_ms: int | None
    track_number: int | None
    artists: list[CatalogArtist]
    album: CatalogAlbum
    raw: dict[str, Any] = field(repr=False, compare=False)

    @property
    def primary_artist(self) -> CatalogArtist:
        return self.artists[0]


def _require_str(payload: dict[str, Any], key: str, what: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise UpstreamFailure(f"Malformed Spotify {what}: missing '{key}'")
    return value


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def parse_artist(payload: Any) -> CatalogArtist:
    if not isinstance(payload, dict):
        raise UpstreamFailure("Malformed Spotify artist")
    return CatalogArtist(
        spotify_id=_require_str(payload, "id", "artist"),
        name=_require_str(payload, "name", "artist"),
    )


def parse_album(payload: Any) -> CatalogAlbum:
    if not isinstance(payload, dict):
        raise UpstreamFailure("Malformed Spotify track: missing 'album'")

    image_urls: list[str] = []
    for image in payload.get("images") or []:
        if isinstance(image, dict) and image.get("url"):
            image_urls.append(str(image["url"]))

    release_date = payload.get("release_date")
    return CatalogAlbum(
        spotify_id=_require_str(payload, "id", "album"),
        title=_require_str(payload, "name", "album"),
        image_urls=image_urls,
        release_date=str(release_date) if release_date else None,
    )


def parse_track(payload: Any) -> CatalogTrack:
    if not isinstance(payload, dict):
        raise UpstreamFailure("Malformed Spotify track")

    artists_payload = payload.get("artists")
    if not isinstance(artists_payload, list) or not artists_payload:
        raise UpstreamFailure("Malformed Spotify track: no credited artists")

    return CatalogTrack(
        spotify_id=_require_str(payload, "id", "track"),
        title=_require_str(payload, "name", "track"),
        duration_ms=_optional_int(payload.get("duration_ms")),
        track_number=_optional_int(payload.get("track_number")),
        artists=[parse_artist(item) for item in artists_payload],
        album=parse_album(payload.get("album")),
        raw=payload,
    )

"""Shared fixtures: an in-memory catalog store and a scripted Spotify lookup."""

from __future__ import annotations

import itertools
import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient

from backend.api.app import app
from backend.api.deps import get_catalog_client, get_store
from backend.catalog.errors import PersistenceFailure, UpstreamFailure
from backend.catalog.models import CatalogAlbum, CatalogArtist, CatalogTrack, parse_track
from backend.db.catalog_store import EDITABLE_TRACK_FIELDS

TRACK_ID = "4uLU6hMCjMI75M1A2tKUQC"


def make_track_payload(
    track_id: str = TRACK_ID,
    name: str = "Never Gonna Give You Up",
    artists: list[tuple[str, str]] | None = None,
    album_id: str = "6XhjNHCyCDyyGJRM5mg40G",
    album_name: str = "Whenever You Need Somebody",
    images: list[str] | None = None,
    release_date: str = "1987-11-12",
) -> dict[str, Any]:
    if artists is None:
        artists = [("0gxyHStUsqpMadRV0Di1Qt", "Rick Astley")]
    if images is None:
        images = ["https://i.scdn.co/image/large", "https://i.scdn.co/image/small"]
    return {
        "id": track_id,
        "name": name,
        "duration_ms": 213573,
        "track_number": 1,
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
        "artists": [{"id": artist_id, "name": artist_name} for artist_id, artist_name in artists],
        "album": {
            "id": album_id,
            "name": album_name,
            "images": [{"url": url, "height": 640, "width": 640} for url in images],
            "release_date": release_date,
        },
    }


class FakeCatalog:
    """Serves canned track payloads keyed by Spotify ID."""

    configured = True

    def __init__(self, payloads: dict[str, dict[str, Any]] | None = None):
        self.payloads = dict(payloads or {})
        self.search_results: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.error: Exception | None = None

    def get_track(self, track_id: str) -> CatalogTrack:
        self.calls.append(track_id)
        if self.error is not None:
            raise self.error
        if track_id not in self.payloads:
            raise UpstreamFailure("Spotify request failed (HTTP 404)")
        return parse_track(self.payloads[track_id])

    def search_tracks(self, query: str, limit: int = 20) -> list[dict[str, Any]]:
        self.calls.append(f"search:{query}:{limit}")
        if self.error is not None:
            raise self.error
        return self.search_results[:limit]


class FakeStore:
    """Dict-backed stand-in for CatalogStore with the same unique keys."""

    def __init__(self):
        self.artists: dict[str, dict[str, Any]] = {}
        self.albums: dict[str, dict[str, Any]] = {}
        self.tracks: dict[str, dict[str, Any]] = {}
        self._clock = itertools.count(1)
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PersistenceFailure(f"Database error while {operation}")

    @staticmethod
    def _find(rows: dict[str, dict[str, Any]], spotify_id: str) -> str | None:
        for row_id, row in rows.items():
            if row["spotify_id"] == spotify_id:
                return row_id
        return None

    def find_track_id(self, spotify_id: str) -> str | None:
        return self._find(self.tracks, spotify_id)

    def find_artist_id(self, spotify_id: str) -> str | None:
        return self._find(self.artists, spotify_id)

    def find_album_id(self, spotify_id: str) -> str | None:
        return self._find(self.albums, spotify_id)

    def insert_artist(self, artist: CatalogArtist) -> str | None:
        self._check("inserting artist")
        if self._find(self.artists, artist.spotify_id):
            return None
        row_id = str(uuid.uuid4())
        self.artists[row_id] = {"name": artist.name, "spotify_id": artist.spotify_id}
        return row_id

    def insert_album(self, album: CatalogAlbum, artist_id: str) -> str | None:
        self._check("inserting album")
        if self._find(self.albums, album.spotify_id):
            return None
        row_id = str(uuid.uuid4())
        self.albums[row_id] = {
            "title": album.title,
            "artist_id": artist_id,
            "spotify_id": album.spotify_id,
            "cover_url": album.cover_url,
            "release_date": album.release_date,
        }
        return row_id

    def insert_track(self, track: CatalogTrack, artist_id: str, album_id: str) -> str | None:
        self._check("inserting track")
        if self._find(self.tracks, track.spotify_id):
            return None
        row_id = str(uuid.uuid4())
        self.tracks[row_id] = {
            "title": track.title,
            "artist_id": artist_id,
            "album_id": album_id,
            "duration_ms": track.duration_ms,
            "track_number": track.track_number,
            "tempo": None,
            "spotify_id": track.spotify_id,
            "spotify_data": track.raw,
            "created_at": next(self._clock),
        }
        return row_id

    def get_track(self, track_id: str, include_source: bool = False) -> dict[str, Any] | None:
        row = self.tracks.get(track_id)
        if row is None:
            return None
        artist = self.artists.get(row["artist_id"])
        album = self.albums.get(row["album_id"])
        track = {
            "id": track_id,
            **{key: value for key, value in row.items() if key != "spotify_data"},
            "artist": {"name": artist["name"], "spotify_id": artist["spotify_id"]} if artist else None,
            "album": {
                "title": album["title"],
                "cover_url": album["cover_url"],
                "release_date": album["release_date"],
                "spotify_id": album["spotify_id"],
            }
            if album
            else None,
        }
        if include_source:
            track["spotify_data"] = row["spotify_data"]
        return track

    def list_tracks(self) -> list[dict[str, Any]]:
        ordered = sorted(self.tracks, key=lambda key: self.tracks[key]["created_at"], reverse=True)
        return [self.get_track(track_id) for track_id in ordered]

    def imported_spotify_ids(self, spotify_ids) -> set[str]:
        known = {row["spotify_id"] for row in self.tracks.values()}
        return {value for value in spotify_ids if value in known}

    def update_track(self, track_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        assert set(fields) <= set(EDITABLE_TRACK_FIELDS)
        row = self.tracks.get(track_id)
        if row is None:
            return None
        row.update(fields)
        return self.get_track(track_id)

    def delete_track(self, track_id: str) -> bool:
        return self.tracks.pop(track_id, None) is not None


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog({TRACK_ID: make_track_payload()})


@pytest.fixture
def client(store: FakeStore, catalog: FakeCatalog):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_catalog_client] = lambda: catalog
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_payload():
    return make_track_payload

"""Import a Spotify track into the local catalog.

The workflow resolves, in order, the track's primary artist, its album and
finally the track itself, creating each row only when its Spotify ID is not
already stored. Nothing is written until the Spotify lookup has succeeded.
Artist and album rows created before a failed track insert are kept; later
imports that reference the same Spotify IDs reuse them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Protocol

from .errors import AlreadyExists, PersistenceFailure
from .identifiers import extract_track_id
from .models import CatalogAlbum, CatalogArtist, CatalogTrack

logger = logging.getLogger(__name__)


class CatalogLookup(Protocol):
    def get_track(self, track_id: str) -> CatalogTrack: ...


class ImportStore(Protocol):
    def find_track_id(self, spotify_id: str) -> str | None: ...
    def find_artist_id(self, spotify_id: str) -> str | None: ...
    def find_album_id(self, spotify_id: str) -> str | None: ...
    def insert_artist(self, artist: CatalogArtist) -> str | None: ...
    def insert_album(self, album: CatalogAlbum, artist_id: str) -> str | None: ...
    def insert_track(self, track: CatalogTrack, artist_id: str, album_id: str) -> str | None: ...
    def get_track(self, track_id: str, include_source: bool = False) -> dict[str, Any] | None: ...


def _get_or_create(
    kind: str,
    spotify_id: str,
    find: Callable[[str], str | None],
    insert: Callable[[], str | None],
) -> str:
    existing = find(spotify_id)
    if existing:
        logger.debug("Reusing %s %s for %s", kind, existing, spotify_id)
        return existing

    created = insert()
    if created:
        logger.info("Created %s %s for %s", kind, created, spotify_id)
        return created

    # Another import inserted the same key between our lookup and insert.
    existing = find(spotify_id)
    if not existing:
        raise PersistenceFailure(f"Could not resolve {kind} {spotify_id}")
    logger.info("Reusing %s %s for %s after concurrent insert", kind, existing, spotify_id)
    return existing


def resolve_artist(store: ImportStore, artist: CatalogArtist) -> str:
    return _get_or_create(
        "artist",
        artist.spotify_id,
        store.find_artist_id,
        lambda: store.insert_artist(artist),
    )


def resolve_album(store: ImportStore, album: CatalogAlbum, artist_id: str) -> str:
    return _get_or_create(
        "album",
        album.spotify_id,
        store.find_album_id,
        lambda: store.insert_album(album, artist_id),
    )


def import_track(store: ImportStore, catalog: CatalogLookup, url_or_id: str) -> dict[str, Any]:
    """Import one track by Spotify URL or ID and return the stored row.

    Raises InvalidIdentifier, AlreadyExists, UpstreamFailure or
    PersistenceFailure.
    """
    spotify_id = extract_track_id(url_or_id)

    existing = store.find_track_id(spotify_id)
    if existing:
        logger.info("Track %s already imported as %s", spotify_id, existing)
        raise AlreadyExists(spotify_id, existing)

    track = catalog.get_track(spotify_id)

    artist_id = resolve_artist(store, track.primary_artist)
    album_id = resolve_album(store, track.album, artist_id)

    # Store under the requested key so the duplicate guard keeps matching it,
    # even if Spotify answers with a relinked track.
    if track.spotify_id != spotify_id:
        logger.info("Spotify relinked %s to %s", spotify_id, track.spotify_id)

    track_id = store.insert_track(replace(track, spotify_id=spotify_id), artist_id, album_id)
    if not track_id:
        existing = store.find_track_id(spotify_id)
        if not existing:
            raise PersistenceFailure(f"Could not insert track {spotify_id}")
        logger.info("Track %s was imported concurrently as %s", spotify_id, existing)
        raise AlreadyExists(spotify_id, existing)

    created = store.get_track(track_id)
    if not created:
        raise PersistenceFailure(f"Track {track_id} missing after insert")

    logger.info(
        "Imported track %s (%s) as %s",
        spotify_id,
        track.title,
        track_id,
    )
    return created

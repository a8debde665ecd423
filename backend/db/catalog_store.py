from __future__ import annotations

import datetime as dt
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from backend.catalog.errors import PersistenceFailure
from backend.catalog.models import CatalogAlbum, CatalogArtist, CatalogTrack

logger = logging.getLogger(__name__)

EDITABLE_TRACK_FIELDS = ("title", "tempo", "track_number", "duration_ms")

_TRACK_SELECT = """
    SELECT
        t.id,
        t.title,
        t.artist_id,
        t.album_id,
        t.duration_ms,
        t.track_number,
        t.tempo,
        t.spotify_id,
        t.created_at,
        t.updated_at,
        ar.name,
        ar.spotify_id,
        al.title,
        al.cover_url,
        al.release_date,
        al.spotify_id,
        t.spotify_data
    FROM tracks t
    LEFT JOIN artists ar ON ar.id = t.artist_id
    LEFT JOIN albums al ON al.id = t.album_id
"""


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    return str(value)


def _track_from_row(row: tuple, include_source: bool) -> dict[str, Any]:
    track: dict[str, Any] = {
        "id": _text(row[0]),
        "title": row[1],
        "artist_id": _text(row[2]),
        "album_id": _text(row[3]),
        "duration_ms": row[4],
        "track_number": row[5],
        "tempo": row[6],
        "spotify_id": row[7],
        "created_at": _text(row[8]),
        "updated_at": _text(row[9]),
        "artist": {"name": row[10], "spotify_id": row[11]} if row[2] else None,
        "album": {
            "title": row[12],
            "cover_url": row[13],
            "release_date": row[14],
            "spotify_id": row[15],
        }
        if row[3]
        else None,
    }
    if include_source:
        track["spotify_data"] = row[16]
    return track


def is_valid_track_id(track_id: str) -> bool:
    try:
        uuid.UUID(track_id)
    except (TypeError, ValueError):
        return False
    return True


class CatalogStore:
    """Artist, album and track rows on one database connection.

    Every write commits on its own; callers get no multi-statement
    transaction. Driver errors are rolled back and re-raised as
    PersistenceFailure.
    """

    def __init__(self, conn: psycopg.Connection):
        self._conn = conn

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except psycopg.Error as exc:
            try:
                self._conn.rollback()
            except psycopg.Error:
                logger.warning("Rollback failed after error while %s", action)
            logger.error("Database error while %s: %s", action, exc)
            raise PersistenceFailure(f"Database error while {action}") from exc

    def _find_id(self, table: str, spotify_id: str) -> str | None:
        query = sql.SQL("SELECT id FROM {} WHERE spotify_id = %s").format(
            sql.Identifier(table)
        )
        with self._guard(f"looking up {table}"):
            with self._conn.cursor() as cur:
                cur.execute(query, (spotify_id,))
                row = cur.fetchone()
        return _text(row[0]) if row else None

    # Lookups by external key

    def find_track_id(self, spotify_id: str) -> str | None:
        return self._find_id("tracks", spotify_id)

    def find_artist_id(self, spotify_id: str) -> str | None:
        return self._find_id("artists", spotify_id)

    def find_album_id(self, spotify_id: str) -> str | None:
        return self._find_id("albums", spotify_id)

    # Inserts. Each returns None when the unique spotify_id already exists.

    def insert_artist(self, artist: CatalogArtist) -> str | None:
        with self._guard("inserting artist"):
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO artists (name, spotify_id)
                    VALUES (%s, %s)
                    ON CONFLICT (spotify_id) DO NOTHING
                    RETURNING id
                    """,
                    (artist.name, artist.spotify_id),
                )
                row = cur.fetchone()
            self._conn.commit()
        return _text(row[0]) if row else None

    def insert_album(self, album: CatalogAlbum, artist_id: str) -> str | None:
        with self._guard("inserting album"):
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO albums (title, artist_id, spotify_id, cover_url, release_date)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (spotify_id) DO NOTHING
                    RETURNING id
                    """,
                    (
                        album.title,
                        artist_id,
                        album.spotify_id,
                        album.cover_url,
                        album.release_date,
                    ),
                )
                row = cur.fetchone()
            self._conn.commit()
        return _text(row[0]) if row else None

    def insert_track(self, track: CatalogTrack, artist_id: str, album_id: str) -> str | None:
        with self._guard("inserting track"):
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO tracks (
                        title,
                        artist_id,
                        album_id,
                        duration_ms,
                        track_number,
                        spotify_id,
                        spotify_data
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (spotify_id) DO NOTHING
                    RETURNING id
                    """,
                    (
                        track.title,
                        artist_id,
                        album_id,
                        track.duration_ms,
                        track.track_number,
                        track.spotify_id,
                        Jsonb(track.raw),
                    ),
                )
                row = cur.fetchone()
            self._conn.commit()
        return _text(row[0]) if row else None

    # Track reads and edits

    def get_track(self, track_id: str, include_source: bool = False) -> dict[str, Any] | None:
        with self._guard("reading track"):
            with self._conn.cursor() as cur:
                cur.execute(_TRACK_SELECT + " WHERE t.id = %s", (track_id,))
                row = cur.fetchone()
        return _track_from_row(row, include_source) if row else None

    def list_tracks(self) -> list[dict[str, Any]]:
        with self._guard("listing tracks"):
            with self._conn.cursor() as cur:
                cur.execute(_TRACK_SELECT + " ORDER BY t.created_at DESC, t.id")
                rows = cur.fetchall()
        return [_track_from_row(row, include_source=False) for row in rows]

    def imported_spotify_ids(self, spotify_ids: Iterable[str]) -> set[str]:
        ids = [value for value in spotify_ids if value]
        if not ids:
            return set()
        with self._guard("checking imported tracks"):
            with self._conn.cursor() as cur:
                cur.execute(
                    "SELECT spotify_id FROM tracks WHERE spotify_id = ANY(%s)",
                    (ids,),
                )
                rows = cur.fetchall()
        return {row[0] for row in rows}

    def update_track(self, track_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        unknown = set(fields) - set(EDITABLE_TRACK_FIELDS)
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in fields
        ]
        assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL("UPDATE tracks SET {} WHERE id = %s RETURNING id").format(
            sql.SQL(", ").join(assignments)
        )

        with self._guard("updating track"):
            with self._conn.cursor() as cur:
                cur.execute(query, (*fields.values(), track_id))
                row = cur.fetchone()
            self._conn.commit()
        if not row:
            return None
        return self.get_track(track_id)

    def delete_track(self, track_id: str) -> bool:
        """Delete one track. Returns False when it was already gone."""
        with self._guard("deleting track"):
            with self._conn.cursor() as cur:
                cur.execute("DELETE FROM tracks WHERE id = %s", (track_id,))
                deleted = cur.rowcount
            self._conn.commit()
        return deleted > 0

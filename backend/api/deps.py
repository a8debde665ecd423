from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Iterator

import psycopg

from backend.catalog.errors import PersistenceFailure
from backend.catalog.spotify_client import SpotifyClient, get_spotify_client
from backend.db.catalog_store import CatalogStore
from backend.db.connection import get_connection

logger = logging.getLogger(__name__)


def get_store() -> Iterator[CatalogStore]:
    """FastAPI dependency for a catalog store on a pooled connection."""
    with ExitStack() as stack:
        try:
            conn = stack.enter_context(get_connection())
        except (psycopg.Error, RuntimeError) as exc:
            # Pool timeouts and a missing database URL land here.
            logger.error("Database connection unavailable: %s", exc)
            raise PersistenceFailure("Database unavailable") from exc
        yield CatalogStore(conn)


def get_catalog_client() -> SpotifyClient:
    """FastAPI dependency for the shared Spotify client."""
    return get_spotify_client()

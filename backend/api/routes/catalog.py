from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from backend.api.deps import get_catalog_client, get_store
from backend.catalog import config as catalog_config
from backend.catalog.errors import CatalogError
from backend.catalog.spotify_client import SpotifyClient
from backend.db.catalog_store import CatalogStore

router = APIRouter()


def _summarize(item: dict[str, Any]) -> dict[str, Any]:
    album = item.get("album")
    if not isinstance(album, dict):
        album = {}
    images = album.get("images")
    first_image = images[0] if isinstance(images, list) and images else None
    artists = item.get("artists")
    names = [
        artist["name"]
        for artist in (artists if isinstance(artists, list) else [])
        if isinstance(artist, dict) and artist.get("name")
    ]
    return {
        "spotify_id": item.get("id"),
        "title": item.get("name"),
        "artists": names,
        "album": album.get("name"),
        "cover_url": first_image.get("url") if isinstance(first_image, dict) else None,
        "release_date": album.get("release_date"),
        "duration_ms": item.get("duration_ms"),
    }


@router.get("/status")
def catalog_status(catalog: SpotifyClient = Depends(get_catalog_client)) -> dict[str, Any]:
    return {"provider": "spotify", "configured": catalog.configured}


@router.get("/search")
def search_catalog(
    q: str = "",
    limit: int = catalog_config.SEARCH_DEFAULT_LIMIT,
    catalog: SpotifyClient = Depends(get_catalog_client),
    store: CatalogStore = Depends(get_store),
) -> dict[str, Any]:
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search query is required.")
    if limit < 1 or limit > catalog_config.SEARCH_MAX_LIMIT:
        raise HTTPException(
            status_code=400,
            detail=f"limit must be between 1 and {catalog_config.SEARCH_MAX_LIMIT}",
        )

    try:
        items = [_summarize(item) for item in catalog.search_tracks(query, limit=limit)]
        imported = store.imported_spotify_ids(item["spotify_id"] for item in items)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    for item in items:
        item["imported"] = item["spotify_id"] in imported
    return {"query": query, "items": items}

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.api.deps import get_catalog_client, get_store
from backend.catalog.errors import AlreadyExists, CatalogError
from backend.catalog.importer import import_track
from backend.catalog.spotify_client import SpotifyClient
from backend.db.catalog_store import CatalogStore, is_valid_track_id

logger = logging.getLogger(__name__)

router = APIRouter()


class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spotify_url: str | None = Field(default=None, alias="spotifyUrl")


class TrackUpdateRequest(BaseModel):
    title: str | None = None
    tempo: float | None = None
    track_number: int | None = None
    duration_ms: int | None = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("title cannot be null")
        return value


def _normalize_track_id(track_id: str) -> str:
    track_id = (track_id or "").strip().lower()
    if not is_valid_track_id(track_id):
        raise HTTPException(status_code=400, detail="Invalid track id.")
    return track_id


def _http_error(exc: CatalogError) -> HTTPException:
    if exc.status_code >= 500:
        logger.warning("%s: %s", type(exc).__name__, exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/tracks/import", status_code=201)
def import_spotify_track(
    payload: ImportRequest,
    store: CatalogStore = Depends(get_store),
    catalog: SpotifyClient = Depends(get_catalog_client),
) -> Any:
    if not payload.spotify_url or not payload.spotify_url.strip():
        raise HTTPException(status_code=400, detail="Spotify URL or ID is required")

    try:
        return import_track(store, catalog, payload.spotify_url)
    except AlreadyExists as exc:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.message, "track_id": exc.track_id},
        )
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/tracks")
def list_tracks(store: CatalogStore = Depends(get_store)) -> list[dict[str, Any]]:
    try:
        return store.list_tracks()
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/tracks/{track_id}")
def get_track(track_id: str, store: CatalogStore = Depends(get_store)) -> dict[str, Any]:
    track_id = _normalize_track_id(track_id)
    try:
        track = store.get_track(track_id, include_source=True)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    if not track:
        raise HTTPException(status_code=404, detail="Track not found.")
    return track


@router.put("/tracks/{track_id}")
def update_track(
    track_id: str,
    payload: TrackUpdateRequest,
    store: CatalogStore = Depends(get_store),
) -> dict[str, Any]:
    track_id = _normalize_track_id(track_id)
    if not payload.model_fields_set:
        raise HTTPException(status_code=400, detail="No updates provided.")

    fields = {name: getattr(payload, name) for name in payload.model_fields_set}
    try:
        track = store.update_track(track_id, fields)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    if not track:
        raise HTTPException(status_code=404, detail="Track not found.")

    logger.info("Updated track %s (%s)", track_id, ", ".join(sorted(fields)))
    return track


@router.delete("/tracks/{track_id}")
def delete_track(track_id: str, store: CatalogStore = Depends(get_store)) -> dict[str, str]:
    track_id = _normalize_track_id(track_id)
    try:
        deleted = store.delete_track(track_id)
    except CatalogError as exc:
        raise _http_error(exc) from exc

    if deleted:
        logger.info("Deleted track %s", track_id)
    return {"message": "Track deleted successfully"}


@router.post("/tracks/{track_id}")
def override_track_method(
    track_id: str,
    method: str | None = Form(default=None, alias="_method"),
    store: CatalogStore = Depends(get_store),
) -> dict[str, str]:
    """Let plain HTML forms delete a track with ``_method=DELETE``."""
    if (method or "").upper() != "DELETE":
        raise HTTPException(status_code=405, detail="Method not allowed")
    return delete_track(track_id, store)

from __future__ import annotations

from .errors import (
    AlreadyExists,
    CatalogError,
    InvalidIdentifier,
    PersistenceFailure,
    UpstreamFailure,
)
from .identifiers import extract_track_id
from .importer import import_track

__all__ = [
    "AlreadyExists",
    "CatalogError",
    "InvalidIdentifier",
    "PersistenceFailure",
    "UpstreamFailure",
    "extract_track_id",
    "import_track",
]

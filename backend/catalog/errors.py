"""Failures raised by the catalog import workflow.

Every error is terminal for the call that raised it. The HTTP layer maps
each class to a status code through ``status_code``.
"""

from __future__ import annotations


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidIdentifier(CatalogError):
    """The input is neither a Spotify track URL nor a bare track ID."""

    status_code = 400

    def __init__(self, value: str | None) -> None:
        super().__init__("Invalid Spotify URL or ID")
        self.value = value


class AlreadyExists(CatalogError):
    """A track with this Spotify ID is already in the catalog."""

    status_code = 409

    def __init__(self, spotify_id: str, track_id: str) -> None:
        super().__init__("Track already exists in database")
        self.spotify_id = spotify_id
        self.track_id = track_id


class UpstreamFailure(CatalogError):
    """The Spotify lookup failed or returned something unusable."""

    status_code = 500


class PersistenceFailure(CatalogError):
    """A store lookup, insert, update or delete failed unexpectedly."""

    status_code = 500

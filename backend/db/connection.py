from __future__ import annotations

import atexit
import logging
import os
import threading
from contextlib import contextmanager

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

# Pool configuration
_POOL_MIN_SIZE = int(os.environ.get("CRATEBASE_DB_POOL_MIN", "1"))
_POOL_MAX_SIZE = int(os.environ.get("CRATEBASE_DB_POOL_MAX", "10"))
_POOL_TIMEOUT = float(os.environ.get("CRATEBASE_DB_POOL_TIMEOUT", "30"))
_POOL_MAX_IDLE = float(os.environ.get("CRATEBASE_DB_POOL_MAX_IDLE", "300"))

# Global pool instance (lazy initialized)
_pool: ConnectionPool | None = None
_pool_lock = threading.Lock()


def _database_url() -> str:
    url = os.environ.get("CRATEBASE_DATABASE_URL")
    if not url:
        raise RuntimeError("CRATEBASE_DATABASE_URL is not set.")
    return url


def _create_pool() -> ConnectionPool:
    """Create and return a new connection pool."""
    pool = ConnectionPool(
        conninfo=_database_url(),
        min_size=_POOL_MIN_SIZE,
        max_size=_POOL_MAX_SIZE,
        timeout=_POOL_TIMEOUT,
        max_idle=_POOL_MAX_IDLE,
        open=True,
        check=ConnectionPool.check_connection,
    )

    logger.info(
        "Database connection pool initialized (min=%d, max=%d)",
        _POOL_MIN_SIZE,
        _POOL_MAX_SIZE,
    )
    return pool


def _get_pool() -> ConnectionPool:
    """Get or create the global connection pool."""
    global _pool
    if _pool is not None:
        return _pool

    with _pool_lock:
        if _pool is not None:
            return _pool
        _pool = _create_pool()
        return _pool


def close_pool() -> None:
    """Close the connection pool. Called at shutdown."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            try:
                _pool.close()
                logger.info("Database connection pool closed")
            except Exception as e:
                logger.warning("Error closing connection pool: %s", e)
            _pool = None


# Register cleanup on exit
atexit.register(close_pool)


@contextmanager
def get_connection():
    """Get a connection from the pool.

    Connections are automatically returned to the pool when the context exits.
    The pool handles connection health checks and reconnection.
    """
    pool = _get_pool()
    with pool.connection() as conn:
        yield conn


def get_pool_stats() -> dict:
    """Get connection pool statistics for monitoring."""
    pool = _get_pool()
    stats = pool.get_stats()
    return {
        "pool_size": stats.get("pool_size", 0),
        "pool_available": stats.get("pool_available", 0),
        "requests_waiting": stats.get("requests_waiting", 0),
        "pool_min": pool.min_size,
        "pool_max": pool.max_size,
    }

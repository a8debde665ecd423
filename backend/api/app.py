import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.routes import catalog, tracks
from backend.catalog.errors import CatalogError
from backend.db import connection as db_connection
from backend.db import migrate

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Cratebase API",
    description="API for importing and curating Spotify track metadata",
    version="1.0.0"
)

# CORS: Allow environment override for production
allowed_origins_env = os.environ.get("CRATEBASE_ALLOWED_ORIGINS", "")
allowed_origins = (
    [origin.strip() for origin in allowed_origins_env.split(",") if origin.strip()]
    if allowed_origins_env
    else ["http://localhost:3000"]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracks.router, prefix="/api", tags=["tracks"])
app.include_router(catalog.router, prefix="/api/catalog", tags=["catalog"])


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Errors raised outside a route body, such as a failed pool checkout."""
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _auto_migrate_enabled() -> bool:
    value = os.environ.get("CRATEBASE_AUTO_MIGRATE", "")
    return value.strip().lower() in {"1", "true", "yes", "on"}


@app.on_event("startup")
async def apply_pending_migrations() -> None:
    if not _auto_migrate_enabled():
        return
    applied = migrate.apply_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))


@app.on_event("shutdown")
async def shutdown_connection_pool() -> None:
    """Close the database connection pool on shutdown."""
    db_connection.close_pool()


@app.get("/")
async def root():
    return {"message": "Cratebase API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check with connection pool stats."""
    try:
        return {
            "status": "healthy",
            "pool": db_connection.get_pool_stats(),
        }
    except Exception as e:
        return {
            "status": "degraded",
            "error": str(e),
        }

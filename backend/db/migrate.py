from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ is None:  # Allow running as a script.
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend.db.connection import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
            """
        )
    conn.commit()


def _applied_migrations(conn) -> set[str]:
    with conn.cursor() as cur:
        cur.execute("SELECT version FROM schema_migrations")
        return {row[0] for row in cur.fetchall()}


def _apply_migration(conn, version: str, sql: str) -> None:
    with conn.cursor() as cur:
        cur.execute(sql)
        cur.execute(
            "INSERT INTO schema_migrations (version) VALUES (%s)",
            (version,),
        )
    conn.commit()


def pending_migrations(applied: set[str], migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    return [
        path
        for path in sorted(migrations_dir.glob("*.sql"))
        if path.name not in applied
    ]


def apply_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply every migration not yet recorded. Returns the applied versions."""
    applied_now: list[str] = []
    with get_connection() as conn:
        _ensure_migrations_table(conn)
        applied = _applied_migrations(conn)

        for migration in pending_migrations(applied, migrations_dir):
            version = migration.name
            logger.info("Applying migration %s", version)
            _apply_migration(conn, version, migration.read_text(encoding="utf-8"))
            applied_now.append(version)

    return applied_now


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if not any(MIGRATIONS_DIR.glob("*.sql")):
        print("No migration files found.", file=sys.stderr)
        return 1

    applied = apply_migrations()
    if not applied:
        print("Database is up to date.")
    else:
        print(f"Applied {len(applied)} migration(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

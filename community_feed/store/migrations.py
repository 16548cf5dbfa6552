"""SQLite schema migrations for the document store."""

import sqlite3
from dataclasses import dataclass

import structlog

from community_feed.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 1


@dataclass(frozen=True)
class Migration:
    """One forward-only schema step.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
    """

    version: int
    description: str
    up_sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Initial schema with posts and connections collections",
        up_sql="""
-- Posts: one JSON-bearing row per post document
CREATE TABLE IF NOT EXISTS posts (
    post_id TEXT PRIMARY KEY,
    author_id TEXT NOT NULL,
    content TEXT NOT NULL,
    tags_json TEXT NOT NULL DEFAULT '[]',
    is_published INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    likes_json TEXT NOT NULL DEFAULT '[]',
    comments_json TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_posts_published_created
    ON posts(is_published, created_at);
CREATE INDEX IF NOT EXISTS idx_posts_author_published_created
    ON posts(author_id, is_published, created_at);

-- Connections: at most one row per unordered user pair
CREATE TABLE IF NOT EXISTS connections (
    connection_id TEXT PRIMARY KEY,
    requester_id TEXT NOT NULL,
    recipient_id TEXT NOT NULL,
    user_low TEXT NOT NULL,
    user_high TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    message TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_low, user_high),
    CHECK (requester_id <> recipient_id)
);
CREATE INDEX IF NOT EXISTS idx_connections_recipient_status
    ON connections(recipient_id, status);
CREATE INDEX IF NOT EXISTS idx_connections_requester_status
    ON connections(requester_id, status);
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied.

    Args:
        current_version: The current schema version.

    Returns:
        List of migrations to apply in order.
    """
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Brings a SQLite database up to CURRENT_VERSION.

    The applied version lives in SQLite's ``user_version`` header field, so
    no bookkeeping table is needed. Each migration runs in its own
    transaction together with the version bump.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the manager.

        Args:
            connection: SQLite connection to migrate.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def get_current_version(self) -> int:
        """Read the schema version, 0 for a fresh database."""
        row = self._conn.execute("PRAGMA user_version").fetchone()
        return int(row[0])

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations in order.

        Returns:
            Versions applied by this call, empty when already current.

        Raises:
            MigrationError: If a migration fails; earlier ones stay applied.
        """
        current = self.get_current_version()
        applied: list[int] = []

        for migration in get_migrations_to_apply(current):
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            # Body and version bump commit together.
            script = (
                f"BEGIN;\n{migration.up_sql}\n"
                f"PRAGMA user_version = {int(migration.version)};\nCOMMIT;"
            )
            try:
                self._conn.executescript(script)
            except sqlite3.Error as e:
                if self._conn.in_transaction:
                    self._conn.rollback()
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e
            applied.append(migration.version)

        if applied:
            self._log.info("migrations_applied", versions=applied)
        else:
            self._log.debug("no_migrations_pending", current_version=current)
        return applied

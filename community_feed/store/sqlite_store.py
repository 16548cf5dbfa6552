"""SQLite document store implementation."""

import json
import sqlite3
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from community_feed.data_model import as_utc
from community_feed.store.errors import (
    ConnectionNotFoundError,
    DuplicateConnectionError,
    StoreConflictError,
    StoreNotConnectedError,
    StoreUnavailableError,
)
from community_feed.store.metrics import StoreMetrics
from community_feed.store.migrations import CURRENT_VERSION, MigrationManager
from community_feed.store.models import (
    Comment,
    Connection,
    ConnectionStatus,
    Post,
    TagTrend,
)
from community_feed.store.query import PostQuery
from community_feed.store.state_machine import ConnectionStateMachine


logger = structlog.get_logger()

_POST_COLUMNS = (
    "post_id, author_id, content, tags_json, is_published, "
    "created_at, likes_json, comments_json"
)


def to_db_timestamp(value: datetime) -> str:
    """Encode a datetime as a fixed-width, lexicographically sortable string."""
    return as_utc(value).isoformat(timespec="microseconds")


def _build_where(query: PostQuery) -> tuple[str, list[Any]]:
    """Translate a PostQuery into a SQL WHERE clause and parameters.

    Args:
        query: Filters to translate.

    Returns:
        Tuple of (clause, params). The clause is "1" when unconstrained.
    """
    clauses: list[str] = []
    params: list[Any] = []

    if query.author_in is not None:
        if not query.author_in:
            return "0", []
        placeholders = ", ".join("?" for _ in query.author_in)
        clauses.append(f"author_id IN ({placeholders})")
        params.extend(sorted(query.author_in))

    if query.author_not_in:
        placeholders = ", ".join("?" for _ in query.author_not_in)
        clauses.append(f"author_id NOT IN ({placeholders})")
        params.extend(sorted(query.author_not_in))

    if query.is_published is not None:
        clauses.append("is_published = ?")
        params.append(1 if query.is_published else 0)

    if query.created_gte is not None:
        clauses.append("created_at >= ?")
        params.append(to_db_timestamp(query.created_gte))

    if query.created_lt is not None:
        clauses.append("created_at < ?")
        params.append(to_db_timestamp(query.created_lt))

    return (" AND ".join(clauses) or "1"), params


class SqliteDocumentStore:
    """SQLite-backed store for post and connection documents.

    Posts keep their tag, like and comment collections as JSON columns so a
    row maps one-to-one onto a document. Uses WAL mode and schema migrations.
    """

    def __init__(self, db_path: Path | str, metrics: StoreMetrics | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
            metrics: Optional metrics instance.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        self._metrics = metrics or StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and apply pending migrations.

        Raises:
            StoreUnavailableError: If the database cannot be opened.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("connecting_to_database")

        try:
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            self._conn = None
            self._log.error("database_connect_failed", error=str(e))
            raise StoreUnavailableError("connect") from e

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "SqliteDocumentStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreNotConnectedError: If not connected.
        """
        if self._conn is None:
            raise StoreNotConnectedError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _query(self, operation: str) -> Generator[sqlite3.Connection]:
        """Run a read with timing, metrics and error translation.

        Args:
            operation: Name of the operation for logging and metrics.

        Yields:
            The database connection.
        """
        conn = self._ensure_connected()
        start_ns = time.perf_counter_ns()
        try:
            yield conn
        except sqlite3.Error as e:
            self._metrics.record_failure(operation)
            self._log.error("store_query_failed", op=operation, error=str(e))
            raise StoreUnavailableError(operation) from e

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_query(operation, duration_ms)
        self._log.debug("store_query", op=operation, duration_ms=round(duration_ms, 2))

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Connection]:
        """Run a write inside a transaction, rolling back on failure.

        Args:
            operation: Name of the operation for logging and metrics.

        Yields:
            The database connection.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()

        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            self._metrics.record_failure(operation)
            raise StoreConflictError(operation) from e
        except sqlite3.Error as e:
            conn.rollback()
            self._metrics.record_failure(operation)
            self._log.error("transaction_failed", tx_id=tx_id, op=operation, error=str(e))
            raise StoreUnavailableError(operation) from e
        except Exception:
            conn.rollback()
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_query(operation, duration_ms)
        self._log.info(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            duration_ms=round(duration_ms, 2),
        )

    # ===== Post reads =====

    def find_posts(
        self,
        query: PostQuery,
        *,
        newest_first: bool = True,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[Post]:
        """Find posts matching a query, ordered by creation time.

        Args:
            query: Filters to apply.
            newest_first: Sort by ``created_at`` descending when True.
            limit: Maximum number of posts to return.
            skip: Number of leading posts to skip.

        Returns:
            Matching posts in the requested order.
        """
        where, params = _build_where(query)
        direction = "DESC" if newest_first else "ASC"
        sql = (
            f"SELECT {_POST_COLUMNS} FROM posts WHERE {where} "  # noqa: S608
            f"ORDER BY created_at {direction}, post_id {direction} "
            "LIMIT ? OFFSET ?"
        )
        params.extend([limit if limit is not None else -1, max(skip, 0)])

        with self._query("find_posts") as conn:
            rows = conn.execute(sql, params).fetchall()

        return [self._row_to_post(row) for row in rows]

    def count_posts(self, query: PostQuery) -> int:
        """Count posts matching a query."""
        where, params = _build_where(query)
        with self._query("count_posts") as conn:
            row = conn.execute(
                f"SELECT COUNT(*) FROM posts WHERE {where}",  # noqa: S608
                params,
            ).fetchone()
        return int(row[0])

    def aggregate_tags(self, recent_since: datetime) -> list[TagTrend]:
        """Aggregate tag counts over published posts.

        A post counts once per distinct tag even if its list repeats the tag.

        Args:
            recent_since: Posts created at or after this instant count as recent.

        Returns:
            One entry per distinct tag, in no particular order.
        """
        sql = """
            SELECT
                tag.value AS tag,
                COUNT(DISTINCT p.post_id) AS total_count,
                COUNT(DISTINCT CASE WHEN p.created_at >= ? THEN p.post_id END)
                    AS recent_count
            FROM posts AS p, json_each(p.tags_json) AS tag
            WHERE p.is_published = 1
            GROUP BY tag.value
        """
        with self._query("aggregate_tags") as conn:
            rows = conn.execute(sql, (to_db_timestamp(recent_since),)).fetchall()

        return [
            TagTrend(
                tag=row["tag"],
                total_count=row["total_count"],
                recent_count=row["recent_count"],
            )
            for row in rows
        ]

    def sample_posts(self, query: PostQuery, size: int) -> list[Post]:
        """Draw a uniform random sample of matching posts.

        Args:
            query: Filters to apply.
            size: Maximum sample size.

        Returns:
            Up to ``size`` posts in random order.
        """
        if size <= 0:
            return []
        where, params = _build_where(query)
        sql = (
            f"SELECT {_POST_COLUMNS} FROM posts WHERE {where} "  # noqa: S608
            "ORDER BY RANDOM() LIMIT ?"
        )
        params.append(size)
        with self._query("sample_posts") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_post(row) for row in rows]

    def get_post(self, post_id: str) -> Post | None:
        """Get a post by ID.

        Args:
            post_id: The post ID to look up.

        Returns:
            The post, or None if not found.
        """
        with self._query("get_post") as conn:
            row = conn.execute(
                f"SELECT {_POST_COLUMNS} FROM posts WHERE post_id = ?",  # noqa: S608
                (post_id,),
            ).fetchone()
        return self._row_to_post(row) if row is not None else None

    # ===== Post writes =====

    def save_post(self, post: Post) -> Post:
        """Insert a post or replace the stored document with the same ID.

        Args:
            post: Post document to store.

        Returns:
            The stored post.
        """
        with self._transaction("save_post") as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO posts ({_POST_COLUMNS}) "  # noqa: S608
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    post.post_id,
                    post.author_id,
                    post.content,
                    json.dumps(post.tags),
                    1 if post.is_published else 0,
                    to_db_timestamp(post.created_at),
                    json.dumps(sorted(post.likes)),
                    json.dumps([c.model_dump(mode="json") for c in post.comments]),
                ),
            )
        return post

    # ===== Connections =====

    def connections_for(
        self, user_id: str, status: ConnectionStatus | None = None
    ) -> list[Connection]:
        """List connections where the user is either party.

        Args:
            user_id: User whose connections to list.
            status: Optional status filter.

        Returns:
            Matching connections, newest first.
        """
        sql = "SELECT * FROM connections WHERE (requester_id = ? OR recipient_id = ?)"
        params: list[Any] = [user_id, user_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        sql += " ORDER BY created_at DESC"

        with self._query("connections_for") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_connection(row) for row in rows]

    def count_connections(self, status: ConnectionStatus | None = None) -> int:
        """Count connections, optionally filtered by status."""
        with self._query("count_connections") as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) FROM connections").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM connections WHERE status = ?",
                    (status.value,),
                ).fetchone()
        return int(row[0])

    def get_connection(self, connection_id: str) -> Connection | None:
        """Get a connection by ID.

        Args:
            connection_id: The connection ID to look up.

        Returns:
            The connection, or None if not found.
        """
        with self._query("get_connection") as conn:
            row = conn.execute(
                "SELECT * FROM connections WHERE connection_id = ?",
                (connection_id,),
            ).fetchone()
        return self._row_to_connection(row) if row is not None else None

    def insert_connection(self, connection: Connection) -> Connection:
        """Insert a new connection.

        Args:
            connection: Connection document to store.

        Returns:
            The stored connection.

        Raises:
            StoreConflictError: If the connection id is already taken.
            DuplicateConnectionError: If the pair already has a connection.
        """
        user_low, user_high = connection.pair_key
        try:
            with self._transaction("insert_connection") as conn:
                conn.execute(
                    """
                    INSERT INTO connections (
                        connection_id, requester_id, recipient_id, user_low,
                        user_high, status, message, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        connection.connection_id,
                        connection.requester_id,
                        connection.recipient_id,
                        user_low,
                        user_high,
                        connection.status.value,
                        connection.message,
                        to_db_timestamp(connection.created_at),
                        to_db_timestamp(connection.updated_at),
                    ),
                )
        except StoreConflictError as e:
            if self.get_connection(connection.connection_id) is not None:
                raise
            self._log.warning(
                "duplicate_connection",
                requester_id=connection.requester_id,
                recipient_id=connection.recipient_id,
            )
            raise DuplicateConnectionError(user_low, user_high) from e
        return connection

    def update_connection_status(
        self, connection_id: str, status: ConnectionStatus
    ) -> Connection:
        """Move a connection to a new status.

        Args:
            connection_id: Connection to update.
            status: Target status.

        Returns:
            The updated connection.

        Raises:
            ConnectionNotFoundError: If the connection does not exist.
            ConnectionTransitionError: If the transition is not allowed.
        """
        current = self.get_connection(connection_id)
        if current is None:
            raise ConnectionNotFoundError(connection_id)

        ConnectionStateMachine(connection_id, current.status).transition(status)
        updated = current.model_copy(
            update={"status": status, "updated_at": datetime.now(UTC)}
        )

        with self._transaction("update_connection_status") as conn:
            conn.execute(
                "UPDATE connections SET status = ?, updated_at = ? WHERE connection_id = ?",
                (status.value, to_db_timestamp(updated.updated_at), connection_id),
            )
        return updated

    # ===== Maintenance =====

    def get_stats(self) -> dict[str, int]:
        """Get row counts for all collections.

        Returns:
            Dictionary mapping table name to row count.
        """
        stats: dict[str, int] = {}
        with self._query("get_stats") as conn:
            for table in ("posts", "connections"):
                cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
                stats[table] = cursor.fetchone()[0]
        return stats

    def get_schema_version(self) -> int:
        """Get current schema version."""
        return MigrationManager(self._ensure_connected()).get_current_version()

    # ===== Row mapping =====

    @staticmethod
    def _row_to_post(row: sqlite3.Row) -> Post:
        """Decode a posts row into a Post document."""
        return Post(
            post_id=row["post_id"],
            author_id=row["author_id"],
            content=row["content"],
            tags=json.loads(row["tags_json"]),
            is_published=bool(row["is_published"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            likes=frozenset(json.loads(row["likes_json"]) or []),
            comments=[Comment(**c) for c in json.loads(row["comments_json"]) or []],
        )

    @staticmethod
    def _row_to_connection(row: sqlite3.Row) -> Connection:
        """Decode a connections row into a Connection document."""
        return Connection(
            connection_id=row["connection_id"],
            requester_id=row["requester_id"],
            recipient_id=row["recipient_id"],
            status=row["status"],
            message=row["message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

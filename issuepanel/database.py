"""Database connection and schema for the issue panel."""

import contextlib
import sqlite3
import threading
from pathlib import Path
from typing import Any, Generator, Optional


class DatabaseMeta(type):
    """Singleton metaclass for Database.

    Ensures only one Database instance exists, unless a new path is provided.
    """
    _instance: Optional["Database"] = None

    def __call__(cls, db_path: Optional[str] = None) -> "Database":
        if cls._instance is None or (
            db_path and str(cls._instance.db_path) != db_path
        ):
            cls._instance = super().__call__(db_path)

        return cls._instance


class Database(metaclass=DatabaseMeta):
    """Manages database connections and initialization.

    Uses a persistent connection per thread, with WAL mode so the web
    server threads can read while another thread writes.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Initialize database connection manager.

        Args:
            db_path: Optional path to database file. If not provided, uses default.
        """
        self.db_path = Path(db_path) if db_path else Path(".issuepanel.db")

        if self.db_path.parent != Path("."):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._wal_initialized = False

        self._initialize_database()

    def _initialize_database(self) -> None:
        """Create the schema if it doesn't exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    login TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    email TEXT,
                    active INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characteristics (
                    key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    parent_key TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS rules (
                    key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    characteristic_key TEXT,
                    sub_characteristic_key TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS components (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    qualifier TEXT NOT NULL DEFAULT 'FIL',
                    project_key TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    component_key TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    islast INTEGER NOT NULL DEFAULT 0,
                    period1_date TIMESTAMP,
                    period2_date TIMESTAMP,
                    period3_date TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS action_plans (
                    key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    project_key TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'OPEN',
                    deadline TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS issues (
                    key TEXT PRIMARY KEY,
                    component_key TEXT NOT NULL,
                    project_key TEXT NOT NULL,
                    rule_key TEXT NOT NULL,
                    severity TEXT NOT NULL DEFAULT 'MAJOR',
                    status TEXT NOT NULL DEFAULT 'OPEN',
                    resolution TEXT,
                    message TEXT,
                    line INTEGER,
                    assignee TEXT,
                    reporter TEXT,
                    action_plan_key TEXT,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # seq keeps insertion order stable when timestamps collide
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS issue_comments (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    issue_key TEXT NOT NULL,
                    user_login TEXT,
                    text TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (issue_key) REFERENCES issues (key) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS issue_changes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    issue_key TEXT NOT NULL,
                    user_login TEXT,
                    field_name TEXT NOT NULL,
                    old_value TEXT,
                    new_value TEXT,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (issue_key) REFERENCES issues (key) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS issue_filters (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    user_login TEXT,
                    shared INTEGER NOT NULL DEFAULT 0,
                    query TEXT NOT NULL DEFAULT ''
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS issue_filter_favourites (
                    filter_id INTEGER NOT NULL,
                    user_login TEXT NOT NULL,
                    PRIMARY KEY (filter_id, user_login),
                    FOREIGN KEY (filter_id) REFERENCES issue_filters (id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_issues_component
                ON issues(component_key)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_issues_project
                ON issues(project_key)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_comments_issue
                ON issue_comments(issue_key)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_changes_issue
                ON issue_changes(issue_key)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_snapshots_component
                ON snapshots(component_key, islast)
            """)

    def _get_thread_connection(self) -> sqlite3.Connection:
        """Get or create a persistent connection for the current thread.

        Returns:
            sqlite3.Connection: Thread-local database connection.
        """
        conn = getattr(self._local, "connection", None)
        if conn is None:
            # check_same_thread=False is safe because the connection is thread-local
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row

            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA busy_timeout = 30000")

            if not self._wal_initialized:
                conn.execute("PRAGMA journal_mode = WAL")
                conn.execute("PRAGMA synchronous = NORMAL")
                self._wal_initialized = True

            self._local.connection = conn

        return conn

    @contextlib.contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with transaction support.

        Commits when the block exits normally and rolls back on error. Nested
        blocks join the outermost one, which alone commits or rolls back. The
        connection itself stays open and is reused by the thread.
        """
        conn = self._get_thread_connection()
        depth = getattr(self._local, "depth", 0)
        self._local.depth = depth + 1

        try:
            yield conn
            if depth == 0:
                conn.commit()
        except Exception:
            if depth == 0:
                conn.rollback()
            raise
        finally:
            self._local.depth = depth

    def close_connection(self) -> None:
        """Close the thread-local connection if it exists.

        Called at the end of each web request and on shutdown.
        """
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            with contextlib.suppress(sqlite3.Error):
                conn.close()
            self._local.connection = None

    def get_database_info(self) -> dict[str, Any]:
        """Get row counts for the main tables."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            info: dict[str, Any] = {"database_path": str(self.db_path)}
            for table in ("issues", "issue_comments", "components", "rules", "users"):
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                info[f"{table}_count"] = cursor.fetchone()["count"]
            return info


def get_database(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance.

    Args:
        db_path: Optional path to database file.

    Returns:
        Database: The database instance.
    """
    return Database(db_path)

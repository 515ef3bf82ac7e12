"""
Schema manager for the shared local database.

One LocalDB owns one sqlite3 connection. Stores and the HTTP router are handed
the same LocalDB and scope every statement by their project path.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Union

from .config import ensure_db_directory, get_db_path
from .utils import normalize_project_path
from ..util.logging import logger

TABLES = ("kv_storage", "object_storage", "stream_storage", "vector_storage")

SCHEMA_STATEMENTS = (
    '''
    CREATE TABLE IF NOT EXISTS kv_storage (
        project_path TEXT NOT NULL,
        name TEXT NOT NULL,
        key TEXT NOT NULL,
        value BLOB NOT NULL,
        content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
        expires_at INTEGER,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        PRIMARY KEY (project_path, name, key)
    )
    ''',
    '''
    CREATE INDEX IF NOT EXISTS idx_kv_expires
    ON kv_storage(expires_at)
    WHERE expires_at IS NOT NULL
    ''',
    '''
    CREATE TABLE IF NOT EXISTS object_storage (
        project_path TEXT NOT NULL,
        bucket TEXT NOT NULL,
        key TEXT NOT NULL,
        data BLOB NOT NULL,
        content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
        content_encoding TEXT,
        cache_control TEXT,
        content_disposition TEXT,
        content_language TEXT,
        metadata TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        PRIMARY KEY (project_path, bucket, key)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS stream_storage (
        project_path TEXT NOT NULL,
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        metadata TEXT,
        content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
        data BLOB,
        size_bytes INTEGER NOT NULL DEFAULT 0,
        created_at INTEGER NOT NULL
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_stream_name ON stream_storage(project_path, name)',
    'CREATE INDEX IF NOT EXISTS idx_stream_metadata ON stream_storage(metadata)',
    '''
    CREATE TABLE IF NOT EXISTS vector_storage (
        project_path TEXT NOT NULL,
        name TEXT NOT NULL,
        id TEXT PRIMARY KEY,
        key TEXT NOT NULL,
        embedding TEXT NOT NULL,
        document TEXT,
        metadata TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        UNIQUE (project_path, name, key)
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_vector_lookup ON vector_storage(project_path, name, key)',
    'CREATE INDEX IF NOT EXISTS idx_vector_name ON vector_storage(project_path, name)',
)


class LocalDB:
    """Lazily opened handle on the local database file.

    Args:
        db_path: Database file, defaults to the configured location.
        current_project: Project directory of the running process. Its rows are
            never pruned by orphan cleanup, even if the directory is missing.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None,
                 current_project: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path is not None else None
        self.current_project = normalize_project_path(current_project)
        self._conn: Optional[sqlite3.Connection] = None
        self.last_cleanup = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> sqlite3.Connection:
        """Return the open connection, creating the file, tables and running cleanup on first call."""
        if self._conn is not None:
            return self._conn

        if self.db_path is None:
            self.db_path = get_db_path()
        ensure_db_directory(self.db_path)

        # Autocommit: every statement is its own transaction
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            init_schema(conn)
            # maintenance imports this module
            from .maintenance import cleanup_orphaned_projects
            self.last_cleanup = cleanup_orphaned_projects(conn, self.current_project)
        except Exception:
            conn.close()
            raise

        self._conn = conn
        logger.debug(f"Opened local database at {self.db_path}")
        return conn

    def close(self) -> None:
        """Release the connection. A later open() starts from scratch."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug(f"Closed local database at {self.db_path}")

    @property
    def connection(self) -> sqlite3.Connection:
        return self.open()

    @contextmanager
    def cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        """Cursor on the shared connection, closed after use."""
        cursor = self.open().cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def health_check(self) -> bool:
        """Check that all storage tables exist."""
        try:
            with self.cursor() as cursor:
                cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
                table_names = [row[0] for row in cursor.fetchall()]
            return all(table in table_names for table in TABLES)
        except sqlite3.Error:
            return False

    def __enter__(self) -> "LocalDB":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist yet."""
    cursor = conn.cursor()
    try:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
    finally:
        cursor.close()

"""Database connection management for attendance history.

This module provides connection pooling, WAL mode, and path validation
for the SQLite attendance store.
"""

import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Optional

from dotenv import load_dotenv

from src.logutils import get_logger

load_dotenv()

# Module logger
logger = get_logger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "attendance.db"
DB_PATH = Path(os.getenv("DATABASE_PATH", str(DEFAULT_DB_PATH)))
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "30.0"))


class ConnectionPool:
    """Thread-safe SQLite connection pool with WAL mode.

    Batch attendance checks and CLI reads share one pool per database file;
    WAL lets readers run while a check is being written.
    """

    def __init__(self, db_path: Path, pool_size: int = 5, timeout: float = 30.0):
        """Initialize the connection pool.

        Args:
            db_path: Path to the SQLite database file
            pool_size: Maximum number of idle connections kept
            timeout: Seconds to wait for an available connection
        """
        self._db_path = self._validate_path(db_path)
        self._pool_size = pool_size
        self._timeout = timeout
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._lock = threading.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @staticmethod
    def _validate_path(db_path: Path) -> Path:
        """Reject relative traversal and system directories.

        Raises:
            ValueError: If the path is not acceptable for a database file
        """
        if ".." in Path(db_path).parts:
            raise ValueError(f"Invalid database path: {db_path}")

        resolved = Path(db_path).resolve()
        if str(resolved).startswith("/etc"):
            raise ValueError(f"Invalid database path: {db_path}")
        return resolved

    def _create_connection(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,  # connections move between threads via the pool
            timeout=self._timeout,
        )
        conn.row_factory = sqlite3.Row

        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = 5000")
        conn.execute("PRAGMA synchronous = NORMAL")

        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Take an idle connection, or open a new one when none is idle.

        Raises:
            TimeoutError: If no connection could be obtained
        """
        try:
            conn = self._pool.get_nowait()
        except Empty:
            with self._lock:
                logger.debug("Pool empty, creating new connection")
                return self._create_connection()

        try:
            conn.execute("SELECT 1")
        except sqlite3.Error:
            logger.debug("Dead connection detected, creating new one")
            return self._create_connection()

        logger.debug(
            "Reusing connection from pool",
            extra={"extra_data": {"idle": self._pool.qsize()}},
        )
        return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        """Give a connection back; closes it when the pool is already full."""
        try:
            self._pool.put_nowait(conn)
        except Full:
            conn.close()

    def close_all(self) -> None:
        """Close all idle connections."""
        while True:
            try:
                conn = self._pool.get_nowait()
            except Empty:
                break
            conn.close()


# One pool per database path
_pools: dict[Path, ConnectionPool] = {}
_pools_lock = threading.Lock()


def _get_pool(db_path: Optional[Path] = None) -> ConnectionPool:
    path = ConnectionPool._validate_path(Path(db_path or DB_PATH))

    with _pools_lock:
        if path not in _pools:
            _pools[path] = ConnectionPool(path, _POOL_SIZE, _POOL_TIMEOUT)
        return _pools[path]


def close_pools() -> None:
    """Close and forget every pool (used between tests and at shutdown)."""
    with _pools_lock:
        for pool in _pools.values():
            pool.close_all()
        _pools.clear()


@contextmanager
def get_db(db_path: Optional[Path] = None):
    """Context manager for a pooled connection, committed on success.

    Args:
        db_path: Path to database file (uses default if not provided)

    Yields:
        SQLite connection

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM attendance_records").fetchall()
    """
    pool = _get_pool(db_path)
    conn = pool.get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.return_connection(conn)


def init_database(db_path: Optional[Path] = None, force: bool = False) -> Path:
    """Create the attendance tables.

    Args:
        db_path: Path to database file (uses default if not provided)
        force: If True, delete the existing database first

    Returns:
        Path to the database file
    """
    path = Path(db_path or DB_PATH)

    if force and path.exists():
        logger.info("Removing existing database", extra={"extra_data": {"path": str(path)}})
        close_pools()
        path.unlink()

    with get_db(path) as conn:
        conn.executescript(SCHEMA_PATH.read_text())

    logger.info("Database initialized", extra={"extra_data": {"path": str(path)}})
    return path


def verify_database(db_path: Optional[Path] = None) -> dict:
    """Report which tables exist and how many rows each holds."""
    path = Path(db_path or DB_PATH)

    if not path.exists():
        return {"exists": False, "tables": [], "error": "Database file not found"}

    try:
        with get_db(path) as conn:
            cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
            tables = [row["name"] for row in cursor.fetchall() if not row["name"].startswith("sqlite_")]

            counts = {}
            for table in tables:
                # names come from sqlite_master; bracket quoting for safety
                if table.replace("_", "").isalnum():
                    cursor = conn.execute(f"SELECT COUNT(*) AS cnt FROM [{table}]")
                    counts[table] = cursor.fetchone()["cnt"]

            return {
                "exists": True,
                "path": str(path),
                "tables": tables,
                "row_counts": counts,
            }
    except sqlite3.Error as e:
        logger.error(f"Database verification failed: {e}", extra={"extra_data": {"path": str(path)}})
        return {"exists": True, "path": str(path), "tables": [], "error": str(e)}

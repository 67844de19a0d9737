import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
import psycopg2.extras
from fastapi import Request
from psycopg2.pool import ThreadedConnectionPool


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the service .env or the container environment."
        )
    return value


def _build_dsn() -> str:
    """
    Build DSN from the standardized database env vars.

    Uses:
      - POSTGRES_URL (optional full DSN; if provided, it wins)
      - POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT
      - POSTGRES_HOST (optional, defaults to localhost)
    """
    url = os.getenv("POSTGRES_URL")
    if url:
        # Assume it is a valid libpq connection string / URL
        return url

    user = _required_env("POSTGRES_USER")
    password = _required_env("POSTGRES_PASSWORD")
    db = _required_env("POSTGRES_DB")
    port = _required_env("POSTGRES_PORT")
    host = os.getenv("POSTGRES_HOST", "localhost")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


class Database:
    """
    Query gateway over a bounded psycopg2 connection pool.

    The pool is opened on first use. At most `maxconn` connections are
    checked out at once; further callers wait for a release instead of
    getting a PoolError.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10) -> None:
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: Optional[ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(maxconn)

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Database":
        """Create a gateway configured from the POSTGRES_* and DB_POOL_* env vars."""
        return cls(
            _build_dsn(),
            minconn=int(os.getenv("DB_POOL_MIN", "1")),
            maxconn=int(os.getenv("DB_POOL_MAX", "10")),
        )

    def _open_pool(self) -> ThreadedConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadedConnectionPool(
                    minconn=self.minconn,
                    maxconn=self.maxconn,
                    dsn=self.dsn,
                )
            return self._pool

    @contextmanager
    def _get_conn(self):
        pool = self._pool or self._open_pool()
        with self._slots:
            conn = pool.getconn()
            try:
                yield conn
            finally:
                pool.putconn(conn)

    @staticmethod
    def _dict_cursor(conn):
        return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    # PUBLIC_INTERFACE
    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row as a dict, or None."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                row = cur.fetchone()
                return dict(row) if row else None

    # PUBLIC_INTERFACE
    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all rows as dicts."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                rows = cur.fetchall()
                return [dict(r) for r in rows]

    # PUBLIC_INTERFACE
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement (DDL/INSERT/UPDATE/DELETE). Returns affected rowcount."""
        with self._get_conn() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(query, params or [])
                    affected = cur.rowcount
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            return affected

    # PUBLIC_INTERFACE
    def execute_returning_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute a statement with RETURNING; commit and return the first row as dict, or None."""
        with self._get_conn() as conn:
            try:
                with self._dict_cursor(conn) as cur:
                    cur.execute(query, params or [])
                    row = cur.fetchone()
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            return dict(row) if row else None

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close every pooled connection."""
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None


# PUBLIC_INTERFACE
def get_db(request: Request) -> Database:
    """Dependency returning the application's query gateway."""
    return request.app.state.db

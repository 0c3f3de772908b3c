"""
PostgreSQL client with connection pooling.

Uses psycopg2 with ThreadedConnectionPool. Tenant isolation is NOT enforced
here: every tenant-owned query is scoped by the service layer through
core.scoping before it reaches this client.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)


def _convert_params(params: Tuple | Dict | None) -> Tuple | Dict | None:
    """Convert UUID objects to strings."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class Transaction:
    """Statements executed on one connection, committed together."""

    def __init__(self, cursor):
        self._cur = cursor

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute inside the transaction, return row dicts (empty if no result set)."""
        self._cur.execute(query, _convert_params(params))
        if self._cur.description:
            return [dict(row) for row in self._cur.fetchall()]
        return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        rows = self.execute(query, params)
        return rows[0] if rows else None


class PostgresClient:
    """
    PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)
        rows = db.execute("SELECT * FROM clients WHERE tenant_id = %s", (7,))

        with db.transaction() as tx:
            invoice = tx.execute_single("INSERT INTO invoices ... RETURNING *", (...))
            tx.execute("INSERT INTO line_items ...", (...))
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=2,
                    maxconn=20,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; rolled back on error, always returned."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute and commit, return list of row dicts. Empty list if no results."""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, _convert_params(params))
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE/DELETE with RETURNING, return results."""
        return self.execute(query, params)

    @contextmanager
    def transaction(self):
        """
        Run several statements atomically.

        Commits when the block exits normally, rolls back on any exception.
        """
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                yield Transaction(cur)
            conn.commit()

    def ping(self) -> bool:
        """Health check. Raises psycopg2.Error if the database is unreachable."""
        self.execute_scalar("SELECT 1")
        return True

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()

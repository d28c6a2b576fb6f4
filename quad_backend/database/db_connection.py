"""
PostgreSQL access helper.
Provides the Database wrapper handed to every handler through the app bindings.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extras import DictCursor

from quad_backend.errors import ExecutionError, QueryError

Statement = Tuple[str, Sequence[Any]]


class Database:
    """
    Thin parameterized-query wrapper around psycopg2.

    Parameters are always bound positionally (``%s`` placeholders) in the
    order given. Every call opens its own connection and closes it again;
    there is no pooling and no transaction spanning more than one call.
    """

    def __init__(self, dsn: str):
        self.dsn = dsn

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """
        Open a connection with dictionary-based row access.

        Commits when the block exits cleanly, rolls back otherwise, and
        always closes the connection.

        Usage:
            with db.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(...)
        """
        conn = psycopg2.connect(self.dsn)
        # Rows come back addressable by column name
        # (e.g., {"user_id": 1, "email": "..."})
        conn.cursor_factory = DictCursor
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """
        Run a read statement and return every row.

        Args:
            sql (str): SQL with %s placeholders.
            params (sequence): Values bound in order.

        Returns:
            list: One dict per row.

        Raises:
            QueryError: Wrapping any driver failure.
        """
        try:
            with self.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, tuple(params))
                    return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logging.error(f"[DB] Query failed: {e}")
            raise QueryError(f"Database query failed: {e}") from e

    def query_first(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Dict[str, Any]:
        """
        Run a statement expected to change state.

        Returns:
            dict: success flag, affected row count ("changes") and the first
                column of a RETURNING row ("last_insert_id", None without one).

        Raises:
            ExecutionError: Wrapping any driver failure.
        """
        try:
            with self.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, tuple(params))
                    last_insert_id = None
                    if cur.description is not None:
                        row = cur.fetchone()
                        if row is not None:
                            last_insert_id = row[0]
                    return {
                        "success": True,
                        "changes": cur.rowcount,
                        "last_insert_id": last_insert_id,
                    }
        except psycopg2.Error as e:
            logging.error(f"[DB] Execution failed: {e}")
            raise ExecutionError(f"Database execution failed: {e}") from e

    def batch(self, statements: Sequence[Statement]) -> List[int]:
        """
        Submit several independently prepared statements together.

        They share one connection and are committed once at the end, so the
        store's own transaction decides what survives a failure.

        Returns:
            list: Affected row count per statement.
        """
        changes = []
        try:
            with self.connection() as conn:
                with conn.cursor() as cur:
                    for sql, params in statements:
                        cur.execute(sql, tuple(params))
                        changes.append(cur.rowcount)
        except psycopg2.Error as e:
            logging.error(f"[DB] Batch failed after {len(changes)} statement(s): {e}")
            raise ExecutionError(f"Database batch failed: {e}") from e
        return changes

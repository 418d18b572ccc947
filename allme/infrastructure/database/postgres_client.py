"""PostgreSQL access for running allme against a local database.

Enabled with ``USE_LOCAL_DB=1``. The schema mirrors the Supabase tables
(``profiles``, ``links``) so repositories can switch between the two.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Generator, Iterable

import psycopg2
from psycopg2 import pool, sql
from psycopg2.extras import Json, RealDictCursor


def _adapt(params: Iterable[Any]) -> tuple[Any, ...]:
    return tuple(Json(v) if isinstance(v, dict) else v for v in params)


class PostgresClient:
    """Pooled connections plus a handful of query helpers."""

    def __init__(self) -> None:
        self.enabled = os.getenv("USE_LOCAL_DB", "0") == "1"
        self._pool: pool.ThreadedConnectionPool | None = None

        if self.enabled:
            try:
                self._pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=int(os.getenv("POSTGRES_POOL_SIZE", "10")),
                    host=os.getenv("POSTGRES_HOST", "localhost"),
                    port=int(os.getenv("POSTGRES_PORT", "5432")),
                    database=os.getenv("POSTGRES_DB", "allme"),
                    user=os.getenv("POSTGRES_USER", "allme"),
                    password=os.getenv("POSTGRES_PASSWORD", "allme_dev_password"),
                )
            except psycopg2.Error as exc:  # pragma: no cover
                raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc

    @contextmanager
    def cursor(self) -> Generator[Any, None, None]:
        """Dict cursor on a pooled connection; commits on success, rolls back on error."""
        if not self.enabled or self._pool is None:
            raise RuntimeError("Local PostgreSQL database is not enabled")

        conn = self._pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def fetch_one(self, query: str | sql.Composable, params: Iterable[Any] = ()) -> dict[str, Any] | None:
        with self.cursor() as cur:
            cur.execute(query, _adapt(params))
            row = cur.fetchone()
            return dict(row) if row else None

    def fetch_all(self, query: str | sql.Composable, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        with self.cursor() as cur:
            cur.execute(query, _adapt(params))
            return [dict(row) for row in cur.fetchall()]

    def execute(self, query: str | sql.Composable, params: Iterable[Any] = ()) -> int:
        """Run a statement and return the affected row count."""
        with self.cursor() as cur:
            cur.execute(query, _adapt(params))
            return cur.rowcount

    def update_by_key(
        self, table: str, key_column: str, key: Any, values: dict[str, Any]
    ) -> int:
        """``UPDATE table SET col = %s, ... WHERE key_column = %s``.

        Column names are quoted as identifiers; dict values are sent as JSONB.
        """
        if not values:
            return 0
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s").format(
            sql.Identifier(table), assignments, sql.Identifier(key_column)
        )
        return self.execute(query, [*values.values(), key])

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()


_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """Shared client when ``USE_LOCAL_DB=1``, otherwise ``None``."""
    global _POSTGRES_CLIENT
    if os.getenv("USE_LOCAL_DB", "0") != "1":
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient()
    return _POSTGRES_CLIENT

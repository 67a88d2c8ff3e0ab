"""Local PostgreSQL backend for the session store.

Enabled with USE_LOCAL_DB=1. Connection settings come from the POSTGRES_*
variables; the defaults match a docker-compose development database.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor


@dataclass(frozen=True)
class PostgresSettings:
    host: str = "localhost"
    port: int = 5432
    database: str = "archidesigner"
    user: str = "archidesigner"
    password: str = "archidesigner_dev_password"
    max_connections: int = 5

    @classmethod
    def from_env(cls) -> PostgresSettings:
        return cls(
            host=os.getenv("POSTGRES_HOST", cls.host),
            port=int(os.getenv("POSTGRES_PORT", str(cls.port))),
            database=os.getenv("POSTGRES_DB", cls.database),
            user=os.getenv("POSTGRES_USER", cls.user),
            password=os.getenv("POSTGRES_PASSWORD", cls.password),
            max_connections=int(os.getenv("POSTGRES_MAX_CONNECTIONS", str(cls.max_connections))),
        )


class PostgresClient:
    """Thread-safe pool; every helper runs in its own transaction."""

    def __init__(self, settings: PostgresSettings | None = None) -> None:
        self.settings = settings or PostgresSettings.from_env()
        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self.settings.max_connections,
                host=self.settings.host,
                port=self.settings.port,
                dbname=self.settings.database,
                user=self.settings.user,
                password=self.settings.password,
            )
        except psycopg2.Error as exc:
            raise RuntimeError(
                f"Could not connect to PostgreSQL at {self.settings.host}:{self.settings.port}: {exc}"
            ) from exc

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Yield a dict cursor; commit on success, roll back on any error."""
        conn = self._pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def run(self, query: str, params: tuple | None = None) -> None:
        with self.transaction() as cursor:
            cursor.execute(query, params)

    def fetch_one(self, query: str, params: tuple | None = None) -> dict[str, Any] | None:
        with self.transaction() as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return dict(row) if row else None

    def fetch_all(self, query: str, params: tuple | None = None) -> list[dict[str, Any]]:
        with self.transaction() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [dict(row) for row in rows]

    def close(self) -> None:
        self._pool.closeall()


_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """Shared client, or None unless USE_LOCAL_DB=1."""
    global _POSTGRES_CLIENT
    if os.getenv("USE_LOCAL_DB", "0") != "1":
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient()
    return _POSTGRES_CLIENT

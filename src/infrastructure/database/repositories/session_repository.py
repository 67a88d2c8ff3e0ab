from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any

from supabase import Client

from src.domain.entities.design_session import DesignSession, Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import DecodeError, StoreUnavailableError
from src.infrastructure.database.postgres_client import PostgresClient, get_postgres_client

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Shared by the local PostgreSQL mode and Supabase (run once in the SQL editor there)
SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS store_meta (
    key text PRIMARY KEY,
    value text NOT NULL
);
INSERT INTO store_meta (key, value) VALUES ('schema_version', '{SCHEMA_VERSION}')
    ON CONFLICT (key) DO NOTHING;

CREATE TABLE IF NOT EXISTS design_sessions (
    id text PRIMARY KEY,
    name text NOT NULL,
    created_at timestamptz NOT NULL,
    thumbnail text NOT NULL,
    base_image text NOT NULL,
    original_width integer NOT NULL,
    original_height integer NOT NULL,
    generations jsonb NOT NULL DEFAULT '[]'::jsonb
);

CREATE OR REPLACE FUNCTION replace_design_sessions(sessions jsonb) RETURNS void
LANGUAGE plpgsql AS $$
BEGIN
    DELETE FROM design_sessions WHERE true;
    INSERT INTO design_sessions (
        id, name, created_at, thumbnail, base_image,
        original_width, original_height, generations
    )
    SELECT
        s->>'id', s->>'name', (s->>'created_at')::timestamptz, s->>'thumbnail',
        s->>'base_image', (s->>'original_width')::integer,
        (s->>'original_height')::integer, COALESCE(s->'generations', '[]'::jsonb)
    FROM jsonb_array_elements(sessions) AS s;
END;
$$;
"""

# module-level in-memory store for disabled mode
_MEM_SESSIONS: dict[str, DesignSession] = {}


class SessionRepository:
    """Durable store of all design sessions, replaced wholesale on every write.

    Modes, in order of precedence:
    - USE_LOCAL_DB=1: local PostgreSQL
    - Supabase client configured: Supabase tables and RPC
    - otherwise (SUPABASE_DISABLED=1): process memory
    """

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client: PostgresClient | None = None

    @property
    def in_memory(self) -> bool:
        return not self.use_local_db and (self.disabled or self.client is None)

    @property
    def mode(self) -> str:
        if self.use_local_db:
            return "postgres"
        return "memory" if self.in_memory else "supabase"

    def open(self) -> None:
        """Create the underlying store if it does not exist yet.

        Raises:
            StoreUnavailableError: If the store cannot be reached or initialised.
        """
        # PostgreSQL mode
        if self.use_local_db:
            try:
                self.pg_client = get_postgres_client()
                if self.pg_client is None:
                    raise RuntimeError("USE_LOCAL_DB is not enabled")
                self.pg_client.run(SCHEMA_SQL)
                row = self.pg_client.fetch_one(
                    "SELECT value FROM store_meta WHERE key = 'schema_version'"
                )
            except Exception as exc:
                raise StoreUnavailableError(f"Session store unavailable: {exc}") from exc
            logger.info(f"Session store ready (PostgreSQL, schema v{row['value'] if row else '?'})")
            return

        # In-memory mode
        if self.in_memory:
            logger.info("Session store ready (in-memory)")
            return

        # Supabase mode
        try:  # pragma: no cover - network
            self.client.table("design_sessions").select("id").limit(1).execute()
        except Exception as exc:  # pragma: no cover
            raise StoreUnavailableError(f"Session store unavailable: {exc}") from exc
        logger.info("Session store ready (Supabase)")

    def load_all(self) -> list[DesignSession]:
        """Return every stored session, newest first.

        Raises:
            StoreUnavailableError: If the sessions cannot be read or a stored
                row cannot be decoded.
        """
        # PostgreSQL mode
        if self.use_local_db:
            pg = self._require_pg()
            try:
                rows = pg.fetch_all("SELECT * FROM design_sessions ORDER BY created_at DESC")
            except Exception as exc:
                raise StoreUnavailableError(f"PostgreSQL load sessions failed: {exc}") from exc
            return self._rows_to_entities(rows)

        # In-memory mode
        if self.in_memory:
            return sorted(_MEM_SESSIONS.values(), key=lambda s: s.created_at, reverse=True)

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("design_sessions")
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            rows = res.data or []
        except Exception as exc:  # pragma: no cover
            raise StoreUnavailableError(f"DB load sessions failed: {exc}") from exc
        return self._rows_to_entities(rows)

    def replace_all(self, sessions: list[DesignSession]) -> None:
        """Atomically replace the stored sessions with `sessions`.

        Either the whole list is written or the previous contents remain.
        """
        ids = [s.id for s in sessions]
        if len(ids) != len(set(ids)):
            raise ValueError("Session ids must be unique")

        # PostgreSQL mode
        if self.use_local_db:
            pg = self._require_pg()
            payload = json.dumps([self._entity_to_row(s) for s in sessions])
            try:
                pg.run("SELECT replace_design_sessions(%s::jsonb)", (payload,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL replace sessions failed: {exc}") from exc
            return

        # In-memory mode
        if self.in_memory:
            staged = {s.id: s for s in sessions}
            _MEM_SESSIONS.clear()
            _MEM_SESSIONS.update(staged)
            return

        # Supabase mode
        try:  # pragma: no cover - network
            rows = [self._entity_to_row(s) for s in sessions]
            self.client.rpc("replace_design_sessions", {"sessions": rows}).execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB replace sessions failed: {exc}") from exc

    def _require_pg(self) -> PostgresClient:
        if self.pg_client is None:
            self.open()
        if self.pg_client is None:
            raise StoreUnavailableError("Local PostgreSQL database is not enabled")
        return self.pg_client

    @classmethod
    def _rows_to_entities(cls, rows: list[dict]) -> list[DesignSession]:
        try:
            return [cls._row_to_entity(row) for row in rows]
        except (DecodeError, KeyError, TypeError, ValueError) as exc:
            raise StoreUnavailableError(f"Stored session could not be read: {exc}") from exc

    @staticmethod
    def _entity_to_row(session: DesignSession) -> dict[str, Any]:
        return {
            "id": session.id,
            "name": session.name,
            "created_at": session.created_at.isoformat(),
            "thumbnail": session.thumbnail,
            "base_image": session.base_image.to_data_url(),
            "original_width": session.original_dimensions.width,
            "original_height": session.original_dimensions.height,
            "generations": [g.to_data_url() for g in session.generations],
        }

    @staticmethod
    def _row_to_entity(row: dict) -> DesignSession:
        """Convert database row to DesignSession."""
        # PostgreSQL returns datetime object, Supabase returns ISO string
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        generations = row.get("generations") or []
        if isinstance(generations, str):
            generations = json.loads(generations)

        return DesignSession(
            id=row["id"],
            name=row["name"],
            created_at=created_at,
            thumbnail=row["thumbnail"],
            base_image=ImageAsset.from_data_url(row["base_image"]),
            original_dimensions=Dimensions(
                width=int(row["original_width"]), height=int(row["original_height"])
            ),
            generations=tuple(ImageAsset.from_data_url(g) for g in generations),
        )

"""Prompt history storage backends.

Two implementations of the :class:`PromptStore` interface are provided:

- :class:`SupabasePromptStore` — the hosted ``prompts`` table, used in
  production.
- :class:`SQLitePromptStore` — a local SQLite file with the same columns,
  used for development and tests.

Both return rows newest first and report an exact total count alongside each
page so callers can compute page totals.  Every backend failure is raised as
:class:`~promptcanvas.core.errors.PersistenceError`.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import PersistenceError

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"

# PostgREST error code for a range starting beyond the last row.
_RANGE_NOT_SATISFIABLE = "PGRST103"


@dataclass(frozen=True)
class PromptRecord:
    """One recorded generation.

    ``id`` and ``created_at`` are assigned by the store; they are ``None`` on
    records that have not been inserted yet.
    """

    prompt_text: str
    aspect_ratio: str
    reference_image_used: bool = False
    style: str | None = None
    id: int | None = None
    created_at: str | None = None

    def to_row(self) -> dict[str, Any]:
        """Columns written on insert (store-assigned fields excluded)."""
        return {
            "prompt_text": self.prompt_text,
            "style": self.style,
            "aspect_ratio": self.aspect_ratio,
            "reference_image_used": self.reference_image_used,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PromptRecord:
        return cls(
            id=row.get("id"),
            prompt_text=row.get("prompt_text", ""),
            style=row.get("style"),
            aspect_ratio=row.get("aspect_ratio") or "1:1",
            reference_image_used=bool(row.get("reference_image_used")),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_row(), "created_at": self.created_at}


class PromptStore(Protocol):
    """Insert and page through prompt records."""

    def insert(self, record: PromptRecord) -> PromptRecord:
        """Persist *record* and return it with store-assigned fields."""
        ...

    def fetch_page(self, offset: int, limit: int) -> tuple[list[PromptRecord], int]:
        """Return up to *limit* records after *offset* (newest first) and the total."""
        ...

    def count(self) -> int:
        """Return the number of stored records."""
        ...


class SQLitePromptStore:
    """Prompt store backed by a local SQLite file."""

    def __init__(self, db_path: Path):
        """Initialize the prompt database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized prompt database at {self.db_path}")

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS prompts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    prompt_text TEXT NOT NULL,
                    style TEXT,
                    aspect_ratio TEXT NOT NULL,
                    reference_image_used INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_prompts_created_at
                ON prompts(created_at DESC)
                """)

            conn.commit()

    def insert(self, record: PromptRecord) -> PromptRecord:
        created_at = datetime.now(timezone.utc).strftime(_TIMESTAMP_FORMAT)
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO prompts
                        (prompt_text, style, aspect_ratio, reference_image_used, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        record.prompt_text,
                        record.style,
                        record.aspect_ratio,
                        int(record.reference_image_used),
                        created_at,
                    ),
                )
                conn.commit()
                record_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save prompt: {e}") from e

        logger.debug(f"Saved prompt {record_id}")
        return PromptRecord(
            id=record_id,
            prompt_text=record.prompt_text,
            style=record.style,
            aspect_ratio=record.aspect_ratio,
            reference_image_used=record.reference_image_used,
            created_at=created_at,
        )

    def fetch_page(self, offset: int, limit: int) -> tuple[list[PromptRecord], int]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM prompts")
                total = cursor.fetchone()[0]

                # Inserts within the same microsecond tie on created_at; id breaks the tie.
                cursor.execute(
                    """
                    SELECT id, prompt_text, style, aspect_ratio, reference_image_used, created_at
                    FROM prompts
                    ORDER BY created_at DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (limit, offset),
                )
                rows = cursor.fetchall()
        except (sqlite3.Error, OverflowError) as e:
            raise PersistenceError(f"Failed to fetch prompts: {e}") from e

        return [PromptRecord.from_row(dict(row)) for row in rows], total

    def count(self) -> int:
        try:
            with sqlite3.connect(self.db_path) as conn:
                return conn.execute("SELECT COUNT(*) FROM prompts").fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count prompts: {e}") from e


class SupabasePromptStore:
    """Prompt store backed by a Supabase (PostgREST) table.

    Args:
        client: A ``supabase.Client``.
        table: Name of the prompts table.
    """

    def __init__(self, client, table: str = "prompts"):
        self._client = client
        self.table = table

    @classmethod
    def from_config(cls, config: PromptCanvasConfig) -> SupabasePromptStore:
        from supabase import create_client

        if not config.supabase_url or not config.supabase_key:
            raise PersistenceError("Supabase URL and key must be configured")
        return cls(create_client(config.supabase_url, config.supabase_key), config.supabase_table)

    def insert(self, record: PromptRecord) -> PromptRecord:
        try:
            response = self._client.table(self.table).insert([record.to_row()]).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to save prompt: {e}") from e

        rows = response.data or []
        return PromptRecord.from_row(rows[0]) if rows else record

    def fetch_page(self, offset: int, limit: int) -> tuple[list[PromptRecord], int]:
        try:
            response = (
                self._client.table(self.table)
                .select("*", count="exact")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            # PostgREST rejects ranges past the last row; that is an empty page.
            if getattr(e, "code", None) == _RANGE_NOT_SATISFIABLE:
                return [], self.count()
            raise PersistenceError(f"Failed to fetch prompts: {e}") from e

        rows = response.data or []
        return [PromptRecord.from_row(row) for row in rows], response.count or 0

    def count(self) -> int:
        try:
            response = self._client.table(self.table).select("*", count="exact", head=True).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to count prompts: {e}") from e
        return response.count or 0


def create_store(config: PromptCanvasConfig) -> PromptStore:
    """Build the prompt store selected by ``config.store_backend``."""
    if config.store_backend == "supabase":
        logger.info("Using Supabase prompt store (table=%s)", config.supabase_table)
        return SupabasePromptStore.from_config(config)
    logger.info("Using SQLite prompt store at %s", config.sqlite_path)
    return SQLitePromptStore(config.sqlite_path)

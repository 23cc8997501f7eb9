"""
Summary storage implementations.

- InMemorySummaryStorage: process-local dict, for tests and single workers
- PostgresSummaryStorage: ``memory_summaries`` table via a psycopg async connection

Both accept ``reject_stale_markers``: when set, an upsert whose marker is
not greater than the stored one is ignored instead of overwriting it.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from .types import MemorySummaryRecord, UpsertSummaryData

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySummaryStorage:
    """Summary records keyed by (entity_type, entity_id, model_key)."""

    def __init__(self, reject_stale_markers: bool = False):
        self.reject_stale_markers = reject_stale_markers
        self._records: dict[tuple, MemorySummaryRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def get_summary(
        self, entity_type: str, entity_id: str, model_key: Optional[str]
    ) -> Optional[MemorySummaryRecord]:
        record = self._records.get((entity_type, entity_id, model_key))
        return replace(record) if record else None

    async def upsert_summary(self, data: UpsertSummaryData) -> None:
        key = (data.entity_type, data.entity_id, data.model_key)
        async with self._lock:
            current = self._records.get(key)
            if current is None:
                now = _now()
                self._records[key] = MemorySummaryRecord(
                    id=str(uuid.uuid4()),
                    entity_type=data.entity_type,
                    entity_id=data.entity_id,
                    model_key=data.model_key,
                    summary=data.summary,
                    summarized_through_index=data.summarized_through_index,
                    created_at=now,
                    updated_at=now,
                )
                return

            if (
                self.reject_stale_markers
                and data.summarized_through_index <= current.summarized_through_index
            ):
                logger.debug(
                    "Ignoring stale summary for %s/%s (marker %d <= %d)",
                    data.entity_type,
                    data.entity_id,
                    data.summarized_through_index,
                    current.summarized_through_index,
                )
                return

            self._records[key] = replace(
                current,
                summary=data.summary,
                summarized_through_index=data.summarized_through_index,
                updated_at=_now(),
            )

    async def delete_summaries_by_entity(self, entity_type: str, entity_id: str) -> None:
        async with self._lock:
            for key in [k for k in self._records if k[:2] == (entity_type, entity_id)]:
                del self._records[key]


class PostgresSummaryStorage:
    """
    Stores summaries in PostgreSQL.

    Expects a psycopg ``AsyncConnection`` (autocommit, or committed by the
    caller). The table is created on first use. Without a connection every
    operation is a no-op.
    """

    def __init__(self, pg_conn=None, reject_stale_markers: bool = False):
        self._pg_conn = pg_conn
        self.reject_stale_markers = reject_stale_markers
        self._table_ready = False

    async def _setup_table(self):
        """Create memory_summaries table if it does not exist."""
        if self._table_ready or not self._pg_conn:
            return
        try:
            async with self._pg_conn.cursor() as cur:
                await cur.execute("""
                    CREATE TABLE IF NOT EXISTS memory_summaries (
                        id TEXT PRIMARY KEY,
                        entity_type TEXT NOT NULL,
                        entity_id TEXT NOT NULL,
                        model_key TEXT,
                        summary TEXT NOT NULL,
                        summarized_through_index INT NOT NULL DEFAULT 0,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        UNIQUE NULLS NOT DISTINCT (entity_type, entity_id, model_key)
                    )
                """)
            self._table_ready = True
        except Exception as e:
            logger.warning("Failed to create memory_summaries table: %s", e)

    async def get_summary(
        self, entity_type: str, entity_id: str, model_key: Optional[str]
    ) -> Optional[MemorySummaryRecord]:
        if not self._pg_conn:
            return None
        await self._setup_table()
        async with self._pg_conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, entity_type, entity_id, model_key, summary,
                       summarized_through_index, created_at, updated_at
                FROM memory_summaries
                WHERE entity_type = %s AND entity_id = %s
                  AND model_key IS NOT DISTINCT FROM %s
                """,
                (entity_type, entity_id, model_key),
            )
            row = await cur.fetchone()
        return self._row_to_record(row) if row else None

    async def upsert_summary(self, data: UpsertSummaryData) -> None:
        if not self._pg_conn:
            return
        await self._setup_table()
        guard = (
            "WHERE memory_summaries.summarized_through_index"
            " < EXCLUDED.summarized_through_index"
            if self.reject_stale_markers
            else ""
        )
        async with self._pg_conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO memory_summaries
                    (id, entity_type, entity_id, model_key, summary,
                     summarized_through_index, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, now(), now())
                ON CONFLICT (entity_type, entity_id, model_key) DO UPDATE SET
                    summary = EXCLUDED.summary,
                    summarized_through_index = EXCLUDED.summarized_through_index,
                    updated_at = now()
                {guard}
                """,
                (
                    str(uuid.uuid4()),
                    data.entity_type,
                    data.entity_id,
                    data.model_key,
                    data.summary,
                    data.summarized_through_index,
                ),
            )

    async def delete_summaries_by_entity(self, entity_type: str, entity_id: str) -> None:
        if not self._pg_conn:
            return
        await self._setup_table()
        async with self._pg_conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM memory_summaries WHERE entity_type = %s AND entity_id = %s",
                (entity_type, entity_id),
            )

    @staticmethod
    def _row_to_record(row) -> MemorySummaryRecord:
        """Convert a DB row (dict_row or tuple) to a record."""
        if isinstance(row, dict):
            return MemorySummaryRecord(
                id=row["id"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                model_key=row["model_key"],
                summary=row["summary"],
                summarized_through_index=row["summarized_through_index"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
        return MemorySummaryRecord(*row)

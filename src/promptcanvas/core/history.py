"""Prompt history: best-effort recording and paginated reading.

Recording
---------
:class:`HistoryRecorder` writes a :class:`~promptcanvas.core.stores.PromptRecord`
after a successful generation without making the caller wait.  Each write is
spawned as its own ``asyncio`` task; the store call runs in a worker thread.
Failures are logged and discarded, so history can never turn a successful
generation into a failed one.  If the process dies before a pending write
finishes, that record is lost.

Reading
-------
:func:`list_history` pages through the store newest first.  Pages past the
end are empty rather than an error.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass

from promptcanvas.core.errors import ValidationError
from promptcanvas.core.stores import PromptRecord, PromptStore
from promptcanvas.core.styles import NO_STYLE

logger = logging.getLogger(__name__)

#: Largest page size served; bigger limits are clamped to it.
MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class HistoryPage:
    """One page of prompt history."""

    records: list[PromptRecord]
    total: int
    page: int
    limit: int
    total_pages: int


class HistoryRecorder:
    """Fire-and-forget writer for prompt records.

    Args:
        store: Destination prompt store.
    """

    def __init__(self, store: PromptStore) -> None:
        self._store = store
        # Strong references keep pending tasks from being garbage collected.
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of writes still in flight."""
        return len(self._pending)

    def record(
        self,
        prompt_text: str,
        style_id: str,
        aspect_ratio: str,
        reference_image_used: bool,
    ) -> asyncio.Task:
        """Schedule a history write and return immediately.

        Must be called from a running event loop.  The returned task never
        raises; callers are not expected to await it.
        """
        record = PromptRecord(
            prompt_text=prompt_text,
            style=None if style_id == NO_STYLE else style_id,
            aspect_ratio=aspect_ratio,
            reference_image_used=reference_image_used,
        )
        task = asyncio.get_running_loop().create_task(self._write(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, record: PromptRecord) -> None:
        try:
            saved = await asyncio.to_thread(self._store.insert, record)
        except Exception:
            logger.exception("Failed to record prompt history")
            return
        logger.debug("Recorded prompt history entry %s", saved.id)

    async def drain(self) -> None:
        """Wait for every pending write to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for *total* records, 0 when there are none."""
    return math.ceil(total / limit) if total else 0


def list_history(store: PromptStore, page: int, limit: int) -> HistoryPage:
    """Return one page of prompt history, newest first.

    Args:
        store: Prompt store to read from.
        page: One-based page number.
        limit: Records per page, clamped to ``MAX_PAGE_SIZE``.

    Returns:
        The requested :class:`HistoryPage`.  Pages beyond the last one have
        no records.

    Raises:
        ValidationError: If ``page < 1`` or ``limit < 1``.
        PersistenceError: If the store read fails.
    """
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1:
        raise ValidationError("limit must be greater than 0")

    limit = min(limit, MAX_PAGE_SIZE)
    offset = (page - 1) * limit
    total = store.count()
    if offset >= total:
        records = []
    else:
        records, total = store.fetch_page(offset, limit)
    return HistoryPage(
        records=records,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )

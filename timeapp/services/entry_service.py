"""
Entry Service - Manual edits of recorded time entries.
"""

import asyncio
import datetime
import logging
from typing import Optional

from timeapp.domain.models import TimeEntry
from timeapp.domain.exceptions import ValidationFailed, NotFoundError
from timeapp.infra.repository import TimeEntryRepository
from timeapp.services.timer_service import TimerService

logger = logging.getLogger(__name__)


class EntryService:
    """
    Edits and deletes entries while keeping the timer's view in sync.

    With a timer attached, every edit runs under the timer's lock so it can
    never interleave with a start or stop.
    """

    def __init__(self, entry_repo: TimeEntryRepository,
                 timer_service: Optional[TimerService] = None):
        self.entry_repo = entry_repo
        self.timer_service = timer_service
        self._lock = timer_service.lock if timer_service is not None else asyncio.Lock()

    async def update(self, entry_id: int, note: str,
                     started_at: datetime.datetime,
                     ended_at: Optional[datetime.datetime]) -> TimeEntry:
        """
        Replace the note and timestamps of an entry.

        Raises:
            ValidationFailed: ended_at before started_at, or an attempt to
                reopen an entry that has already ended
        """
        if ended_at is not None and ended_at < started_at:
            raise ValidationFailed("An entry cannot end before it starts")

        async with self._lock:
            entry = await self.entry_repo.get_by_id(entry_id)
            if entry is None:
                raise NotFoundError(f"Time entry {entry_id} not found")
            if ended_at is None and not entry.is_running:
                raise ValidationFailed("A stopped entry cannot be restarted")

            updated = await self.entry_repo.update(entry.model_copy(update={
                "note": note,
                "started_at": started_at,
                "ended_at": ended_at,
            }))

            if self.timer_service is not None:
                await self.timer_service.running_entry_updated(updated)
            return updated

    async def delete(self, entry_id: int) -> None:
        """Delete an entry; deleting the running entry stops the timer"""
        async with self._lock:
            await self.entry_repo.delete(entry_id)

            if self.timer_service is not None:
                await self.timer_service.running_entry_removed(entry_id)
        logger.info(f"Deleted time entry {entry_id}")

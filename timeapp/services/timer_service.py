"""
Timer Service - Core time tracking logic.

Architecture Decision: Observer Pattern
The service notifies registered listeners on every tick, keeping it decoupled
from any UI. It owns the rule that at most one entry is running at a time.

Every state change is persisted before the in-memory state is touched, so a
failed store call leaves the previous, still consistent state observable.
"""

import asyncio
import datetime
import logging
from typing import Callable, List, Optional

from timeapp.domain.models import Project, TimeEntry, format_duration
from timeapp.domain.exceptions import ValidationFailed, NotFoundError
from timeapp.infra.repository import TimeEntryRepository

logger = logging.getLogger(__name__)

TickListener = Callable[[int], None]


class TimerService:
    """
    The time tracking engine. Manages the running entry but knows nothing
    about the UI.

    One instance is created per session and passed to whoever needs it.
    """

    def __init__(self, entry_repo: TimeEntryRepository,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now,
                 tick_interval: float = 1.0):
        self.entry_repo = entry_repo
        self.clock = clock
        self.tick_interval = tick_interval

        self.running_entry: Optional[TimeEntry] = None

        # start/stop must never interleave
        self._lock = asyncio.Lock()
        self._tick_task: Optional[asyncio.Task] = None
        self._tick_listeners: List[TickListener] = []

    async def initialize(self) -> Optional[TimeEntry]:
        """
        Adopt the running entry left in the store, if any.

        If more than one entry is running, the one started last (highest id
        on a tie) is adopted and every other one is closed at its own start
        time, leaving it with a zero duration.
        """
        async with self._lock:
            running = await self.entry_repo.get_running()
            if not running:
                return None

            running.sort(key=lambda e: (e.started_at, e.id or 0))
            adopted = running[-1]

            if len(running) > 1:
                logger.warning(
                    f"Found {len(running)} running entries, keeping entry {adopted.id}"
                )
                for orphan in running[:-1]:
                    closed = orphan.model_copy()
                    closed.stop(orphan.started_at)
                    await self.entry_repo.update(closed)
                    logger.info(f"Closed orphaned entry {orphan.id}")

            self.running_entry = adopted
            self._start_ticking()
            logger.info(f"Resumed running entry {adopted.id}")
            return adopted

    async def start(self, project: Project, note: str = "",
                    now: Optional[datetime.datetime] = None) -> TimeEntry:
        """
        Start tracking time for a project, stopping any running entry first.
        """
        if project.id is None:
            raise ValidationFailed("Cannot start a timer for an unsaved project")

        async with self._lock:
            now = now or self.clock()

            if self.running_entry is not None:
                await self._stop_running(now)

            entry = await self.entry_repo.create(TimeEntry(
                project_id=project.id,
                started_at=now,
                note=note
            ))
            self.running_entry = entry
            self._start_ticking()
            logger.info(f"Started entry {entry.id} for project {project.id}")
            return entry

    async def stop(self, now: Optional[datetime.datetime] = None) -> Optional[TimeEntry]:
        """
        Stop the running entry.

        Returns:
            The stopped entry, or None if nothing was running.
        """
        async with self._lock:
            if self.running_entry is None:
                return None
            return await self._stop_running(now or self.clock())

    async def _stop_running(self, now: datetime.datetime) -> Optional[TimeEntry]:
        stopped = self.running_entry.model_copy()
        stopped.stop(now)
        try:
            await self.entry_repo.update(stopped)
        except NotFoundError:
            # Row removed underneath us (e.g. its project was deleted)
            logger.warning(f"Running entry {stopped.id} no longer exists, clearing timer")
            self.running_entry = None
            await self._stop_ticking()
            return None

        self.running_entry = None
        await self._stop_ticking()
        logger.info(f"Stopped entry {stopped.id} after {stopped.duration_seconds(now)}s")
        return stopped

    @property
    def lock(self) -> asyncio.Lock:
        """
        Guards the running-entry invariant.

        Any write that can change which entry is running (start, stop, manual
        edits and deletes) must hold this lock from its read to its write.
        """
        return self._lock

    async def running_entry_updated(self, entry: TimeEntry):
        """Pick up an edit of the running entry. Call while holding `lock`."""
        if self.running_entry is None or self.running_entry.id != entry.id:
            return
        if entry.is_running:
            self.running_entry = entry
        else:
            self.running_entry = None
            await self._stop_ticking()

    async def running_entry_removed(self, entry_id: int):
        """Forget a deleted running entry. Call while holding `lock`."""
        if self.running_entry is not None and self.running_entry.id == entry_id:
            self.running_entry = None
            await self._stop_ticking()

    def is_running(self) -> bool:
        """Check if currently tracking time"""
        return self.running_entry is not None

    def current_elapsed(self, now: Optional[datetime.datetime] = None) -> int:
        """Elapsed seconds of the running entry (0 when idle)"""
        if self.running_entry is None:
            return 0
        return self.running_entry.duration_seconds(now or self.clock())

    def formatted_elapsed(self, now: Optional[datetime.datetime] = None) -> str:
        return format_duration(self.current_elapsed(now))

    # Tick handling

    def add_tick_listener(self, listener: TickListener):
        self._tick_listeners.append(listener)

    def remove_tick_listener(self, listener: TickListener):
        if listener in self._tick_listeners:
            self._tick_listeners.remove(listener)

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def _start_ticking(self):
        if self.is_ticking:
            return
        self._tick_task = asyncio.create_task(self._run_ticks())

    async def _stop_ticking(self):
        task, self._tick_task = self._tick_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run_ticks(self):
        """Notify listeners until the running entry clears"""
        while True:
            await asyncio.sleep(self.tick_interval)
            entry = self.running_entry
            if entry is None:
                break

            # Always measured from the clock, so missed ticks never drift
            elapsed = entry.duration_seconds(self.clock())
            for listener in list(self._tick_listeners):
                try:
                    listener(elapsed)
                except Exception:
                    logger.exception("Tick listener failed")

    async def shutdown(self):
        """Cancel the tick without touching the running entry"""
        await self._stop_ticking()
        self._tick_listeners.clear()

"""
Pytest configuration and fixtures.
"""

import asyncio
import datetime
import sys
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from timeapp.domain.models import TimeEntry
from timeapp.domain.exceptions import StoreError, NotFoundError
from timeapp.infra.db import Base
from timeapp.infra.repository import ProjectRepository, TimeEntryRepository


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create a new session for a test"""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
def project_repo(db_session):
    return ProjectRepository(session=db_session)


@pytest.fixture
def entry_repo(db_session):
    return TimeEntryRepository(session=db_session)


class RecordingEntryRepository:
    """
    In-memory stand-in for TimeEntryRepository that records every write.

    Set `fail_on` to "create" or "update" to make that call raise StoreError.
    """

    def __init__(self, entries: Optional[List[TimeEntry]] = None):
        self.entries = {e.id: e.model_copy() for e in (entries or [])}
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None
        self._next_id = max(self.entries, default=0) + 1

    async def create(self, entry: TimeEntry) -> TimeEntry:
        if self.fail_on == "create":
            raise StoreError("create failed")
        stored = entry.model_copy(update={"id": self._next_id})
        self._next_id += 1
        self.entries[stored.id] = stored
        self.calls.append(("create", stored.id))
        return stored.model_copy()

    async def update(self, entry: TimeEntry) -> TimeEntry:
        if self.fail_on == "update":
            raise StoreError("update failed")
        if entry.id not in self.entries:
            raise NotFoundError(f"Time entry {entry.id} not found")
        self.entries[entry.id] = entry.model_copy()
        self.calls.append(("update", entry.id))
        return entry

    async def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        # a real store round trip gives other tasks a chance to run
        await asyncio.sleep(0)
        entry = self.entries.get(entry_id)
        return entry.model_copy() if entry else None

    async def delete(self, entry_id: int) -> None:
        if entry_id not in self.entries:
            raise NotFoundError(f"Time entry {entry_id} not found")
        del self.entries[entry_id]
        self.calls.append(("delete", entry_id))

    async def get_running(self) -> List[TimeEntry]:
        return [e.model_copy() for e in self.entries.values() if e.ended_at is None]

    def running_count(self) -> int:
        return sum(1 for e in self.entries.values() if e.ended_at is None)


@pytest.fixture
def recording_repo():
    return RecordingEntryRepository()


class FakeClock:
    """Manually advanced replacement for datetime.now"""

    def __init__(self, start: datetime.datetime):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += datetime.timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime.datetime(2026, 3, 10, 9, 0, 0))

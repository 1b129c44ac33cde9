"""
Tests for the SQLAlchemy repositories: range queries and how store failures
surface to callers.
"""

import datetime
import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.sql.dml import Update

from timeapp.domain.models import Project, TimeEntry
from timeapp.domain.exceptions import StoreError, NotFoundError
from timeapp.infra.db import DatabaseEngine
from timeapp.infra.repository import ProjectRepository, TimeEntryRepository
from timeapp.services.project_service import ProjectService

START = datetime.datetime(2026, 4, 1, 9, 0)


def fail_execute(session, monkeypatch, when):
    """Make `session.execute` raise OperationalError for statements matching `when`"""
    real_execute = session.execute
    seen = []

    async def execute(statement, *args, **kwargs):
        seen.append(statement)
        if when(statement, len(seen)):
            raise OperationalError(str(statement), {}, Exception("database is locked"))
        return await real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(session, "execute", execute)


@pytest.mark.asyncio
async def test_query_is_half_open_on_start(entry_repo):
    for hours in (0, 5, 24):
        start = START + datetime.timedelta(hours=hours)
        await entry_repo.create(TimeEntry(started_at=start, ended_at=start))
    await entry_repo.create(TimeEntry(started_at=START + datetime.timedelta(hours=6)))

    day = await entry_repo.query(start=START, end=START + datetime.timedelta(days=1))
    assert [e.started_at.hour for e in day] == [15, 14, 9]

    running = await entry_repo.query(only_running=True)
    assert [e.started_at.hour for e in running] == [15]


@pytest.mark.asyncio
async def test_missing_tables_surface_as_store_error():
    engine = DatabaseEngine("sqlite+aiosqlite:///:memory:")
    try:
        with pytest.raises(StoreError) as excinfo:
            await TimeEntryRepository(engine).query()
        assert isinstance(excinfo.value.__cause__, SQLAlchemyError)

        with pytest.raises(StoreError):
            await ProjectRepository(engine).create(Project(name="Alpha"))
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_failed_update_surfaces_as_store_error(db_session, entry_repo, monkeypatch):
    entry = await entry_repo.create(TimeEntry(started_at=START))
    fail_execute(db_session, monkeypatch, lambda stmt, n: True)

    with pytest.raises(StoreError) as excinfo:
        await entry_repo.update(entry.model_copy(update={"ended_at": START}))
    assert not isinstance(excinfo.value, NotFoundError)
    assert isinstance(excinfo.value.__cause__, OperationalError)

    monkeypatch.undo()
    stored = await entry_repo.get_by_id(entry.id)
    assert stored.is_running


@pytest.mark.asyncio
async def test_failed_cascade_delete_leaves_project_and_entries(db_session, project_repo,
                                                                entry_repo, monkeypatch):
    project = await project_repo.create(Project(name="Alpha"))
    await entry_repo.create(TimeEntry(project_id=project.id, started_at=START, ended_at=START))
    await entry_repo.create(TimeEntry(project_id=project.id, started_at=START, ended_at=START))

    # entries go first, the project delete then fails
    fail_execute(db_session, monkeypatch, lambda stmt, n: n == 2)

    with pytest.raises(StoreError):
        await project_repo.delete(project.id)

    monkeypatch.undo()
    assert await project_repo.get_by_id(project.id) is not None
    assert len(await entry_repo.get_by_project(project.id)) == 2


@pytest.mark.asyncio
async def test_failed_archive_leaves_project_active(db_session, project_repo,
                                                    entry_repo, monkeypatch):
    service = ProjectService(project_repo)
    project = await service.create("Client")
    await entry_repo.create(TimeEntry(project_id=project.id, started_at=START, ended_at=START))

    fail_execute(db_session, monkeypatch, lambda stmt, n: isinstance(stmt, Update))

    with pytest.raises(StoreError):
        await service.delete(project.id)

    monkeypatch.undo()
    stored = await project_repo.get_by_id(project.id)
    assert not stored.is_archived
    assert len(await entry_repo.get_by_project(project.id)) == 1

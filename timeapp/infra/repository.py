"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Switch database implementations
- Mock data for testing
- Keep the accounting engine free of any SQL

Every SQLAlchemy failure is re-raised as StoreError so callers never see
driver-specific exceptions and never get a silent default back.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timeapp.domain.models import Project, TimeEntry
from timeapp.domain.exceptions import StoreError, NotFoundError
from timeapp.infra.db import ProjectModel, TimeEntryModel, DatabaseEngine

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store failure while trying to {action}: {e}")
        raise StoreError(f"Could not {action}") from e


class _Repository:
    """Session handling shared by all repositories"""

    def __init__(self, engine: Optional[DatabaseEngine] = None,
                 session: Optional[AsyncSession] = None):
        if engine is None and session is None:
            raise ValueError("A repository needs an engine or a session")
        self.engine = engine
        self.session = session

    def _get_session(self) -> AsyncSession:
        """Get session - either injected or create new one"""
        if self.session is not None:
            return self.session
        return self.engine.get_session()


class ProjectRepository(_Repository):
    """
    Handles all Project-related database operations.

    Converts between domain models (Pydantic) and ORM models (SQLAlchemy).
    """

    async def get_all(self, include_archived: bool = False) -> List[Project]:
        """Get projects, newest first"""
        with _store_errors("load projects"):
            async with self._get_session() as session:
                stmt = select(ProjectModel)
                if not include_archived:
                    stmt = stmt.where(ProjectModel.is_archived.is_(False))
                result = await session.execute(stmt.order_by(ProjectModel.created_at.desc()))
                return [Project.model_validate(m) for m in result.scalars().all()]

    async def get_by_id(self, project_id: int) -> Optional[Project]:
        with _store_errors(f"load project {project_id}"):
            async with self._get_session() as session:
                model = await session.get(ProjectModel, project_id)
                return Project.model_validate(model) if model else None

    async def create(self, project: Project) -> Project:
        """Create a new project"""
        with _store_errors("create project"):
            async with self._get_session() as session:
                model = ProjectModel(
                    name=project.name,
                    created_at=project.created_at,
                    is_archived=project.is_archived,
                    monthly_target_hours=project.monthly_target_hours
                )
                session.add(model)
                await session.commit()
                await session.refresh(model)
                return Project.model_validate(model)

    async def update(self, project: Project) -> Project:
        """Update an existing project"""
        with _store_errors(f"update project {project.id}"):
            async with self._get_session() as session:
                result = await session.execute(
                    update(ProjectModel)
                    .where(ProjectModel.id == project.id)
                    .values(
                        name=project.name,
                        is_archived=project.is_archived,
                        monthly_target_hours=project.monthly_target_hours
                    )
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Project {project.id} not found")
                await session.commit()
                return project

    async def count_entries(self, project_id: int) -> int:
        with _store_errors(f"count entries of project {project_id}"):
            async with self._get_session() as session:
                result = await session.execute(
                    select(func.count(TimeEntryModel.id))
                    .where(TimeEntryModel.project_id == project_id)
                )
                return result.scalar_one()

    async def delete(self, project_id: int) -> None:
        """Hard delete a project together with its entries"""
        with _store_errors(f"delete project {project_id}"):
            async with self._get_session() as session:
                await session.execute(
                    delete(TimeEntryModel).where(TimeEntryModel.project_id == project_id)
                )
                result = await session.execute(
                    delete(ProjectModel).where(ProjectModel.id == project_id)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Project {project_id} not found")
                await session.commit()


class TimeEntryRepository(_Repository):
    """
    Handles all TimeEntry-related database operations.
    """

    async def create(self, entry: TimeEntry) -> TimeEntry:
        """Create a new time entry"""
        with _store_errors("create time entry"):
            async with self._get_session() as session:
                model = TimeEntryModel(
                    project_id=entry.project_id,
                    started_at=entry.started_at,
                    ended_at=entry.ended_at,
                    note=entry.note
                )
                session.add(model)
                await session.commit()
                await session.refresh(model)
                return TimeEntry.model_validate(model)

    async def update(self, entry: TimeEntry) -> TimeEntry:
        """Update an existing time entry"""
        with _store_errors(f"update time entry {entry.id}"):
            async with self._get_session() as session:
                result = await session.execute(
                    update(TimeEntryModel)
                    .where(TimeEntryModel.id == entry.id)
                    .values(
                        project_id=entry.project_id,
                        started_at=entry.started_at,
                        ended_at=entry.ended_at,
                        note=entry.note
                    )
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Time entry {entry.id} not found")
                await session.commit()
                return entry

    async def delete(self, entry_id: int) -> None:
        """Delete a time entry by ID"""
        with _store_errors(f"delete time entry {entry_id}"):
            async with self._get_session() as session:
                result = await session.execute(
                    delete(TimeEntryModel).where(TimeEntryModel.id == entry_id)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Time entry {entry_id} not found")
                await session.commit()

    async def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        with _store_errors(f"load time entry {entry_id}"):
            async with self._get_session() as session:
                model = await session.get(TimeEntryModel, entry_id)
                return TimeEntry.model_validate(model) if model else None

    async def query(self, start: Optional[datetime] = None, end: Optional[datetime] = None,
                    project_id: Optional[int] = None,
                    only_running: bool = False) -> List[TimeEntry]:
        """
        Query entries, newest first.

        Args:
            start: Inclusive lower bound on started_at
            end: Exclusive upper bound on started_at
            project_id: Only entries of this project
            only_running: Only entries without an end time
        """
        with _store_errors("query time entries"):
            async with self._get_session() as session:
                stmt = select(TimeEntryModel)
                if start is not None:
                    stmt = stmt.where(TimeEntryModel.started_at >= start)
                if end is not None:
                    stmt = stmt.where(TimeEntryModel.started_at < end)
                if project_id is not None:
                    stmt = stmt.where(TimeEntryModel.project_id == project_id)
                if only_running:
                    stmt = stmt.where(TimeEntryModel.ended_at.is_(None))

                result = await session.execute(
                    stmt.order_by(TimeEntryModel.started_at.desc(), TimeEntryModel.id.desc())
                )
                return [TimeEntry.model_validate(m) for m in result.scalars().all()]

    async def get_running(self) -> List[TimeEntry]:
        """All entries without an end time (normally zero or one)"""
        return await self.query(only_running=True)

    async def get_by_project(self, project_id: int) -> List[TimeEntry]:
        return await self.query(project_id=project_id)

"""
Session wiring.

Builds one set of repositories and services around a single database engine.
Presentation code holds on to the session instead of reaching for globals.
"""

import logging
from typing import Optional

from timeapp.domain.exceptions import NotFoundError
from timeapp.infra.config import Settings
from timeapp.infra.db import DatabaseEngine, init_db
from timeapp.infra.repository import ProjectRepository, TimeEntryRepository
from timeapp.services.entry_service import EntryService
from timeapp.services.period_service import ReportService
from timeapp.services.project_service import ProjectService
from timeapp.services.target_service import compute_target
from timeapp.services.timer_service import TimerService

logger = logging.getLogger(__name__)


class EngineSession:
    """All services of one running application instance"""

    def __init__(self, engine: DatabaseEngine, settings: Settings):
        self.engine = engine
        self.settings = settings
        prefs = settings.preferences

        self.project_repo = ProjectRepository(engine)
        self.entry_repo = TimeEntryRepository(engine)

        self.timer = TimerService(self.entry_repo, tick_interval=prefs.tick_interval_seconds)
        self.projects = ProjectService(self.project_repo)
        self.entries = EntryService(self.entry_repo, self.timer)
        self.reports = ReportService(self.entry_repo, self.project_repo, prefs.first_weekday)

    @classmethod
    async def open(cls, settings: Optional[Settings] = None) -> "EngineSession":
        """Create tables if needed and adopt a running entry left from last time"""
        settings = settings or Settings()
        engine = await init_db(settings.get_db_url())
        session = cls(engine, settings)
        try:
            await session.timer.initialize()
        except Exception:
            await session.timer.shutdown()
            await engine.dispose()
            raise
        logger.info(f"Session opened on {settings.get_db_url()}")
        return session

    async def target_for(self, project_id: int, now):
        """
        Target standing of a stored project, or None if it has no target.

        Raises:
            NotFoundError: no project with this id
        """
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        entries = await self.entry_repo.get_by_project(project_id)
        return compute_target(project, entries, now)

    async def close(self):
        await self.timer.shutdown()
        await self.engine.dispose()

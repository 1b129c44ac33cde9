"""Infrastructure layer - Database, persistence and configuration"""

from .db import Base, DatabaseEngine, ProjectModel, TimeEntryModel, init_db
from .repository import ProjectRepository, TimeEntryRepository
from .config import Settings, EnginePreferences

__all__ = [
    "Base",
    "DatabaseEngine",
    "ProjectModel",
    "TimeEntryModel",
    "init_db",
    "ProjectRepository",
    "TimeEntryRepository",
    "Settings",
    "EnginePreferences",
]

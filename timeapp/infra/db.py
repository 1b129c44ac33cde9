"""
SQLAlchemy database models and configuration.

Architecture Decision: Why SQLAlchemy?
- Provides ORM for cleaner code and prevents SQL injection
- Supports async operations for non-blocking database access
- Easy to migrate to PostgreSQL or other databases if needed
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Boolean, Text, Float, ForeignKey


# Base class for all models
class Base(DeclarativeBase):
    pass


class ProjectModel(Base):
    """SQLAlchemy model for Project entity"""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    monthly_target_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)


class TimeEntryModel(Base):
    """SQLAlchemy model for TimeEntry entity"""
    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)


class DatabaseEngine:
    """
    Manages database connection and session lifecycle.

    One instance is created per application and handed to the repositories;
    tests build their own against an in-memory database.
    """

    def __init__(self, db_url: str):
        self.engine = create_async_engine(db_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def create_tables(self):
        """Create all tables in the database"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def get_session(self) -> AsyncSession:
        """Get a new database session"""
        return self.session_factory()

    async def dispose(self):
        await self.engine.dispose()


async def init_db(db_url: str) -> DatabaseEngine:
    """Create an engine for `db_url` and make sure all tables exist"""
    engine = DatabaseEngine(db_url)
    await engine.create_tables()
    return engine

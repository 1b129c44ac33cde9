"""
Project Service - Validated project lifecycle.

Projects that own entries are archived instead of deleted; projects without
entries are removed for good.
"""

import logging
from typing import List, Optional, Union

from timeapp.domain.models import Project
from timeapp.domain.exceptions import ValidationFailed, NotFoundError
from timeapp.infra.repository import ProjectRepository

logger = logging.getLogger(__name__)

TargetInput = Union[None, str, int, float]


def parse_target_hours(raw: TargetInput) -> Optional[float]:
    """
    Parse a monthly target typed by the user.

    Blank input means "no target". Anything that is not a positive number is
    rejected.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
        try:
            value = float(raw)
        except ValueError:
            raise ValidationFailed(f"Monthly target '{raw}' is not a number") from None
    else:
        value = float(raw)

    if value != value or value in (float("inf"), float("-inf")):
        raise ValidationFailed("Monthly target must be a finite number")
    if value <= 0:
        raise ValidationFailed("Monthly target must be greater than zero")
    return value


def clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailed("Project name cannot be empty")
    return cleaned


class ProjectService:
    """
    Create, edit and retire projects.
    """

    def __init__(self, project_repo: ProjectRepository):
        self.project_repo = project_repo

    async def list_projects(self, include_archived: bool = False) -> List[Project]:
        return await self.project_repo.get_all(include_archived=include_archived)

    async def create(self, name: str, monthly_target_hours: TargetInput = None) -> Project:
        """
        Create a new project.

        Raises:
            ValidationFailed: empty name or invalid target
        """
        project = Project(
            name=clean_name(name),
            monthly_target_hours=parse_target_hours(monthly_target_hours)
        )
        created = await self.project_repo.create(project)
        logger.info(f"Created project {created.id}: {created.name}")
        return created

    async def update(self, project_id: int, name: str,
                     monthly_target_hours: TargetInput = None) -> Project:
        """Rename a project and replace its monthly target"""
        cleaned = clean_name(name)
        target = parse_target_hours(monthly_target_hours)

        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        updated = project.model_copy(update={"name": cleaned, "monthly_target_hours": target})
        return await self.project_repo.update(updated)

    async def delete(self, project_id: int) -> bool:
        """
        Delete a project, or archive it if it already has entries.

        Returns:
            True if the project was removed, False if it was archived.
        """
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        if await self.project_repo.count_entries(project_id) > 0:
            await self.project_repo.update(project.model_copy(update={"is_archived": True}))
            logger.info(f"Archived project {project_id}")
            return False

        await self.project_repo.delete(project_id)
        logger.info(f"Deleted project {project_id}")
        return True

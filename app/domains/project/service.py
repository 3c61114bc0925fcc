"""Project service layer with business logic."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import desc, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import NotFoundError, ValidationError
from app.schemas.project import ProjectCreate, ProjectUpdate
from models.base import utcnow
from models.project import Project
from models.thread import Thread

logger = logging.getLogger(__name__)


class ProjectService:
    """Service class for project business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_project(self, project_data: ProjectCreate) -> Project:
        """Create a new project."""
        project = Project(
            name=project_data.name,
            description=project_data.description,
            color=project_data.color,
        )

        try:
            self.db.add(project)
            await self.db.commit()
            await self.db.refresh(project)
            logger.info(f"Project created: {project.id}")
            return project
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create project: {str(e)}") from e

    async def get_project(self, project_id: UUID) -> Project:
        project = await self._get_project_by_id(project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    async def list_projects(self) -> list[dict[str, Any]]:
        """All projects, most recently updated first, each with its thread summaries."""
        result = await self.db.execute(select(Project).order_by(desc(Project.updated_at)))
        projects = result.scalars().all()

        threads_by_project = await self._threads_by_project([project.id for project in projects])
        return [self._project_dict(project, threads_by_project.get(project.id, [])) for project in projects]

    async def get_project_with_threads(self, project_id: UUID) -> dict[str, Any]:
        project = await self.get_project(project_id)
        threads_by_project = await self._threads_by_project([project.id])
        return self._project_dict(project, threads_by_project.get(project.id, []))

    async def update_project(self, project_id: UUID, project_data: ProjectUpdate) -> Project:
        """Update a project."""
        project = await self.get_project(project_id)

        update_data = project_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field in ("name", "color") and value is None:
                continue
            setattr(project, field, value)

        try:
            await self.db.commit()
            await self.db.refresh(project)
            return project
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to update project: {str(e)}") from e

    async def delete_project(self, project_id: UUID) -> int:
        """Delete a project, detaching its threads instead of deleting them.

        Returns the number of threads detached. Their share links stay valid.
        """
        project = await self.get_project(project_id)

        try:
            result = await self.db.execute(
                update(Thread)
                .where(Thread.project_id == project_id)
                .values(project_id=None, updated_at=utcnow())
            )
            detached = result.rowcount or 0
            await self.db.delete(project)
            await self.db.commit()
            logger.info(f"Project {project_id} deleted, {detached} threads detached")
            return detached
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to delete project: {str(e)}") from e

    # Private helper methods
    async def _get_project_by_id(self, project_id: UUID) -> Project | None:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def _threads_by_project(self, project_ids: list[UUID]) -> dict[UUID, list[Thread]]:
        if not project_ids:
            return {}
        stmt = (
            select(Thread)
            .where(Thread.project_id.in_(project_ids))
            .order_by(desc(Thread.last_activity))
        )
        result = await self.db.execute(stmt)
        grouped: dict[UUID, list[Thread]] = {}
        for thread in result.scalars().all():
            grouped.setdefault(thread.project_id, []).append(thread)
        return grouped

    async def count_threads(self, project_id: UUID) -> int:
        stmt = select(func.count(Thread.id)).where(Thread.project_id == project_id)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    @staticmethod
    def _project_dict(project: Project, threads: list[Thread]) -> dict[str, Any]:
        return {
            "id": project.id,
            "name": project.name,
            "description": project.description,
            "color": project.color,
            "created_at": project.created_at,
            "updated_at": project.updated_at,
            "thread_count": len(threads),
            "threads": [
                {
                    "id": thread.id,
                    "title": thread.title,
                    "last_activity": thread.last_activity,
                    "message_count": thread.message_count,
                }
                for thread in threads
            ],
        }

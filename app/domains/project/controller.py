"""Project API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_db
from app.domains.project.service import ProjectService
from app.schemas.base import ResponseSchema
from app.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    ProjectWithThreads,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("", response_model=ResponseSchema)
async def list_projects(db: AsyncSession = Depends(get_db)):
    """List projects with their threads, newest activity first."""
    service = ProjectService(db)
    projects = await service.list_projects()

    payload = ProjectListResponse(
        projects=[ProjectWithThreads.model_validate(p) for p in projects],
        total=len(projects),
    )
    return ResponseSchema(
        status="success",
        message="Projects retrieved successfully",
        data=payload.model_dump(),
    )


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new project."""
    service = ProjectService(db)
    project = await service.create_project(project_data)

    return ResponseSchema(
        status="success",
        message="Project created successfully",
        data=ProjectResponse.model_validate(project).model_dump(),
    )


@router.get("/{project_id}", response_model=ResponseSchema)
async def get_project(
    project_id: UUID = Path(..., description="Project ID"),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific project with its threads."""
    service = ProjectService(db)
    project = await service.get_project_with_threads(project_id)

    return ResponseSchema(
        status="success",
        message="Project retrieved successfully",
        data=ProjectWithThreads.model_validate(project).model_dump(),
    )


@router.put("/{project_id}", response_model=ResponseSchema)
async def update_project(
    project_id: UUID = Path(..., description="Project ID"),
    project_data: ProjectUpdate = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Update a specific project."""
    service = ProjectService(db)
    project = await service.update_project(project_id, project_data)

    response = ProjectResponse.model_validate(project)
    response.thread_count = await service.count_threads(project_id)
    return ResponseSchema(
        status="success",
        message="Project updated successfully",
        data=response.model_dump(),
    )


@router.delete("/{project_id}", response_model=ResponseSchema)
async def delete_project(
    project_id: UUID = Path(..., description="Project ID"),
    db: AsyncSession = Depends(get_db),
):
    """Delete a project. Its threads are kept and detached."""
    service = ProjectService(db)
    detached = await service.delete_project(project_id)

    return ResponseSchema(
        status="success",
        message="Project deleted successfully",
        data={"id": str(project_id), "detached_threads": detached},
    )

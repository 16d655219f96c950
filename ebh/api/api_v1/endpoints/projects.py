"""
Project API
"""
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db, get_actor
from ebh.models.site import Project
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.site import ProjectCreate, ProjectUpdate, ProjectResponse
from ebh.services.records import get_active, ensure_unique, mark_deleted

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[ProjectResponse]])
async def list_projects(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Code, name or client"),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200)) -> Any:
    conditions = [Project.deleted_at.is_(None)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            Project.code.ilike(pattern), Project.name.ilike(pattern), Project.client_name.ilike(pattern)
        ))
    if status:
        conditions.append(Project.status == status)

    count_result = await db.execute(select(func.count(Project.id)).where(and_(*conditions)))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Project).where(and_(*conditions))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    projects = [ProjectResponse.model_validate(p) for p in result.scalars().all()]
    return ok(paginate(projects, total, page, limit))


@router.get("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def get_project(
    *,
    db: AsyncSession = Depends(get_db),
    project_id: int) -> Any:
    project = await get_active(db, Project, project_id, "Project")
    return ok(ProjectResponse.model_validate(project))


@router.post("/", response_model=ApiResponse[ProjectResponse], status_code=201)
async def create_project(
    *,
    db: AsyncSession = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    project_in: ProjectCreate) -> Any:
    await ensure_unique(db, Project, Project.code, project_in.code, "Project code")
    project = Project(**project_in.model_dump(), created_by=actor)
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return ok(ProjectResponse.model_validate(project), "Project created")


@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    *,
    db: AsyncSession = Depends(get_db),
    project_id: int,
    project_in: ProjectUpdate) -> Any:
    project = await get_active(db, Project, project_id, "Project")
    updates = project_in.model_dump(exclude_unset=True)
    if updates.get("code") and updates["code"] != project.code:
        await ensure_unique(db, Project, Project.code, updates["code"], "Project code", exclude_id=project.id)

    for field, value in updates.items():
        if value is None and field in ("code", "name", "status"):
            continue
        setattr(project, field, value)
    await db.commit()
    await db.refresh(project)
    return ok(ProjectResponse.model_validate(project), "Project updated")


@router.delete("/{project_id}", response_model=ApiResponse[None])
async def delete_project(
    *,
    db: AsyncSession = Depends(get_db),
    project_id: int) -> Any:
    project = await get_active(db, Project, project_id, "Project")
    mark_deleted(project)
    await db.commit()
    return ok(message="Project deleted")

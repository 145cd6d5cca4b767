"""
app/routes/projects.py
CRUD des projets (accès admin)
"""
from fastapi import APIRouter, Depends, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session
from typing import List, Optional
import math

from app.database import get_db
from app.dependencies import AdminIdentity, get_current_user
from app.models import Project, ProjectStatus
from app.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectListItem, ProjectListResponse,
    Pagination, PageConfigResponse, SubmissionResponse,
)
from app.services import projects as project_service

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


def _to_response(project: Project) -> ProjectResponse:
    config = project.active_page_config
    return ProjectResponse(
        id=project.id,
        slug=project.slug,
        domain=project.domain,
        title=project.title,
        description=project.description,
        status=project.status,
        notification_email=project.notification_email,
        created_at=project.created_at,
        updated_at=project.updated_at,
        active_page_config=PageConfigResponse.model_validate(config) if config else None,
    )


@router.get("", response_model=ProjectListResponse)
def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    rows, total = project_service.list_projects(db, status_filter, page, limit)
    items = [
        ProjectListItem(
            **_to_response(project).model_dump(),
            form_submissions_count=submissions,
            analytics_events_count=events,
        )
        for project, submissions, events in rows
    ]
    return ProjectListResponse(
        projects=items,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
            has_next=page * limit < total,
            has_prev=page > 1,
        ),
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_project(
    request: Request,
    data: ProjectCreate,
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return _to_response(project_service.create_project(db, data))


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return _to_response(project_service.get_project(db, project_id))


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return _to_response(project_service.update_project(db, project_id, data))


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    project_service.delete_project(db, project_id)
    return {"message": "Project deleted successfully"}


@router.get("/{project_id}/submissions", response_model=List[SubmissionResponse])
def list_submissions(
    project_id: str,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return project_service.list_submissions(db, project_id, limit)

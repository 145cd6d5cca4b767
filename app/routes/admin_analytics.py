"""
app/routes/admin_analytics.py
Rapports analytics du dashboard admin, accès authentifié uniquement
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from typing import List, Literal

from app.database import get_db
from app.dependencies import AdminIdentity, get_current_user
from app.schemas.analytics import DetailedStats, ProjectOverview
from app.services import analytics as analytics_service

router = APIRouter()


@router.get("/detailed", response_model=DetailedStats)
def detailed(
    project_id: str = Query(alias="projectId", min_length=1),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return analytics_service.get_detailed_stats(db, project_id, days)


@router.get("/projects", response_model=List[ProjectOverview])
def projects_overview(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    return analytics_service.get_all_projects_stats(db, days)


@router.get("/export")
def export(
    project_id: str = Query(alias="projectId", min_length=1),
    days: int = Query(30, ge=1, le=365),
    format: Literal["csv", "json"] = "json",
    db: Session = Depends(get_db),
    _: AdminIdentity = Depends(get_current_user),
):
    stats = analytics_service.get_detailed_stats(db, project_id, days)
    filename = f"analytics-{project_id}-{days}days.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "json":
        return JSONResponse(stats.model_dump(mode="json", by_alias=True), headers=headers)
    return Response(analytics_service.to_csv(stats), media_type="text/csv", headers=headers)

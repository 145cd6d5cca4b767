from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from datetime import datetime, timedelta

from app.database import get_db
from app.dependencies import rate_limited
from app.schemas.analytics import AnalyticsEventRequest, ProjectStatsResponse, ProjectRef, Period
from app.services import analytics as analytics_service
from app.services.projects import get_project_by_slug
from app.utils.rate_limit import ANALYTICS_POLICY

router = APIRouter()


@router.post("")
def track(
    payload: AnalyticsEventRequest,
    request: Request,
    ip_hash: str = Depends(rate_limited(ANALYTICS_POLICY, "Rate limit exceeded")),
    db: Session = Depends(get_db),
):
    """Ingestion d'un événement analytics (script de la landing page)"""
    analytics_service.ingest_event(
        db,
        payload,
        ip_hash=ip_hash,
        user_agent_header=request.headers.get("user-agent"),
        referer_header=request.headers.get("referer"),
    )
    return {"success": True}


@router.get("", response_model=ProjectStatsResponse)
def project_stats(
    slug: str = Query(min_length=1),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    project = get_project_by_slug(db, slug)
    stats = analytics_service.get_project_stats(db, project, days)
    now = datetime.utcnow()
    return ProjectStatsResponse(
        project=ProjectRef(id=project.id, slug=project.slug, title=project.title),
        period=Period(days=days, from_=now - timedelta(days=days), to=now),
        **stats,
    )

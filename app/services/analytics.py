"""
app/services/analytics.py
Pipeline analytics : validation métier, enrichissement, persistance et agrégations.
"""
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo
import io
import logging
import uuid

import pandas as pd
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import StoreUnavailable
from app.models import AnalyticsEvent, AnalyticsEventType, FormSubmission, Project
from app.schemas.analytics import (
    AnalyticsEventRequest, BrowserCount, DetailedStats, DeviceCount, ProjectOverview,
    ReferrerCount, SourceCount, Sources, Summary, Technology, TimeSeriesPoint,
)
from app.services.projects import get_project, get_project_by_slug
from app.utils.privacy import (
    detect_device_type, extract_browser, extract_utm_params,
    sanitize_referrer, sanitize_user_agent, sanitize_utm_value,
)

logger = logging.getLogger(__name__)

TOP_N = 10
UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign")


# ─── Helpers purs ────────────────────────────────────────────────────────────

def conversion_rate(page_views: int, submissions: int) -> float:
    if page_views <= 0:
        return 0.0
    return submissions / page_views * 100


def resolve_utm(explicit: Dict[str, Optional[str]], referrer: Optional[str]) -> Dict[str, Optional[str]]:
    """Valeurs du body en priorité, sinon celles trouvées dans le referrer.

    Les deux sources passent par le même nettoyage.
    """
    from_referrer = extract_utm_params(referrer) if referrer else {}
    return {
        field: sanitize_utm_value(explicit.get(field)) or from_referrer.get(field)
        for field in UTM_FIELDS
    }


def merge_time_series(page_views: Dict[date, int], submissions: Dict[date, int]) -> List[TimeSeriesPoint]:
    days = sorted(set(page_views) | set(submissions))
    return [
        TimeSeriesPoint(date=day, page_views=page_views.get(day, 0), submissions=submissions.get(day, 0))
        for day in days
    ]


def local_date(timestamp: datetime, tz: Optional[str] = None) -> date:
    """Date calendaire locale d'un timestamp naïf UTC."""
    zone = ZoneInfo(tz or settings.ANALYTICS_TIMEZONE)
    return timestamp.replace(tzinfo=timezone.utc).astimezone(zone).date()


def _bucket_by_day(timestamps: Iterable[datetime]) -> Dict[date, int]:
    return dict(Counter(local_date(ts) for ts in timestamps))


def _since(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) - timedelta(days=days)


# ─── Ingestion ───────────────────────────────────────────────────────────────

def track_event(
    db: Session,
    project_id: str,
    event_type: AnalyticsEventType,
    ip_hash: Optional[str] = None,
    user_agent: Optional[str] = None,
    referrer: Optional[str] = None,
    pathname: Optional[str] = None,
    utm: Optional[Dict[str, Optional[str]]] = None,
    metadata: Optional[dict] = None,
) -> AnalyticsEvent:
    """Ajoute un événement à la session (le commit reste à l'appelant)."""
    utm = utm or {}
    event = AnalyticsEvent(
        id=str(uuid.uuid4()),
        project_id=project_id,
        event_type=event_type,
        timestamp=datetime.utcnow(),
        ip_hash=ip_hash,
        user_agent=user_agent,
        referrer=referrer,
        pathname=pathname,
        utm_source=utm.get("utm_source"),
        utm_medium=utm.get("utm_medium"),
        utm_campaign=utm.get("utm_campaign"),
        event_metadata=metadata,
    )
    db.add(event)
    return event


def ingest_event(
    db: Session,
    payload: AnalyticsEventRequest,
    ip_hash: str,
    user_agent_header: Optional[str] = None,
    referer_header: Optional[str] = None,
) -> AnalyticsEvent:
    project = get_project_by_slug(db, payload.slug)

    user_agent = sanitize_user_agent(user_agent_header)
    raw_referrer = payload.referrer or referer_header
    utm = resolve_utm(
        {"utm_source": payload.utm_source, "utm_medium": payload.utm_medium, "utm_campaign": payload.utm_campaign},
        raw_referrer,
    )

    metadata = payload.metadata.model_dump(exclude_none=True) if payload.metadata else {}
    metadata["device_type"] = detect_device_type(user_agent)
    metadata["browser"] = extract_browser(user_agent)

    try:
        event = track_event(
            db,
            project_id=project.id,
            event_type=payload.event_type,
            ip_hash=ip_hash,
            user_agent=user_agent,
            referrer=sanitize_referrer(raw_referrer),
            pathname=payload.pathname or f"/p/{payload.slug}",
            utm=utm,
            metadata=metadata,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Analytics tracking error: {e}")
        raise StoreUnavailable("Failed to track event")

    logger.debug(f"Event {payload.event_type.value} tracked for {project.slug}")
    return event


# ─── Agrégations ─────────────────────────────────────────────────────────────

def _page_views_query(db: Session, project_id: str, since: datetime):
    return db.query(AnalyticsEvent).filter(
        AnalyticsEvent.project_id == project_id,
        AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW,
        AnalyticsEvent.timestamp >= since,
    )


def _submissions_query(db: Session, project_id: str, since: datetime):
    return db.query(FormSubmission).filter(
        FormSubmission.project_id == project_id,
        FormSubmission.submitted_at >= since,
    )


def _summary(db: Session, project_id: str, since: datetime) -> Summary:
    page_views = _page_views_query(db, project_id, since).count()
    submissions = _submissions_query(db, project_id, since).count()
    return Summary(
        page_views=page_views,
        form_submissions=submissions,
        conversion_rate=conversion_rate(page_views, submissions),
    )


def _top_referrers(db: Session, project_id: str, since: datetime) -> List[ReferrerCount]:
    count = func.count(AnalyticsEvent.id)
    rows = (
        db.query(AnalyticsEvent.referrer, count)
        .filter(
            AnalyticsEvent.project_id == project_id,
            AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW,
            AnalyticsEvent.timestamp >= since,
            AnalyticsEvent.referrer.isnot(None),
        )
        .group_by(AnalyticsEvent.referrer)
        .order_by(count.desc(), AnalyticsEvent.referrer)
        .limit(TOP_N)
        .all()
    )
    return [ReferrerCount(referrer=referrer, count=n) for referrer, n in rows]


def _top_utm_sources(db: Session, project_id: str, since: datetime) -> List[SourceCount]:
    count = func.count(AnalyticsEvent.id)
    rows = (
        db.query(AnalyticsEvent.utm_source, count)
        .filter(
            AnalyticsEvent.project_id == project_id,
            AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW,
            AnalyticsEvent.timestamp >= since,
            AnalyticsEvent.utm_source.isnot(None),
        )
        .group_by(AnalyticsEvent.utm_source)
        .order_by(count.desc(), AnalyticsEvent.utm_source)
        .limit(TOP_N)
        .all()
    )
    return [SourceCount(source=source, count=n) for source, n in rows]


def _ranked(counter: Counter, limit: Optional[int] = None):
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))[:limit]


def _technology(db: Session, project_id: str, since: datetime) -> Technology:
    devices: Counter = Counter()
    browsers: Counter = Counter()
    rows = _page_views_query(db, project_id, since).with_entities(AnalyticsEvent.event_metadata).all()
    for (metadata,) in rows:
        metadata = metadata or {}
        if metadata.get("device_type"):
            devices[metadata["device_type"]] += 1
        if metadata.get("browser"):
            browsers[metadata["browser"]] += 1
    return Technology(
        devices=[DeviceCount(device=name, count=n) for name, n in _ranked(devices)],
        browsers=[BrowserCount(browser=name, count=n) for name, n in _ranked(browsers, TOP_N)],
    )


def _time_series(db: Session, project_id: str, since: datetime) -> List[TimeSeriesPoint]:
    view_times = _page_views_query(db, project_id, since).with_entities(AnalyticsEvent.timestamp).all()
    submission_times = _submissions_query(db, project_id, since).with_entities(FormSubmission.submitted_at).all()
    return merge_time_series(
        _bucket_by_day(ts for (ts,) in view_times),
        _bucket_by_day(ts for (ts,) in submission_times),
    )


def get_project_stats(db: Session, project: Project, days: int = 30, now: Optional[datetime] = None) -> dict:
    since = _since(days, now)
    summary = _summary(db, project.id, since)
    return {
        "page_views": summary.page_views,
        "form_submissions": summary.form_submissions,
        "conversion_rate": summary.conversion_rate,
        "top_referrers": _top_referrers(db, project.id, since),
    }


def get_detailed_stats(db: Session, project_id: str, days: int = 30, now: Optional[datetime] = None) -> DetailedStats:
    get_project(db, project_id)
    since = _since(days, now)
    return DetailedStats(
        summary=_summary(db, project_id, since),
        time_series=_time_series(db, project_id, since),
        sources=Sources(
            utm=_top_utm_sources(db, project_id, since),
            referrers=_top_referrers(db, project_id, since),
        ),
        technology=_technology(db, project_id, since),
    )


def get_all_projects_stats(db: Session, days: int = 30, now: Optional[datetime] = None) -> List[ProjectOverview]:
    since = _since(days, now)
    page_views = dict(
        db.query(AnalyticsEvent.project_id, func.count(AnalyticsEvent.id))
        .filter(
            AnalyticsEvent.event_type == AnalyticsEventType.PAGE_VIEW,
            AnalyticsEvent.timestamp >= since,
        )
        .group_by(AnalyticsEvent.project_id)
        .all()
    )
    submissions = dict(
        db.query(FormSubmission.project_id, func.count(FormSubmission.id))
        .filter(FormSubmission.submitted_at >= since)
        .group_by(FormSubmission.project_id)
        .all()
    )

    overview = []
    for project in db.query(Project).order_by(Project.updated_at.desc()).all():
        views = page_views.get(project.id, 0)
        subs = submissions.get(project.id, 0)
        overview.append(ProjectOverview(
            id=project.id,
            slug=project.slug,
            title=project.title,
            status=project.status.value,
            page_views=views,
            form_submissions=subs,
            conversion_rate=conversion_rate(views, subs),
        ))
    return overview


# ─── Export ──────────────────────────────────────────────────────────────────

def export_sections(stats: DetailedStats) -> List[tuple]:
    """(titre, colonnes, lignes) pour chaque groupe d'agrégation."""
    summary = stats.summary
    return [
        ("Summary", ["Metric", "Value"], [
            ["Page Views", summary.page_views],
            ["Form Submissions", summary.form_submissions],
            ["Conversion Rate", f"{summary.conversion_rate:.2f}%"],
        ]),
        ("Daily Page Views", ["Date", "Page Views"],
         [[p.date.isoformat(), p.page_views] for p in stats.time_series]),
        ("Daily Form Submissions", ["Date", "Submissions"],
         [[p.date.isoformat(), p.submissions] for p in stats.time_series]),
        ("UTM Sources", ["Source", "Visits"],
         [[s.source, s.count] for s in stats.sources.utm]),
        ("Top Referrers", ["Referrer", "Visits"],
         [[r.referrer, r.count] for r in stats.sources.referrers]),
        ("Device Types", ["Device", "Count"],
         [[d.device, d.count] for d in stats.technology.devices]),
        ("Browsers", ["Browser", "Count"],
         [[b.browser, b.count] for b in stats.technology.browsers]),
    ]


def to_csv(stats: DetailedStats) -> str:
    output = io.StringIO()
    for index, (title, columns, rows) in enumerate(export_sections(stats)):
        if index:
            output.write("\n")
        output.write(f"{title}\n")
        pd.DataFrame(rows, columns=columns).to_csv(output, index=False, lineterminator="\n")
    return output.getvalue()

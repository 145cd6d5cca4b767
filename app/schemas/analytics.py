from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from urllib.parse import urlsplit
from app.models import AnalyticsEventType
from app.schemas import CamelModel


def _require_absolute_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError("Invalid url")
    return value


# ─── Ingestion ───────────────────────────────────────────────────────────────

class EventMetadata(BaseModel):
    # clés snake_case telles qu'envoyées par le script de tracking
    button_text: Optional[str] = Field(default=None, max_length=100)
    link_url: Optional[str] = Field(default=None, max_length=500)
    scroll_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    session_duration: Optional[float] = Field(default=None, ge=0)
    custom: Optional[Dict[str, str]] = None

    _check_link_url = field_validator("link_url")(_require_absolute_url)

    @field_validator("custom")
    @classmethod
    def _bound_custom_values(cls, value):
        if value:
            for key, item in value.items():
                if len(item) > 200:
                    raise ValueError(f"custom.{key} is too long (max 200)")
        return value


class AnalyticsEventRequest(CamelModel):
    slug: str = Field(min_length=1, max_length=50)
    event_type: AnalyticsEventType
    referrer: Optional[str] = Field(default=None, max_length=2000)
    pathname: Optional[str] = Field(default=None, max_length=500)
    utm_source: Optional[str] = Field(default=None, max_length=100)
    utm_medium: Optional[str] = Field(default=None, max_length=100)
    utm_campaign: Optional[str] = Field(default=None, max_length=100)
    metadata: Optional[EventMetadata] = None

    _check_referrer = field_validator("referrer")(_require_absolute_url)


# ─── Agrégations ─────────────────────────────────────────────────────────────

class Summary(CamelModel):
    page_views: int
    form_submissions: int
    conversion_rate: float

class TimeSeriesPoint(CamelModel):
    date: date
    page_views: int = 0
    submissions: int = 0

class SourceCount(CamelModel):
    source: str
    count: int

class ReferrerCount(CamelModel):
    referrer: str
    count: int

class DeviceCount(CamelModel):
    device: str
    count: int

class BrowserCount(CamelModel):
    browser: str
    count: int

class Sources(CamelModel):
    utm: List[SourceCount]
    referrers: List[ReferrerCount]

class Technology(CamelModel):
    devices: List[DeviceCount]
    browsers: List[BrowserCount]

class DetailedStats(CamelModel):
    summary: Summary
    time_series: List[TimeSeriesPoint]
    sources: Sources
    technology: Technology

class ProjectRef(CamelModel):
    id: str
    slug: str
    title: str

class Period(CamelModel):
    days: int
    from_: datetime = Field(alias="from")
    to: datetime

class ProjectStatsResponse(CamelModel):
    project: ProjectRef
    period: Period
    page_views: int
    form_submissions: int
    conversion_rate: float
    top_referrers: List[ReferrerCount]

class ProjectOverview(CamelModel):
    id: str
    slug: str
    title: str
    status: str
    page_views: int
    form_submissions: int
    conversion_rate: float

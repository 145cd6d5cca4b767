from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from app.models import ProjectStatus
from app.schemas.pages import TemplateConfig, DesignConfig

SLUG_PATTERN = r"^[a-z0-9-]+$"
DOMAIN_PATTERN = r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

# Project Schemas
class ProjectCreate(CamelModel):
    slug: str = Field(min_length=1, max_length=50, pattern=SLUG_PATTERN)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    domain: Optional[str] = Field(default=None, max_length=253, pattern=DOMAIN_PATTERN)
    status: ProjectStatus = ProjectStatus.DRAFT
    notification_email: Optional[EmailStr] = None
    template_config: Optional[TemplateConfig] = None
    design_config: Optional[DesignConfig] = None

class ProjectUpdate(CamelModel):
    slug: Optional[str] = Field(default=None, min_length=1, max_length=50, pattern=SLUG_PATTERN)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    domain: Optional[str] = Field(default=None, max_length=253, pattern=DOMAIN_PATTERN)   # null = supprimer le domaine
    status: Optional[ProjectStatus] = None
    notification_email: Optional[EmailStr] = None
    template_config: Optional[TemplateConfig] = None
    design_config: Optional[DesignConfig] = None

class PageConfigResponse(CamelModel):
    id: str
    template_config: TemplateConfig
    design_config: DesignConfig
    is_active: bool
    created_at: datetime

class ProjectResponse(CamelModel):
    id: str
    slug: str
    domain: Optional[str] = None
    title: str
    description: Optional[str] = None
    status: ProjectStatus
    notification_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    active_page_config: Optional[PageConfigResponse] = None

class ProjectListItem(ProjectResponse):
    form_submissions_count: int = 0
    analytics_events_count: int = 0

class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

class ProjectListResponse(CamelModel):
    projects: List[ProjectListItem]
    pagination: Pagination

class PublicPageResponse(CamelModel):
    slug: str
    title: str
    description: Optional[str] = None
    path: str
    query: str = ""
    template_config: TemplateConfig
    design_config: DesignConfig

class SubmissionResponse(CamelModel):
    id: str
    form_data: dict
    referrer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    submitted_at: datetime

from app.models.project import Project, ProjectStatus
from app.models.page_config import PageConfig
from app.models.form_submission import FormSubmission
from app.models.analytics_event import AnalyticsEvent, AnalyticsEventType

__all__ = [
    "Project",
    "ProjectStatus",
    "PageConfig",
    "FormSubmission",
    "AnalyticsEvent",
    "AnalyticsEventType",
]

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.database import Base

class AnalyticsEventType(str, enum.Enum):
    PAGE_VIEW       = "PAGE_VIEW"
    FORM_SUBMISSION = "FORM_SUBMISSION"
    BUTTON_CLICK    = "BUTTON_CLICK"
    LINK_CLICK      = "LINK_CLICK"
    SCROLL_DEPTH    = "SCROLL_DEPTH"
    SESSION_START   = "SESSION_START"

class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"
    __table_args__ = (
        Index("ix_analytics_project_type_ts", "project_id", "event_type", "timestamp"),
    )

    id             = Column(String, primary_key=True, index=True)
    project_id     = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    event_type     = Column(Enum(AnalyticsEventType), nullable=False)
    timestamp      = Column(DateTime, default=datetime.utcnow, nullable=False)

    ip_hash        = Column(String, nullable=True)
    user_agent     = Column(String, nullable=True)
    referrer       = Column(String, nullable=True)
    pathname       = Column(String, nullable=True)
    utm_source     = Column(String, nullable=True)
    utm_medium     = Column(String, nullable=True)
    utm_campaign   = Column(String, nullable=True)

    # device_type, browser, button_text, custom...
    event_metadata = Column("metadata", JSON, nullable=True)

    project        = relationship("Project", back_populates="analytics_events")

from sqlalchemy import Column, String, DateTime, Text, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.database import Base

class ProjectStatus(str, enum.Enum):
    ACTIVE    = "ACTIVE"
    ARCHIVED  = "ARCHIVED"
    GRADUATED = "GRADUATED"
    DRAFT     = "DRAFT"

class Project(Base):
    __tablename__ = "projects"

    id          = Column(String, primary_key=True, index=True)
    slug        = Column(String, unique=True, index=True, nullable=False)
    domain      = Column(String, unique=True, index=True, nullable=True)   # domaine personnalisé

    title       = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status      = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.DRAFT)

    # Destinataire des notifications de leads (fallback : settings.NOTIFICATION_EMAIL)
    notification_email = Column(String, nullable=True)

    created_at  = Column(DateTime, default=datetime.utcnow)
    updated_at  = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    page_configs     = relationship("PageConfig", back_populates="project", cascade="all, delete-orphan",
                                    order_by="PageConfig.created_at")
    form_submissions = relationship("FormSubmission", back_populates="project", cascade="all, delete-orphan")
    analytics_events = relationship("AnalyticsEvent", back_populates="project", cascade="all, delete-orphan")

    @property
    def active_page_config(self):
        for config in self.page_configs:
            if config.is_active:
                return config
        return None

    @property
    def is_public(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

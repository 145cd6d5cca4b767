from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, JSON, Integer
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database import Base

class PageConfig(Base):
    __tablename__ = "page_configs"

    id              = Column(String, primary_key=True, index=True)
    project_id      = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    # Documents validés par app.schemas.pages (TemplateConfig / DesignConfig)
    template_config = Column(JSON, nullable=False)
    design_config   = Column(JSON, nullable=False)
    schema_version  = Column(Integer, nullable=False, default=1)

    # Une seule config active par projet, garantie par app.services.projects
    is_active       = Column(Boolean, default=True, nullable=False)

    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project         = relationship("Project", back_populates="page_configs")

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database import Base

class FormSubmission(Base):
    __tablename__ = "form_submissions"
    __table_args__ = (
        UniqueConstraint("project_id", "email", name="uq_form_submissions_project_email"),
    )

    id           = Column(String, primary_key=True, index=True)
    project_id   = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    form_data    = Column(JSON, nullable=False)
    email        = Column(String, nullable=False)        # copie normalisée de form_data["email"]

    # Provenance (jamais d'IP en clair)
    ip_hash      = Column(String, nullable=True)
    user_agent   = Column(String, nullable=True)
    referrer     = Column(String, nullable=True)
    utm_source   = Column(String, nullable=True)
    utm_medium   = Column(String, nullable=True)
    utm_campaign = Column(String, nullable=True)

    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)

    project      = relationship("Project", back_populates="form_submissions")

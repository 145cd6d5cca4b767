"""
app/services/leads.py
Pipeline de soumission de formulaire : honeypot, persistance, événement
FORM_SUBMISSION corrélé, préparation de la notification.
"""
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional
import logging
import uuid

from app.config import settings
from app.errors import ConflictError, StoreUnavailable
from app.models import FormSubmission, AnalyticsEventType, Project
from app.schemas.leads import LeadSubmissionRequest
from app.services.analytics import resolve_utm, track_event
from app.services.email import SubmissionDetails
from app.services.projects import get_project_by_slug
from app.utils.privacy import sanitize_referrer, sanitize_user_agent

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Thank you for joining the waitlist! We'll be in touch soon."


@dataclass
class LeadResult:
    submission: Optional[FormSubmission]
    project: Optional[Project] = None
    notification: Optional[SubmissionDetails] = None

    @property
    def filtered(self) -> bool:
        return self.submission is None


def notification_recipient(project: Project) -> str:
    return project.notification_email or settings.NOTIFICATION_EMAIL


def submit_lead(
    db: Session,
    slug: str,
    payload: LeadSubmissionRequest,
    ip_hash: str,
    user_agent_header: Optional[str] = None,
    referer_header: Optional[str] = None,
) -> LeadResult:
    # Anti-spam : même réponse qu'un succès, rien n'est écrit
    if payload.honeypot:
        logger.info(f"Spam detected: honeypot field filled (ip_hash={ip_hash[:12]})")
        return LeadResult(submission=None)

    project = get_project_by_slug(db, slug, public_only=True)

    user_agent = sanitize_user_agent(user_agent_header)
    referrer = sanitize_referrer(referer_header)
    utm = resolve_utm(
        {"utm_source": payload.utm_source, "utm_medium": payload.utm_medium, "utm_campaign": payload.utm_campaign},
        referer_header,
    )
    form_data = payload.form_data.model_dump(exclude_none=True)
    email = str(payload.form_data.email).strip().lower()

    submission = FormSubmission(
        id=str(uuid.uuid4()),
        project_id=project.id,
        form_data=form_data,
        email=email,
        ip_hash=ip_hash,
        user_agent=user_agent,
        referrer=referrer,
        utm_source=utm["utm_source"],
        utm_medium=utm["utm_medium"],
        utm_campaign=utm["utm_campaign"],
        submitted_at=datetime.utcnow(),
    )

    try:
        db.add(submission)
        db.flush()
        track_event(
            db,
            project_id=project.id,
            event_type=AnalyticsEventType.FORM_SUBMISSION,
            ip_hash=ip_hash,
            user_agent=user_agent,
            referrer=referrer,
            pathname=f"/p/{slug}",
            utm=utm,
            metadata={"submissionId": submission.id, "formFields": list(form_data.keys())},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("This email has already been submitted for this project.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Form submission error: {e}")
        raise StoreUnavailable("Something went wrong. Please try again.")

    logger.info(f"Lead captured for {project.slug} (submission={submission.id})")
    return LeadResult(
        submission=submission,
        project=project,
        notification=SubmissionDetails(
            submitted_at=submission.submitted_at,
            referrer=referrer,
            utm_source=utm["utm_source"],
            utm_medium=utm["utm_medium"],
            utm_campaign=utm["utm_campaign"],
        ),
    )

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import rate_limited
from app.schemas.leads import LeadSubmissionRequest, LeadSubmissionResponse
from app.services.email import send_submission_notification
from app.services.leads import SUCCESS_MESSAGE, notification_recipient, submit_lead
from app.utils.rate_limit import LEADS_POLICY

router = APIRouter()


@router.post("/{slug}", response_model=LeadSubmissionResponse)
def submit(
    slug: str,
    payload: LeadSubmissionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    ip_hash: str = Depends(rate_limited(LEADS_POLICY, "Too many submissions. Please try again later.")),
    db: Session = Depends(get_db),
):
    result = submit_lead(
        db,
        slug,
        payload,
        ip_hash=ip_hash,
        user_agent_header=request.headers.get("user-agent"),
        referer_header=request.headers.get("referer"),
    )
    if result.filtered:
        return LeadSubmissionResponse(message=SUCCESS_MESSAGE)

    # Fire-and-forget : un échec d'envoi ne touche pas la soumission
    background_tasks.add_task(
        send_submission_notification,
        notification_recipient(result.project),
        result.project.title,
        dict(result.submission.form_data),
        result.notification,
    )
    return LeadSubmissionResponse(message=SUCCESS_MESSAGE, submission_id=result.submission.id)

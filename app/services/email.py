"""
app/services/email.py
Notification des nouveaux leads aux propriétaires du projet (Resend).
Ne lève jamais : un échec d'envoi est loggé, la soumission reste valide.
"""
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional, List
import logging
import resend

from app.config import settings

logger = logging.getLogger(__name__)

STANDARD_FIELDS = ("email", "name", "company", "message", "phone")


@dataclass
class EmailTemplate:
    subject: str
    html: str
    text: str


@dataclass
class SubmissionDetails:
    submitted_at: datetime
    referrer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

    def lines(self) -> List[tuple]:
        rows = [("Submitted", self.submitted_at.strftime("%Y-%m-%d %H:%M UTC"))]
        for label, value in (
            ("Referrer", self.referrer),
            ("Source", self.utm_source),
            ("Medium", self.utm_medium),
            ("Campaign", self.utm_campaign),
        ):
            if value:
                rows.append((label, value))
        return rows


def render_submission_email(project_title: str, form_data: dict, details: SubmissionDetails) -> EmailTemplate:
    email = form_data.get("email", "")
    name = form_data.get("name")
    company = form_data.get("company")
    message = form_data.get("message")
    phone = form_data.get("phone")
    custom_fields = {k: v for k, v in form_data.items() if k not in STANDARD_FIELDS}
    admin_url = f"{settings.BASE_URL.rstrip('/')}/admin"

    subject = f"New {project_title} Waitlist Signup: {name or email}"

    contact = [("Email", email), ("Name", name), ("Company", company), ("Phone", phone)]
    contact_html = "".join(
        f"<p><strong>{label}:</strong> {escape(str(value))}</p>" for label, value in contact if value
    )
    message_html = (
        f'<div style="background:white;padding:10px;border-left:3px solid #6366f1;margin-top:5px;">'
        f'{escape(message).replace(chr(10), "<br>")}</div>'
        if message else ""
    )
    custom_html = "".join(
        f"<p><strong>{escape(key)}:</strong> {escape(str(value))}</p>" for key, value in custom_fields.items()
    )
    details_html = "".join(
        f"<p><strong>{label}:</strong> {escape(value)}</p>" for label, value in details.lines()
    )

    html = f"""<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">
  <h2 style="color:#333;border-bottom:2px solid #6366f1;padding-bottom:10px;">
    New Waitlist Signup for {escape(project_title)}
  </h2>
  <div style="background:#f8fafc;padding:20px;border-radius:8px;margin:20px 0;">
    <h3 style="color:#475569;margin-top:0;">Contact Information</h3>
    {contact_html}
    {message_html}
  </div>
  {f'<div style="background:#f1f5f9;padding:20px;border-radius:8px;margin:20px 0;"><h3 style="color:#475569;margin-top:0;">Additional Information</h3>{custom_html}</div>' if custom_fields else ''}
  <div style="background:#e2e8f0;padding:15px;border-radius:8px;margin:20px 0;">
    <h3 style="color:#475569;margin-top:0;">Submission Details</h3>
    {details_html}
  </div>
  <div style="text-align:center;margin:30px 0;">
    <a href="{admin_url}"
       style="display:inline-block;padding:10px 20px;background:#6366f1;color:white;text-decoration:none;border-radius:5px;">
      Open Admin Dashboard
    </a>
  </div>
</div>"""

    text_lines = [f"New {project_title} Waitlist Signup", "", "Contact Information:"]
    text_lines += [f"- {label}: {value}" for label, value in contact + [("Message", message)] if value]
    if custom_fields:
        text_lines += ["", "Additional Information:"]
        text_lines += [f"- {key}: {value}" for key, value in custom_fields.items()]
    text_lines += ["", "Submission Details:"]
    text_lines += [f"- {label}: {value}" for label, value in details.lines()]
    text_lines += ["", f"View all submissions: {admin_url}"]

    return EmailTemplate(subject=subject, html=html, text="\n".join(text_lines))


def send_submission_notification(
    recipient: str,
    project_title: str,
    form_data: dict,
    details: SubmissionDetails,
) -> bool:
    try:
        template = render_submission_email(project_title, form_data, details)

        if not settings.RESEND_API_KEY:
            # Pas de clé configurée (dev local) : on logge le contenu
            logger.info(f"Email notification (not sent) to={recipient} subject={template.subject}\n{template.text}")
            return True

        resend.api_key = settings.RESEND_API_KEY
        resend.Emails.send({
            "from": settings.MAIL_FROM,
            "to": recipient,
            "subject": template.subject,
            "html": template.html,
            "text": template.text,
        })
        logger.info(f"Email notification sent for {project_title}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email notification: {e}")
        return False

from datetime import datetime

import resend

from app.models import AnalyticsEvent, AnalyticsEventType, FormSubmission, ProjectStatus
from app.services import email as email_service
from app.services.email import SubmissionDetails, render_submission_email, send_submission_notification
from app.services.leads import SUCCESS_MESSAGE


def _lead(email="jane@example.com", **form):
    return {"formData": {"email": email, **form}}


def test_submission_persists_lead_and_event(client, db, make_project):
    project = make_project(slug="demo")

    response = client.post(
        "/api/leads/demo",
        json={
            "formData": {"email": "Jane@Example.com", "name": "Jane", "role": "CTO"},
            "utmSource": "newsletter",
        },
        headers={"Referer": "https://blog.example.com/post?utm_medium=email", "X-Real-IP": "198.51.100.4"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == SUCCESS_MESSAGE
    assert response.headers["X-RateLimit-Limit"] == "5"

    submission = db.query(FormSubmission).one()
    assert body["submissionId"] == submission.id
    assert submission.project_id == project.id
    assert submission.email == "jane@example.com"
    assert submission.form_data["name"] == "Jane"
    assert submission.form_data["role"] == "CTO"
    assert submission.referrer == "https://blog.example.com/post"
    assert submission.utm_source == "newsletter"
    assert submission.utm_medium == "email"
    assert submission.ip_hash and "198.51.100.4" not in submission.ip_hash

    event = db.query(AnalyticsEvent).one()
    assert event.event_type == AnalyticsEventType.FORM_SUBMISSION
    assert event.event_metadata["submissionId"] == submission.id
    assert sorted(event.event_metadata["formFields"]) == ["email", "name", "role"]
    assert event.utm_source == "newsletter"


def test_honeypot_is_silently_dropped(client, db, make_project):
    make_project(slug="demo")

    response = client.post("/api/leads/demo", json={**_lead(), "honeypot": "http://spam.example"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["message"] == SUCCESS_MESSAGE
    assert response.json().get("submissionId") is None
    assert db.query(FormSubmission).count() == 0
    assert db.query(AnalyticsEvent).count() == 0


def test_duplicate_email_is_a_conflict(client, db, make_project):
    make_project(slug="demo")
    client.post("/api/leads/demo", json=_lead("jane@example.com"))

    response = client.post("/api/leads/demo", json=_lead("JANE@example.com"))

    assert response.status_code == 409
    assert response.json() == {"error": "This email has already been submitted for this project."}
    assert db.query(FormSubmission).count() == 1
    assert db.query(AnalyticsEvent).count() == 1


def test_same_email_on_two_projects(client, db, make_project):
    make_project(slug="one")
    make_project(slug="two")

    assert client.post("/api/leads/one", json=_lead()).status_code == 200
    assert client.post("/api/leads/two", json=_lead()).status_code == 200
    assert db.query(FormSubmission).count() == 2


def test_unknown_or_inactive_project(client, db, make_project):
    make_project(slug="draft", status=ProjectStatus.DRAFT)
    make_project(slug="old", status=ProjectStatus.ARCHIVED)

    for slug in ("missing", "draft", "old"):
        response = client.post(f"/api/leads/{slug}", json=_lead())
        assert response.status_code == 404
        assert response.json() == {"error": "Project not found"}
    assert db.query(FormSubmission).count() == 0


def test_validation(client, db, make_project):
    make_project(slug="demo")

    cases = [
        {"formData": {}},
        {"formData": {"email": "not-an-email"}},
        _lead(name=""),
        _lead(phone="0" * 21),
        _lead(message="m" * 1001),
        _lead(custom="c" * 201),
        _lead(count=3),
        {**_lead(), "utmSource": "u" * 101},
    ]
    for index, payload in enumerate(cases):
        # une IP par cas : la limite de 5/minute passe avant la validation
        response = client.post("/api/leads/demo", json=payload, headers={"X-Forwarded-For": f"203.0.113.{index}"})
        assert response.status_code == 400, payload
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["fields"]
        assert "details" not in body

    assert db.query(FormSubmission).count() == 0


def test_rate_limit_sixth_submission(client, make_project):
    make_project(slug="demo")

    statuses = [
        client.post("/api/leads/demo", json=_lead(f"user{i}@example.com")).status_code
        for i in range(6)
    ]

    assert statuses == [200] * 5 + [429]
    response = client.post("/api/leads/demo", json=_lead("late@example.com"))
    assert response.json() == {"error": "Too many submissions. Please try again later."}
    assert response.headers["X-RateLimit-Remaining"] == "0"


def test_notification_failure_does_not_affect_response(client, db, make_project, monkeypatch):
    make_project(slug="demo", notification_email="owner@example.com")
    calls = []

    def failing_send(params):
        calls.append(params)
        raise RuntimeError("provider down")

    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(resend.Emails, "send", failing_send)

    response = client.post("/api/leads/demo", json=_lead(name="Jane"))

    assert response.status_code == 200
    assert db.query(FormSubmission).count() == 1
    assert len(calls) == 1
    assert calls[0]["to"] == "owner@example.com"
    assert "Jane" in calls[0]["subject"]


def test_send_notification_without_api_key_only_logs(monkeypatch):
    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", "")

    def unexpected(params):
        raise AssertionError("must not be called")

    monkeypatch.setattr(resend.Emails, "send", unexpected)
    details = SubmissionDetails(submitted_at=datetime(2024, 3, 1, 10, 0))

    assert send_submission_notification("owner@example.com", "Demo", {"email": "a@example.com"}, details)


def test_email_template_escapes_user_input():
    details = SubmissionDetails(
        submitted_at=datetime(2024, 3, 1, 10, 0),
        referrer="https://ref.example.com/",
        utm_source="hn",
    )

    template = render_submission_email(
        "Demo",
        {"email": "a@example.com", "name": "<b>Eve</b>", "message": "hi\nthere", "team": "<script>"},
        details,
    )

    assert template.subject == "New Demo Waitlist Signup: <b>Eve</b>"
    assert "&lt;b&gt;Eve&lt;/b&gt;" in template.html
    assert "<script>" not in template.html
    assert "hi<br>there" in template.html
    assert "- team: <script>" in template.text
    assert "- Source: hn" in template.text

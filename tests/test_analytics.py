import csv
import io
from datetime import date, datetime, timedelta

from main import app
from app.models import AnalyticsEvent, AnalyticsEventType, FormSubmission, ProjectStatus
from app.services.analytics import (
    conversion_rate, get_detailed_stats, local_date, merge_time_series, resolve_utm, to_csv, track_event,
)
from app.utils.privacy import hash_ip
from app.utils.rate_limit import ANALYTICS_POLICY

CHROME_UA = "Mozilla/5.0 (Windows NT 10.0) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
IPHONE_UA = "Mozilla/5.0 (iPhone) AppleWebKit/605.1.15 Version/17.0 Mobile/15E148 Safari/604.1"


def _event(db, project, event_type=AnalyticsEventType.PAGE_VIEW, when=None, **fields):
    event = track_event(db, project.id, event_type, **fields)
    if when:
        event.timestamp = when
    db.commit()
    return event


def _submission(db, project, email, when):
    db.add(FormSubmission(
        id=email, project_id=project.id, form_data={"email": email}, email=email, submitted_at=when,
    ))
    db.commit()


# ─── Fonctions pures ─────────────────────────────────────────────────────────

def test_conversion_rate_never_divides_by_zero():
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(0, 7) == 0.0
    assert conversion_rate(200, 5) == 2.5


def test_time_series_merge_zero_fills_both_sides():
    d1, d2, d3 = date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)

    series = merge_time_series({d1: 5, d2: 3}, {d2: 1, d3: 2})

    assert [(p.date, p.page_views, p.submissions) for p in series] == [
        (d1, 5, 0),
        (d2, 3, 1),
        (d3, 0, 2),
    ]


def test_local_date_uses_configured_timezone():
    late = datetime(2024, 3, 1, 23, 30)
    assert local_date(late, "UTC") == date(2024, 3, 1)
    assert local_date(late, "Europe/Paris") == date(2024, 3, 2)


def test_utm_body_wins_over_referrer():
    utm = resolve_utm(
        {"utm_source": "newsletter", "utm_medium": None, "utm_campaign": None},
        "https://ref.example.com/?utm_source=twitter&utm_medium=social",
    )
    assert utm == {"utm_source": "newsletter", "utm_medium": "social", "utm_campaign": None}


def test_utm_body_values_are_cleaned_like_referrer_values():
    utm = resolve_utm({"utm_source": "<b>x</b>", "utm_medium": " \"' ", "utm_campaign": "spring"}, None)
    assert utm == {"utm_source": "bx/b", "utm_medium": None, "utm_campaign": "spring"}


# ─── Ingestion ───────────────────────────────────────────────────────────────

def test_track_page_view(client, db, make_project):
    project = make_project(slug="demo")

    response = client.post(
        "/api/track",
        json={
            "slug": "demo",
            "eventType": "PAGE_VIEW",
            "referrer": "https://news.example.com/post?utm_source=hn&utm_campaign=launch&secret=1",
            "utmCampaign": "spring",
        },
        headers={"User-Agent": IPHONE_UA, "X-Forwarded-For": "203.0.113.7"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert response.headers["X-RateLimit-Limit"] == "100"
    assert response.headers["X-RateLimit-Remaining"] == "99"
    assert response.headers["X-RateLimit-Reset"].endswith("Z")

    event = db.query(AnalyticsEvent).filter(AnalyticsEvent.project_id == project.id).one()
    assert event.event_type == AnalyticsEventType.PAGE_VIEW
    assert event.referrer == "https://news.example.com/post"
    assert event.utm_source == "hn"
    assert event.utm_campaign == "spring"
    assert event.pathname == "/p/demo"
    assert event.ip_hash == hash_ip("203.0.113.7")
    assert event.event_metadata["device_type"] == "mobile"
    assert event.event_metadata["browser"] == "Safari"


def test_track_uses_referer_header_when_body_has_none(client, db, make_project):
    make_project(slug="demo")

    client.post(
        "/api/track",
        json={"slug": "demo", "eventType": "BUTTON_CLICK", "metadata": {"button_text": "Join"}},
        headers={"Referer": "https://social.example.com/feed?utm_source=social", "User-Agent": CHROME_UA},
    )

    event = db.query(AnalyticsEvent).one()
    assert event.referrer == "https://social.example.com/feed"
    assert event.utm_source == "social"
    assert event.event_metadata["button_text"] == "Join"
    assert event.event_metadata["browser"] == "Chrome"


def test_track_validation_errors(client, db, make_project):
    make_project(slug="demo")

    cases = [
        {"eventType": "PAGE_VIEW"},
        {"slug": "", "eventType": "PAGE_VIEW"},
        {"slug": "demo", "eventType": "NOT_AN_EVENT"},
        {"slug": "demo", "eventType": "PAGE_VIEW", "referrer": "not-a-url"},
        {"slug": "demo", "eventType": "PAGE_VIEW", "utmSource": "x" * 101},
        {"slug": "demo", "eventType": "SCROLL_DEPTH", "metadata": {"scroll_percentage": 150}},
        {"slug": "demo", "eventType": "LINK_CLICK", "metadata": {"link_url": "/relative"}},
        {"slug": "demo", "eventType": "PAGE_VIEW", "metadata": {"custom": {"k": "v" * 201}}},
    ]
    for payload in cases:
        response = client.post("/api/track", json=payload)
        assert response.status_code == 400, payload
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"]
        assert "fields" not in body

    assert db.query(AnalyticsEvent).count() == 0


def test_track_unknown_project(client, db):
    response = client.post("/api/track", json={"slug": "nope", "eventType": "PAGE_VIEW"})

    assert response.status_code == 404
    assert response.json() == {"error": "Project not found"}
    assert db.query(AnalyticsEvent).count() == 0


def test_track_rate_limit_runs_before_validation(client):
    limiter = app.state.rate_limiter
    key = ANALYTICS_POLICY.key(hash_ip("0.0.0.0"))
    for _ in range(ANALYTICS_POLICY.max_requests):
        limiter.check(key, ANALYTICS_POLICY.max_requests, ANALYTICS_POLICY.window_ms)

    response = client.post("/api/track", json={"garbage": True})

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded"}
    assert response.headers["X-RateLimit-Limit"] == "100"
    assert response.headers["X-RateLimit-Remaining"] == "0"


# ─── Agrégations ─────────────────────────────────────────────────────────────

def test_public_stats(client, db, make_project):
    project = make_project(slug="demo")
    now = datetime.utcnow()
    for _ in range(3):
        _event(db, project, referrer="https://a.example.com/")
    _event(db, project, referrer="https://b.example.com/")
    _event(db, project, AnalyticsEventType.BUTTON_CLICK, referrer="https://c.example.com/")
    _event(db, project, when=now - timedelta(days=40))
    _submission(db, project, "a@example.com", now)

    response = client.get("/api/track", params={"slug": "demo", "days": 30})

    assert response.status_code == 200
    body = response.json()
    assert body["project"]["slug"] == "demo"
    assert body["period"]["days"] == 30
    assert "from" in body["period"]
    assert body["pageViews"] == 4
    assert body["formSubmissions"] == 1
    assert body["conversionRate"] == 25.0
    assert body["topReferrers"] == [
        {"referrer": "https://a.example.com/", "count": 3},
        {"referrer": "https://b.example.com/", "count": 1},
    ]


def test_public_stats_rejects_bad_days(client, make_project):
    make_project(slug="demo")
    assert client.get("/api/track", params={"slug": "demo", "days": 0}).status_code == 400


def test_detailed_stats(db, make_project):
    project = make_project(slug="demo")
    now = datetime(2024, 3, 10, 12, 0)
    day1, day2 = now - timedelta(days=2), now - timedelta(days=1)

    _event(db, project, when=day1, utm={"utm_source": "hn"}, referrer="https://hn.example.com/",
           metadata={"device_type": "desktop", "browser": "Chrome"})
    _event(db, project, when=day1, utm={"utm_source": "hn"},
           metadata={"device_type": "mobile", "browser": "Safari"})
    _event(db, project, when=day1, utm={"utm_source": "twitter"},
           metadata={"device_type": "desktop", "browser": "Chrome"})
    _event(db, project, AnalyticsEventType.SESSION_START, when=day1, utm={"utm_source": "ignored"})
    _submission(db, project, "late@example.com", day2)

    stats = get_detailed_stats(db, project.id, days=7, now=now)

    assert stats.summary.page_views == 3
    assert stats.summary.form_submissions == 1
    assert round(stats.summary.conversion_rate, 2) == 33.33
    assert [(p.date, p.page_views, p.submissions) for p in stats.time_series] == [
        (day1.date(), 3, 0),
        (day2.date(), 0, 1),
    ]
    assert [(s.source, s.count) for s in stats.sources.utm] == [("hn", 2), ("twitter", 1)]
    assert [(r.referrer, r.count) for r in stats.sources.referrers] == [("https://hn.example.com/", 1)]
    assert [(d.device, d.count) for d in stats.technology.devices] == [("desktop", 2), ("mobile", 1)]
    assert [(b.browser, b.count) for b in stats.technology.browsers] == [("Chrome", 2), ("Safari", 1)]


def test_detailed_stats_endpoint(client, make_project, admin_headers):
    project = make_project(slug="demo")

    response = client.get(
        "/api/admin/analytics/detailed",
        params={"projectId": project.id, "days": 7},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"pageViews": 0, "formSubmissions": 0, "conversionRate": 0.0}
    assert body["timeSeries"] == []
    assert set(body["technology"]) == {"devices", "browsers"}


def test_admin_analytics_requires_token(client, make_project):
    project = make_project(slug="demo")

    response = client.get("/api/admin/analytics/detailed", params={"projectId": project.id})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_detailed_stats_unknown_project(client, admin_headers):
    response = client.get("/api/admin/analytics/detailed", params={"projectId": "nope"}, headers=admin_headers)
    assert response.status_code == 404


def test_all_projects_overview(client, db, make_project, admin_headers):
    busy = make_project(slug="busy")
    make_project(slug="quiet", status=ProjectStatus.DRAFT)
    for _ in range(4):
        _event(db, busy)
    _submission(db, busy, "x@example.com", datetime.utcnow())

    response = client.get("/api/admin/analytics/projects", headers=admin_headers)

    assert response.status_code == 200
    by_slug = {p["slug"]: p for p in response.json()}
    assert by_slug["busy"]["pageViews"] == 4
    assert by_slug["busy"]["conversionRate"] == 25.0
    assert by_slug["quiet"] == {
        **by_slug["quiet"], "pageViews": 0, "formSubmissions": 0, "conversionRate": 0.0, "status": "DRAFT",
    }


# ─── Export ──────────────────────────────────────────────────────────────────

def test_csv_export_has_one_section_per_group(db, make_project):
    project = make_project(slug="demo")
    now = datetime(2024, 3, 10, 12, 0)
    _event(db, project, when=now - timedelta(days=1), utm={"utm_source": "hn"},
           metadata={"device_type": "desktop", "browser": "Firefox"})

    text = to_csv(get_detailed_stats(db, project.id, days=7, now=now))

    sections = text.strip().split("\n\n")
    titles = [section.splitlines()[0] for section in sections]
    assert titles == [
        "Summary", "Daily Page Views", "Daily Form Submissions",
        "UTM Sources", "Top Referrers", "Device Types", "Browsers",
    ]
    summary = list(csv.reader(io.StringIO("\n".join(sections[0].splitlines()[1:]))))
    assert summary == [
        ["Metric", "Value"],
        ["Page Views", "1"],
        ["Form Submissions", "0"],
        ["Conversion Rate", "0.00%"],
    ]
    for section in sections:
        for row in csv.reader(io.StringIO("\n".join(section.splitlines()[1:]))):
            assert len(row) == 2


def test_export_endpoint_formats(client, make_project, admin_headers):
    project = make_project(slug="demo")
    params = {"projectId": project.id, "days": 30}

    as_csv = client.get("/api/admin/analytics/export", params={**params, "format": "csv"}, headers=admin_headers)
    as_json = client.get("/api/admin/analytics/export", params=params, headers=admin_headers)

    assert as_csv.status_code == 200
    assert as_csv.headers["content-type"].startswith("text/csv")
    assert as_csv.headers["content-disposition"] == \
        f'attachment; filename="analytics-{project.id}-30days.csv"'
    assert as_csv.text.startswith("Summary\n")

    assert as_json.status_code == 200
    assert as_json.json()["summary"]["pageViews"] == 0
    assert as_json.headers["content-disposition"].endswith('30days.json"')

    bad = client.get("/api/admin/analytics/export", params={**params, "format": "xml"}, headers=admin_headers)
    assert bad.status_code == 400

"""
Données de démo : deux projets ACTIVE, quelques leads et des page views.
Idempotent (un slug déjà présent est ignoré). Affiche un token admin à la fin.

    python seed_projects.py
"""
import random
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.database import Base, SessionLocal, engine
from app.models import AnalyticsEventType, FormSubmission, Project, ProjectStatus
from app.schemas import ProjectCreate
from app.services.analytics import track_event
from app.services.projects import create_project
from app.utils.auth import create_access_token

PROJECTS = [
    {
        "slug": "ai-writing-assistant",
        "title": "AI Writing Assistant",
        "description": "A smart writing companion that helps you create better content faster.",
        "template_config": {
            "headline": "Write Better Content 10x Faster",
            "subheadline": "Your AI writing assistant for marketers and content creators.",
            "cta_text": "Join the Waitlist",
            "features": [
                {"title": "AI-Powered Writing", "description": "Blog posts, emails and social content"},
                {"title": "Brand Voice Learning", "description": "Keeps your writing style consistent"},
                {"title": "SEO Optimization", "description": "Built-in suggestions to rank higher"},
            ],
            "social_proof": {"metrics": {"users": "500+", "timeSaved": "50 hours"}},
        },
        "design_config": {"primary_color": "#6366F1", "secondary_color": "#8B5CF6", "theme": "modern"},
        "leads": [
            {"email": "john@example.com", "name": "John Doe", "company": "StartupCorp", "utm_source": "twitter"},
            {"email": "sarah@agency.com", "name": "Sarah Wilson", "utm_source": "google"},
        ],
    },
    {
        "slug": "eco-friendly-packaging",
        "title": "EcoBox - Sustainable Packaging",
        "description": "Biodegradable packaging for e-commerce businesses.",
        "domain": "ecobox-demo.com",
        "template_config": {
            "headline": "Packaging That Doesn't Cost the Earth",
            "subheadline": "100% biodegradable packaging. Same protection, zero impact.",
            "cta_text": "Get Free Samples",
            "features": [
                {"title": "100% Biodegradable", "description": "Breaks down completely in 90 days"},
                {"title": "Custom Branding", "description": "Custom printing that shows your values"},
            ],
        },
        "design_config": {"primary_color": "#059669", "background_color": "#F0FDF4", "theme": "eco"},
        "leads": [
            {"email": "mike@greenstore.com", "name": "Mike Green", "utm_source": "linkedin"},
        ],
    },
]

REFERRERS = [None, "https://www.google.com/", "https://twitter.com/", "https://news.ycombinator.com/"]
DEVICES = [("desktop", "Chrome"), ("desktop", "Firefox"), ("mobile", "Safari"), ("mobile", "Chrome")]


def seed(db: Session, days: int = 14, views_per_day: int = 20) -> list:
    """Crée les projets manquants ; retourne les slugs créés"""
    created = []
    now = datetime.utcnow()

    for entry in PROJECTS:
        if db.query(Project.id).filter(Project.slug == entry["slug"]).first():
            print(f"⏭️  {entry['slug']} existe déjà")
            continue

        fields = {k: v for k, v in entry.items() if k != "leads"}
        project = create_project(db, ProjectCreate(status=ProjectStatus.ACTIVE, **fields))

        for offset in range(days):
            day = now - timedelta(days=offset)
            for _ in range(random.randint(views_per_day // 2, views_per_day)):
                device, browser = random.choice(DEVICES)
                event = track_event(
                    db,
                    project.id,
                    AnalyticsEventType.PAGE_VIEW,
                    referrer=random.choice(REFERRERS),
                    pathname=f"/p/{project.slug}",
                    metadata={"device_type": device, "browser": browser},
                )
                event.timestamp = day - timedelta(minutes=random.randint(0, 600))

        for index, lead in enumerate(entry["leads"]):
            form_data = {k: v for k, v in lead.items() if not k.startswith("utm_")}
            db.add(FormSubmission(
                id=str(uuid.uuid4()),
                project_id=project.id,
                form_data=form_data,
                email=lead["email"],
                utm_source=lead.get("utm_source"),
                submitted_at=now - timedelta(days=index + 1),
            ))

        db.commit()
        created.append(project.slug)
        print(f"✅ {project.slug} ({len(entry['leads'])} leads)")

    return created


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()
    print(f"\n🔑 Admin token : {create_access_token({'sub': 'admin'})}")

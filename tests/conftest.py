import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_SWEEP_SECONDS"] = "0"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["IP_HASH_SALT"] = "test-salt"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["RESEND_API_KEY"] = ""
os.environ["MAIN_DOMAIN"] = "landing.app"

import pytest
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, engine
from app.models import ProjectStatus
from app.routes import projects as project_routes
from app.schemas import ProjectCreate
from app.services import projects as project_service
from app.utils.auth import create_access_token
from app.utils.rate_limit import MemoryRateLimiter
from main import app


@pytest.fixture(autouse=True)
def fresh_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.rate_limiter = MemoryRateLimiter()
    project_routes.limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_project(db):
    def _make(slug="demo", status=ProjectStatus.ACTIVE, domain=None, title=None, **extra):
        data = ProjectCreate(
            slug=slug,
            title=title or slug.title(),
            status=status,
            domain=domain,
            **extra,
        )
        return project_service.create_project(db, data)

    return _make

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from apscheduler.schedulers.background import BackgroundScheduler
from contextlib import asynccontextmanager
from datetime import datetime
import logging

from app.config import settings
from app.database import engine, Base, check_database_connection
from app.dependencies import rate_limit_headers
from app.errors import AppError, RateLimitError, ValidationFailed
from app.middleware import HostnameRouterMiddleware
from app.routes import analytics, leads, pages, projects, admin_analytics
from app.tasks.cleanup import sweep_rate_limits
from app.utils.logging import setup_logging
from app.utils.rate_limit import build_rate_limiter

setup_logging()
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])
TRACK_PREFIX = "/api/track"


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    scheduler = None
    if settings.RATE_LIMIT_SWEEP_SECONDS > 0:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            sweep_rate_limits,
            "interval",
            seconds=settings.RATE_LIMIT_SWEEP_SECONDS,
            args=[app.state.rate_limiter],
        )
        scheduler.start()
        logger.info("Scheduler started (rate limit sweep)")
    yield
    if scheduler:
        scheduler.shutdown()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

app.state.limiter = limiter
app.state.rate_limiter = build_rate_limiter(settings.RATE_LIMIT_BACKEND, settings.REDIS_URL)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ─── Erreurs ─────────────────────────────────────────────────────────────────

@app.exception_handler(RateLimitError)
async def rate_limit_error_handler(request: Request, exc: RateLimitError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=rate_limit_headers(exc.limit, exc.remaining, exc.reset_time),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(loc) or "body"] = err.get("msg", "Invalid value")
    error = ValidationFailed("Validation failed", fields)
    # /api/track répond {error, details}, les autres routes {error, fields}
    details_key = "details" if request.url.path.startswith(TRACK_PREFIX) else "fields"
    return JSONResponse(status_code=error.status_code, content=error.to_body(details_key))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # Détails uniquement côté serveur
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ─── Middlewares ─────────────────────────────────────────────────────────────

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Ajouté en dernier = exécuté en premier : décide du routage avant tout le reste
app.add_middleware(HostnameRouterMiddleware)

app.include_router(analytics.router,       prefix=TRACK_PREFIX,                tags=["analytics"])
app.include_router(leads.router,           prefix="/api/leads",                tags=["leads"])
app.include_router(projects.router,        prefix="/api/admin/projects",       tags=["admin"])
app.include_router(admin_analytics.router, prefix="/api/admin/analytics",      tags=["admin"])
app.include_router(pages.router,           prefix="/p",                        tags=["pages"])


@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "service": settings.APP_NAME}

@app.get("/health", include_in_schema=False)
@app.get("/api/health", include_in_schema=False)
def health():
    timestamp = datetime.utcnow().isoformat() + "Z"
    if not check_database_connection():
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "disconnected", "timestamp": timestamp,
                     "error": "Database connection failed"},
        )
    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": timestamp,
        "version": settings.APP_VERSION,
    }

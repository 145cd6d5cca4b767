"""
app/middleware.py
Routage des domaines personnalisés : si le Host correspond au domaine d'un
projet ACTIVE, la requête est réécrite en interne vers /p/{slug}{path}.
La query string n'est pas touchée.

Toute erreur de lookup (base indisponible, timeout) laisse passer la requête
telle quelle : le routage par défaut prend le relais.
"""
import asyncio
import logging
from typing import Callable, Optional

from starlette.types import ASGIApp, Receive, Scope, Send

from app.config import settings
from app.database import SessionLocal
from app.models import ProjectStatus
from app.services.projects import find_project_by_domain, normalize_domain

logger = logging.getLogger(__name__)

RESERVED_PREFIXES = (
    "/api/",
    "/static/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
)
LOCAL_HOSTS = ("localhost", "127.0.0.1")

DomainLookup = Callable[[str], Optional[str]]


def lookup_active_slug(domain: str) -> Optional[str]:
    """Slug du projet ACTIVE rattaché à `domain`, sinon None."""
    db = SessionLocal()
    try:
        project = find_project_by_domain(db, domain)
        if project and project.status == ProjectStatus.ACTIVE:
            return project.slug
        return None
    finally:
        db.close()


def should_skip(host: str, path: str, main_domain: Optional[str] = None) -> bool:
    if path.startswith(RESERVED_PREFIXES) or "." in path:
        return True
    if not host or host in LOCAL_HOSTS or host.endswith(".localhost"):
        return True
    main_domain = settings.MAIN_DOMAIN if main_domain is None else main_domain
    return bool(main_domain) and host == normalize_domain(main_domain)


async def resolve_rewrite(
    host: Optional[str],
    path: str,
    lookup: DomainLookup = lookup_active_slug,
    timeout: Optional[float] = None,
    main_domain: Optional[str] = None,
) -> Optional[str]:
    """Chemin réécrit, ou None pour laisser passer la requête."""
    domain = normalize_domain(host) or ""
    if should_skip(domain, path, main_domain):
        return None

    timeout = settings.DOMAIN_LOOKUP_TIMEOUT if timeout is None else timeout
    try:
        slug = await asyncio.wait_for(asyncio.to_thread(lookup, domain), timeout=timeout)
    except Exception as e:
        logger.warning(f"Custom domain lookup failed for {domain}: {e!r}")
        return None

    if not slug:
        return None
    return f"/p/{slug}{'' if path == '/' else path}"


class HostnameRouterMiddleware:
    def __init__(self, app: ASGIApp, lookup: DomainLookup = lookup_active_slug):
        self.app = app
        self.lookup = lookup

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        host = headers.get(b"host", b"").decode("latin-1")
        new_path = await resolve_rewrite(host, scope["path"], self.lookup)

        if new_path:
            logger.debug(f"Rewrite {host}{scope['path']} -> {new_path}")
            scope = dict(scope)
            scope["path"] = new_path
            scope["raw_path"] = new_path.encode("utf-8")

        await self.app(scope, receive, send)

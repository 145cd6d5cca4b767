"""
app/services/projects.py
Accès aux projets et à leurs PageConfig.

Invariant : au plus une PageConfig active par projet. Toute modification de
contenu/design crée une nouvelle ligne et désactive l'ancienne dans la même
transaction.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import Optional, List, Tuple
import logging
import uuid

from app.errors import NotFoundError, ConflictError
from app.models import Project, ProjectStatus, PageConfig, FormSubmission, AnalyticsEvent
from app.schemas import ProjectCreate, ProjectUpdate
from app.schemas.pages import TemplateConfig, DesignConfig, default_template_config, default_design_config

logger = logging.getLogger(__name__)


def normalize_domain(host: Optional[str]) -> Optional[str]:
    if not host:
        return None
    return host.strip().lower().split(":")[0] or None


# ─── Lecture ─────────────────────────────────────────────────────────────────

def get_project(db: Session, project_id: str) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def get_project_by_slug(db: Session, slug: str, public_only: bool = False) -> Project:
    project = db.query(Project).filter(Project.slug == slug).first()
    if not project or (public_only and not project.is_public):
        raise NotFoundError("Project not found")
    return project


def find_project_by_domain(db: Session, domain: str) -> Optional[Project]:
    return db.query(Project).filter(Project.domain == normalize_domain(domain)).first()


def list_projects(
    db: Session,
    status: Optional[ProjectStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Tuple[Project, int, int]], int]:
    query = db.query(Project)
    if status:
        query = query.filter(Project.status == status)
    total = query.count()
    projects = (
        query.order_by(Project.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    ids = [p.id for p in projects]
    submission_counts = dict(
        db.query(FormSubmission.project_id, func.count(FormSubmission.id))
        .filter(FormSubmission.project_id.in_(ids))
        .group_by(FormSubmission.project_id)
        .all()
    ) if ids else {}
    event_counts = dict(
        db.query(AnalyticsEvent.project_id, func.count(AnalyticsEvent.id))
        .filter(AnalyticsEvent.project_id.in_(ids))
        .group_by(AnalyticsEvent.project_id)
        .all()
    ) if ids else {}

    rows = [(p, submission_counts.get(p.id, 0), event_counts.get(p.id, 0)) for p in projects]
    return rows, total


def list_submissions(db: Session, project_id: str, limit: int = 50) -> List[FormSubmission]:
    get_project(db, project_id)
    return (
        db.query(FormSubmission)
        .filter(FormSubmission.project_id == project_id)
        .order_by(FormSubmission.submitted_at.desc())
        .limit(limit)
        .all()
    )


# ─── Écriture ────────────────────────────────────────────────────────────────

def _ensure_unique(db: Session, slug: Optional[str], domain: Optional[str], exclude_id: Optional[str] = None):
    if slug:
        query = db.query(Project.id).filter(Project.slug == slug)
        if exclude_id:
            query = query.filter(Project.id != exclude_id)
        if query.first():
            raise ConflictError("A project with this slug already exists")
    if domain:
        query = db.query(Project.id).filter(Project.domain == domain)
        if exclude_id:
            query = query.filter(Project.id != exclude_id)
        if query.first():
            raise ConflictError("A project with this domain already exists")


def _commit(db: Session):
    try:
        db.commit()
    except IntegrityError:
        # Course entre deux créations concurrentes
        db.rollback()
        raise ConflictError("Project with this slug or domain already exists")


def replace_page_config(
    db: Session,
    project: Project,
    template_config: Optional[TemplateConfig] = None,
    design_config: Optional[DesignConfig] = None,
) -> PageConfig:
    """Ajoute une nouvelle PageConfig active et désactive la précédente (sans commit)."""
    current = project.active_page_config

    if template_config is None:
        template_config = (
            TemplateConfig.model_validate(current.template_config)
            if current else default_template_config(project.title, project.description)
        )
    if design_config is None:
        design_config = (
            DesignConfig.model_validate(current.design_config)
            if current else default_design_config()
        )

    for config in project.page_configs:
        config.is_active = False

    new_config = PageConfig(
        id=str(uuid.uuid4()),
        project_id=project.id,
        template_config=template_config.model_dump(mode="json"),
        design_config=design_config.model_dump(mode="json"),
        schema_version=template_config.version,
        is_active=True,
    )
    project.page_configs.append(new_config)
    return new_config


def create_project(db: Session, data: ProjectCreate) -> Project:
    domain = normalize_domain(data.domain)
    _ensure_unique(db, data.slug, domain)

    project = Project(
        id=str(uuid.uuid4()),
        slug=data.slug,
        domain=domain,
        title=data.title,
        description=data.description,
        status=data.status,
        notification_email=data.notification_email,
    )
    db.add(project)
    replace_page_config(db, project, data.template_config, data.design_config)
    _commit(db)
    db.refresh(project)
    logger.info(f"Project created: {project.slug} ({project.status.value})")
    return project


def update_project(db: Session, project_id: str, data: ProjectUpdate) -> Project:
    project = get_project(db, project_id)
    fields = data.model_fields_set

    domain = normalize_domain(data.domain) if "domain" in fields else project.domain
    slug = data.slug if data.slug else project.slug
    _ensure_unique(
        db,
        slug if slug != project.slug else None,
        domain if domain != project.domain else None,
        exclude_id=project.id,
    )

    project.slug = slug
    project.domain = domain
    if data.title is not None:
        project.title = data.title
    if "description" in fields:
        project.description = data.description
    if data.status is not None:
        project.status = data.status
    if "notification_email" in fields:
        project.notification_email = data.notification_email

    if data.template_config is not None or data.design_config is not None:
        replace_page_config(db, project, data.template_config, data.design_config)

    _commit(db)
    db.refresh(project)
    logger.info(f"Project updated: {project.slug}")
    return project


def delete_project(db: Session, project_id: str) -> None:
    project = get_project(db, project_id)
    db.delete(project)
    db.commit()
    logger.info(f"Project deleted: {project.slug}")

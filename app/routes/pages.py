from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import NotFoundError
from app.schemas import PublicPageResponse
from app.schemas.pages import TemplateConfig, DesignConfig
from app.services.projects import get_project_by_slug

router = APIRouter()


def _public_page(db: Session, slug: str, path: str, query: str) -> PublicPageResponse:
    project = get_project_by_slug(db, slug, public_only=True)
    config = project.active_page_config
    if not config:
        raise NotFoundError("Project not found")
    return PublicPageResponse(
        slug=project.slug,
        title=project.title,
        description=project.description,
        path=path,
        query=query,
        template_config=TemplateConfig.model_validate(config.template_config),
        design_config=DesignConfig.model_validate(config.design_config),
    )


@router.get("/{slug}", response_model=PublicPageResponse)
def project_page(slug: str, request: Request, db: Session = Depends(get_db)):
    return _public_page(db, slug, "/", request.url.query)


@router.get("/{slug}/{path:path}", response_model=PublicPageResponse)
def project_subpage(slug: str, path: str, request: Request, db: Session = Depends(get_db)):
    return _public_page(db, slug, f"/{path}", request.url.query)

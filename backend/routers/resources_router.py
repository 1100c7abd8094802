"""Resource library router (feature flagged)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from models.schemas import ResourceCreate, ResourceListResponse, ResourceResponse
from repositories.database import get_db
from repositories.db_models import ResourceType
from services.resource_service import ResourceService

router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("", response_model=ResourceListResponse)
def list_resources(
    category: Optional[str] = None,
    resource_type: Optional[ResourceType] = Query(default=None, alias="type"),
    featured: bool = False,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> ResourceListResponse:
    """Active resources, featured first then newest."""
    if category == "all":
        category = None
    items, total = ResourceService(db).list(
        category, resource_type, featured, limit, offset
    )
    return ResourceListResponse(
        resources=[ResourceResponse.model_validate(r) for r in items],
        total=total,
    )


@router.get("/{slug}", response_model=ResourceResponse)
def get_resource(slug: str, db: Session = Depends(get_db)) -> ResourceResponse:
    """Get a resource by slug and count the view."""
    return ResourceResponse.model_validate(ResourceService(db).get_by_slug(slug))


@router.post("", response_model=ResourceResponse, status_code=201)
def create_resource(
    resource: ResourceCreate,
    db: Session = Depends(get_db),
) -> ResourceResponse:
    """Publish a new resource. The slug defaults to one derived from the title."""
    return ResourceResponse.model_validate(ResourceService(db).create(resource))


@router.delete("/{slug}", status_code=204)
def deactivate_resource(slug: str, db: Session = Depends(get_db)) -> Response:
    """Hide a resource from the library (soft delete)."""
    ResourceService(db).deactivate(slug)
    return Response(status_code=204)

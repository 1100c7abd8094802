"""
Parent resource library.
"""

import re
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from helpers.sanitization import sanitize_url
from helpers.time_utils import utc_now
from models.exceptions import ResourceNotFoundException, ResourceSlugConflictException
from models.schemas import ResourceCreate
from repositories.db_models import Resource, ResourceType
from repositories.resource_repository import ResourceRepository

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lowercase, hyphen-separated slug ("Potty Training 101" -> "potty-training-101")."""
    return _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")


class ResourceService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ResourceRepository(db)

    def list(
        self,
        category: Optional[str] = None,
        resource_type: Optional[ResourceType] = None,
        featured_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Resource], int]:
        return self.repo.list_active(category, resource_type, featured_only, limit, offset)

    def get_by_slug(self, slug: str) -> Resource:
        """Fetch an active resource and count the view."""
        resource = self.repo.get_active_by_slug(slug)
        if resource is None:
            raise ResourceNotFoundException(slug)
        resource.view_count = (resource.view_count or 0) + 1
        return self.repo.update(resource)

    def create(self, data: ResourceCreate) -> Resource:
        slug = data.slug or slugify(data.title)
        if not slug:
            slug = f"resource-{int(utc_now().timestamp())}"
        if self.repo.get_by_slug(slug) is not None:
            raise ResourceSlugConflictException(slug)

        resource = Resource(
            slug=slug,
            title=data.title,
            description=data.description,
            content=data.content,
            resource_type=data.resource_type,
            category=data.category,
            external_url=sanitize_url(data.external_url),
            file_url=sanitize_url(data.file_url),
            tags=[tag.strip() for tag in data.tags if tag.strip()],
            author=data.author,
            reading_time=data.reading_time,
            is_featured=data.is_featured,
            published_at=utc_now(),
        )
        resource = self.repo.create(resource)
        logger.info(f"Created resource '{slug}'")
        return resource

    def deactivate(self, slug: str) -> None:
        resource = self.repo.get_active_by_slug(slug)
        if resource is None:
            raise ResourceNotFoundException(slug)
        resource.is_active = False
        self.repo.update(resource)
        logger.info(f"Deactivated resource '{slug}'")

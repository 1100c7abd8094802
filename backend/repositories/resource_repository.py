"""
Resource library repository.
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.base import BaseRepository


class ResourceRepository(BaseRepository[db_models.Resource]):
    """Repository for resource library entries."""

    def __init__(self, db: Session):
        super().__init__(db_models.Resource, db)

    def get_by_slug(self, slug: str) -> db_models.Resource | None:
        return self.get_one_by(slug=slug)

    def get_active_by_slug(self, slug: str) -> db_models.Resource | None:
        return self.get_one_by(slug=slug, is_active=True)

    def list_active(
        self,
        category: str | None = None,
        resource_type: db_models.ResourceType | None = None,
        featured_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[db_models.Resource], int]:
        """
        List active resources, featured first then newest.

        Returns:
            Tuple of (page of resources, total matching count)
        """
        query = self.db.query(db_models.Resource).filter(
            db_models.Resource.is_active.is_(True)
        )
        if category:
            query = query.filter(db_models.Resource.category == category)
        if resource_type is not None:
            query = query.filter(db_models.Resource.resource_type == resource_type)
        if featured_only:
            query = query.filter(db_models.Resource.is_featured.is_(True))

        total = query.count()
        items = (
            query.order_by(
                db_models.Resource.is_featured.desc(),
                db_models.Resource.created_at.desc(),
                db_models.Resource.id.desc(),
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

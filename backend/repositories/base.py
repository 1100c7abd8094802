"""
Base repository class providing common database operations.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Type parameter T should be a SQLAlchemy model class. Write helpers commit
    immediately; use `add` + `commit` when several rows belong together.
    """

    def __init__(self, model: type[T], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """Get entity by primary key."""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def get_one_by(self, **filters: Any) -> T | None:
        """
        Get the first entity matching all keyword filters.

        Example:
            repo.get_one_by(public_id="SUB-...")
        """
        return self.db.query(self.model).filter_by(**filters).first()

    def add(self, entity: T) -> None:
        """Add entity to session without committing."""
        self.db.add(entity)

    def create(self, entity: T) -> T:
        """Insert, commit and refresh an entity."""
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """Commit pending changes on an entity and refresh it."""
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def delete(self, entity: T) -> None:
        """Delete entity."""
        self.db.delete(entity)
        self.db.commit()

    def count(self) -> int:
        """Count total number of entities."""
        return self.db.query(self.model).count()

    def commit(self) -> None:
        """Commit the current transaction."""
        self.db.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()

"""
Document repository for parent portal uploads.
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.base import BaseRepository


class DocumentRepository(BaseRepository[db_models.Document]):
    """Repository for uploaded portal documents."""

    def __init__(self, db: Session):
        super().__init__(db_models.Document, db)

    def get_by_public_id(self, public_id: str) -> db_models.Document | None:
        return self.get_one_by(public_id=public_id)

    def list_for_parent(self, parent_email: str) -> list[db_models.Document]:
        """Documents uploaded by one parent, newest first."""
        return (
            self.db.query(db_models.Document)
            .filter(db_models.Document.parent_email == parent_email)
            .order_by(
                db_models.Document.uploaded_at.desc(), db_models.Document.id.desc()
            )
            .all()
        )

"""
Parent portal document uploads.

Files are checked against a per-category allow list and a size limit,
written under the configured upload directory with generated names, and
recorded in the `documents` table.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from core.logging_config import mask_email
from helpers.sanitization import sanitize_multiline, sanitize_text
from models.config import Settings, settings
from models.exceptions import DocumentNotFoundException, DocumentValidationException
from models.schemas import EMAIL_PATTERN
from repositories.db_models import Document, DocumentCategory, DocumentStatus
from repositories.document_repository import DocumentRepository
from services.notification_service import NotificationService

PDF = "application/pdf"
JPEG = "image/jpeg"
PNG = "image/png"
WORD = "application/msword"
WORDX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_TYPES: dict[DocumentCategory, frozenset[str]] = {
    DocumentCategory.ENROLLMENT: frozenset({PDF, JPEG, PNG}),
    DocumentCategory.MEDICAL: frozenset({PDF, JPEG, PNG}),
    DocumentCategory.EMERGENCY: frozenset({PDF, JPEG, PNG}),
    DocumentCategory.AUTHORIZATION: frozenset({PDF}),
    DocumentCategory.FINANCIAL: frozenset({PDF, JPEG, PNG}),
    DocumentCategory.OTHER: frozenset({PDF, JPEG, PNG, WORD, WORDX}),
}

EXTENSIONS = {
    PDF: ".pdf",
    JPEG: ".jpg",
    PNG: ".png",
    WORD: ".doc",
    WORDX: ".docx",
}


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded file read into memory."""

    file_name: str
    content_type: str
    content: bytes


class DocumentService:
    """Upload, list and remove parent documents."""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationService] = None,
        app_settings: Settings = settings,
    ):
        self.db = db
        self.repo = DocumentRepository(db)
        self.notifier = notifier
        self.settings = app_settings
        self.upload_dir = Path(app_settings.UPLOAD_DIR)

    def _validate(
        self,
        parent_email: str,
        category: DocumentCategory,
        files: list[IncomingFile],
    ) -> None:
        errors: dict[str, list[str]] = {}
        if not EMAIL_PATTERN.match(parent_email or ""):
            errors["parentEmail"] = ["Please enter a valid email address"]
        if not files:
            errors["files"] = ["Please select at least one file"]

        allowed = ALLOWED_TYPES[category]
        max_mb = self.settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        for incoming in files:
            name = incoming.file_name or "file"
            if not incoming.content:
                errors.setdefault("files", []).append(f"{name} is empty")
            elif len(incoming.content) > self.settings.MAX_UPLOAD_BYTES:
                errors.setdefault("files", []).append(
                    f"{name} exceeds the {max_mb} MB limit"
                )
            if incoming.content_type not in allowed:
                errors.setdefault("files", []).append(
                    f"{name} has a file type not accepted for {category.value} documents"
                )

        if errors:
            raise DocumentValidationException(
                "Please correct the upload errors", field_errors=errors
            )

    def upload(
        self,
        parent_email: str,
        category: DocumentCategory,
        files: list[IncomingFile],
        child_name: Optional[str] = None,
        notes: Optional[str] = None,
        expires_at: Optional[date] = None,
    ) -> list[Document]:
        """
        Store uploaded files for a parent.

        Raises:
            DocumentValidationException: Bad email, empty selection, file
                too large or type not allowed for the category.
        """
        parent_email = (parent_email or "").strip().lower()
        self._validate(parent_email, category, files)

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        child_name = sanitize_text(child_name) or None
        notes = sanitize_multiline(notes) or None

        documents: list[Document] = []
        written: list[Path] = []
        try:
            for incoming in files:
                public_id = str(uuid.uuid4())
                path = self.upload_dir / f"{public_id}{EXTENSIONS[incoming.content_type]}"
                path.write_bytes(incoming.content)
                written.append(path)

                document = Document(
                    public_id=public_id,
                    parent_email=parent_email,
                    file_name=sanitize_text(Path(incoming.file_name).name)[:255]
                    or path.name,
                    content_type=incoming.content_type,
                    size_bytes=len(incoming.content),
                    category=category,
                    child_name=child_name,
                    notes=notes,
                    expires_at=expires_at,
                    storage_path=str(path),
                )
                self.repo.add(document)
                documents.append(document)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            for path in written:
                path.unlink(missing_ok=True)
            raise

        for document in documents:
            self.db.refresh(document)

        logger.info(
            f"Stored {len(documents)} {category.value} document(s) for "
            f"{mask_email(parent_email)}"
        )

        if self.notifier is not None:
            self.notifier.notify_document_upload(
                {
                    "parent_email": parent_email,
                    "child_name": child_name,
                    "category": category.value,
                    "file_names": [d.file_name for d in documents],
                    "expires_at": expires_at.isoformat() if expires_at else None,
                    "notes": notes,
                }
            )

        return documents

    def list_for_parent(self, parent_email: str) -> list[Document]:
        return self.repo.list_for_parent((parent_email or "").strip().lower())

    def _get_owned(self, public_id: str, parent_email: str) -> Document:
        document = self.repo.get_by_public_id(public_id)
        if document is None or document.parent_email != (parent_email or "").strip().lower():
            raise DocumentNotFoundException(public_id)
        return document

    def delete(self, public_id: str, parent_email: str) -> None:
        """Remove a document and its file. Only the uploading parent may delete."""
        document = self._get_owned(public_id, parent_email)
        storage_path = Path(document.storage_path)
        self.repo.delete(document)
        storage_path.unlink(missing_ok=True)
        logger.info(f"Deleted document {public_id}")

    def update_status(self, public_id: str, status: DocumentStatus) -> Document:
        document = self.repo.get_by_public_id(public_id)
        if document is None:
            raise DocumentNotFoundException(public_id)
        document.status = status
        return self.repo.update(document)

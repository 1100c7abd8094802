"""Parent portal document router."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from models.schemas import (
    DocumentListResponse,
    DocumentResponse,
    DocumentStatusUpdate,
    DocumentUploadResponse,
)
from repositories.database import get_db
from repositories.db_models import DocumentCategory
from services.document_service import DocumentService, IncomingFile
from services.notification_service import NotificationService

router = APIRouter(prefix="/portal/documents", tags=["documents"])


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    return DocumentService(db, notifier=NotificationService())


@router.post("", response_model=DocumentUploadResponse, status_code=201)
async def upload_documents(
    parent_email: str = Form(..., alias="parentEmail"),
    category: DocumentCategory = Form(...),
    files: List[UploadFile] = File(...),
    child_name: Optional[str] = Form(default=None, alias="childName"),
    notes: Optional[str] = Form(default=None),
    expires_at: Optional[date] = Form(default=None, alias="expiresAt"),
    service: DocumentService = Depends(get_document_service),
) -> DocumentUploadResponse:
    """Upload one or more documents (max 10 MB each).

    Accepted types depend on the category: authorization forms must be PDF,
    "other" also accepts Word documents, everything else PDF, JPEG or PNG.

    Raises:
        DocumentValidationException: 422 for bad email, size or type
    """
    incoming = [
        IncomingFile(
            file_name=upload.filename or "document",
            content_type=upload.content_type or "application/octet-stream",
            content=await upload.read(),
        )
        for upload in files
    ]
    documents = await run_in_threadpool(
        service.upload,
        parent_email,
        category,
        incoming,
        child_name,
        notes,
        expires_at,
    )
    count = len(documents)
    return DocumentUploadResponse(
        success=True,
        documents=[DocumentResponse.model_validate(d) for d in documents],
        message=f"{count} document{'s' if count != 1 else ''} uploaded successfully",
    )


@router.get("", response_model=DocumentListResponse)
def list_documents(
    parent_email: str = Query(..., alias="parentEmail"),
    service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    """Documents uploaded by a parent, newest first."""
    documents = service.list_for_parent(parent_email)
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.delete("/{document_id}", status_code=204)
def delete_document(
    document_id: str,
    parent_email: str = Query(..., alias="parentEmail"),
    service: DocumentService = Depends(get_document_service),
) -> Response:
    """Delete a document uploaded by this parent.

    Raises:
        DocumentNotFoundException: 404 if missing or owned by another parent
    """
    service.delete(document_id, parent_email)
    return Response(status_code=204)


@router.patch("/{document_id}/status", response_model=DocumentResponse)
def update_document_status(
    document_id: str,
    update: DocumentStatusUpdate,
    service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    """Approve or reject a document."""
    document = service.update_status(document_id, update.status)
    return DocumentResponse.model_validate(document)

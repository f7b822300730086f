from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.deps import (
    client_address,
    get_blob_store,
    get_db,
    get_notarizer,
    require_user_auth,
)
from app.config import settings
from app.errors import ValidationFailureError
from app.models.person import Person
from app.schemas.common import ListResponse
from app.schemas.vault import (
    DocumentMetadata,
    DocumentRead,
    MessageResponse,
    UploadResponse,
)
from app.services import vault_document as doc_service
from app.services.vault_download import DownloadPipeline
from app.services.vault_notary import Notarizer
from app.services.vault_storage import BlobStore

router = APIRouter(prefix="/upload", tags=["documents"])


def _attachment_header(file_name: str) -> str:
    fallback = file_name.replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    file: UploadFile = File(...),
    title: str | None = Form(default=None),
    category: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    description: str | None = Form(default=None),
    visibility: str = Form(default="public"),
    person: Person = Depends(require_user_auth),
    blob_store: BlobStore = Depends(get_blob_store),
    notarizer: Notarizer = Depends(get_notarizer),
    db: Session = Depends(get_db),
):
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise ValidationFailureError(
            f"File too large. Maximum size: {settings.max_upload_bytes // 1024 // 1024}MB"
        )
    # One byte past the limit is enough for the service to reject it.
    content = file.file.read(settings.max_upload_bytes + 1)
    metadata = DocumentMetadata(
        title=title or None,
        category=category or None,
        tags=doc_service.parse_tags(tags),
        description=description,
        visibility=visibility,
    )
    document = doc_service.documents.upload(
        db,
        person.id,
        file.filename or "upload.bin",
        content,
        metadata,
        blob_store=blob_store,
        notarizer=notarizer,
        mime_type=file.content_type,
    )
    return {
        "message": "File uploaded, encrypted, and registered successfully",
        "document": document,
    }


@router.get("/my-docs", response_model=ListResponse[DocumentRead])
def list_my_documents(
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return doc_service.documents.list_response(
        db, person.id, order_by, order_dir, limit, offset
    )


@router.get("/download/{document_id}")
def download_document(
    document_id: UUID,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    blob_store: BlobStore = Depends(get_blob_store),
    db: Session = Depends(get_db),
):
    result = DownloadPipeline(blob_store).download(
        db, person.id, document_id, source_address
    )
    return Response(
        content=result.content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": _attachment_header(result.document.file_name)},
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: UUID,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return doc_service.documents.view_metadata(
        db, person.id, document_id, source_address
    )


@router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: UUID,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    doc_service.documents.delete(db, person.id, document_id, source_address)
    return {"message": "Document deleted successfully"}

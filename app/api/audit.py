from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_user_auth
from app.errors import ForbiddenError
from app.models.person import Person
from app.schemas.audit import AuditEntryRead
from app.schemas.common import ListResponse
from app.services.audit import audit_log
from app.services.vault_document import documents

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/documents/{document_id}", response_model=ListResponse[AuditEntryRead])
def list_document_audit(
    document_id: UUID,
    action: str | None = None,
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    document = documents.get(db, document_id)
    if document.owner_id != person.id:
        raise ForbiddenError("Only the owner can read a document's audit trail")
    return audit_log.list_response(
        db, document_id, None, action, "created_at", order_dir, limit, offset
    )


@router.get("/me", response_model=ListResponse[AuditEntryRead])
def list_my_audit(
    action: str | None = None,
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return audit_log.list_response(
        db, None, person.id, action, "created_at", order_dir, limit, offset
    )

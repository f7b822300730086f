from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationFailureError,
)
from app.models.audit import AuditAction, AuditOutcome
from app.models.vault import Document, DocumentTag, Visibility
from app.schemas.vault import DocumentMetadata
from app.services import vault_crypto
from app.services.audit import audit_log
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin
from app.services.vault_access import access_control
from app.services.vault_notary import Notarizer, attempt_notarization
from app.services.vault_storage import BlobStore, BlobStoreError

logger = logging.getLogger(__name__)

_VALID_VISIBILITIES = {e.value for e in Visibility}


def parse_tags(raw: str | list[str] | None) -> list[str]:
    """Split a comma-separated tag string; trims, drops empties and repeats."""
    if not raw:
        return []
    parts = raw.split(",") if isinstance(raw, str) else raw
    tags: list[str] = []
    for part in parts:
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class Documents(ListResponseMixin):
    @staticmethod
    def upload(
        db: Session,
        owner_id,
        file_name: str,
        content: bytes,
        metadata: DocumentMetadata,
        blob_store: BlobStore,
        notarizer: Notarizer,
        mime_type: str | None = None,
    ) -> Document:
        if not content:
            raise ValidationFailureError("No file uploaded")
        if len(content) > settings.max_upload_bytes:
            raise ValidationFailureError(
                f"File too large. Maximum size: {settings.max_upload_bytes // 1024 // 1024}MB"
            )
        if metadata.visibility not in _VALID_VISIBILITIES:
            raise ValidationFailureError(
                f"Invalid visibility. Allowed: {sorted(_VALID_VISIBILITIES)}"
            )

        content_hash = vault_crypto.content_hash(content)
        existing = db.scalars(
            select(Document.id).where(Document.content_hash == content_hash)
        ).first()
        if existing:
            raise ConflictError(
                "Document already exists", details={"document_id": str(existing)}
            )

        payload = vault_crypto.encrypt(content)
        try:
            storage_address = blob_store.put(payload.ciphertext, f"{file_name}.enc")
        except BlobStoreError as e:
            raise UpstreamUnavailableError("Blob store unavailable", details=str(e))

        title = metadata.title or file_name
        document = Document(
            owner_id=coerce_uuid(owner_id),
            file_name=file_name,
            mime_type=mime_type or "application/octet-stream",
            file_size=len(content),
            content_hash=content_hash,
            storage_address=storage_address,
            encryption_key=payload.key_material,
            title=title,
            category=metadata.category or "General",
            description=metadata.description or "",
            visibility=Visibility(metadata.visibility),
        )
        document.tag_links = [DocumentTag(tag=tag) for tag in parse_tags(metadata.tags)]
        db.add(document)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with an identical upload; the unique index decides.
            db.rollback()
            raise ConflictError("Document already exists")

        # Only catalogued documents are notarized.
        notarization = attempt_notarization(
            notarizer, storage_address, content_hash, title
        )
        if notarization.succeeded:
            document.notarization_reference = notarization.reference
            db.commit()
        db.refresh(document)
        logger.info(
            "Uploaded document %s (%s) for %s, notarized=%s",
            document.id,
            content_hash,
            document.owner_id,
            notarization.succeeded,
        )
        return document

    @staticmethod
    def get(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def view_metadata(
        db: Session, actor_id, document_id, source_address: str | None = None
    ) -> Document:
        document = Documents.get(db, document_id)
        allowed = document.visibility == Visibility.public or access_control.has_access(
            db, actor_id, document.id
        )
        audit_log.record(
            db,
            actor_id,
            document,
            AuditAction.view_metadata,
            outcome=AuditOutcome.success if allowed else AuditOutcome.failure,
            source_address=source_address,
            detail=None if allowed else "access_denied",
        )
        if not allowed:
            raise ForbiddenError("Access Denied")
        return document

    @staticmethod
    def list(
        db: Session,
        owner_id: str,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Document]:
        stmt = select(Document).where(Document.owner_id == coerce_uuid(owner_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": Document.created_at, "title": Document.title},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def delete(
        db: Session, actor_id, document_id, source_address: str | None = None
    ) -> None:
        """Owner-only delete; cascades to access entries and tags.

        The encrypted blob stays in the blob store.
        """
        document = Documents.get(db, document_id)
        actor = coerce_uuid(actor_id)
        if document.owner_id != actor:
            audit_log.record(
                db,
                actor,
                document,
                AuditAction.delete_file,
                outcome=AuditOutcome.failure,
                source_address=source_address,
                detail="forbidden",
            )
            raise ForbiddenError("Not authorized to delete this document")

        entry_count = len(document.access_entries)
        audit_log.record(
            db,
            actor,
            document,
            AuditAction.delete_file,
            source_address=source_address,
            commit=False,
        )
        db.delete(document)
        db.commit()
        logger.info(
            "Deleted document %s and %d access entries", document_id, entry_count
        )


documents = Documents()

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailureError,
)
from app.models.audit import AuditAction, AuditOutcome
from app.models.person import Person
from app.models.vault import AccessEntry, AccessKind, AccessStatus, Document
from app.services.audit import audit_log
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

_DECISIONS = {AccessStatus.approved.value, AccessStatus.rejected.value}


def approver_id(entry: AccessEntry) -> uuid.UUID:
    """The party whose answer settles a pending entry.

    Requests are answered by the document owner, offers by the recipient.
    """
    if entry.kind == AccessKind.offer:
        return entry.requester_id
    return entry.owner_id


def _incoming_clause(actor_id: uuid.UUID):
    return or_(
        and_(AccessEntry.kind == AccessKind.request, AccessEntry.owner_id == actor_id),
        and_(AccessEntry.kind == AccessKind.offer, AccessEntry.requester_id == actor_id),
    )


def _outgoing_clause(actor_id: uuid.UUID):
    return or_(
        and_(
            AccessEntry.kind == AccessKind.request,
            AccessEntry.requester_id == actor_id,
        ),
        and_(AccessEntry.kind == AccessKind.offer, AccessEntry.owner_id == actor_id),
    )


def _get_document(db: Session, document_id) -> Document:
    document = db.get(Document, coerce_uuid(document_id))
    if not document:
        raise NotFoundError("Document not found")
    return document


def _find_entry(db: Session, requester_id, document_id) -> AccessEntry | None:
    stmt = select(AccessEntry).where(
        AccessEntry.requester_id == coerce_uuid(requester_id),
        AccessEntry.document_id == coerce_uuid(document_id),
    )
    return db.scalars(stmt).first()


def _deny(
    db: Session,
    actor_id,
    document: Document,
    action: AuditAction,
    message: str,
    source_address: str | None,
):
    audit_log.record(
        db,
        actor_id,
        document,
        action,
        outcome=AuditOutcome.failure,
        source_address=source_address,
        detail="forbidden",
    )
    return ForbiddenError(message)


def _commit_entry(db: Session, message: str) -> None:
    # The unique index on (requester_id, document_id) settles concurrent creators.
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message)


class AccessControl:
    @staticmethod
    def has_access(db: Session, actor_id, document_id) -> bool:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            return False
        actor = coerce_uuid(actor_id)
        if document.owner_id == actor:
            return True
        stmt = select(AccessEntry.id).where(
            AccessEntry.requester_id == actor,
            AccessEntry.document_id == document.id,
            AccessEntry.status == AccessStatus.approved,
        )
        return db.scalars(stmt).first() is not None

    @staticmethod
    def resolve_recipient(db: Session, identifier: str) -> Person:
        """Find a person by wallet address, email, or id (in that order)."""
        needle = identifier.strip().lower()
        person = db.scalars(
            select(Person).where(func.lower(Person.wallet_address) == needle)
        ).first()
        if not person:
            person = db.scalars(
                select(Person).where(func.lower(Person.email) == needle)
            ).first()
        if not person:
            try:
                person = db.get(Person, uuid.UUID(needle))
            except ValueError:
                person = None
        if not person or not person.is_active:
            raise NotFoundError("Recipient not found")
        return person

    @staticmethod
    def get(db: Session, entry_id: str) -> AccessEntry:
        entry = db.get(AccessEntry, coerce_uuid(entry_id))
        if not entry:
            raise NotFoundError("Access request not found")
        return entry

    @staticmethod
    def request(
        db: Session, requester_id, document_id, source_address: str | None = None
    ) -> AccessEntry:
        document = _get_document(db, document_id)
        requester = coerce_uuid(requester_id)
        if document.owner_id == requester:
            raise ValidationFailureError("You own this document")
        existing = _find_entry(db, requester, document.id)
        if existing:
            raise ConflictError(
                "Request already exists", details={"status": existing.status.value}
            )

        entry = AccessEntry(
            requester_id=requester,
            owner_id=document.owner_id,
            document_id=document.id,
            kind=AccessKind.request,
            status=AccessStatus.pending,
        )
        db.add(entry)
        audit_log.record(
            db,
            requester,
            document,
            AuditAction.request_access,
            source_address=source_address,
            commit=False,
        )
        _commit_entry(db, "Request already exists")
        db.refresh(entry)
        logger.info("Created access request %s for document %s", entry.id, document.id)
        return entry

    @staticmethod
    def offer(
        db: Session,
        owner_id,
        document_id,
        recipient_identifier: str,
        source_address: str | None = None,
    ) -> AccessEntry:
        document = _get_document(db, document_id)
        owner = coerce_uuid(owner_id)
        if document.owner_id != owner:
            raise _deny(
                db,
                owner,
                document,
                AuditAction.offer_access,
                "Only the owner can offer access",
                source_address,
            )
        recipient = AccessControl.resolve_recipient(db, recipient_identifier)
        if recipient.id == owner:
            raise ValidationFailureError("Cannot offer access to yourself")
        existing = _find_entry(db, recipient.id, document.id)
        if existing:
            raise ConflictError(
                "Recipient already has a request or offer for this document",
                details={"status": existing.status.value},
            )

        entry = AccessEntry(
            requester_id=recipient.id,
            owner_id=owner,
            document_id=document.id,
            kind=AccessKind.offer,
            status=AccessStatus.pending,
        )
        db.add(entry)
        audit_log.record(
            db,
            owner,
            document,
            AuditAction.offer_access,
            source_address=source_address,
            commit=False,
        )
        _commit_entry(db, "Recipient already has a request or offer for this document")
        db.refresh(entry)
        logger.info("Created access offer %s for document %s", entry.id, document.id)
        return entry

    @staticmethod
    def grant_direct(
        db: Session,
        owner_id,
        document_id,
        recipient_identifier: str,
        source_address: str | None = None,
    ) -> tuple[AccessEntry, Person]:
        """Push grant: leave the recipient with an approved entry, no answer needed.

        An existing pending or rejected entry is promoted in place.
        """
        document = _get_document(db, document_id)
        owner = coerce_uuid(owner_id)
        if document.owner_id != owner:
            raise _deny(
                db,
                owner,
                document,
                AuditAction.approve_access,
                "Only the owner can grant access",
                source_address,
            )
        recipient = AccessControl.resolve_recipient(db, recipient_identifier)
        if recipient.id == owner:
            raise ValidationFailureError("Cannot grant access to yourself")

        now = datetime.now(timezone.utc)
        entry = _find_entry(db, recipient.id, document.id)
        if entry:
            if entry.status == AccessStatus.approved:
                raise ConflictError("User already has access")
            entry.status = AccessStatus.approved
            entry.responded_at = now
        else:
            entry = AccessEntry(
                requester_id=recipient.id,
                owner_id=owner,
                document_id=document.id,
                kind=AccessKind.offer,
                status=AccessStatus.approved,
                requested_at=now,
                responded_at=now,
            )
            db.add(entry)
        audit_log.record(
            db,
            owner,
            document,
            AuditAction.approve_access,
            source_address=source_address,
            detail="grant_direct",
            commit=False,
        )
        _commit_entry(db, "User already has access")
        db.refresh(entry)
        logger.info(
            "Granted %s direct access to document %s", recipient.id, document.id
        )
        return entry, recipient

    @staticmethod
    def respond(
        db: Session,
        entry_id,
        actor_id,
        decision: str,
        source_address: str | None = None,
    ) -> AccessEntry:
        if decision not in _DECISIONS:
            raise ValidationFailureError("Invalid status")
        entry = AccessControl.get(db, entry_id)
        actor = coerce_uuid(actor_id)
        status = AccessStatus(decision)
        action = (
            AuditAction.approve_access
            if status == AccessStatus.approved
            else AuditAction.reject_access
        )
        if approver_id(entry) != actor:
            raise _deny(
                db,
                actor,
                entry.document,
                action,
                "Not authorized",
                source_address,
            )
        if entry.status != AccessStatus.pending:
            raise ConflictError(
                "Request has already been answered",
                details={"status": entry.status.value},
            )

        entry.status = status
        entry.responded_at = datetime.now(timezone.utc)
        audit_log.record(
            db,
            actor,
            entry.document,
            action,
            source_address=source_address,
            commit=False,
        )
        db.commit()
        db.refresh(entry)
        logger.info("Access entry %s %s by %s", entry.id, status.value, actor)
        return entry

    @staticmethod
    def dismiss(
        db: Session, entry_id, actor_id, source_address: str | None = None
    ) -> None:
        entry = AccessControl.get(db, entry_id)
        actor = coerce_uuid(actor_id)
        document = entry.document
        if actor not in (entry.requester_id, entry.owner_id):
            raise _deny(
                db,
                actor,
                document,
                AuditAction.dismiss_access,
                "Not authorized",
                source_address,
            )
        db.delete(entry)
        audit_log.record(
            db,
            actor,
            document,
            AuditAction.dismiss_access,
            source_address=source_address,
            commit=False,
        )
        db.commit()
        logger.info("Dismissed access entry %s", entry_id)

    @staticmethod
    def list_for_actor(db: Session, actor_id) -> dict[str, list[AccessEntry]]:
        actor = coerce_uuid(actor_id)
        incoming = db.scalars(
            select(AccessEntry)
            .where(_incoming_clause(actor))
            .order_by(AccessEntry.requested_at.desc())
        ).all()
        outgoing = db.scalars(
            select(AccessEntry)
            .where(_outgoing_clause(actor))
            .order_by(AccessEntry.requested_at.desc())
        ).all()
        return {"incoming": incoming, "outgoing": outgoing}


access_control = AccessControl()

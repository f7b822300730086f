import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base


class AuditAction(enum.Enum):
    view_metadata = "view_metadata"
    download = "download"
    request_access = "request_access"
    approve_access = "approve_access"
    reject_access = "reject_access"
    offer_access = "offer_access"
    dismiss_access = "dismiss_access"
    delete_file = "delete_file"


class AuditOutcome(enum.Enum):
    success = "success"
    failure = "failure"


class AuditEntry(Base):
    """Append-only record of an access-relevant decision.

    ``document_id`` carries no foreign key and ``document_title`` is a
    snapshot, so entries outlive the document they describe.
    """

    __tablename__ = "audit_entries"
    __table_args__ = (
        Index("ix_audit_entries_document_id", "document_id"),
        Index("ix_audit_entries_actor_id", "actor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    document_title: Mapped[str | None] = mapped_column(String(500))
    action: Mapped[AuditAction] = mapped_column(Enum(AuditAction), nullable=False)
    outcome: Mapped[AuditOutcome] = mapped_column(
        Enum(AuditOutcome), default=AuditOutcome.success
    )
    source_address: Mapped[str | None] = mapped_column(String(64))
    detail: Mapped[str | None] = mapped_column(String(120))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Visibility(enum.Enum):
    public = "public"
    private = "private"


class AccessKind(enum.Enum):
    request = "request"
    offer = "offer"


class AccessStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("content_hash", name="uq_documents_content_hash"),
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_visibility", "visibility"),
        Index("ix_documents_category", "category"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(
        String(255), nullable=False, default="application/octet-stream"
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # SHA-256 of the plaintext; dedup key and post-decrypt integrity check
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    storage_address: Mapped[str] = mapped_column(String(1024), nullable=False)
    encryption_key: Mapped[str] = mapped_column(String(255), nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(120), default="General")
    description: Mapped[str | None] = mapped_column(Text)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility), default=Visibility.public
    )
    notarization_reference: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    owner = relationship("Person", foreign_keys=[owner_id])
    tag_links = relationship(
        "DocumentTag",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentTag.tag",
    )
    access_entries = relationship(
        "AccessEntry",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    @property
    def tags(self) -> list[str]:
        return [link.tag for link in self.tag_links]


class DocumentTag(Base):
    __tablename__ = "document_tags"
    __table_args__ = (
        UniqueConstraint("document_id", "tag", name="uq_document_tags_doc_tag"),
        Index("ix_document_tags_tag", "tag"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    tag: Mapped[str] = mapped_column(String(120), nullable=False)

    document = relationship("Document", back_populates="tag_links")


# ---------------------------------------------------------------------------
# Access ledger (requests and offers share one table)
# ---------------------------------------------------------------------------


class AccessEntry(Base):
    __tablename__ = "access_entries"
    __table_args__ = (
        UniqueConstraint(
            "requester_id",
            "document_id",
            name="uq_access_entries_requester_document",
        ),
        Index("ix_access_entries_owner_id", "owner_id"),
        Index("ix_access_entries_document_id", "document_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[AccessKind] = mapped_column(
        Enum(AccessKind), default=AccessKind.request
    )
    status: Mapped[AccessStatus] = mapped_column(
        Enum(AccessStatus), default=AccessStatus.pending
    )

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    document = relationship("Document", back_populates="access_entries")
    requester = relationship("Person", foreign_keys=[requester_id])
    owner = relationship("Person", foreign_keys=[owner_id])

"""initial schema

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 09:12:44.208113

"""

from alembic import op
import sqlalchemy as sa

revision = "3f9a1c2b7d10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Mirror of the auth service's accounts; read-only here
    op.create_table(
        "people",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("wallet_address", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("wallet_address"),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("file_name", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("storage_address", sa.String(length=1024), nullable=False),
        sa.Column("encryption_key", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("visibility", sa.Enum("public", "private", name="visibility"), nullable=False),
        sa.Column("notarization_reference", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_hash", name="uq_documents_content_hash"),
    )
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index("ix_documents_visibility", "documents", ["visibility"])
    op.create_index("ix_documents_category", "documents", ["category"])

    op.create_table(
        "document_tags",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("tag", sa.String(length=120), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_id", "tag", name="uq_document_tags_doc_tag"),
    )
    op.create_index("ix_document_tags_tag", "document_tags", ["tag"])

    # Requests and offers share one table; one row per (requester, document)
    op.create_table(
        "access_entries",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("requester_id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("kind", sa.Enum("request", "offer", name="accesskind"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", name="accessstatus"),
            nullable=False,
        ),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["requester_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "requester_id",
            "document_id",
            name="uq_access_entries_requester_document",
        ),
    )
    op.create_index("ix_access_entries_owner_id", "access_entries", ["owner_id"])
    op.create_index("ix_access_entries_document_id", "access_entries", ["document_id"])

    # No FK on document_id: entries outlive deleted documents
    op.create_table(
        "audit_entries",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("actor_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("document_title", sa.String(length=500), nullable=True),
        sa.Column(
            "action",
            sa.Enum(
                "view_metadata",
                "download",
                "request_access",
                "approve_access",
                "reject_access",
                "offer_access",
                "dismiss_access",
                "delete_file",
                name="auditaction",
            ),
            nullable=False,
        ),
        sa.Column("outcome", sa.Enum("success", "failure", name="auditoutcome"), nullable=False),
        sa.Column("source_address", sa.String(length=64), nullable=True),
        sa.Column("detail", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entries_document_id", "audit_entries", ["document_id"])
    op.create_index("ix_audit_entries_actor_id", "audit_entries", ["actor_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_entries_actor_id", table_name="audit_entries")
    op.drop_index("ix_audit_entries_document_id", table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("ix_access_entries_document_id", table_name="access_entries")
    op.drop_index("ix_access_entries_owner_id", table_name="access_entries")
    op.drop_table("access_entries")
    op.drop_index("ix_document_tags_tag", table_name="document_tags")
    op.drop_table("document_tags")
    op.drop_index("ix_documents_category", table_name="documents")
    op.drop_index("ix_documents_visibility", table_name="documents")
    op.drop_index("ix_documents_owner_id", table_name="documents")
    op.drop_table("documents")
    op.drop_table("people")

    for enum_name in [
        "auditoutcome",
        "auditaction",
        "accessstatus",
        "accesskind",
        "visibility",
    ]:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)

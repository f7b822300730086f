import uuid

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from app.models.audit import AuditAction, AuditEntry, AuditOutcome
from app.models.person import Person
from app.models.vault import (
    AccessEntry,
    AccessKind,
    AccessStatus,
    Document,
    DocumentTag,
    Visibility,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_person(db_session: object) -> Person:
    p = Person(username="vault", email=f"vault-{uuid.uuid4().hex}@example.com")
    db_session.add(p)
    db_session.flush()
    return p


def _make_document(db_session: object, owner: Person, content_hash: str = "a" * 64) -> Document:
    doc = Document(
        owner_id=owner.id,
        file_name="scan.png",
        content_hash=content_hash,
        storage_address=f"bafy{uuid.uuid4().hex}",
        encryption_key="00:00",
        title="Scan",
    )
    db_session.add(doc)
    db_session.flush()
    return doc


# ---------------------------------------------------------------------------
# Enum Tests
# ---------------------------------------------------------------------------


class TestEnums:
    def test_visibility_values(self) -> None:
        assert {v.value for v in Visibility} == {"public", "private"}

    def test_access_status_values(self) -> None:
        assert AccessStatus.pending.value == "pending"
        assert AccessStatus.approved.value == "approved"
        assert AccessStatus.rejected.value == "rejected"
        assert len(AccessStatus) == 3

    def test_audit_action_values(self) -> None:
        assert AuditAction.delete_file.value == "delete_file"
        assert len(AuditAction) == 8


# ---------------------------------------------------------------------------
# Document Tests
# ---------------------------------------------------------------------------


class TestDocument:
    def test_defaults(self, db_session: object) -> None:
        doc = _make_document(db_session, _make_person(db_session))
        db_session.refresh(doc)
        assert doc.visibility == Visibility.public
        assert doc.category == "General"
        assert doc.mime_type == "application/octet-stream"
        assert doc.notarization_reference is None
        assert doc.created_at is not None
        assert doc.tags == []

    def test_content_hash_unique(self, db_session: object) -> None:
        owner = _make_person(db_session)
        _make_document(db_session, owner)
        with pytest.raises(IntegrityError):
            _make_document(db_session, _make_person(db_session))
        db_session.rollback()

    def test_tags_sorted(self, db_session: object) -> None:
        doc = _make_document(db_session, _make_person(db_session))
        doc.tag_links = [DocumentTag(tag="zeta"), DocumentTag(tag="alpha")]
        db_session.commit()
        db_session.expire(doc)
        assert doc.tags == ["alpha", "zeta"]

    def test_tag_unique_per_document(self, db_session: object) -> None:
        doc = _make_document(db_session, _make_person(db_session))
        db_session.add_all(
            [
                DocumentTag(document_id=doc.id, tag="dup"),
                DocumentTag(document_id=doc.id, tag="dup"),
            ]
        )
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

    def test_table_has_no_plaintext_column(self, db_session: object) -> None:
        columns = {c.key for c in inspect(Document).columns}
        assert "content" not in columns
        assert "encryption_key" in columns


# ---------------------------------------------------------------------------
# Access Entry Tests
# ---------------------------------------------------------------------------


class TestAccessEntry:
    def test_defaults(self, db_session: object) -> None:
        owner = _make_person(db_session)
        requester = _make_person(db_session)
        doc = _make_document(db_session, owner)
        entry = AccessEntry(requester_id=requester.id, owner_id=owner.id, document_id=doc.id)
        db_session.add(entry)
        db_session.flush()
        db_session.refresh(entry)
        assert entry.kind == AccessKind.request
        assert entry.status == AccessStatus.pending
        assert entry.responded_at is None

    def test_one_entry_per_requester_and_document(self, db_session: object) -> None:
        owner = _make_person(db_session)
        requester = _make_person(db_session)
        doc = _make_document(db_session, owner)
        db_session.add(
            AccessEntry(requester_id=requester.id, owner_id=owner.id, document_id=doc.id)
        )
        db_session.flush()
        db_session.add(
            AccessEntry(
                requester_id=requester.id,
                owner_id=owner.id,
                document_id=doc.id,
                kind=AccessKind.offer,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()


# ---------------------------------------------------------------------------
# Audit Entry Tests
# ---------------------------------------------------------------------------


class TestAuditEntry:
    def test_outlives_unknown_document(self, db_session: object) -> None:
        person = _make_person(db_session)
        entry = AuditEntry(
            actor_id=person.id,
            document_id=uuid.uuid4(),
            document_title="Gone",
            action=AuditAction.download,
        )
        db_session.add(entry)
        db_session.flush()
        db_session.refresh(entry)
        assert entry.outcome == AuditOutcome.success

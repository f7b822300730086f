import uuid
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from app.models.audit import AuditAction, AuditEntry, AuditOutcome
from app.models.vault import (
    AccessEntry,
    AccessStatus,
    Document,
    DocumentTag,
    Visibility,
)
from app.schemas.vault import DocumentMetadata
from app.services import vault_crypto
from app.services.vault_access import access_control
from app.services.vault_document import Documents, parse_tags
from tests.fakes import FailingBlobStore, FailingNotarizer, InMemoryBlobStore


def _upload(db_session, owner, blob_store, notarizer, content=b"%PDF-1.7 report", **meta):
    defaults = dict(title="Q3 Report", category="Finance", tags=["finance", "q3"])
    defaults.update(meta)
    return Documents.upload(
        db_session,
        owner.id,
        "report.pdf",
        content,
        DocumentMetadata(**defaults),
        blob_store=blob_store,
        notarizer=notarizer,
        mime_type="application/pdf",
    )


class _RacingBlobStore(InMemoryBlobStore):
    """Commits an identical document while the upload is between check and insert."""

    def __init__(self, db_session, owner, content):
        super().__init__()
        self.db_session = db_session
        self.owner_id = owner.id
        self.content_hash = vault_crypto.content_hash(content)

    def put(self, data: bytes, file_name: str) -> str:
        address = super().put(data, file_name)
        self.db_session.add(
            Document(
                owner_id=self.owner_id,
                file_name="winner.pdf",
                content_hash=self.content_hash,
                storage_address="bafywinner",
                encryption_key="00:00",
                title="Winner",
            )
        )
        self.db_session.commit()
        return address

class TestParseTags:
    def test_splits_and_trims(self):
        assert parse_tags(" a, b ,,a ,c") == ["a", "b", "c"]

    def test_empty(self):
        assert parse_tags(None) == []
        assert parse_tags("") == []

    def test_list_input(self):
        assert parse_tags(["x", " y", ""]) == ["x", "y"]


class TestDocumentsUpload:
    def test_upload_stores_ciphertext(self, db_session, person, blob_store, notarizer):
        content = b"%PDF-1.7 report"
        doc = _upload(db_session, person, blob_store, notarizer, content=content)

        assert doc.owner_id == person.id
        assert doc.content_hash == vault_crypto.content_hash(content)
        assert doc.file_size == len(content)
        assert doc.mime_type == "application/pdf"
        assert doc.visibility == Visibility.public
        assert doc.tags == ["finance", "q3"]

        stored = blob_store.blobs[doc.storage_address]
        assert stored != content
        assert vault_crypto.decrypt(stored, doc.encryption_key) == content

    def test_upload_notarizes(self, db_session, person, blob_store, notarizer):
        doc = _upload(db_session, person, blob_store, notarizer)
        assert doc.notarization_reference == f"0x{doc.content_hash}"
        assert notarizer.calls == [(doc.storage_address, doc.content_hash, "Q3 Report")]

    def test_notarization_failure_does_not_block(self, db_session, person, blob_store):
        doc = _upload(db_session, person, blob_store, FailingNotarizer())
        assert doc.id is not None
        assert doc.notarization_reference is None

    def test_title_defaults_to_file_name(self, db_session, person, blob_store, notarizer):
        doc = _upload(db_session, person, blob_store, notarizer, title=None, category=None)
        assert doc.title == "report.pdf"
        assert doc.category == "General"

    def test_private_visibility(self, db_session, person, blob_store, notarizer):
        doc = _upload(db_session, person, blob_store, notarizer, visibility="private")
        assert doc.visibility == Visibility.private

    def test_invalid_visibility(self, db_session, person, blob_store, notarizer):
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, person, blob_store, notarizer, visibility="secret")
        assert exc.value.status_code == 400
        assert blob_store.puts == 0

    def test_empty_file(self, db_session, person, blob_store, notarizer):
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, person, blob_store, notarizer, content=b"")
        assert exc.value.status_code == 400
        assert exc.value.detail["message"] == "No file uploaded"

    @patch("app.services.vault_document.settings")
    def test_file_too_large(self, mock_settings, db_session, person, blob_store, notarizer):
        mock_settings.max_upload_bytes = 4
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, person, blob_store, notarizer, content=b"12345")
        assert exc.value.status_code == 400
        assert blob_store.puts == 0

    def test_duplicate_content_rejected(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        first = _upload(db_session, person, blob_store, notarizer)
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, other_person, blob_store, notarizer, title="Copy")
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "conflict"
        assert exc.value.detail["details"] == {"document_id": str(first.id)}
        assert blob_store.puts == 1

    def test_unique_index_rejects_concurrent_upload(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        content = b"%PDF-1.7 report"
        racing = _RacingBlobStore(db_session, other_person, content)
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, person, racing, notarizer, content=content)
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "conflict"
        assert notarizer.calls == []

        docs = db_session.scalars(select(Document)).all()
        assert [d.title for d in docs] == ["Winner"]
        assert db_session.scalars(select(DocumentTag)).all() == []

        doc = _upload(db_session, person, blob_store, notarizer, content=b"fresh")
        assert doc.notarization_reference == f"0x{doc.content_hash}"

    def test_blob_store_unavailable(self, db_session, person, notarizer):
        with pytest.raises(HTTPException) as exc:
            _upload(db_session, person, FailingBlobStore(), notarizer)
        assert exc.value.status_code == 502
        assert notarizer.calls == []


class TestDocumentsViewMetadata:
    def test_public_visible_to_anyone(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        doc = _upload(db_session, person, blob_store, notarizer)
        assert Documents.view_metadata(db_session, other_person.id, doc.id).id == doc.id
        entry = db_session.scalars(select(AuditEntry)).one()
        assert entry.action == AuditAction.view_metadata
        assert entry.outcome == AuditOutcome.success

    def test_private_denied_without_access(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        doc = _upload(db_session, person, blob_store, notarizer, visibility="private")
        with pytest.raises(HTTPException) as exc:
            Documents.view_metadata(db_session, other_person.id, doc.id, "10.0.0.9")
        assert exc.value.status_code == 403
        entry = db_session.scalars(select(AuditEntry)).one()
        assert entry.outcome == AuditOutcome.failure
        assert entry.source_address == "10.0.0.9"

    def test_private_visible_to_owner(self, db_session, person, blob_store, notarizer):
        doc = _upload(db_session, person, blob_store, notarizer, visibility="private")
        assert Documents.view_metadata(db_session, person.id, doc.id).id == doc.id

    def test_not_found(self, db_session, person):
        with pytest.raises(HTTPException) as exc:
            Documents.view_metadata(db_session, person.id, uuid.uuid4())
        assert exc.value.status_code == 404
        assert db_session.scalars(select(AuditEntry)).all() == []


class TestDocumentsList:
    def test_lists_only_own_documents(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        mine = _upload(db_session, person, blob_store, notarizer)
        _upload(db_session, other_person, blob_store, notarizer, content=b"other")
        items = Documents.list(db_session, person.id, "created_at", "desc", 50, 0)
        assert [d.id for d in items] == [mine.id]

    def test_invalid_order_by(self, db_session, person):
        with pytest.raises(HTTPException) as exc:
            Documents.list(db_session, person.id, "storage_address", "asc", 50, 0)
        assert exc.value.status_code == 400


class TestDocumentsDelete:
    def test_owner_delete_cascades(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        doc = _upload(db_session, person, blob_store, notarizer)
        access_control.request(db_session, other_person.id, doc.id)
        doc_id, address = doc.id, doc.storage_address

        Documents.delete(db_session, person.id, doc_id)

        with pytest.raises(HTTPException) as exc:
            Documents.get(db_session, doc_id)
        assert exc.value.status_code == 404
        assert db_session.scalars(select(AccessEntry)).all() == []
        assert db_session.scalars(select(DocumentTag)).all() == []
        assert address in blob_store.blobs
        deletes = db_session.scalars(
            select(AuditEntry).where(AuditEntry.action == AuditAction.delete_file)
        ).all()
        assert len(deletes) == 1
        assert deletes[0].document_title == "Q3 Report"

    def test_non_owner_cannot_delete(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        doc = _upload(db_session, person, blob_store, notarizer)
        with pytest.raises(HTTPException) as exc:
            Documents.delete(db_session, other_person.id, doc.id)
        assert exc.value.status_code == 403
        assert Documents.get(db_session, doc.id).id == doc.id
        entry = db_session.scalars(select(AuditEntry)).one()
        assert entry.outcome == AuditOutcome.failure

    def test_delete_frees_content_hash(self, db_session, person, blob_store, notarizer):
        doc = _upload(db_session, person, blob_store, notarizer)
        Documents.delete(db_session, person.id, doc.id)
        again = _upload(db_session, person, blob_store, notarizer)
        assert again.id != doc.id

    def test_approved_grant_removed_with_document(
        self, db_session, person, other_person, blob_store, notarizer
    ):
        doc = _upload(db_session, person, blob_store, notarizer)
        entry = access_control.request(db_session, other_person.id, doc.id)
        access_control.respond(db_session, entry.id, person.id, "approved")
        assert db_session.get(AccessEntry, entry.id).status == AccessStatus.approved

        Documents.delete(db_session, person.id, doc.id)
        assert access_control.has_access(db_session, other_person.id, doc.id) is False

from app.schemas.vault import DocumentMetadata
from app.services.vault_document import Documents


def _make_document(db_session, person, blob_store, notarizer):
    return Documents.upload(
        db_session,
        person.id,
        "minutes.txt",
        b"board minutes",
        DocumentMetadata(title="Minutes", visibility="private"),
        blob_store=blob_store,
        notarizer=notarizer,
    )


class TestAuditEndpoints:
    def test_owner_reads_document_trail(
        self, client, auth_headers, other_auth_headers, db_session, person, blob_store,
        notarizer,
    ) -> None:
        doc = _make_document(db_session, person, blob_store, notarizer)
        client.get(f"/upload/download/{doc.id}", headers=other_auth_headers)
        client.get(f"/upload/download/{doc.id}", headers=auth_headers)

        resp = client.get(f"/audit/documents/{doc.id}", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 2
        assert {(e["action"], e["outcome"]) for e in data["items"]} == {
            ("download", "failure"),
            ("download", "success"),
        }
        assert all(e["document_title"] == "Minutes" for e in data["items"])
        assert all(e["source_address"] == "testclient" for e in data["items"])

    def test_non_owner_cannot_read_trail(
        self, client, other_auth_headers, db_session, person, blob_store, notarizer
    ) -> None:
        doc = _make_document(db_session, person, blob_store, notarizer)
        resp = client.get(f"/audit/documents/{doc.id}", headers=other_auth_headers)
        assert resp.status_code == 403

    def test_filter_by_action(
        self, client, auth_headers, db_session, person, blob_store, notarizer
    ) -> None:
        doc = _make_document(db_session, person, blob_store, notarizer)
        client.get(f"/upload/{doc.id}", headers=auth_headers)
        client.get(f"/upload/download/{doc.id}", headers=auth_headers)
        resp = client.get(
            f"/audit/documents/{doc.id}?action=view_metadata", headers=auth_headers
        )
        assert resp.json()["count"] == 1

    def test_my_trail(
        self, client, auth_headers, other_auth_headers, db_session, person, blob_store,
        notarizer,
    ) -> None:
        doc = _make_document(db_session, person, blob_store, notarizer)
        client.get(f"/upload/download/{doc.id}", headers=other_auth_headers)
        resp = client.get("/audit/me", headers=other_auth_headers)
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["detail"] == "access_denied"
        assert client.get("/audit/me", headers=auth_headers).json()["count"] == 0

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.errors import (
    ForbiddenError,
    IntegrityFailureError,
    NotFoundError,
    UpstreamUnavailableError,
)
from app.models.audit import AuditAction, AuditOutcome
from app.models.vault import Document
from app.observability import DOWNLOADS, INTEGRITY_FAILURES
from app.services import vault_crypto
from app.services.audit import audit_log
from app.services.common import coerce_uuid
from app.services.vault_access import access_control
from app.services.vault_storage import BlobStore, BlobStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadResult:
    document: Document
    content: bytes


class DownloadPipeline:
    """Serves decrypted bytes to entitled actors, verifying the content hash.

    Every failure after the document is found is written to the audit log.
    The blob fetch is attempted once; retries belong to the blob store client.
    """

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    def download(
        self, db: Session, actor_id, document_id, source_address: str | None = None
    ) -> DownloadResult:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFoundError("Document not found")

        if not access_control.has_access(db, actor_id, document.id):
            self._fail(db, actor_id, document, source_address, "access_denied")
            raise ForbiddenError("Access Denied")

        try:
            ciphertext = self.blob_store.get(document.storage_address)
        except BlobStoreError as e:
            self._fail(db, actor_id, document, source_address, "blob_unavailable")
            raise UpstreamUnavailableError("Blob store unavailable", details=str(e))

        try:
            plaintext = vault_crypto.decrypt(ciphertext, document.encryption_key)
        except vault_crypto.DecryptionError:
            plaintext = None

        if plaintext is None or (
            vault_crypto.content_hash(plaintext) != document.content_hash
        ):
            INTEGRITY_FAILURES.inc()
            logger.error(
                "Integrity check failed for document %s (storage %s)",
                document.id,
                document.storage_address,
            )
            self._fail(db, actor_id, document, source_address, "integrity_failure")
            raise IntegrityFailureError(
                "Integrity Check Failed: File may be tampered"
            )

        audit_log.record(
            db,
            actor_id,
            document,
            AuditAction.download,
            source_address=source_address,
        )
        DOWNLOADS.labels("success").inc()
        return DownloadResult(document=document, content=plaintext)

    @staticmethod
    def _fail(
        db: Session,
        actor_id,
        document: Document,
        source_address: str | None,
        reason: str,
    ) -> None:
        DOWNLOADS.labels(reason).inc()
        audit_log.record(
            db,
            actor_id,
            document,
            AuditAction.download,
            outcome=AuditOutcome.failure,
            source_address=source_address,
            detail=reason,
        )

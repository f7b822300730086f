import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import ValidationFailureError
from app.models.audit import AuditAction, AuditEntry, AuditOutcome
from app.models.vault import Document
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _parse_action(action: str) -> AuditAction:
    try:
        return AuditAction(action)
    except ValueError:
        raise ValidationFailureError(f"Invalid action: {action}")


class AuditLog(ListResponseMixin):
    @staticmethod
    def record(
        db: Session,
        actor_id,
        document: Document,
        action: AuditAction,
        outcome: AuditOutcome = AuditOutcome.success,
        source_address: str | None = None,
        detail: str | None = None,
        commit: bool = True,
    ) -> AuditEntry:
        """Append an audit entry for ``document``.

        With ``commit=False`` the entry joins the caller's transaction so it
        lands atomically with the state change it describes.
        """
        entry = AuditEntry(
            actor_id=coerce_uuid(actor_id),
            document_id=document.id,
            document_title=document.title,
            action=action,
            outcome=outcome,
            source_address=source_address,
            detail=detail,
        )
        db.add(entry)
        if commit:
            db.commit()
        log = logger.info if outcome == AuditOutcome.success else logger.warning
        log(
            "Audit %s %s by %s on document %s%s",
            action.value,
            outcome.value,
            actor_id,
            document.id,
            f" ({detail})" if detail else "",
        )
        return entry

    @staticmethod
    def list(
        db: Session,
        document_id: str | None,
        actor_id: str | None,
        action: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[AuditEntry]:
        stmt = select(AuditEntry)
        if document_id is not None:
            stmt = stmt.where(AuditEntry.document_id == coerce_uuid(document_id))
        if actor_id is not None:
            stmt = stmt.where(AuditEntry.actor_id == coerce_uuid(actor_id))
        if action is not None:
            stmt = stmt.where(AuditEntry.action == _parse_action(action))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": AuditEntry.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


audit_log = AuditLog()

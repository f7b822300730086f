from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.audit import AuditAction, AuditOutcome


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: UUID
    document_id: UUID
    document_title: str | None = None
    action: AuditAction
    outcome: AuditOutcome
    source_address: str | None = None
    detail: str | None = None
    created_at: datetime

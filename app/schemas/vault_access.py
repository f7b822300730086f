from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.vault import AccessKind, AccessStatus
from app.schemas.vault import DocumentBrief, PersonBrief


class AccessRequestCreate(BaseModel):
    document_id: UUID


class AccessOfferCreate(BaseModel):
    document_id: UUID
    recipient_identifier: str = Field(min_length=1, max_length=255)


class GrantDirectRequest(BaseModel):
    document_id: UUID
    recipient_identifier: str = Field(min_length=1, max_length=255)


class AccessDecision(BaseModel):
    request_id: UUID
    status: str


class AccessEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requester_id: UUID
    owner_id: UUID
    document_id: UUID
    kind: AccessKind
    status: AccessStatus
    requested_at: datetime
    responded_at: datetime | None = None
    document: DocumentBrief | None = None
    requester: PersonBrief | None = None
    owner: PersonBrief | None = None


class GrantDirectResponse(BaseModel):
    message: str
    entry: AccessEntryRead


class AccessEntryListing(BaseModel):
    incoming: list[AccessEntryRead]
    outgoing: list[AccessEntryRead]

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.vault import Visibility


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentMetadata(BaseModel):
    """Searchable metadata supplied alongside an upload."""

    title: str | None = Field(default=None, max_length=500)
    category: str | None = Field(default=None, max_length=120)
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    visibility: str = "public"


class DocumentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    file_name: str
    content_hash: str
    storage_address: str
    notarization_reference: str | None = None
    visibility: Visibility
    created_at: datetime


class DocumentRead(BaseModel):
    """Full metadata view. Key material is never part of any response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    title: str
    file_name: str
    mime_type: str
    file_size: int
    category: str
    tags: list[str]
    description: str | None = None
    visibility: Visibility
    content_hash: str
    storage_address: str
    notarization_reference: str | None = None
    created_at: datetime


class UploadResponse(BaseModel):
    message: str
    document: DocumentSummary


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Embedded summaries
# ---------------------------------------------------------------------------


class PersonBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str


class DocumentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    file_name: str

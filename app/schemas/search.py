from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.vault import Visibility
from app.schemas.vault import PersonBrief


class SearchResult(BaseModel):
    """Public discovery view: no content hash, storage address or key."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    file_name: str
    category: str
    tags: list[str]
    description: str | None = None
    visibility: Visibility
    owner: PersonBrief | None = None
    created_at: datetime


class SearchResponse(BaseModel):
    items: list[SearchResult]
    count: int
    total: int
    limit: int
    offset: int

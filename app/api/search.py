from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_user_auth
from app.schemas.search import SearchResponse
from app.services.search import SearchService

router = APIRouter(
    prefix="/search", tags=["search"], dependencies=[Depends(require_user_auth)]
)


@router.get("", response_model=SearchResponse)
def search_documents(
    q: str = Query(default="", min_length=0),
    category: str | None = None,
    tags: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items, total = SearchService.search(
        db,
        q=q,
        category=category,
        tags=tags,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )
    return {
        "items": items,
        "count": len(items),
        "total": total,
        "limit": limit,
        "offset": offset,
    }

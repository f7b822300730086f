import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.models.vault import Document, DocumentTag, Visibility
from app.services.common import apply_pagination
from app.services.vault_document import parse_tags

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )


class SearchService:
    @staticmethod
    def search(
        db: Session,
        q: str,
        category: str | None = None,
        tags: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Document], int]:
        """Discovery search over public documents only (ILIKE, SQLite compatible).

        Returns the requested page and the total number of matches.
        """
        stmt = select(Document).where(Document.visibility == Visibility.public)

        if q:
            pattern = f"%{_escape_like(q)}%"
            stmt = stmt.where(
                Document.title.ilike(pattern, escape="\\")
                | Document.description.ilike(pattern, escape="\\")
                | Document.category.ilike(pattern, escape="\\")
                | Document.file_name.ilike(pattern, escape="\\")
            )
        if category:
            stmt = stmt.where(Document.category == category)
        tag_list = parse_tags(tags)
        if tag_list:
            stmt = stmt.where(
                Document.id.in_(
                    select(DocumentTag.document_id).where(DocumentTag.tag.in_(tag_list))
                )
            )
        if from_date is not None:
            stmt = stmt.where(Document.created_at >= from_date)
        if to_date is not None:
            stmt = stmt.where(Document.created_at <= to_date)

        total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        stmt = stmt.options(
            selectinload(Document.tag_links), selectinload(Document.owner)
        ).order_by(Document.created_at.desc())
        items = db.scalars(apply_pagination(stmt, limit, offset)).all()
        logger.debug("Search q=%r matched %d documents", q, total)
        return items, total

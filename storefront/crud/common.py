import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..database_helper import safe_query
from ..errors import NotFound


@dataclass
class Page:
    items: Sequence[Any]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def search_filter(search: Optional[str], *columns):
    if not search:
        return None
    like = f"%{search}%"
    return or_(*(column.ilike(like) for column in columns))


def paginate(
    db: Session,
    model,
    *criteria,
    order_by=(),
    page: int = 1,
    limit: int = 20,
    options=(),
) -> Page:
    criteria = [c for c in criteria if c is not None]
    stmt = (
        select(model)
        .where(*criteria)
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    if options:
        stmt = stmt.options(*options)
    items = safe_query.find_many(db, stmt)
    total = safe_query.count(db, model, *criteria)
    return Page(items=items, page=page, limit=limit, total=total)


def get_or_404(db: Session, model, ident, message: str):
    obj = safe_query.find_unique(db, model, ident)
    if obj is None:
        raise NotFound(message)
    return obj


def find_by(db: Session, model, *criteria):
    return safe_query.find_first(db, select(model).where(*criteria).limit(1))

"""Generic data access parameterised by an entity table descriptor.

Each entity module builds one ``EntityTable`` and composes these free
functions; nothing here knows about customers or shipments.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

from sqlalchemy import ColumnElement, delete, func, or_, select
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class EntityTable:
    model: Any
    label: str
    sortable: Mapping[str, Any] = field(default_factory=dict)
    searchable: Sequence[Any] = ()
    default_sort: str = "createdAt"


class Page(NamedTuple):
    items: List[Any]
    total: int


def find_by_id(db: Session, table: EntityTable, record_id: str):
    return db.get(table.model, record_id)


def find_by_ids(db: Session, table: EntityTable, ids: Sequence[str]) -> List[Any]:
    if not ids:
        return []
    stmt = select(table.model).where(table.model.id.in_(list(ids)))
    return list(db.scalars(stmt))


def insert(db: Session, table: EntityTable, **values):
    record = table.model(**values)
    db.add(record)
    db.flush()
    return record


def apply_changes(record, changes: Dict[str, Any]):
    for name, value in changes.items():
        setattr(record, name, value)
    return record


def remove(db: Session, record) -> None:
    db.delete(record)
    db.flush()


def remove_many(db: Session, table: EntityTable, ids: Sequence[str]) -> int:
    result = db.execute(delete(table.model).where(table.model.id.in_(list(ids))))
    return result.rowcount or 0


def count_where(db: Session, table: EntityTable, *conditions: ColumnElement) -> int:
    stmt = select(func.count()).select_from(table.model).where(*conditions)
    return db.scalar(stmt) or 0


def search_clause(table: EntityTable, term: str) -> Optional[ColumnElement]:
    term = (term or "").strip()
    if not term or not table.searchable:
        return None
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(*(column.ilike(pattern, escape="\\") for column in table.searchable))


def order_clause(table: EntityTable, sort_by: Optional[str], sort_order: str = "desc"):
    column = table.sortable.get(sort_by or table.default_sort, table.sortable[table.default_sort])
    primary = column.asc() if sort_order == "asc" else column.desc()
    # id breaks ties so pages never overlap
    return [primary, table.model.id.asc()]


def select_where(
    db: Session,
    table: EntityTable,
    conditions: Sequence[ColumnElement],
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
    limit: Optional[int] = None,
) -> List[Any]:
    stmt = select(table.model).where(*conditions).order_by(*order_clause(table, sort_by, sort_order))
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def paginate(
    db: Session,
    table: EntityTable,
    conditions: Sequence[ColumnElement],
    page: int,
    limit: int,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
) -> Page:
    total = count_where(db, table, *conditions)
    offset = (page - 1) * limit
    if offset >= total:
        # past the last page; also keeps oversized offsets away from the driver
        return Page(items=[], total=total)
    stmt = (
        select(table.model)
        .where(*conditions)
        .order_by(*order_clause(table, sort_by, sort_order))
        .offset(offset)
        .limit(limit)
    )
    return Page(items=list(db.scalars(stmt)), total=total)

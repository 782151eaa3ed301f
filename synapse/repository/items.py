from __future__ import annotations

import json
from typing import TYPE_CHECKING, Iterable, Protocol

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, sessionmaker

from synapse.models.tables import Item

if TYPE_CHECKING:
    from synapse.search.query_parser import QueryFilters


class ItemStore(Protocol):
    def create(self, item: Item) -> Item: ...

    def get(self, item_id: str) -> Item | None: ...

    def get_many(self, item_ids: Iterable[str]) -> list[Item]: ...

    def list_recent(self, limit: int = 200) -> list[Item]: ...

    def delete(self, item_id: str) -> bool: ...

    def search(self, filters: "QueryFilters", limit: int) -> list[Item]: ...


def create_item(db: Session, item: Item) -> Item:
    db.add(item)
    db.commit()
    return item


def get_item(db: Session, item_id: str) -> Item | None:
    return db.query(Item).filter(Item.id == item_id).one_or_none()


def get_items(db: Session, item_ids: Iterable[str]) -> list[Item]:
    ids = [i for i in item_ids if i]
    if not ids:
        return []
    return db.query(Item).filter(Item.id.in_(ids)).all()


def list_items(db: Session, *, limit: int = 200) -> list[Item]:
    return db.query(Item).order_by(Item.created_at.desc()).limit(limit).all()


def delete_item(db: Session, item_id: str) -> bool:
    n = db.query(Item).filter(Item.id == item_id).delete(synchronize_session=False)
    db.commit()
    return n > 0


def _contains(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _tag_overlap(db: Session, tags: Iterable[str]):
    # Tags live in a JSON array. Match the quoted element in its text form so the
    # same predicate works on Postgres (JSONB, unescaped UTF-8) and SQLite (json.dumps text).
    is_pg = bool(db.bind) and db.bind.dialect.name == "postgresql"
    clauses = []
    for t in tags:
        needle = json.dumps(t, ensure_ascii=not is_pg)
        clauses.append(cast(Item.tags, String).ilike(_contains(needle), escape="\\"))
    return or_(*clauses)


def search_items(db: Session, filters: "QueryFilters", limit: int) -> list[Item]:
    """Filtered text search, newest first.

    A type filter is only applied when there are no residual terms: once the
    user types free text, the type becomes advisory and is not a predicate.
    """

    q = db.query(Item)

    terms = (filters.residual or "").strip()
    if terms:
        pattern = _contains(terms)
        q = q.filter(
            or_(
                Item.title.ilike(pattern, escape="\\"),
                Item.content.ilike(pattern, escape="\\"),
                Item.summary.ilike(pattern, escape="\\"),
            )
        )
    elif filters.type:
        q = q.filter(Item.type == filters.type)

    if filters.date_from is not None:
        q = q.filter(Item.created_at >= filters.date_from)
    if filters.date_to is not None:
        q = q.filter(Item.created_at <= filters.date_to)

    if filters.tags:
        q = q.filter(_tag_overlap(db, filters.tags))

    if filters.author:
        author_pattern = _contains(filters.author)
        q = q.filter(or_(Item.content.ilike(author_pattern, escape="\\"), Item.title.ilike(author_pattern, escape="\\")))

    return q.order_by(Item.created_at.desc()).limit(limit).all()


class SqlItemStore:
    """ItemStore over SQLAlchemy; every call opens its own session."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def create(self, item: Item) -> Item:
        with self.session_factory() as db:
            return create_item(db, item)

    def get(self, item_id: str) -> Item | None:
        with self.session_factory() as db:
            return get_item(db, item_id)

    def get_many(self, item_ids: Iterable[str]) -> list[Item]:
        with self.session_factory() as db:
            return get_items(db, item_ids)

    def list_recent(self, limit: int = 200) -> list[Item]:
        with self.session_factory() as db:
            return list_items(db, limit=limit)

    def delete(self, item_id: str) -> bool:
        with self.session_factory() as db:
            return delete_item(db, item_id)

    def search(self, filters: "QueryFilters", limit: int) -> list[Item]:
        with self.session_factory() as db:
            return search_items(db, filters, limit)

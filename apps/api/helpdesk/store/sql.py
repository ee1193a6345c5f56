from __future__ import annotations

from contextlib import contextmanager
import logging
import uuid
from typing import Any, Iterator, Sequence

from sqlalchemy import asc, desc, false, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.errors import DependencyFailure, InvalidRequest, NotFound
from ..models.document import Document
from .base import Where

logger = logging.getLogger(__name__)

ALLOWED_OPS = {"==", "in"}


def _typed(field: str, sample: Any):
    expr = Document.data[field]
    # bool first: bool is a subclass of int
    if isinstance(sample, bool):
        return expr.as_boolean()
    if isinstance(sample, int):
        return expr.as_integer()
    if isinstance(sample, float):
        return expr.as_float()
    return expr.as_string()


def _clause(predicate: Where):
    if predicate.op not in ALLOWED_OPS:
        raise InvalidRequest(f"Unsupported query operator: {predicate.op}")
    if predicate.op == "in":
        values = list(predicate.value)
        if not values:
            return None
        return _typed(predicate.field, values[0]).in_(values)
    if predicate.value is None:
        return _typed(predicate.field, "").is_(None)
    return _typed(predicate.field, predicate.value) == predicate.value


def _to_doc(row: Document) -> dict:
    return {**(row.data or {}), "id": row.doc_id}


class SqlDocumentStore:
    """Document store kept in a single ``documents`` table as JSON payloads."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, op: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("document store %s failed", op)
            raise DependencyFailure(f"Document store {op} failed") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _row(self, session: Session, collection: str, doc_id: str, *, lock: bool = False) -> Document | None:
        stmt = select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
        if lock:
            stmt = stmt.with_for_update()
        return session.scalar(stmt)

    def _filtered(self, stmt, collection: str, where: Sequence[Where]):
        stmt = stmt.where(Document.collection == collection)
        for predicate in where:
            clause = _clause(predicate)
            if clause is None:
                # "in" against an empty set matches nothing
                return stmt.where(false())
            stmt = stmt.where(clause)
        return stmt

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._session("get") as session:
            row = self._row(session, collection, doc_id)
            return _to_doc(row) if row else None

    def add(self, collection: str, doc: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        data = {k: v for k, v in doc.items() if k != "id"}
        with self._session("add") as session:
            session.add(Document(collection=collection, doc_id=doc_id, data=data))
        return doc_id

    def update(self, collection: str, doc_id: str, partial: dict) -> None:
        with self._session("update") as session:
            row = self._row(session, collection, doc_id, lock=True)
            if not row:
                raise NotFound(f"Document not found: {collection}/{doc_id}")
            data = dict(row.data or {})
            data.update({k: v for k, v in partial.items() if k != "id"})
            row.data = data

    def delete(self, collection: str, doc_id: str) -> None:
        with self._session("delete") as session:
            row = self._row(session, collection, doc_id)
            if row:
                session.delete(row)

    def query(
        self,
        collection: str,
        where: Sequence[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[dict]:
        stmt = self._filtered(select(Document), collection, where)
        direction = desc if descending else asc
        if order_by:
            stmt = stmt.order_by(direction(_typed(order_by, "")))
        stmt = stmt.order_by(direction(Document.seq))
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session("query") as session:
            return [_to_doc(row) for row in session.scalars(stmt).all()]

    def count(self, collection: str, where: Sequence[Where] = ()) -> int:
        stmt = self._filtered(select(func.count(Document.seq)), collection, where)
        with self._session("count") as session:
            return int(session.scalar(stmt) or 0)

    def append_to_array(
        self,
        collection: str,
        doc_id: str,
        field: str,
        value: Any,
        updates: dict | None = None,
    ) -> None:
        with self._session("append") as session:
            row = self._row(session, collection, doc_id, lock=True)
            if not row:
                raise NotFound(f"Document not found: {collection}/{doc_id}")
            data = dict(row.data or {})
            data[field] = list(data.get(field) or []) + [value]
            if updates:
                data.update(updates)
            row.data = data

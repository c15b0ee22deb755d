# Overview: Entity store over Flask-SQLAlchemy; the hosted relational variant.

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Phone, Sale, Return, Credit, CreditPayment
from phone_pos.time_utils import utcnow
from .base import (
    CREDIT_PAYMENTS,
    CREDITS,
    PHONES,
    RETURNS,
    SALES,
    ConstraintViolation,
    EntityStore,
    RecordNotFound,
    StoreError,
    check_fields,
)


MODELS = {
    PHONES: Phone,
    SALES: Sale,
    RETURNS: Return,
    CREDITS: Credit,
    CREDIT_PAYMENTS: CreditPayment,
}


class SqlEntityStore(EntityStore):
    """
    Writes are flushed immediately and committed when the outermost
    atomic() block exits. Call mutating methods inside atomic().
    """

    def __init__(self, owner_id: str, session=None):
        super().__init__(owner_id)
        self.session = session or db.session
        self._depth = 0

    def _model(self, entity: str):
        model = MODELS.get(entity)
        if model is None:
            raise StoreError(f"Unknown entity: {entity}")
        return model

    def _scoped(self, entity: str):
        model = self._model(entity)
        return self.session.query(model).filter(model.owner_id == self.owner_id)

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            if not self._depth:
                self.session.rollback()
            raise ConstraintViolation(str(exc.orig)) from exc

    def insert(self, entity: str, values: dict[str, Any]) -> int:
        check_fields(entity, values)
        model = self._model(entity)
        now = utcnow()
        obj = model(owner_id=self.owner_id, created_at=now, updated_at=now, **values)
        self.session.add(obj)
        self._flush()
        return obj.id

    def get(self, entity: str, record_id: int) -> dict | None:
        model = self._model(entity)
        obj = self._scoped(entity).filter(model.id == record_id).first()
        return obj.to_dict() if obj else None

    def query(
        self,
        entity: str,
        *,
        equals: dict[str, Any] | None = None,
        search: str | None = None,
        search_fields: Iterable[str] = (),
        order_by: str = "id",
    ) -> list[dict]:
        model = self._model(entity)
        q = self._scoped(entity)

        if equals:
            q = q.filter_by(**equals)

        if search:
            term = f"%{search.strip().lower()}%"
            q = q.filter(or_(*[func.lower(getattr(model, f)).like(term) for f in search_fields]))

        column = getattr(model, order_by.lstrip("-"))
        if order_by.startswith("-"):
            q = q.order_by(column.desc(), model.id.desc())
        else:
            q = q.order_by(column.asc(), model.id.asc())

        return [obj.to_dict() for obj in q.all()]

    def update(self, entity: str, record_id: int, values: dict[str, Any]) -> None:
        check_fields(entity, values)
        model = self._model(entity)
        obj = self._scoped(entity).filter(model.id == record_id).first()
        if obj is None:
            raise RecordNotFound(f"{entity} {record_id} not found")
        for key, value in values.items():
            setattr(obj, key, value)
        obj.updated_at = utcnow()
        self._flush()

    def delete(self, entity: str, record_id: int) -> None:
        model = self._model(entity)
        obj = self._scoped(entity).filter(model.id == record_id).first()
        if obj is None:
            raise RecordNotFound(f"{entity} {record_id} not found")
        self.session.delete(obj)
        self._flush()

    def delete_where(self, entity: str, field: str, value: Any) -> int:
        model = self._model(entity)
        count = self._scoped(entity).filter(getattr(model, field) == value).delete(synchronize_session=False)
        self._flush()
        return count

    def clear(self, entity: str) -> int:
        count = self._scoped(entity).delete(synchronize_session=False)
        self._flush()
        return count

    def count(self, entity: str) -> int:
        return self._scoped(entity).count()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            self.session.commit()
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

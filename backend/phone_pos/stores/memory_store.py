"""
Embedded entity store: dict tables held in process memory.

Mirrors the client-side variant of the shop (auto-increment ids, IMEI index,
no server). Also the store the pure report and backup tests run against.
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from phone_pos.time_utils import to_utc_z, utcnow
from .base import (
    ENTITIES,
    ENTITY_FIELDS,
    FIELD_DEFAULTS,
    PHONES,
    ConstraintViolation,
    EntityStore,
    RecordNotFound,
    StoreError,
    check_fields,
    check_not_null,
)


def _sort_key(row: dict, key: str) -> tuple:
    # None sorts first ascending, last descending; id breaks ties
    value = row.get(key)
    if value is None:
        return (0, "", row["id"])
    return (1, value, row["id"])


class MemoryEntityStore(EntityStore):
    def __init__(self, owner_id: str, tables: dict | None = None):
        super().__init__(owner_id)
        # Shared tables let several owners live in one process
        self._tables = tables if tables is not None else {}
        self._tables.setdefault("rows", {entity: {} for entity in ENTITIES})
        self._tables.setdefault("next_id", {entity: 1 for entity in ENTITIES})
        self._depth = 0

    @property
    def _rows(self) -> dict[str, dict[int, dict]]:
        return self._tables["rows"]

    def _table(self, entity: str) -> dict[int, dict]:
        table = self._rows.get(entity)
        if table is None:
            raise StoreError(f"Unknown entity: {entity}")
        return table

    def _owned(self, entity: str) -> list[dict]:
        return [r for r in self._table(entity).values() if r["owner_id"] == self.owner_id]

    def _check_unique(self, entity: str, values: dict, exclude_id: int | None = None) -> None:
        if entity != PHONES or not values.get("imei1"):
            return
        for row in self._owned(PHONES):
            if row["id"] != exclude_id and row["imei1"] == values["imei1"]:
                raise ConstraintViolation(f"imei1 {values['imei1']} already exists")

    def insert(self, entity: str, values: dict[str, Any]) -> int:
        check_fields(entity, values)
        check_not_null(entity, values)
        self._check_unique(entity, values)

        record_id = self._tables["next_id"][entity]
        self._tables["next_id"][entity] = record_id + 1

        now = to_utc_z(utcnow())
        row = {field: None for field in ENTITY_FIELDS[entity]}
        row.update(values)
        for field, default in FIELD_DEFAULTS[entity].items():
            if row[field] is None:
                row[field] = default
        row.update(id=record_id, owner_id=self.owner_id, created_at=now, updated_at=now)
        self._table(entity)[record_id] = row
        return record_id

    def get(self, entity: str, record_id: int) -> dict | None:
        row = self._table(entity).get(record_id)
        if row is None or row["owner_id"] != self.owner_id:
            return None
        return dict(row)

    def query(
        self,
        entity: str,
        *,
        equals: dict[str, Any] | None = None,
        search: str | None = None,
        search_fields: Iterable[str] = (),
        order_by: str = "id",
    ) -> list[dict]:
        rows = self._owned(entity)

        for field, value in (equals or {}).items():
            rows = [r for r in rows if r.get(field) == value]

        if search:
            term = search.strip().lower()
            fields = tuple(search_fields)
            rows = [
                r for r in rows
                if any(term in str(r.get(f) or "").lower() for f in fields)
            ]

        descending = order_by.startswith("-")
        key = order_by.lstrip("-")
        rows.sort(key=lambda r: _sort_key(r, key), reverse=descending)
        return [dict(r) for r in rows]

    def update(self, entity: str, record_id: int, values: dict[str, Any]) -> None:
        check_fields(entity, values)
        check_not_null(entity, values, partial=True)
        row = self._table(entity).get(record_id)
        if row is None or row["owner_id"] != self.owner_id:
            raise RecordNotFound(f"{entity} {record_id} not found")
        self._check_unique(entity, values, exclude_id=record_id)
        row.update(values)
        row["updated_at"] = to_utc_z(utcnow())

    def delete(self, entity: str, record_id: int) -> None:
        row = self._table(entity).get(record_id)
        if row is None or row["owner_id"] != self.owner_id:
            raise RecordNotFound(f"{entity} {record_id} not found")
        del self._table(entity)[record_id]

    def delete_where(self, entity: str, field: str, value: Any) -> int:
        doomed = [r["id"] for r in self._owned(entity) if r.get(field) == value]
        for record_id in doomed:
            del self._table(entity)[record_id]
        return len(doomed)

    def clear(self, entity: str) -> int:
        doomed = [r["id"] for r in self._owned(entity)]
        for record_id in doomed:
            del self._table(entity)[record_id]
        return len(doomed)

    def count(self, entity: str) -> int:
        return len(self._owned(entity))

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = copy.deepcopy(self._tables)
        self._depth = 1
        try:
            yield
        except BaseException:
            self._tables.clear()
            self._tables.update(snapshot)
            raise
        finally:
            self._depth = 0

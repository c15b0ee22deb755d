"""
Entity store contract.

The lifecycle, report and backup services talk to storage only through this
interface, so the same logic runs against the hosted relational database and
the embedded in-memory store. Records cross the boundary as plain dicts.

Every store instance is bound to one owner id; reads and writes never reach
rows belonging to another owner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from ..models.credits import CREDIT_STATUS_PENDING
from ..models.inventory import PHONE_STATUS_IN_STOCK
from ..models.sales import RETURN_TYPE_REFUND


PHONES = "phones"
SALES = "sales"
RETURNS = "returns"
CREDITS = "credits"
CREDIT_PAYMENTS = "credit_payments"

# Children before parents, the order deletes must run in
ENTITIES = (CREDIT_PAYMENTS, CREDITS, RETURNS, SALES, PHONES)

ENTITY_FIELDS: dict[str, tuple[str, ...]] = {
    PHONES: (
        "imei1", "imei2", "model_name", "storage", "color", "condition",
        "unlock_status", "battery_health", "vendor", "purchase_date",
        "purchase_price_cents", "status", "sale_date", "sale_price_cents",
        "receipt_number", "customer_name", "payment_method", "is_credit",
        "credit_received_cents", "credit_remaining_cents", "notes",
    ),
    SALES: (
        "phone_id", "sale_price_cents", "sale_date", "customer_name",
        "payment_method", "profit_cents", "receipt_number", "is_credit",
        "credit_received_cents", "credit_remaining_cents", "is_resale",
        "original_return_id", "notes",
    ),
    RETURNS: (
        "sale_id", "phone_id", "return_type", "return_price_cents",
        "new_price_cents", "return_reason", "return_date", "notes",
    ),
    CREDITS: (
        "phone_id", "sale_id", "customer_name", "total_amount_cents",
        "received_amount_cents", "remaining_amount_cents", "sale_date",
        "payment_method", "status",
    ),
    CREDIT_PAYMENTS: (
        "credit_id", "amount_cents", "payment_date", "payment_method",
    ),
}

# Columns the relational schema declares NOT NULL without a default
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    PHONES: ("imei1",),
    SALES: ("phone_id", "sale_price_cents", "sale_date", "profit_cents", "receipt_number"),
    RETURNS: ("sale_id", "phone_id", "return_date"),
    CREDITS: ("phone_id", "sale_id", "total_amount_cents"),
    CREDIT_PAYMENTS: ("credit_id", "amount_cents", "payment_date"),
}

# Column defaults applied when a value is missing or None
FIELD_DEFAULTS: dict[str, dict[str, Any]] = {
    PHONES: {"purchase_price_cents": 0, "status": PHONE_STATUS_IN_STOCK, "is_credit": False},
    SALES: {"is_credit": False, "is_resale": False},
    RETURNS: {"return_type": RETURN_TYPE_REFUND, "return_price_cents": 0, "new_price_cents": 0},
    CREDITS: {"received_amount_cents": 0, "remaining_amount_cents": 0, "status": CREDIT_STATUS_PENDING},
    CREDIT_PAYMENTS: {},
}


class StoreError(Exception):
    """Raised for storage-level failures."""
    pass


class RecordNotFound(StoreError):
    pass


class ConstraintViolation(StoreError):
    """A uniqueness or NOT NULL rule enforced by the store itself was broken."""
    pass


def check_fields(entity: str, values: dict[str, Any]) -> None:
    fields = ENTITY_FIELDS.get(entity)
    if fields is None:
        raise StoreError(f"Unknown entity: {entity}")
    unknown = sorted(set(values) - set(fields))
    if unknown:
        raise StoreError(f"Unknown {entity} fields: {', '.join(unknown)}")


def check_not_null(entity: str, values: dict[str, Any], *, partial: bool = False) -> None:
    """
    Raise ConstraintViolation for NOT NULL columns left empty.

    Inserts must carry every required field. Patches (partial=True) may omit
    fields but never set a NOT NULL column to None.
    """
    not_null = REQUIRED_FIELDS[entity] + tuple(FIELD_DEFAULTS[entity])
    if partial:
        empty = [f for f in not_null if f in values and values[f] is None]
    else:
        empty = [f for f in REQUIRED_FIELDS[entity] if values.get(f) is None]
    if empty:
        raise ConstraintViolation(f"NOT NULL constraint failed: {entity}.{', '.join(empty)}")


class EntityStore(ABC):
    """CRUD and filtered queries per entity type, scoped to one owner."""

    def __init__(self, owner_id: str):
        if not owner_id:
            raise StoreError("owner_id is required")
        self.owner_id = str(owner_id)

    @abstractmethod
    def insert(self, entity: str, values: dict[str, Any]) -> int:
        """Insert a record and return its new id."""

    @abstractmethod
    def get(self, entity: str, record_id: int) -> dict | None:
        """Return the record or None."""

    @abstractmethod
    def query(
        self,
        entity: str,
        *,
        equals: dict[str, Any] | None = None,
        search: str | None = None,
        search_fields: Iterable[str] = (),
        order_by: str = "id",
    ) -> list[dict]:
        """
        Filtered listing.

        equals: field -> value, all must match.
        search: case-insensitive substring matched against any of search_fields.
        order_by: field name, prefix with "-" for descending.
        """

    @abstractmethod
    def update(self, entity: str, record_id: int, values: dict[str, Any]) -> None:
        """Patch a record. Raises RecordNotFound."""

    @abstractmethod
    def delete(self, entity: str, record_id: int) -> None:
        """Delete a record. Raises RecordNotFound."""

    @abstractmethod
    def delete_where(self, entity: str, field: str, value: Any) -> int:
        """Delete every record whose field equals value. Returns the count."""

    @abstractmethod
    def clear(self, entity: str) -> int:
        """Delete every record of the entity for this owner."""

    @abstractmethod
    def count(self, entity: str) -> int:
        pass

    @abstractmethod
    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group several writes into one unit. On exception nothing inside the
        block is kept. Nested blocks join the outermost one.
        """
        yield

    def get_or_none(self, entity: str, record_id) -> dict | None:
        try:
            record_id = int(record_id)
        except (TypeError, ValueError):
            return None
        return self.get(entity, record_id)

    def all(self, entity: str, order_by: str = "id") -> list[dict]:
        return self.query(entity, order_by=order_by)

"""
Phone inventory service.

Phones enter the shop in_stock. Their inventory attributes stay editable only
while in stock; once sold, the record changes exclusively through the sale and
return flows (see sales_service and return_service).

Deletion rules:
- sold phone: cascade through its credits, credit payments, returns and sales
- in-stock phone that still carries a sale marker: refused
- in-stock phone with no sale history: deleted alone
"""

from __future__ import annotations

import logging

from ..errors import DuplicateImei, Immutable, NotFound, SaleHistoryExists
from ..models import Phone
from ..models.inventory import PHONE_STATUS_IN_STOCK, PHONE_STATUS_SOLD
from ..stores import CREDIT_PAYMENTS, CREDITS, PHONES, RETURNS, SALES, ConstraintViolation, EntityStore
from ..validation import PHONE_POLICY, enforce_rules_phone, normalize_imei, validate_payload


logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("imei1", "imei2", "model_name")


def get_phone(store: EntityStore, phone_id: int) -> dict:
    phone = store.get_or_none(PHONES, phone_id)
    if not phone:
        raise NotFound(f"Phone {phone_id} not found")
    return phone


def list_phones(store: EntityStore, *, search: str | None = None, status: str | None = None) -> list[dict]:
    """Newest first. status "all" or None disables the status filter."""
    equals = {"status": status} if status and status != "all" else None
    return store.query(
        PHONES,
        equals=equals,
        search=search or None,
        search_fields=SEARCH_FIELDS,
        order_by="-created_at",
    )


def find_phone_by_imei(store: EntityStore, imei: str, *, exclude_id: int | None = None) -> dict | None:
    """Exact match of imei against any phone's imei1 or imei2."""
    wanted = normalize_imei(imei)
    if not wanted:
        return None
    for phone in store.all(PHONES):
        if phone["id"] == exclude_id:
            continue
        if wanted in (normalize_imei(phone.get("imei1")), normalize_imei(phone.get("imei2"))):
            return phone
    return None


def _check_duplicate_imeis(store: EntityStore, patch: dict, current: dict | None = None) -> None:
    exclude_id = current["id"] if current else None
    for field in ("imei1", "imei2"):
        imei = patch.get(field)
        if not imei:
            continue
        existing = find_phone_by_imei(store, imei, exclude_id=exclude_id)
        if existing:
            model_info = f" ({existing['model_name']})" if existing.get("model_name") else ""
            raise DuplicateImei(f'IMEI "{imei}"{model_info} already exists in inventory')

    # Slots left out of an edit keep their stored value
    merged = {field: patch.get(field, (current or {}).get(field)) for field in ("imei1", "imei2")}
    if merged["imei1"] and merged["imei1"] == merged["imei2"]:
        raise DuplicateImei("imei1 and imei2 cannot be the same")


def add_phone(store: EntityStore, data: dict) -> dict:
    """
    Register a newly purchased phone (status in_stock).

    Raises:
        ValidationFailed: bad or non-writable fields
        DuplicateImei: imei1/imei2 already used by any phone of this owner
    """
    patch = validate_payload(model=Phone, payload=data, policy=PHONE_POLICY, partial=False)
    enforce_rules_phone(patch)

    with store.atomic():
        _check_duplicate_imeis(store, patch)
        values = dict(patch, status=PHONE_STATUS_IN_STOCK, is_credit=False)
        try:
            phone_id = store.insert(PHONES, values)
        except ConstraintViolation as exc:
            raise DuplicateImei(f'IMEI "{patch["imei1"]}" already exists in inventory') from exc

    logger.info("Added phone %s (imei1=%s)", phone_id, patch["imei1"])
    return store.get(PHONES, phone_id)


def update_phone(store: EntityStore, phone_id: int, patch: dict) -> dict:
    """
    Edit inventory attributes of an in-stock phone.

    Raises:
        NotFound: no such phone
        Immutable: phone is sold
    """
    clean = validate_payload(model=Phone, payload=patch, policy=PHONE_POLICY, partial=True)
    enforce_rules_phone(clean)

    with store.atomic():
        phone = get_phone(store, phone_id)
        if phone["status"] == PHONE_STATUS_SOLD:
            raise Immutable("Cannot edit a sold phone")

        _check_duplicate_imeis(store, clean, current=phone)
        if clean:
            try:
                store.update(PHONES, phone["id"], clean)
            except ConstraintViolation as exc:
                raise DuplicateImei(f'IMEI "{clean.get("imei1")}" already exists in inventory') from exc

    return store.get(PHONES, phone["id"])


def has_sale_marker(phone: dict) -> bool:
    return bool(phone.get("sale_date"))


def delete_phone(store: EntityStore, phone_id: int) -> None:
    """
    Remove a phone. Sold phones take their sale history with them.

    Raises:
        NotFound: no such phone
        SaleHistoryExists: in-stock phone that was sold before
    """
    with store.atomic():
        phone = get_phone(store, phone_id)

        if phone["status"] == PHONE_STATUS_SOLD:
            for credit in store.query(CREDITS, equals={"phone_id": phone["id"]}):
                store.delete_where(CREDIT_PAYMENTS, "credit_id", credit["id"])
            store.delete_where(CREDITS, "phone_id", phone["id"])
            store.delete_where(RETURNS, "phone_id", phone["id"])
            store.delete_where(SALES, "phone_id", phone["id"])
        elif has_sale_marker(phone):
            raise SaleHistoryExists("Cannot delete a phone that has been sold before")

        store.delete(PHONES, phone["id"])

    logger.info("Deleted phone %s (status=%s)", phone["id"], phone["status"])

"""
Sales service: records the sale of an in-stock phone.

A sale writes one Sale row, flips the phone to sold with a copy of the sale's
figures, and opens a Credit when the customer pays in instalments. Profit is
frozen at sale time against the phone's current cost basis.
"""

from __future__ import annotations

import logging
import random

from ..errors import AlreadySold, InvalidAmount
from ..models.credits import CREDIT_STATUS_PAID, CREDIT_STATUS_PENDING
from ..models.inventory import PHONE_STATUS_SOLD
from ..stores import CREDITS, PHONES, SALES, EntityStore
from ..time_utils import today_display, utcnow
from ..validation import require_amount
from .phone_service import get_phone
from .resale_service import classify_sale


logger = logging.getLogger(__name__)


def generate_receipt_number(now=None) -> str:
    """RCP-YYYYMMDD-NNN. Best-effort unique; collisions are accepted."""
    now = now or utcnow()
    return f"RCP-{now.strftime('%Y%m%d')}-{random.randint(0, 999):03d}"


def credit_status(remaining_cents: int) -> str:
    return CREDIT_STATUS_PAID if remaining_cents <= 0 else CREDIT_STATUS_PENDING


def _clean_text(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def record_sale(store: EntityStore, phone_id: int, sale_input: dict) -> dict:
    """
    Sell an in-stock phone.

    sale_input:
        sale_price_cents (required, > 0)
        sale_date (default: today, DD/MM/YYYY)
        customer_name, payment_method, notes
        is_credit, credit_received_cents (0 <= received <= sale price)

    Returns:
        The new Sale record.

    Raises:
        NotFound: no such phone
        AlreadySold: phone is already sold
        InvalidAmount: bad price or credit amounts
    """
    sale_price = require_amount(sale_input.get("sale_price_cents"), "sale_price_cents")
    is_credit = bool(sale_input.get("is_credit"))
    received = remaining = None
    if is_credit:
        received = require_amount(sale_input.get("credit_received_cents", 0), "credit_received_cents", allow_zero=True)
        if received > sale_price:
            raise InvalidAmount("credit_received_cents cannot exceed the sale price")
        remaining = sale_price - received

    sale_date = _clean_text(sale_input.get("sale_date")) or today_display()
    customer_name = _clean_text(sale_input.get("customer_name"))
    payment_method = _clean_text(sale_input.get("payment_method"))

    with store.atomic():
        phone = get_phone(store, phone_id)
        if phone["status"] == PHONE_STATUS_SOLD:
            raise AlreadySold(f"This phone was already sold on {phone.get('sale_date')}")

        is_resale, original_return_id = classify_sale(store, phone["id"])

        sale_values = {
            "phone_id": phone["id"],
            "sale_price_cents": sale_price,
            "sale_date": sale_date,
            "customer_name": customer_name,
            "payment_method": payment_method,
            "profit_cents": sale_price - (phone.get("purchase_price_cents") or 0),
            "receipt_number": generate_receipt_number(),
            "is_credit": is_credit,
            "credit_received_cents": received,
            "credit_remaining_cents": remaining,
            "is_resale": is_resale,
            "original_return_id": original_return_id,
            "notes": _clean_text(sale_input.get("notes")),
        }
        sale_id = store.insert(SALES, sale_values)
        apply_sold_state(store, phone["id"], sale_values)

        if is_credit:
            store.insert(CREDITS, {
                "phone_id": phone["id"],
                "sale_id": sale_id,
                "customer_name": customer_name,
                "total_amount_cents": sale_price,
                "received_amount_cents": received,
                "remaining_amount_cents": remaining,
                "sale_date": sale_date,
                "payment_method": payment_method,
                "status": credit_status(remaining),
            })

    logger.info(
        "Recorded sale %s for phone %s (resale=%s, credit=%s)",
        sale_id, phone["id"], is_resale, is_credit,
    )
    return store.get(SALES, sale_id)


def apply_sold_state(store: EntityStore, phone_id: int, sale: dict) -> None:
    """Mark the phone sold and copy the sale's figures onto it."""
    store.update(PHONES, phone_id, {
        "status": PHONE_STATUS_SOLD,
        "sale_date": sale["sale_date"],
        "sale_price_cents": sale["sale_price_cents"],
        "receipt_number": sale["receipt_number"],
        "customer_name": sale.get("customer_name"),
        "payment_method": sale.get("payment_method"),
        "is_credit": bool(sale.get("is_credit")),
        "credit_received_cents": sale.get("credit_received_cents"),
        "credit_remaining_cents": sale.get("credit_remaining_cents"),
    })


def list_sales(store: EntityStore, *, phone_id: int | None = None, resale_only: bool = False) -> list[dict]:
    equals = {}
    if phone_id is not None:
        equals["phone_id"] = phone_id
    if resale_only:
        equals["is_resale"] = True
    return store.query(SALES, equals=equals or None, order_by="-created_at")


def get_active_sale(store: EntityStore, phone_id: int) -> dict | None:
    """Most recent sale of the phone; the active one while the phone is sold."""
    sales = store.query(SALES, equals={"phone_id": phone_id}, order_by="-id")
    return sales[0] if sales else None

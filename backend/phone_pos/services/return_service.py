"""
Return processing: reverses the active sale of a sold phone.

The phone goes back in stock with its cost basis replaced by the return's
new_price, and its sale, customer and credit mirror fields cleared. The
sale_date column keeps the "N/A" marker so the phone's sale history still
blocks deletion.

If the sale was on credit, the Credit is cancelled and its remaining amount
zeroed. Amounts already received are not refunded or reconciled here.
"""

from __future__ import annotations

import logging

from ..errors import NotFound, NotSold, ValidationFailed
from ..models.credits import CREDIT_STATUS_CANCELLED
from ..models.inventory import PHONE_STATUS_SOLD, PHONE_STATUS_IN_STOCK
from ..models.sales import RETURN_TYPE_REFUND, RETURN_TYPES
from ..stores import CREDITS, PHONES, RETURNS, EntityStore
from ..time_utils import NO_DATE, today_display
from ..validation import require_amount
from .phone_service import get_phone
from .sales_service import get_active_sale


logger = logging.getLogger(__name__)


def cleared_sale_fields(new_price_cents: int) -> dict:
    return {
        "status": PHONE_STATUS_IN_STOCK,
        "sale_date": NO_DATE,
        "sale_price_cents": None,
        "receipt_number": None,
        "customer_name": None,
        "payment_method": None,
        "is_credit": False,
        "credit_received_cents": None,
        "credit_remaining_cents": None,
        "purchase_price_cents": new_price_cents,
    }


def record_return(store: EntityStore, phone_id: int, return_input: dict) -> dict:
    """
    Take back a sold phone.

    return_input:
        return_type: refund | trade_in | exchange (default refund)
        return_price_cents: paid back to the customer (>= 0)
        new_price_cents: cost basis for the next sale (>= 0)
        return_reason, return_date (default today), notes

    Raises:
        NotFound: no such phone, or the sold phone has no sale row
        NotSold: phone is in stock
        ValidationFailed: unknown return_type
    """
    return_type = return_input.get("return_type") or RETURN_TYPE_REFUND
    if return_type not in RETURN_TYPES:
        raise ValidationFailed(f"return_type must be one of: {', '.join(RETURN_TYPES)}")

    return_price = require_amount(return_input.get("return_price_cents", 0), "return_price_cents", allow_zero=True)
    new_price = require_amount(return_input.get("new_price_cents"), "new_price_cents", allow_zero=True)
    return_date = (return_input.get("return_date") or "").strip() or today_display()

    with store.atomic():
        phone = get_phone(store, phone_id)
        if phone["status"] != PHONE_STATUS_SOLD:
            raise NotSold("This phone is currently in stock and hasn't been sold yet")

        sale = get_active_sale(store, phone["id"])
        if not sale:
            raise NotFound(f"No sale found for phone {phone['id']}")

        return_id = store.insert(RETURNS, {
            "sale_id": sale["id"],
            "phone_id": phone["id"],
            "return_type": return_type,
            "return_price_cents": return_price,
            "new_price_cents": new_price,
            "return_reason": (return_input.get("return_reason") or "").strip() or None,
            "return_date": return_date,
            "notes": return_input.get("notes"),
        })

        if phone.get("is_credit"):
            cancel_credit_for_sale(store, sale["id"])

        store.update(PHONES, phone["id"], cleared_sale_fields(new_price))

    logger.info("Recorded %s return %s for phone %s (sale %s)", return_type, return_id, phone["id"], sale["id"])
    return store.get(RETURNS, return_id)


def cancel_credit_for_sale(store: EntityStore, sale_id: int) -> dict | None:
    credits = store.query(CREDITS, equals={"sale_id": sale_id})
    if not credits:
        return None
    credit = credits[0]
    store.update(CREDITS, credit["id"], {"status": CREDIT_STATUS_CANCELLED, "remaining_amount_cents": 0})
    logger.info(
        "Cancelled credit %s for returned sale %s (received %s kept as-is)",
        credit["id"], sale_id, credit["received_amount_cents"],
    )
    return store.get(CREDITS, credit["id"])


def list_returns(store: EntityStore, *, phone_id: int | None = None) -> list[dict]:
    equals = {"phone_id": phone_id} if phone_id is not None else None
    return store.query(RETURNS, equals=equals, order_by="-created_at")

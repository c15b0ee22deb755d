"""
Credit (instalment sale) service.

Payments are appended to the CreditPayment ledger; the Credit's received and
remaining figures move by the same amount, and the copies held on the linked
Sale and Phone follow.
"""

from __future__ import annotations

import logging

from ..errors import ExceedsRemaining, InvalidAmount, NotFound
from ..models.credits import CREDIT_STATUS_PENDING
from ..models.inventory import PHONE_STATUS_SOLD
from ..stores import CREDIT_PAYMENTS, CREDITS, PHONES, SALES, EntityStore
from ..time_utils import today_display
from .sales_service import credit_status


logger = logging.getLogger(__name__)


def get_credit(store: EntityStore, credit_id: int) -> dict:
    credit = store.get_or_none(CREDITS, credit_id)
    if not credit:
        raise NotFound(f"Credit record {credit_id} not found")
    return credit


def list_credits(store: EntityStore, *, status: str | None = None) -> list[dict]:
    equals = {"status": status} if status else None
    return store.query(CREDITS, equals=equals, order_by="-created_at")


def list_pending_credits(store: EntityStore) -> list[dict]:
    return list_credits(store, status=CREDIT_STATUS_PENDING)


def get_payment_history(store: EntityStore, credit_id: int) -> list[dict]:
    credit = get_credit(store, credit_id)
    return store.query(CREDIT_PAYMENTS, equals={"credit_id": credit["id"]}, order_by="id")


def record_credit_payment(
    store: EntityStore,
    credit_id: int,
    amount_cents,
    payment_date: str | None = None,
    payment_method: str | None = None,
) -> dict:
    """
    Record one instalment.

    Returns:
        The new CreditPayment record.

    Raises:
        NotFound: no such credit
        InvalidAmount: amount <= 0 or not an integer
        ExceedsRemaining: amount above the credit's remaining amount
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmount("Payment amount must be an integer amount in cents")
    if amount_cents <= 0:
        raise InvalidAmount("Payment amount must be greater than 0")

    with store.atomic():
        credit = get_credit(store, credit_id)
        remaining = credit["remaining_amount_cents"]
        if amount_cents > remaining:
            raise ExceedsRemaining(
                f"Payment amount ({amount_cents}) cannot exceed remaining amount ({remaining})"
            )

        new_received = credit["received_amount_cents"] + amount_cents
        new_remaining = remaining - amount_cents

        payment_id = store.insert(CREDIT_PAYMENTS, {
            "credit_id": credit["id"],
            "amount_cents": amount_cents,
            "payment_date": (payment_date or "").strip() or today_display(),
            "payment_method": payment_method,
        })

        store.update(CREDITS, credit["id"], {
            "received_amount_cents": new_received,
            "remaining_amount_cents": new_remaining,
            "status": credit_status(new_remaining),
        })

        mirror = {"credit_received_cents": new_received, "credit_remaining_cents": new_remaining}
        if store.get(SALES, credit["sale_id"]):
            store.update(SALES, credit["sale_id"], mirror)

        phone = store.get(PHONES, credit["phone_id"])
        if phone and phone["status"] == PHONE_STATUS_SOLD and phone.get("is_credit"):
            store.update(PHONES, phone["id"], mirror)

    logger.info("Recorded payment %s on credit %s (remaining %s)", payment_id, credit["id"], new_remaining)
    return store.get(CREDIT_PAYMENTS, payment_id)

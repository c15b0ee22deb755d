# Overview: Classifies a new sale as a fresh sale or the resale of a returned unit.

from __future__ import annotations

import logging

from ..stores import RETURNS, EntityStore


logger = logging.getLogger(__name__)


def detect_resale(returns: list[dict]) -> tuple[bool, int | None]:
    """
    Given the returns recorded for one phone, return (is_resale, original_return_id).

    The latest return wins: ordered by created_at, then by id for records
    created in the same instant.
    """
    if not returns:
        return False, None
    latest = max(returns, key=lambda r: (r.get("created_at") or "", r["id"]))
    return True, latest["id"]


def classify_sale(store: EntityStore, phone_id: int) -> tuple[bool, int | None]:
    """
    Look up the phone's returns and classify the sale being recorded.

    A failed lookup never blocks the sale; it is logged and the sale is
    recorded as a fresh one.
    """
    try:
        returns = store.query(RETURNS, equals={"phone_id": phone_id})
    except Exception:
        logger.warning("Resale lookup failed for phone %s; recording as fresh sale", phone_id, exc_info=True)
        return False, None
    return detect_resale(returns)

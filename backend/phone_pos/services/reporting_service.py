# Overview: Read-only report math over a point-in-time snapshot of the entity graph.

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from ..errors import ValidationFailed
from ..models.credits import CREDIT_STATUS_PENDING
from ..models.inventory import PHONE_STATUS_IN_STOCK, PHONE_STATUS_SOLD
from ..models.sales import RETURN_TYPE_EXCHANGE, RETURN_TYPE_REFUND, RETURN_TYPE_TRADE_IN
from ..stores import CREDITS, PHONES, RETURNS, SALES, EntityStore
from ..time_utils import parse_business_date, to_utc_z, utcnow


RANGE_TYPES = ("today", "week", "month", "year", "custom")
BEST_SELLERS_LIMIT = 10


@dataclass
class Snapshot:
    phones: list[dict] = field(default_factory=list)
    sales: list[dict] = field(default_factory=list)
    returns: list[dict] = field(default_factory=list)
    credits: list[dict] = field(default_factory=list)

    def phones_by_id(self) -> dict[int, dict]:
        return {p["id"]: p for p in self.phones}


@dataclass(frozen=True)
class DateRange:
    type: str = "today"
    start_date: str | None = None
    end_date: str | None = None


def load_snapshot(store: EntityStore) -> Snapshot:
    return Snapshot(
        phones=store.all(PHONES),
        sales=store.all(SALES),
        returns=store.all(RETURNS),
        credits=store.all(CREDITS),
    )


def _today(now: datetime | None) -> date:
    return (now or utcnow()).date()


def resolve_window(date_range: DateRange, now: datetime | None = None) -> tuple[date | None, date | None]:
    """
    Inclusive (start, end) calendar window for a range selector.

    A custom range missing either bound, or with an unparsable bound, spans
    all time: (None, None).
    """
    today = _today(now)
    kind = date_range.type

    if kind == "today":
        return today, today
    if kind == "week":
        return today - timedelta(days=6), today
    if kind == "month":
        return today.replace(day=1), today
    if kind == "year":
        return today.replace(month=1, day=1), today
    if kind == "custom":
        start = parse_business_date(date_range.start_date)
        end = parse_business_date(date_range.end_date)
        if start is None or end is None:
            return None, None
        return start, end

    raise ValidationFailed(f"Date range type must be one of: {', '.join(RANGE_TYPES)}")


def _in_window(value, start: date | None, end: date | None) -> bool:
    if start is None and end is None:
        return True
    parsed = parse_business_date(value)
    if parsed is None:
        return False
    return start <= parsed <= end


def active_sales(snapshot: Snapshot) -> list[dict]:
    """Sales not reversed by a return."""
    returned_sale_ids = {r["sale_id"] for r in snapshot.returns}
    return [s for s in snapshot.sales if s["id"] not in returned_sale_ids]


def profit_report(snapshot: Snapshot, date_range: DateRange, now: datetime | None = None) -> dict:
    """
    Revenue, cost and refunds for one window.

    Sales are filtered on sale_date and returns on return_date, each against
    the same window. Purchase cost is the sold phone's cost basis.
    """
    start, end = resolve_window(date_range, now)
    phones = snapshot.phones_by_id()

    sales = [s for s in active_sales(snapshot) if _in_window(s.get("sale_date"), start, end)]
    returns = [r for r in snapshot.returns if _in_window(r.get("return_date"), start, end)]

    revenue = 0
    purchase_costs = 0
    for sale in sales:
        revenue += sale["sale_price_cents"]
        phone = phones.get(sale["phone_id"])
        if phone is not None:
            purchase_costs += phone.get("purchase_price_cents") or 0
        else:
            purchase_costs += sale["sale_price_cents"] - sale["profit_cents"]

    refunds = sum(r.get("return_price_cents") or 0 for r in returns)
    net_profit = revenue - purchase_costs - refunds
    total_sales = len(sales)

    return {
        "range": date_range.type,
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "total_sales": total_sales,
        "total_sales_revenue_cents": revenue,
        "total_purchase_costs_cents": purchase_costs,
        "total_refunds_cents": refunds,
        "net_profit_cents": net_profit,
        "average_profit_per_sale_cents": round(net_profit / total_sales) if total_sales else 0,
        "sales": sales,
        "returns": returns,
    }


def inventory_report(snapshot: Snapshot) -> dict:
    in_stock = [p for p in snapshot.phones if p["status"] == PHONE_STATUS_IN_STOCK]
    sold = [p for p in snapshot.phones if p["status"] == PHONE_STATUS_SOLD]

    model_counts: dict[str, int] = defaultdict(int)
    for phone in sold:
        if phone.get("model_name"):
            model_counts[phone["model_name"]] += 1

    best_selling = sorted(model_counts.items(), key=lambda item: item[1], reverse=True)[:BEST_SELLERS_LIMIT]
    return_rate = len(snapshot.returns) / max(len(sold), 1) * 100

    return {
        "current_stock_count": len(in_stock),
        "current_stock_value_cents": sum(p.get("purchase_price_cents") or 0 for p in in_stock),
        "best_selling_models": [
            {"model_name": model, "sales_count": count} for model, count in best_selling
        ],
        "return_rate": round(return_rate, 2),
        "total_phones": len(snapshot.phones),
    }


def _profit_since(sales: list[dict], since: date, today: date) -> int:
    total = 0
    for sale in sales:
        sold_on = parse_business_date(sale.get("sale_date"))
        if sold_on is not None and since <= sold_on <= today:
            total += sale["profit_cents"]
    return total


def inventory_turnover_days(phones: list[dict]) -> float:
    """
    Mean days from purchase to sale over sold phones. Phones whose dates
    cannot be parsed are left out of both the sum and the count.
    """
    spans = []
    for phone in phones:
        if phone["status"] != PHONE_STATUS_SOLD:
            continue
        bought = parse_business_date(phone.get("purchase_date"))
        sold = parse_business_date(phone.get("sale_date"))
        if bought is None or sold is None:
            continue
        spans.append((sold - bought).days)
    return round(sum(spans) / len(spans), 2) if spans else 0


def dashboard_report(snapshot: Snapshot, now: datetime | None = None) -> dict:
    """
    Dashboard aggregates.

    total_profit uses the profit stored on each sale. resale_profit instead
    recomputes sale price minus the phone's current cost basis, so the two
    figures can disagree after a return changed that basis.
    """
    today = _today(now)
    phones = snapshot.phones_by_id()
    sales = snapshot.sales
    returns = snapshot.returns

    total_profit = sum(s["profit_cents"] for s in sales)
    total_return_price = sum(r.get("return_price_cents") or 0 for r in returns)

    refund_losses = sum(
        r.get("return_price_cents") or 0
        for r in returns
        if (r.get("return_type") or RETURN_TYPE_REFUND) in (RETURN_TYPE_REFUND, RETURN_TYPE_EXCHANGE)
    )
    trade_in_value = sum(
        r.get("return_price_cents") or 0 for r in returns if r.get("return_type") == RETURN_TYPE_TRADE_IN
    )

    resales = [s for s in sales if s.get("is_resale")]
    resale_profit = 0
    for sale in resales:
        phone = phones.get(sale["phone_id"])
        if phone is not None:
            resale_profit += sale["sale_price_cents"] - (phone.get("purchase_price_cents") or 0)

    today_list = [s for s in sales if parse_business_date(s.get("sale_date")) == today]

    per_model: dict[str, dict] = {}
    for sale in sales:
        phone = phones.get(sale["phone_id"])
        if phone is None:
            continue
        model = phone.get("model_name") or "Unknown"
        entry = per_model.setdefault(model, {"model": model, "count": 0, "total_profit_cents": 0})
        entry["count"] += 1
        entry["total_profit_cents"] += sale["profit_cents"]

    return {
        "generated_at": to_utc_z(now or utcnow()),
        "current_stock_value_cents": sum(
            p.get("purchase_price_cents") or 0 for p in snapshot.phones if p["status"] == PHONE_STATUS_IN_STOCK
        ),
        "total_profit_cents": total_profit,
        "net_profit_cents": total_profit - total_return_price,
        "refund_losses_cents": refund_losses,
        "trade_in_value_cents": trade_in_value,
        "resale_profit_cents": resale_profit,
        "resale_count": len(resales),
        "today_sales": {
            "count": len(today_list),
            "revenue_cents": sum(s["sale_price_cents"] for s in today_list),
            "profit_cents": sum(s["profit_cents"] for s in today_list),
        },
        "best_selling_models": sorted(per_model.values(), key=lambda m: m["count"], reverse=True),
        "average_profit_per_sale_cents": round(total_profit / len(sales)) if sales else 0,
        "inventory_turnover_days": inventory_turnover_days(snapshot.phones),
        "daily_profit_cents": _profit_since(sales, today, today),
        "weekly_profit_cents": _profit_since(sales, today - timedelta(days=6), today),
        "monthly_profit_cents": _profit_since(sales, today - timedelta(days=29), today),
        "yearly_profit_cents": _profit_since(sales, today - timedelta(days=364), today),
        "receivables": receivables_summary(snapshot),
    }


def receivables_summary(snapshot: Snapshot) -> dict:
    """Credit figures, kept apart from the profit math."""
    pending = [c for c in snapshot.credits if c.get("status") == CREDIT_STATUS_PENDING]
    return {
        "pending_count": len(pending),
        "outstanding_cents": sum(c.get("remaining_amount_cents") or 0 for c in pending),
        "collected_cents": sum(c.get("received_amount_cents") or 0 for c in snapshot.credits),
    }

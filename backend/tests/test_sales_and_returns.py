# Overview: Pytest coverage for the sale, return and resale flows.

import re

import pytest

from phone_pos.errors import AlreadySold, InvalidAmount, NotSold, ValidationFailed
from phone_pos.services import phone_service, resale_service, return_service, sales_service
from phone_pos.stores import RETURNS, SALES
from phone_pos.time_utils import today_display


def _sold_phone(store, phone_payload, price=15000, **sale):
    phone = phone_service.add_phone(store, phone_payload())
    sale_record = sales_service.record_sale(store, phone["id"], dict(sale, sale_price_cents=price))
    return phone_service.get_phone(store, phone["id"]), sale_record


class TestRecordSale:
    def test_sale_mirrors_onto_phone(self, store, phone_payload):
        phone, sale = _sold_phone(store, phone_payload, customer_name="Ana", payment_method="cash")

        assert sale["profit_cents"] == 5000
        assert sale["is_resale"] is False
        assert sale["original_return_id"] is None
        assert phone["status"] == "sold"
        assert phone["sale_price_cents"] == 15000
        assert phone["receipt_number"] == sale["receipt_number"]
        assert phone["customer_name"] == "Ana"
        assert phone["payment_method"] == "cash"

    def test_defaults_sale_date_to_today(self, store, phone_payload):
        _, sale = _sold_phone(store, phone_payload)
        assert sale["sale_date"] == today_display()

    def test_receipt_number_format(self, store, phone_payload):
        _, sale = _sold_phone(store, phone_payload)
        assert re.fullmatch(r"RCP-\d{8}-\d{3}", sale["receipt_number"])

    def test_cannot_sell_twice(self, store, phone_payload):
        phone, _ = _sold_phone(store, phone_payload)
        with pytest.raises(AlreadySold):
            sales_service.record_sale(store, phone["id"], {"sale_price_cents": 20000})
        assert store.count(SALES) == 1

    @pytest.mark.parametrize("price", [0, -100, "abc", None, 1.5])
    def test_sale_price_must_be_positive_integer(self, store, phone_payload, price):
        phone = phone_service.add_phone(store, phone_payload())
        with pytest.raises(InvalidAmount):
            sales_service.record_sale(store, phone["id"], {"sale_price_cents": price})
        assert phone_service.get_phone(store, phone["id"])["status"] == "in_stock"

    def test_credit_received_cannot_exceed_price(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        with pytest.raises(InvalidAmount):
            sales_service.record_sale(store, phone["id"], {
                "sale_price_cents": 15000, "is_credit": True, "credit_received_cents": 15001,
            })

    def test_loss_making_sale_has_negative_profit(self, store, phone_payload):
        _, sale = _sold_phone(store, phone_payload, price=8000)
        assert sale["profit_cents"] == -2000


class TestRecordReturn:
    def test_return_restocks_with_new_cost_basis(self, store, phone_payload):
        phone, sale = _sold_phone(store, phone_payload)
        ret = return_service.record_return(store, phone["id"], {
            "return_price_cents": 14000, "new_price_cents": 9000, "return_reason": "Scratched",
        })

        restocked = phone_service.get_phone(store, phone["id"])
        assert ret["sale_id"] == sale["id"]
        assert ret["return_type"] == "refund"
        assert restocked["status"] == "in_stock"
        assert restocked["purchase_price_cents"] == 9000
        assert restocked["sale_date"] == "N/A"
        assert restocked["sale_price_cents"] is None
        assert restocked["receipt_number"] is None
        assert restocked["customer_name"] is None

    def test_sale_row_is_kept(self, store, phone_payload):
        phone, sale = _sold_phone(store, phone_payload)
        return_service.record_return(store, phone["id"], {"new_price_cents": 9000})

        kept = store.get(SALES, sale["id"])
        assert kept["profit_cents"] == 5000

    def test_cannot_return_in_stock_phone(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        with pytest.raises(NotSold):
            return_service.record_return(store, phone["id"], {"new_price_cents": 9000})
        assert store.count(RETURNS) == 0

    def test_unknown_return_type_rejected(self, store, phone_payload):
        phone, _ = _sold_phone(store, phone_payload)
        with pytest.raises(ValidationFailed):
            return_service.record_return(store, phone["id"], {"return_type": "swap", "new_price_cents": 1})

    def test_negative_amounts_rejected(self, store, phone_payload):
        phone, _ = _sold_phone(store, phone_payload)
        with pytest.raises(InvalidAmount):
            return_service.record_return(store, phone["id"], {"return_price_cents": -1, "new_price_cents": 1})
        assert phone_service.get_phone(store, phone["id"])["status"] == "sold"

    def test_trade_in_return(self, store, phone_payload):
        phone, _ = _sold_phone(store, phone_payload)
        ret = return_service.record_return(store, phone["id"], {
            "return_type": "trade_in", "return_price_cents": 12000, "new_price_cents": 12000,
        })
        assert ret["return_type"] == "trade_in"


class TestResale:
    def test_sell_return_resell(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload(purchase_price_cents=100))
        first = sales_service.record_sale(store, phone["id"], {"sale_price_cents": 150})
        assert first["profit_cents"] == 50

        ret = return_service.record_return(store, phone["id"], {
            "return_price_cents": 140, "new_price_cents": 90,
        })
        restocked = phone_service.get_phone(store, phone["id"])
        assert restocked["status"] == "in_stock"
        assert restocked["purchase_price_cents"] == 90

        second = sales_service.record_sale(store, phone["id"], {"sale_price_cents": 130})
        assert second["is_resale"] is True
        assert second["profit_cents"] == 40
        assert second["original_return_id"] == ret["id"]

        # Only the newest sale is active
        assert sales_service.get_active_sale(store, phone["id"])["id"] == second["id"]
        assert [s["id"] for s in sales_service.list_sales(store, resale_only=True)] == [second["id"]]

    def test_latest_return_wins(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        for _ in range(2):
            sales_service.record_sale(store, phone["id"], {"sale_price_cents": 15000})
            last_return = return_service.record_return(store, phone["id"], {"new_price_cents": 9000})

        third = sales_service.record_sale(store, phone["id"], {"sale_price_cents": 15000})
        assert third["original_return_id"] == last_return["id"]

    def test_detect_resale_breaks_timestamp_ties_by_id(self):
        returns = [
            {"id": 3, "created_at": "2026-10-17T10:00:00Z"},
            {"id": 7, "created_at": "2026-10-17T10:00:00Z"},
            {"id": 5, "created_at": "2026-10-16T10:00:00Z"},
        ]
        assert resale_service.detect_resale(returns) == (True, 7)
        assert resale_service.detect_resale([]) == (False, None)

    def test_failed_return_lookup_does_not_block_sale(self, store, phone_payload, monkeypatch, caplog):
        phone = phone_service.add_phone(store, phone_payload())
        real_query = store.query

        def flaky_query(entity, **kwargs):
            if entity == RETURNS:
                raise RuntimeError("returns table unavailable")
            return real_query(entity, **kwargs)

        monkeypatch.setattr(store, "query", flaky_query)
        sale = sales_service.record_sale(store, phone["id"], {"sale_price_cents": 15000})

        assert sale["is_resale"] is False
        assert "Resale lookup failed" in caplog.text

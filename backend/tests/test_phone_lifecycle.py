# Overview: Pytest coverage for phone inventory operations.

"""
Phone inventory tests.

Covers add/update/delete rules, IMEI validation and uniqueness, and the
delete cascade for sold phones. Every test runs against both stores.
"""

import pytest

from phone_pos.errors import (
    DuplicateImei,
    Immutable,
    InvalidAmount,
    NotFound,
    SaleHistoryExists,
    ValidationFailed,
)
from phone_pos.services import credit_service, phone_service, return_service, sales_service
from phone_pos.stores import CREDIT_PAYMENTS, CREDITS, PHONES, RETURNS, SALES


class TestAddPhone:
    def test_new_phone_is_in_stock(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())

        assert phone["status"] == "in_stock"
        assert phone["is_credit"] is False
        assert phone["sale_price_cents"] is None
        assert phone["purchase_price_cents"] == 10000

    def test_imei_whitespace_is_removed(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload(imei1="35 1234 5678 9012 3"))
        assert phone["imei1"] == "351234567890123"

    def test_missing_imei_rejected(self, store, phone_payload):
        payload = phone_payload()
        del payload["imei1"]
        with pytest.raises(ValidationFailed):
            phone_service.add_phone(store, payload)

    @pytest.mark.parametrize("imei", ["12345", "35123456789012345678", "35123456789abcd"])
    def test_malformed_imei_rejected(self, store, phone_payload, imei):
        with pytest.raises(ValidationFailed):
            phone_service.add_phone(store, phone_payload(imei1=imei))

    def test_negative_purchase_price_rejected(self, store, phone_payload):
        with pytest.raises(InvalidAmount):
            phone_service.add_phone(store, phone_payload(purchase_price_cents=-1))

    def test_mirror_fields_not_writable(self, store, phone_payload):
        with pytest.raises(ValidationFailed):
            phone_service.add_phone(store, phone_payload(status="sold"))

    def test_duplicate_imei1_rejected(self, store, phone_payload):
        first = phone_service.add_phone(store, phone_payload())
        with pytest.raises(DuplicateImei):
            phone_service.add_phone(store, phone_payload(imei1=first["imei1"]))
        assert store.count(PHONES) == 1

    def test_imei2_colliding_with_other_imei1_rejected(self, store, phone_payload):
        first = phone_service.add_phone(store, phone_payload())
        with pytest.raises(DuplicateImei):
            phone_service.add_phone(store, phone_payload(imei2=first["imei1"]))

    def test_same_imei_in_both_slots_rejected(self, store, phone_payload):
        payload = phone_payload()
        payload["imei2"] = payload["imei1"]
        with pytest.raises(DuplicateImei):
            phone_service.add_phone(store, payload)


class TestQueries:
    def test_search_matches_model_case_insensitively(self, store, phone_payload):
        phone_service.add_phone(store, phone_payload(model_name="Galaxy S21"))
        phone_service.add_phone(store, phone_payload(model_name="iPhone 12"))

        results = phone_service.list_phones(store, search="galaxy")
        assert [p["model_name"] for p in results] == ["Galaxy S21"]

    def test_status_filter(self, store, phone_payload):
        sold = phone_service.add_phone(store, phone_payload())
        phone_service.add_phone(store, phone_payload())
        sales_service.record_sale(store, sold["id"], {"sale_price_cents": 15000})

        assert len(phone_service.list_phones(store, status="sold")) == 1
        assert len(phone_service.list_phones(store, status="in_stock")) == 1
        assert len(phone_service.list_phones(store, status="all")) == 2

    def test_newest_first(self, store, phone_payload):
        a = phone_service.add_phone(store, phone_payload())
        b = phone_service.add_phone(store, phone_payload())
        assert [p["id"] for p in phone_service.list_phones(store)] == [b["id"], a["id"]]

    def test_find_by_imei2(self, store, phone_payload):
        payload = phone_payload(imei2="359999999999999")
        phone = phone_service.add_phone(store, payload)
        assert phone_service.find_phone_by_imei(store, "359999999999999")["id"] == phone["id"]
        assert phone_service.find_phone_by_imei(store, "350000000000000") is None

    def test_get_missing_phone(self, store):
        with pytest.raises(NotFound):
            phone_service.get_phone(store, 999)


class TestUpdatePhone:
    def test_update_in_stock_phone(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        updated = phone_service.update_phone(store, phone["id"], {"color": "Blue", "purchase_price_cents": 9000})

        assert updated["color"] == "Blue"
        assert updated["purchase_price_cents"] == 9000

    def test_sold_phone_is_immutable(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        sales_service.record_sale(store, phone["id"], {"sale_price_cents": 15000})

        with pytest.raises(Immutable):
            phone_service.update_phone(store, phone["id"], {"color": "Blue"})

    def test_sale_fields_rejected(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        with pytest.raises(ValidationFailed):
            phone_service.update_phone(store, phone["id"], {"sale_price_cents": 1})

    def test_update_to_existing_imei_rejected(self, store, phone_payload):
        a = phone_service.add_phone(store, phone_payload())
        b = phone_service.add_phone(store, phone_payload())
        with pytest.raises(DuplicateImei):
            phone_service.update_phone(store, b["id"], {"imei1": a["imei1"]})

    def test_keeping_own_imei_is_allowed(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        updated = phone_service.update_phone(store, phone["id"], {"imei1": phone["imei1"], "notes": "box"})
        assert updated["notes"] == "box"

    def test_imei2_matching_stored_imei1_rejected(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        with pytest.raises(DuplicateImei):
            phone_service.update_phone(store, phone["id"], {"imei2": phone["imei1"]})
        assert phone_service.get_phone(store, phone["id"])["imei2"] is None


class TestDeletePhone:
    def test_delete_unsold_phone(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        phone_service.delete_phone(store, phone["id"])
        assert store.count(PHONES) == 0

    def test_delete_sold_phone_cascades(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        sales_service.record_sale(store, phone["id"], {
            "sale_price_cents": 50000,
            "is_credit": True,
            "credit_received_cents": 20000,
        })
        credit = credit_service.list_credits(store)[0]
        credit_service.record_credit_payment(store, credit["id"], 10000)

        phone_service.delete_phone(store, phone["id"])

        for entity in (PHONES, SALES, RETURNS, CREDITS, CREDIT_PAYMENTS):
            assert store.count(entity) == 0

    def test_returned_phone_cannot_be_deleted(self, store, phone_payload):
        phone = phone_service.add_phone(store, phone_payload())
        sales_service.record_sale(store, phone["id"], {"sale_price_cents": 15000})
        return_service.record_return(store, phone["id"], {"return_price_cents": 14000, "new_price_cents": 9000})

        with pytest.raises(SaleHistoryExists):
            phone_service.delete_phone(store, phone["id"])
        assert store.count(PHONES) == 1

    def test_delete_missing_phone(self, store):
        with pytest.raises(NotFound):
            phone_service.delete_phone(store, 123)

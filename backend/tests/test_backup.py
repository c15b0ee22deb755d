# Overview: Pytest coverage for backup export, validation and restore.

"""
Backup codec tests.

Round trips run against both stores: export owner-a's data, import it into a
fresh owner, and check the graph came back under new identifiers.
"""

import json
import os

import pytest

from phone_pos.errors import BackupError, ValidationFailed
from phone_pos.services import (
    backup_service,
    credit_service,
    phone_service,
    reporting_service,
    return_service,
    sales_service,
)
from phone_pos.stores import CREDITS, PHONES, RETURNS, SALES, MemoryEntityStore, SqlEntityStore, StoreError


def _seed(store, phone_payload):
    """Stock phone, cash sale, credit sale with one payment, and a sell/return/resell."""
    phone_service.add_phone(store, phone_payload(model_name="Stock"))

    cash = phone_service.add_phone(store, phone_payload(model_name="Cash"))
    sales_service.record_sale(store, cash["id"], {"sale_price_cents": 15000})

    credit_phone = phone_service.add_phone(store, phone_payload(model_name="Credit"))
    sales_service.record_sale(store, credit_phone["id"], {
        "sale_price_cents": 50000, "is_credit": True, "credit_received_cents": 20000,
    })
    credit = credit_service.list_credits(store)[0]
    credit_service.record_credit_payment(store, credit["id"], 5000)

    resold = phone_service.add_phone(store, phone_payload(model_name="Resold", purchase_price_cents=100))
    sales_service.record_sale(store, resold["id"], {"sale_price_cents": 150})
    return_service.record_return(store, resold["id"], {"return_price_cents": 140, "new_price_cents": 90})
    sales_service.record_sale(store, resold["id"], {"sale_price_cents": 130})

    returned = phone_service.add_phone(store, phone_payload(model_name="Returned"))
    sales_service.record_sale(store, returned["id"], {"sale_price_cents": 12000})
    return_service.record_return(store, returned["id"], {"new_price_cents": 8000})


def _fresh_store(store, owner_id="owner-restore"):
    if isinstance(store, SqlEntityStore):
        return SqlEntityStore(owner_id)
    return MemoryEntityStore(owner_id, tables=store._tables)


def _by_model(store):
    return {p["model_name"]: p for p in store.all(PHONES)}


class TestExport:
    def test_document_shape(self, store, phone_payload):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)

        assert set(document) == {"phones", "sales", "returns", "credits", "creditPayments", "exportDate", "version"}
        assert document["version"] == backup_service.BACKUP_VERSION
        assert len(document["phones"]) == 5
        assert len(document["sales"]) == 5
        assert len(document["returns"]) == 2
        assert len(document["credits"]) == 1
        assert len(document["creditPayments"]) == 1
        assert all("owner_id" not in p for p in document["phones"])

    def test_write_backup_file(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        path = backup_service.write_backup_file(backup_service.export_backup(store), str(tmp_path))

        assert os.path.basename(path).startswith("phone-pos-backup-")
        with open(path, encoding="utf-8") as fh:
            assert len(json.load(fh)["phones"]) == 5


class TestRoundTrip:
    def test_restore_into_empty_store(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        raw = json.dumps(backup_service.export_backup(store))

        target = _fresh_store(store)
        summary = backup_service.import_backup(target, raw, str(tmp_path))

        assert summary.imported == {PHONES: 5, SALES: 5, RETURNS: 2, CREDITS: 1}
        assert summary.skipped == {PHONES: 0, SALES: 0, RETURNS: 0, CREDITS: 0}
        assert summary.credit_payments_discarded == 1
        assert summary.safety_backup is None
        assert summary.failures == []

        for entity in (PHONES, SALES, RETURNS, CREDITS):
            assert target.count(entity) == store.count(entity)

    def test_links_survive_under_new_ids(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        target = _fresh_store(store)
        backup_service.import_backup(target, backup_service.export_backup(store), str(tmp_path))

        phone_ids = {p["id"] for p in target.all(PHONES)}
        sale_ids = {s["id"] for s in target.all(SALES)}
        assert all(s["phone_id"] in phone_ids for s in target.all(SALES))
        assert all(r["sale_id"] in sale_ids and r["phone_id"] in phone_ids for r in target.all(RETURNS))
        assert all(c["sale_id"] in sale_ids for c in target.all(CREDITS))

    def test_phone_state_rederived(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        target = _fresh_store(store)
        backup_service.import_backup(target, backup_service.export_backup(store), str(tmp_path))

        phones = _by_model(target)
        assert phones["Stock"]["status"] == "in_stock"
        assert phones["Cash"]["status"] == "sold"
        assert phones["Cash"]["sale_price_cents"] == 15000

        assert phones["Resold"]["status"] == "sold"
        assert phones["Resold"]["sale_price_cents"] == 130
        assert phones["Resold"]["purchase_price_cents"] == 90

        assert phones["Returned"]["status"] == "in_stock"
        assert phones["Returned"]["sale_date"] == "N/A"
        assert phones["Returned"]["sale_price_cents"] is None
        assert phones["Returned"]["purchase_price_cents"] == 8000

        assert phones["Credit"]["is_credit"] is True
        assert phones["Credit"]["credit_remaining_cents"] == 25000

    def test_resale_link_remapped(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        target = _fresh_store(store)
        backup_service.import_backup(target, backup_service.export_backup(store), str(tmp_path))

        resold = _by_model(target)["Resold"]
        resale = sales_service.get_active_sale(target, resold["id"])
        ret = return_service.list_returns(target, phone_id=resold["id"])[0]
        assert resale["is_resale"] is True
        assert resale["original_return_id"] == ret["id"]

    def test_credit_figures_kept_payments_dropped(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        target = _fresh_store(store)
        summary = backup_service.import_backup(target, backup_service.export_backup(store), str(tmp_path))

        credit = credit_service.list_credits(target)[0]
        assert credit["received_amount_cents"] == 25000
        assert credit["remaining_amount_cents"] == 25000
        assert credit_service.get_payment_history(target, credit["id"]) == []
        assert any("credit payments" in w for w in summary.warnings)


class TestValidation:
    def test_dangling_sale_rejected_without_mutation(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        before = backup_service.export_backup(store)

        document = backup_service.export_backup(store)
        document["sales"][0]["phone_id"] = 9999
        document["returns"][0]["sale_id"] = 8888

        with pytest.raises(ValidationFailed) as exc:
            backup_service.import_backup(store, document, str(tmp_path))

        assert len(exc.value.problems) == 2
        assert "missing phone 9999" in exc.value.problems[0]
        after = backup_service.export_backup(store)
        for key in ("phones", "sales", "returns", "credits"):
            assert after[key] == before[key]
        assert os.listdir(tmp_path) == []

    def test_missing_arrays_reported_together(self):
        with pytest.raises(ValidationFailed) as exc:
            backup_service.validate_backup({"phones": []})
        assert exc.value.problems == ["missing or invalid sales array", "missing or invalid returns array"]

    def test_credit_references_checked(self):
        document = {
            "phones": [{"id": 1}],
            "sales": [{"id": 1, "phone_id": 1}],
            "returns": [],
            "credits": [{"id": 1, "phone_id": 2, "sale_id": 3}],
        }
        with pytest.raises(ValidationFailed) as exc:
            backup_service.validate_backup(document)
        assert len(exc.value.problems) == 2

    def test_non_scalar_ids_reported(self):
        document = {
            "phones": [{"id": [1]}],
            "sales": [{"id": 2, "phone_id": {"id": 1}}],
            "returns": [{"id": 3, "sale_id": [2]}],
        }
        with pytest.raises(ValidationFailed) as exc:
            backup_service.validate_backup(document)
        assert exc.value.problems == [
            "phones[0] has invalid id [1]",
            "sale 2 has invalid phone_id {'id': 1}",
            "return 3 has invalid sale_id [2]",
        ]

    def test_unparsable_file(self, store, tmp_path):
        with pytest.raises(BackupError) as exc:
            backup_service.import_backup(store, b"{not json", str(tmp_path))
        assert exc.value.data_modified is False

    def test_version_mismatch_only_warns(self, store, tmp_path):
        summary = backup_service.import_backup(
            store, {"phones": [], "sales": [], "returns": [], "version": "0.9"}, str(tmp_path),
        )
        assert any("0.9" in w for w in summary.warnings)


class TestRestoreSafety:
    def test_safety_backup_written_when_live_data_exists(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)

        summary = backup_service.import_backup(store, document, str(tmp_path))

        assert summary.safety_backup.startswith("phone-pos-safety-backup-")
        with open(tmp_path / summary.safety_backup, encoding="utf-8") as fh:
            assert len(json.load(fh)["phones"]) == 5
        # Re-importing over itself replaces the data
        assert store.count(PHONES) == 5

    def test_bad_phone_skipped_and_dependents_skipped(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)
        cash = next(p for p in document["phones"] if p["model_name"] == "Cash")
        cash["imei1"] = "not-an-imei"

        target = _fresh_store(store)
        summary = backup_service.import_backup(target, document, str(tmp_path))

        assert summary.imported[PHONES] == 4
        assert summary.skipped[PHONES] == 1
        assert summary.skipped[SALES] == 1
        assert {f.entity for f in summary.failures} == {PHONES, SALES}
        assert summary.failures[0].old_id == cash["id"]

    def test_duplicate_imei_in_document_skipped(self, store, tmp_path):
        document = {
            "phones": [
                {"id": 1, "imei1": "351111111111111", "purchase_price_cents": 100, "status": "in_stock"},
                {"id": 2, "imei1": "351111111111111", "purchase_price_cents": 100, "status": "in_stock"},
            ],
            "sales": [],
            "returns": [],
            "version": backup_service.BACKUP_VERSION,
        }
        summary = backup_service.import_backup(store, document, str(tmp_path))

        assert summary.imported[PHONES] == 1
        assert summary.skipped[PHONES] == 1
        assert "already exists" in summary.failures[0].reason

    def test_sale_missing_required_field_skipped(self, store, phone_payload, tmp_path):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)
        cash_id = next(p["id"] for p in document["phones"] if p["model_name"] == "Cash")
        cash_sale = next(s for s in document["sales"] if s["phone_id"] == cash_id)
        del cash_sale["profit_cents"]

        target = _fresh_store(store)
        summary = backup_service.import_backup(target, document, str(tmp_path))

        assert summary.imported[SALES] == 4
        assert summary.skipped[SALES] == 1
        assert summary.failures[0].old_id == cash_sale["id"]
        assert _by_model(target)["Cash"]["status"] == "in_stock"
        report = reporting_service.dashboard_report(reporting_service.load_snapshot(target))
        assert report["total_profit_cents"] == sum(s["profit_cents"] for s in target.all(SALES))

    def test_safety_backup_failure_does_not_block(self, store, phone_payload, tmp_path, monkeypatch):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)

        def broken_count(entity):
            raise StoreError("database is locked")

        monkeypatch.setattr(store, "count", broken_count)
        summary = backup_service.import_backup(store, document, str(tmp_path))

        assert summary.safety_backup is None
        assert summary.imported[PHONES] == 5
        assert os.listdir(tmp_path) == []

    def test_phone_state_failure_is_per_record(self, store, phone_payload, tmp_path, monkeypatch):
        _seed(store, phone_payload)
        document = backup_service.export_backup(store)
        target = _fresh_store(store)
        update = target.update

        def failing_update(entity, record_id, values):
            # Only the returned phone is put back in stock during restore
            if entity == PHONES and values.get("status") == "in_stock":
                raise StoreError("write failed")
            return update(entity, record_id, values)

        monkeypatch.setattr(target, "update", failing_update)
        summary = backup_service.import_backup(target, document, str(tmp_path))

        returned_id = next(p["id"] for p in document["phones"] if p["model_name"] == "Returned")
        assert any(f"phone {returned_id} could not be re-derived" in w for w in summary.warnings)
        assert summary.imported[CREDITS] == 1
        assert _by_model(target)["Resold"]["status"] == "sold"

"""
Backup codec: export the entity graph of one owner to a JSON document and
restore it with fresh identifiers.

Restore order is fixed because each step consumes the id map built by the
previous one:

    clear -> phones -> sales -> returns -> phone state -> credits

Validation runs before anything is cleared. After the clear, failures are
handled per record: the record is skipped, logged and listed in the summary,
and the restore carries on.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from ..errors import BackupError, PartialImportFailure, ValidationFailed
from ..models.inventory import PHONE_STATUS_SOLD
from ..stores import CREDIT_PAYMENTS, CREDITS, ENTITIES, PHONES, RETURNS, SALES, EntityStore
from ..stores.base import ENTITY_FIELDS
from ..time_utils import to_utc_z, utcnow
from ..validation import PHONE_POLICY
from .phone_service import add_phone
from .return_service import cleared_sale_fields
from .sales_service import apply_sold_state


logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"

# Document key -> entity, in export order
DOCUMENT_KEYS = (
    ("phones", PHONES),
    ("sales", SALES),
    ("returns", RETURNS),
    ("credits", CREDITS),
    ("creditPayments", CREDIT_PAYMENTS),
)
REQUIRED_KEYS = ("phones", "sales", "returns")
RESTORED_ENTITIES = (PHONES, SALES, RETURNS, CREDITS)


@dataclass
class ImportSummary:
    imported: dict[str, int] = field(default_factory=lambda: {e: 0 for e in RESTORED_ENTITIES})
    skipped: dict[str, int] = field(default_factory=lambda: {e: 0 for e in RESTORED_ENTITIES})
    credit_payments_discarded: int = 0
    safety_backup: str | None = None
    warnings: list[str] = field(default_factory=list)
    failures: list[PartialImportFailure] = field(default_factory=list)

    def skip(self, entity: str, old_id, reason: str) -> None:
        self.skipped[entity] += 1
        self.failures.append(PartialImportFailure(entity=entity, old_id=old_id, reason=reason))
        logger.warning("Skipped %s %s during restore: %s", entity, old_id, reason)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def to_dict(self) -> dict:
        return {
            "imported": dict(self.imported),
            "skipped": dict(self.skipped),
            "credit_payments_discarded": self.credit_payments_discarded,
            "safety_backup": self.safety_backup,
            "warnings": list(self.warnings),
            "failures": [f.to_dict() for f in self.failures],
        }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _portable(record: dict) -> dict:
    record = dict(record)
    record.pop("owner_id", None)
    return record


def export_backup(store: EntityStore) -> dict:
    """Full entity graph of the store's owner, original ids included."""
    document: dict[str, Any] = {
        key: [_portable(r) for r in store.all(entity)] for key, entity in DOCUMENT_KEYS
    }
    document["exportDate"] = to_utc_z(utcnow())
    document["version"] = BACKUP_VERSION
    return document


def backup_filename(now=None) -> str:
    return f"phone-pos-backup-{(now or utcnow()).strftime('%Y%m%d')}.json"


def safety_backup_filename(now=None) -> str:
    return f"phone-pos-safety-backup-{(now or utcnow()).strftime('%Y%m%d-%H%M%S')}.json"


def write_backup_file(document: dict, directory: str, filename: str | None = None) -> str:
    """Write the document as indented JSON. Returns the file path."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename or backup_filename())
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(document, fh, indent=2)
    return path


def create_safety_backup(store: EntityStore, backup_dir: str) -> str | None:
    """
    Export the live graph before it is replaced.

    Returns the file name, or None when there was nothing to protect or the
    write failed. A failure is logged and never blocks the import.
    """
    try:
        if not any(store.count(entity) for entity in ENTITIES):
            logger.info("Live data is empty; no safety backup needed")
            return None
        filename = safety_backup_filename()
        write_backup_file(export_backup(store), backup_dir, filename)
    except Exception as exc:
        logger.warning("Safety backup failed, continuing import: %s", exc, exc_info=True)
        return None

    logger.info("Safety backup written to %s", os.path.join(backup_dir, filename))
    return filename


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def parse_backup(raw) -> dict:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    document = json.loads(raw)
    if not isinstance(document, dict):
        raise ValueError("backup document must be a JSON object")
    return document


def _is_key(value) -> bool:
    """Record ids and references must be plain scalars to be matched."""
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _ids(records: list) -> set:
    return {r.get("id") for r in records if isinstance(r, dict) and _is_key(r.get("id"))}


def _check_reference(problems: list, label: str, record: dict, field: str, target: str, known: set) -> None:
    value = record.get(field)
    if not _is_key(value):
        problems.append(f"{label} {record.get('id')!r} has invalid {field} {value!r}")
    elif value not in known:
        problems.append(f"{label} {record.get('id')} references missing {target} {value}")


def validate_backup(document: dict) -> None:
    """
    Structural and referential checks. Collects every problem before raising.

    Raises:
        ValidationFailed: with .problems listing each violation
    """
    problems: list[str] = []

    if not isinstance(document, dict):
        raise ValidationFailed("Invalid backup file", ["document is not an object"])

    for key in REQUIRED_KEYS:
        if not isinstance(document.get(key), list):
            problems.append(f"missing or invalid {key} array")
    for key in ("credits", "creditPayments"):
        if key in document and not isinstance(document[key], list):
            problems.append(f"invalid {key} array")

    if problems:
        raise ValidationFailed("Invalid backup file structure", problems)

    for key, _entity in DOCUMENT_KEYS:
        for index, record in enumerate(document.get(key) or []):
            if not isinstance(record, dict):
                problems.append(f"{key}[{index}] is not an object")
            elif record.get("id") is None:
                problems.append(f"{key}[{index}] has no id")
            elif not _is_key(record["id"]):
                problems.append(f"{key}[{index}] has invalid id {record['id']!r}")

    phone_ids = _ids(document["phones"])
    sale_ids = _ids(document["sales"])

    for sale in document["sales"]:
        if isinstance(sale, dict):
            _check_reference(problems, "sale", sale, "phone_id", "phone", phone_ids)
    for ret in document["returns"]:
        if isinstance(ret, dict):
            _check_reference(problems, "return", ret, "sale_id", "sale", sale_ids)
    for credit in document.get("credits") or []:
        if isinstance(credit, dict):
            _check_reference(problems, "credit", credit, "phone_id", "phone", phone_ids)
            _check_reference(problems, "credit", credit, "sale_id", "sale", sale_ids)

    if problems:
        raise ValidationFailed(f"Backup failed validation ({len(problems)} problems)", problems)


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------

def _mapped(id_map: dict, value):
    return id_map.get(value) if _is_key(value) else None


def _pick(record: dict, entity: str, exclude: tuple[str, ...] = ()) -> dict:
    return {k: record.get(k) for k in ENTITY_FIELDS[entity] if k in record and k not in exclude}


def _restore_phones(store, document, summary) -> dict:
    phone_map = {}
    for record in document["phones"]:
        values = {k: record[k] for k in PHONE_POLICY.writable_fields if record.get(k) is not None}
        try:
            phone = add_phone(store, values)
        except Exception as exc:
            summary.skip(PHONES, record["id"], str(exc))
            continue
        phone_map[record["id"]] = phone["id"]
        summary.imported[PHONES] += 1
    return phone_map


def _restore_sales(store, document, phone_map, summary) -> dict:
    sale_map = {}
    for record in document["sales"]:
        new_phone_id = _mapped(phone_map, record.get("phone_id"))
        if new_phone_id is None:
            summary.skip(SALES, record["id"], f"phone {record.get('phone_id')} was not restored")
            continue
        values = _pick(record, SALES, exclude=("phone_id", "original_return_id"))
        values["phone_id"] = new_phone_id
        values["is_credit"] = bool(values.get("is_credit"))
        values["is_resale"] = bool(values.get("is_resale"))
        try:
            with store.atomic():
                sale_id = store.insert(SALES, values)
                apply_sold_state(store, new_phone_id, values)
        except Exception as exc:
            summary.skip(SALES, record["id"], str(exc))
            continue
        sale_map[record["id"]] = sale_id
        summary.imported[SALES] += 1
    return sale_map


def _restore_returns(store, document, phone_map, sale_map, summary) -> dict:
    return_map = {}
    for record in document["returns"]:
        new_phone_id = _mapped(phone_map, record.get("phone_id"))
        new_sale_id = _mapped(sale_map, record.get("sale_id"))
        if new_phone_id is None or new_sale_id is None:
            summary.skip(RETURNS, record["id"], "phone or sale was not restored")
            continue
        values = _pick(record, RETURNS, exclude=("phone_id", "sale_id"))
        values.update(phone_id=new_phone_id, sale_id=new_sale_id)
        try:
            with store.atomic():
                return_id = store.insert(RETURNS, values)
        except Exception as exc:
            summary.skip(RETURNS, record["id"], str(exc))
            continue
        return_map[record["id"]] = return_id
        summary.imported[RETURNS] += 1

    # Resale links point at returns, which only exist now
    for record in document["sales"]:
        new_sale_id = sale_map.get(record["id"])
        new_return_id = _mapped(return_map, record.get("original_return_id"))
        if new_sale_id is None or new_return_id is None:
            continue
        try:
            with store.atomic():
                store.update(SALES, new_sale_id, {"original_return_id": new_return_id})
        except Exception as exc:
            summary.warn(f"Resale link of sale {record['id']} was not restored: {exc}")
    return return_map


def _reconcile_phone_state(store, document, phone_map, summary) -> None:
    """
    Re-derive sold/in-stock from the restored sales and returns: the phone is
    sold iff one of its sales has no return.
    """
    returned = {r["sale_id"] for r in store.all(RETURNS)}
    sales_by_phone: dict[int, list[dict]] = {}
    for sale in store.all(SALES):
        sales_by_phone.setdefault(sale["phone_id"], []).append(sale)

    exported = {phone_map[p["id"]]: p for p in document["phones"] if p["id"] in phone_map}

    for phone_id, sales in sales_by_phone.items():
        active = [s for s in sales if s["id"] not in returned]
        old_id = exported[phone_id]["id"]
        try:
            with store.atomic():
                if active:
                    apply_sold_state(store, phone_id, active[-1])
                else:
                    cost = store.get(PHONES, phone_id)["purchase_price_cents"]
                    store.update(PHONES, phone_id, cleared_sale_fields(cost))
        except Exception as exc:
            summary.warn(f"State of phone {old_id} could not be re-derived: {exc}")
            continue
        if not active and exported[phone_id].get("status") == PHONE_STATUS_SOLD:
            logger.warning("Phone %s was exported as sold but every sale was returned", old_id)


def _restore_credits(store, document, phone_map, sale_map, summary) -> None:
    for record in document.get("credits") or []:
        new_phone_id = _mapped(phone_map, record.get("phone_id"))
        new_sale_id = _mapped(sale_map, record.get("sale_id"))
        if new_phone_id is None or new_sale_id is None:
            summary.skip(CREDITS, record["id"], "phone or sale was not restored")
            continue
        values = _pick(record, CREDITS, exclude=("phone_id", "sale_id"))
        values.update(phone_id=new_phone_id, sale_id=new_sale_id)
        try:
            with store.atomic():
                store.insert(CREDITS, values)
        except Exception as exc:
            summary.skip(CREDITS, record["id"], str(exc))
            continue
        summary.imported[CREDITS] += 1


def restore_backup(store: EntityStore, document: dict, summary: ImportSummary | None = None) -> ImportSummary:
    """
    Replace the owner's data with a validated document. Records get new ids.
    Credit payments are counted but not restored.
    """
    summary = summary or ImportSummary()

    with store.atomic():
        for entity in ENTITIES:
            store.clear(entity)

    phone_map = _restore_phones(store, document, summary)
    sale_map = _restore_sales(store, document, phone_map, summary)
    _restore_returns(store, document, phone_map, sale_map, summary)
    _reconcile_phone_state(store, document, phone_map, summary)
    _restore_credits(store, document, phone_map, sale_map, summary)

    summary.credit_payments_discarded = len(document.get("creditPayments") or [])
    if summary.credit_payments_discarded:
        summary.warnings.append(
            f"{summary.credit_payments_discarded} credit payments were not restored"
        )
        logger.warning("Discarded %s credit payments during restore", summary.credit_payments_discarded)

    logger.info("Restore finished: imported=%s skipped=%s", summary.imported, summary.skipped)
    return summary


def import_backup(store: EntityStore, raw, backup_dir: str) -> ImportSummary:
    """
    Parse, validate, safety-backup, then restore.

    Raises:
        ValidationFailed: the document is malformed; nothing was modified
        BackupError: the document could not be read, or the restore broke
            off after live data was cleared
    """
    try:
        document = parse_backup(raw)
    except (UnicodeDecodeError, ValueError) as exc:
        raise BackupError(
            f"Could not read backup file: {exc}. No data was modified.", data_modified=False
        ) from exc

    validate_backup(document)

    summary = ImportSummary()
    version = document.get("version")
    if version != BACKUP_VERSION:
        message = f"Backup version {version!r} differs from current version {BACKUP_VERSION}"
        summary.warn(message)

    summary.safety_backup = create_safety_backup(store, backup_dir)

    try:
        return restore_backup(store, document, summary)
    except Exception as exc:
        logger.exception("Restore failed")
        if summary.safety_backup:
            hint = f"A safety backup was saved as {summary.safety_backup}."
        else:
            hint = "No safety backup was created."
        raise BackupError(
            f"Restore failed: {exc}. Live data may be partially cleared. {hint}",
            safety_backup=summary.safety_backup,
        ) from exc

from flask import Blueprint, jsonify, request, g

from phone_pos.decorators import with_entity_store
from phone_pos.errors import LifecycleError
from phone_pos.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _snapshot():
    return reporting_service.load_snapshot(g.entity_store)


@reports_bp.get("/dashboard")
@with_entity_store
def dashboard_report():
    return jsonify(reporting_service.dashboard_report(_snapshot())), 200


@reports_bp.get("/inventory")
@with_entity_store
def inventory_report():
    return jsonify(reporting_service.inventory_report(_snapshot())), 200


@reports_bp.get("/profit")
@with_entity_store
def profit_report():
    date_range = reporting_service.DateRange(
        type=request.args.get("range", "today"),
        start_date=request.args.get("start"),
        end_date=request.args.get("end"),
    )
    include_rows = request.args.get("include_rows", "false").lower() == "true"

    try:
        report = reporting_service.profit_report(_snapshot(), date_range)
    except LifecycleError as exc:
        return jsonify({"error": str(exc)}), exc.status_code

    if not include_rows:
        report.pop("sales")
        report.pop("returns")
    return jsonify(report), 200


@reports_bp.get("/receivables")
@with_entity_store
def receivables_report():
    return jsonify(reporting_service.receivables_summary(_snapshot())), 200

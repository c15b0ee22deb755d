# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import with_entity_store
from ..errors import LifecycleError
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@with_entity_store
def list_sales_route():
    """
    Query params:
    - phone_id: int (optional)
    - resale_only: true/false (optional)
    """
    sales = sales_service.list_sales(
        g.entity_store,
        phone_id=request.args.get("phone_id", type=int),
        resale_only=request.args.get("resale_only", "false").lower() == "true",
    )
    return jsonify({"sales": sales, "count": len(sales)}), 200


@sales_bp.get("/active/<int:phone_id>")
@with_entity_store
def active_sale_route(phone_id: int):
    sale = sales_service.get_active_sale(g.entity_store, phone_id)
    if not sale:
        return jsonify({"error": "No sale found for this phone"}), 404
    return jsonify({"sale": sale}), 200


@sales_bp.post("")
@with_entity_store
def create_sale_route():
    """
    Sell an in-stock phone.

    Request body:
    {
        "phone_id": 1,
        "sale_price_cents": 15000,
        "sale_date": "17/10/2026",  (optional, default today)
        "customer_name": "...",  (optional)
        "payment_method": "cash",  (optional)
        "is_credit": false,  (optional)
        "credit_received_cents": 0  (credit sales only)
    }

    Returns:
        201: Sale recorded
        400: Invalid amounts
        404: Phone not found
        409: Phone already sold
    """
    payload = request.get_json(silent=True) or {}
    phone_id = payload.pop("phone_id", None)
    if phone_id is None:
        return jsonify({"error": "phone_id required"}), 400

    try:
        sale = sales_service.record_sale(g.entity_store, phone_id, payload)
        return jsonify({"sale": sale}), 201
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

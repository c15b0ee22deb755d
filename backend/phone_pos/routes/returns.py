# Overview: Flask API routes for returns; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import with_entity_store
from ..errors import LifecycleError
from ..services import return_service


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("")
@with_entity_store
def list_returns_route():
    returns = return_service.list_returns(
        g.entity_store,
        phone_id=request.args.get("phone_id", type=int),
    )
    return jsonify({"returns": returns, "count": len(returns)}), 200


@returns_bp.post("")
@with_entity_store
def create_return_route():
    """
    Take back a sold phone.

    Request body:
    {
        "phone_id": 1,
        "return_type": "refund",  (refund | trade_in | exchange)
        "return_price_cents": 14000,
        "new_price_cents": 9000,
        "return_reason": "...",  (optional)
        "return_date": "17/10/2026"  (optional, default today)
    }

    Returns:
        201: Return recorded, phone back in stock
        400: Invalid input
        404: Phone not found
        409: Phone is not sold
    """
    payload = request.get_json(silent=True) or {}
    phone_id = payload.pop("phone_id", None)
    if phone_id is None:
        return jsonify({"error": "phone_id required"}), 400

    try:
        ret = return_service.record_return(g.entity_store, phone_id, payload)
        return jsonify({"return": ret}), 201
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record return")
        return jsonify({"error": "Internal server error"}), 500

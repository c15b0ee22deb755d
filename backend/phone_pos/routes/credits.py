# Overview: Flask API routes for credit sales and instalments.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import with_entity_store
from ..errors import LifecycleError
from ..services import credit_service


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.get("")
@with_entity_store
def list_credits_route():
    credits = credit_service.list_credits(g.entity_store, status=request.args.get("status"))
    return jsonify({"credits": credits, "count": len(credits)}), 200


@credits_bp.get("/pending")
@with_entity_store
def pending_credits_route():
    credits = credit_service.list_pending_credits(g.entity_store)
    return jsonify({"credits": credits, "count": len(credits)}), 200


@credits_bp.get("/<int:credit_id>")
@with_entity_store
def get_credit_route(credit_id: int):
    try:
        return jsonify({"credit": credit_service.get_credit(g.entity_store, credit_id)}), 200
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code


@credits_bp.get("/<int:credit_id>/payments")
@with_entity_store
def payment_history_route(credit_id: int):
    try:
        payments = credit_service.get_payment_history(g.entity_store, credit_id)
        return jsonify({"payments": payments, "count": len(payments)}), 200
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code


@credits_bp.post("/<int:credit_id>/payments")
@with_entity_store
def record_payment_route(credit_id: int):
    """
    Record an instalment.

    Request body:
    {
        "amount_cents": 30000,
        "payment_date": "17/10/2026",  (optional, default today)
        "payment_method": "cash"  (optional)
    }

    Returns:
        201: Payment recorded
        400: Amount invalid or above the remaining amount
        404: Credit not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        payment = credit_service.record_credit_payment(
            g.entity_store,
            credit_id,
            payload.get("amount_cents"),
            payment_date=payload.get("payment_date"),
            payment_method=payload.get("payment_method"),
        )
        return jsonify({"payment": payment, "credit": credit_service.get_credit(g.entity_store, credit_id)}), 201
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record credit payment")
        return jsonify({"error": "Internal server error"}), 500

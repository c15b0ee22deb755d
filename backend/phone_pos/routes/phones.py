# Overview: Flask API routes for phone inventory; parses input and returns JSON responses.

"""
Phone inventory routes.

Every route is scoped to the caller's owner id (see with_entity_store).
Sold phones are read-only here; they change through the sale and return routes.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import with_entity_store
from ..errors import LifecycleError
from ..services import phone_service


phones_bp = Blueprint("phones", __name__, url_prefix="/api/phones")


@phones_bp.get("")
@with_entity_store
def list_phones_route():
    """
    List phones, newest first.

    Query params:
    - search: substring of imei1, imei2 or model name (case-insensitive)
    - status: in_stock | sold | all (default all)
    """
    phones = phone_service.list_phones(
        g.entity_store,
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify({"phones": phones, "count": len(phones)}), 200


@phones_bp.get("/<int:phone_id>")
@with_entity_store
def get_phone_route(phone_id: int):
    try:
        return jsonify({"phone": phone_service.get_phone(g.entity_store, phone_id)}), 200
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code


@phones_bp.get("/by-imei/<imei>")
@with_entity_store
def find_by_imei_route(imei: str):
    phone = phone_service.find_phone_by_imei(g.entity_store, imei)
    if not phone:
        return jsonify({"error": "Phone not found"}), 404
    return jsonify({"phone": phone}), 200


@phones_bp.post("")
@with_entity_store
def create_phone_route():
    """
    Register a purchased phone.

    Request body:
    {
        "imei1": "356789012345678",
        "imei2": "356789012345679",  (optional)
        "model_name": "iPhone 13",
        "purchase_price_cents": 10000,
        "purchase_date": "01/10/2026",  (optional)
        ...
    }

    Returns:
        201: Phone created (status in_stock)
        400: Invalid input
        409: Duplicate IMEI
    """
    payload = request.get_json(silent=True) or {}
    try:
        phone = phone_service.add_phone(g.entity_store, payload)
        return jsonify({"phone": phone}), 201
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create phone")
        return jsonify({"error": "Internal server error"}), 500


@phones_bp.put("/<int:phone_id>")
@with_entity_store
def update_phone_route(phone_id: int):
    """
    Edit an in-stock phone.

    Returns:
        200: Updated phone
        400: Invalid or non-writable fields
        404: Phone not found
        409: Phone is sold, or duplicate IMEI
    """
    payload = request.get_json(silent=True) or {}
    try:
        phone = phone_service.update_phone(g.entity_store, phone_id, payload)
        return jsonify({"phone": phone}), 200
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update phone")
        return jsonify({"error": "Internal server error"}), 500


@phones_bp.delete("/<int:phone_id>")
@with_entity_store
def delete_phone_route(phone_id: int):
    """
    Delete a phone. A sold phone takes its sales, returns and credits with it.

    Returns:
        200: Deleted
        404: Phone not found
        409: In-stock phone with sale history
    """
    try:
        phone_service.delete_phone(g.entity_store, phone_id)
        return jsonify({"ok": True}), 200
    except LifecycleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete phone")
        return jsonify({"error": "Internal server error"}), 500

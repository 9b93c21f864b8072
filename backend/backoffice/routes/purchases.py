# Overview: Flask API routes for purchases; parses input and returns JSON result envelopes.

"""Purchase API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import purchase_service


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def create_purchase_route():
    """
    Record a purchase.

    Delivered, non-cancelled purchases add stock for every line.
    """
    try:
        data = request.get_json(silent=True) or {}
        return result_response(purchase_service.create_purchase(data), 201)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    try:
        result = purchase_service.get_purchase(purchase_id, device_id=request.args.get("device_id", type=int))
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to load purchase")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@purchases_bp.put("/<int:purchase_id>")
def update_purchase_route(purchase_id: int):
    try:
        data = request.get_json(silent=True) or {}
        return result_response(purchase_service.update_purchase(purchase_id, data))
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@purchases_bp.delete("/<int:purchase_id>")
def delete_purchase_route(purchase_id: int):
    """Delete a purchase; stock it added is removed, never below zero."""
    try:
        result = purchase_service.delete_purchase(
            purchase_id,
            device_id=request.args.get("device_id", type=int),
            user_id=request.args.get("user_id", type=int),
        )
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"success": False, "message": "Internal server error"}), 500

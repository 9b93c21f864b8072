# Overview: Flask API routes for sales; parses input and returns JSON result envelopes.

# backend/backoffice/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _scope_args() -> dict:
    """device_id / user_id from the query string (delete has no body)."""
    return {
        "device_id": request.args.get("device_id", type=int),
        "user_id": request.args.get("user_id", type=int),
    }


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale.

    Committed statuses (completed, paid, credit, partial) reduce stock for
    every product line; pending and cancelled sales do not.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = sales_service.create_sale(data)
        return result_response(result, 201)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        result = sales_service.get_sale(sale_id, device_id=request.args.get("device_id", type=int))
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Update a sale.

    Stock is reconciled against the stored sale; a stale version_id in the
    body returns 409.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = sales_service.update_sale(sale_id, data)
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    try:
        result = sales_service.delete_sale(sale_id, **_scope_args())
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"success": False, "message": "Internal server error"}), 500

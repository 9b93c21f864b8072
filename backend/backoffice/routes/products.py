# Overview: Flask API routes for product stock; history queries and manual adjustments.

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import catalog_service, ledger_service, stock_service
from ..time_utils import parse_iso_datetime

"""
Time semantics:
- `since` accepts ISO-8601 datetimes with Z/offsets; normalized to UTC-naive.
- since filtering is inclusive: created_at >= since.
"""

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        return jsonify({"success": False, "message": f"Product {product_id} not found"}), 404
    return jsonify({"success": True, "data": product.to_dict()})


@products_bp.get("/<int:product_id>/stock-history")
def stock_history_route(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        return jsonify({"success": False, "message": f"Product {product_id} not found"}), 404

    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))

    try:
        since = parse_iso_datetime(request.args.get("since"))
    except ValueError:
        return jsonify({"success": False, "message": "since must be an ISO-8601 datetime"}), 400

    entries = ledger_service.list_stock_history(
        product_id,
        reference_type=request.args.get("reference_type") or None,
        reference_id=request.args.get("reference_id", type=int),
        since=since,
        limit=limit,
    )
    return jsonify({
        "success": True,
        "data": {
            "product": product.to_dict(),
            "ledger_balance": ledger_service.ledger_balance(product_id),
            "entries": [entry.to_dict() for entry in entries],
        },
    })


@products_bp.post("/<int:product_id>/adjust")
def adjust_stock_route(product_id: int):
    """
    Manual stock correction.

    Body: {"quantity_delta": int (non-zero), "note": str?, "user_id": int?, "device_id": int?}
    """
    try:
        data = request.get_json(silent=True) or {}
        result = stock_service.adjust_stock(
            product_id,
            data.get("quantity_delta"),
            note=data.get("note"),
            user_id=data.get("user_id"),
            device_id=data.get("device_id"),
        )
        return result_response(result)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"success": False, "message": "Internal server error"}), 500

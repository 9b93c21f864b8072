# Overview: Purchase (supplier receipt) operations; reconciles added stock on every change.

"""
Purchase Service

A purchase adds stock while it is delivered and not cancelled. Edits move only
the net difference between what the stored purchase had added and what the
edited purchase should have added; reversals never drive stock below zero.

DESIGN:
- Supplier is required on the header; total must be positive
- Line items must reference products (services are never purchased)
- paid receives the full total, cancelled receives nothing, other statuses
  take the submitted received amount
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Product, Purchase, PurchaseItem
from ..time_utils import utcnow
from ..validation import (
    LineInput,
    check_received,
    coerce_cents,
    coerce_date,
    coerce_int,
    coerce_text,
    parse_line_items,
)
from .accounting_service import FinancialEvent, record_financial_event
from .concurrency import ConcurrencyConflict, lock_for_update, run_in_transaction
from .line_items import match_lines
from .reconciler import (
    TransactionSnapshot,
    plan_purchase_create,
    plan_purchase_delete,
    plan_purchase_update,
)
from .results import NOT_FOUND, OperationResult, ValidationError, service_operation
from .stock_policy import normalize_status
from .stock_service import LedgerContext, apply_stock_moves

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_STATUS = "credit"
DEFAULT_DELIVERY_STATUS = "delivered"

_HEADER_FIELDS = (
    "supplier",
    "status",
    "purchase_status",
    "payment_method",
    "total_cents",
    "received_cents",
    "purchase_date",
)


def received_for_purchase(status: str, total_cents: int, raw_received, default: int = 0) -> int:
    if status == "paid":
        return total_cents
    if status == "cancelled":
        return 0
    received = coerce_cents(raw_received, "received_cents", default=default)
    check_received(received, total_cents)
    return received


def _check_products(lines: list[LineInput]) -> None:
    ids = {line.product_id for line in lines}
    found = {pid for (pid,) in db.session.query(Product.id).filter(Product.id.in_(ids)).all()}
    for line in lines:
        if line.product_id not in found:
            raise ValidationError(f"Item {line.index}: Product {line.product_id} not found")


def _snapshot(purchase: Purchase) -> TransactionSnapshot:
    return TransactionSnapshot.of(
        purchase.status,
        purchase.payment_method,
        [(item.product_id, item.quantity) for item in purchase.items],
        purchase_status=purchase.purchase_status,
    )


def _ledger_context(purchase: Purchase, user_id: int | None) -> LedgerContext:
    return LedgerContext(
        reference_type="purchase",
        reference_id=purchase.id,
        user_id=user_id if user_id is not None else purchase.created_by_user_id,
        device_id=purchase.device_id,
        payment_method=purchase.payment_method,
        status=purchase.status,
    )


def _financial_values(purchase: Purchase) -> dict:
    return {
        "total_cents": purchase.total_cents,
        "cogs_cents": 0,
        "received_cents": purchase.received_cents,
        "outstanding_cents": purchase.outstanding_cents,
        "status": purchase.status,
        "payment_method": purchase.payment_method,
    }


def _purchase_event(purchase: Purchase, event_type: str, user_id, description: str, previous=None) -> None:
    record_financial_event(FinancialEvent(
        reference_type="purchase",
        reference_id=purchase.id,
        event_type=event_type,
        user_id=user_id if user_id is not None else purchase.created_by_user_id,
        device_id=purchase.device_id,
        description=description,
        previous_values=previous,
        **_financial_values(purchase),
    ))


def _load_purchase(purchase_id: int, device_id: int | None = None, *, for_update: bool = False) -> Purchase:
    query = db.session.query(Purchase).filter_by(id=purchase_id)
    if device_id is not None:
        query = query.filter_by(device_id=device_id)
    if for_update:
        query = lock_for_update(query)
    purchase = query.first()
    if purchase is None:
        raise ValidationError(f"Purchase {purchase_id} not found", kind=NOT_FOUND)
    return purchase


def _parse_header(payload: dict) -> dict:
    header = {}
    if "supplier" in payload:
        supplier = coerce_text(payload.get("supplier"), "supplier", max_length=255)
        if not supplier:
            raise ValidationError("Supplier is required")
        header["supplier"] = supplier
    if "status" in payload:
        header["status"] = normalize_status(payload.get("status"), default=DEFAULT_PAYMENT_STATUS)
    if "purchase_status" in payload:
        header["purchase_status"] = normalize_status(payload.get("purchase_status"), default=DEFAULT_DELIVERY_STATUS)
    if "payment_method" in payload:
        method = coerce_text(payload.get("payment_method"), "payment_method", max_length=50)
        header["payment_method"] = (method or "cash").lower()
    if payload.get("purchase_date") is not None:
        header["purchase_date"] = coerce_date(payload.get("purchase_date"), "purchase_date")
    return header


def _line_total(lines) -> int:
    total = sum(line.unit_price_cents * line.quantity for line in lines)
    if total <= 0:
        raise ValidationError("Total amount must be greater than 0")
    return total


@service_operation("create purchase")
def create_purchase(payload: dict) -> OperationResult:
    """Record a purchase; delivered, non-cancelled purchases add stock."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    header = _parse_header(payload)
    if "supplier" not in header:
        raise ValidationError("Supplier is required")
    lines = parse_line_items(payload.get("items"), with_cost=False)
    total = _line_total(lines)
    status = header.get("status", DEFAULT_PAYMENT_STATUS)
    received = received_for_purchase(status, total, payload.get("received_cents"))
    user_id = coerce_int(payload.get("user_id", payload.get("created_by_user_id")), "user_id", required=False)
    device_id = coerce_int(payload.get("device_id"), "device_id", required=False)

    def _op():
        _check_products(lines)
        purchase = Purchase(
            device_id=device_id,
            supplier=header["supplier"],
            status=status,
            purchase_status=header.get("purchase_status", DEFAULT_DELIVERY_STATUS),
            payment_method=header.get("payment_method", "cash"),
            total_cents=total,
            received_cents=received,
            created_by_user_id=user_id,
        )
        if header.get("purchase_date") is not None:
            purchase.purchase_date = header["purchase_date"]
        for line in lines:
            purchase.items.append(PurchaseItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
            ))
        db.session.add(purchase)
        db.session.flush()

        moves = plan_purchase_create(_snapshot(purchase), purchase.id, purchase.supplier)
        entries = apply_stock_moves(moves, _ledger_context(purchase, user_id))
        _purchase_event(
            purchase, "purchase_recorded", user_id,
            f"Purchase #{purchase.id} from {purchase.supplier} recorded",
        )
        return purchase.to_dict(), entries

    data, entries = run_in_transaction(_op)
    logger.info("Created purchase %s with %d ledger entries", data["id"], len(entries))
    return OperationResult.ok(
        "Purchase created successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


def _line_signature(items) -> list[tuple]:
    return [(item.id, item.product_id, item.quantity, item.unit_price_cents) for item in items]


@service_operation("update purchase")
def update_purchase(purchase_id: int, payload: dict) -> OperationResult:
    """Edit a purchase; absent keys keep stored values, `items` replaces the item list."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    header = _parse_header(payload)
    lines = parse_line_items(payload["items"], with_cost=False) if payload.get("items") is not None else None
    user_id = coerce_int(payload.get("user_id"), "user_id", required=False)
    device_id = coerce_int(payload.get("device_id"), "device_id", required=False)
    expected_version = payload.get("version_id")

    def _op():
        purchase = _load_purchase(purchase_id, device_id, for_update=True)
        if expected_version is not None and coerce_int(expected_version, "version_id") != purchase.version_id:
            raise ConcurrencyConflict(
                f"Purchase {purchase.id} was modified by another user "
                f"(version {purchase.version_id}); reload and try again"
            )

        old_snapshot = _snapshot(purchase)
        previous = _financial_values(purchase)
        previous_header = {name: getattr(purchase, name) for name in _HEADER_FIELDS}
        previous_lines = _line_signature(purchase.items)

        for name, value in header.items():
            setattr(purchase, name, value)

        if lines is not None:
            _check_products(lines)
            match = match_lines(purchase.items, lines, f"purchase {purchase.id}")
            for item, line in match.updated:
                item.product_id = line.product_id
                item.quantity = line.quantity
                item.unit_price_cents = line.unit_price_cents
            for item in match.removed:
                purchase.items.remove(item)
            for line in match.added:
                purchase.items.append(PurchaseItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                ))
            purchase.total_cents = _line_total(purchase.items)

        purchase.received_cents = received_for_purchase(
            purchase.status, purchase.total_cents, payload.get("received_cents"),
            default=previous["received_cents"],
        )

        current_header = {name: getattr(purchase, name) for name in _HEADER_FIELDS}
        if current_header == previous_header and _line_signature(purchase.items) == previous_lines:
            data = purchase.to_dict()
            db.session.rollback()
            return data, None

        purchase.updated_at = utcnow()
        db.session.flush()

        moves = plan_purchase_update(old_snapshot, _snapshot(purchase), purchase.id, purchase.supplier)
        entries = apply_stock_moves(moves, _ledger_context(purchase, user_id))

        newly_cancelled = purchase.status == "cancelled" and previous["status"] != "cancelled"
        _purchase_event(
            purchase,
            "purchase_cancelled" if newly_cancelled else "purchase_adjusted",
            user_id,
            f"Purchase #{purchase.id} adjusted ({previous['status']} -> {purchase.status})",
            previous=previous,
        )
        return purchase.to_dict(), entries

    data, entries = run_in_transaction(_op)
    if entries is None:
        return OperationResult.ok("No changes detected", data=data)

    logger.info("Updated purchase %s with %d ledger entries", purchase_id, len(entries))
    return OperationResult.ok(
        "Purchase updated successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


@service_operation("delete purchase")
def delete_purchase(purchase_id: int, device_id: int | None = None, user_id: int | None = None) -> OperationResult:
    """Delete a purchase, removing stock it had added (floored at zero)."""

    def _op():
        purchase = _load_purchase(purchase_id, device_id, for_update=True)
        data = purchase.to_dict()

        moves = plan_purchase_delete(_snapshot(purchase), purchase.id)
        entries = apply_stock_moves(moves, _ledger_context(purchase, user_id))
        _purchase_event(
            purchase, "purchase_deleted", user_id,
            f"Purchase #{purchase.id} from {purchase.supplier} deleted",
        )

        db.session.delete(purchase)
        db.session.flush()
        return data, entries

    data, entries = run_in_transaction(_op)
    logger.info("Deleted purchase %s with %d ledger entries", purchase_id, len(entries))
    return OperationResult.ok(
        "Purchase deleted successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


@service_operation("load purchase")
def get_purchase(purchase_id: int, device_id: int | None = None) -> OperationResult:
    purchase = _load_purchase(purchase_id, device_id)
    return OperationResult.ok("Purchase loaded", data=purchase.to_dict())

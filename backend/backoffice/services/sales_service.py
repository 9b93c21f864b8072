"""
Sales service: create, edit and delete sales while keeping on-hand stock,
the stock ledger and the financial journal in step with every change.

Invariants (authoritative):
- Every public function returns an OperationResult; nothing is raised past it.
- Each operation runs in one atomic scope: the sale row, its items, stock
  moves, ledger entries and the financial event commit together or not at all.
- Edits are reconciled against the stored snapshot read inside the same scope,
  never against client-supplied "old" values.
- Service line items never touch stock and never produce ledger entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import Sale, SaleItem
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
from .accounting_service import FinancialEvent, compute_cogs, record_financial_event
from .catalog_service import PRODUCT, SERVICE, CatalogItem, resolve_catalog_items
from .concurrency import ConcurrencyConflict, lock_for_update, run_in_transaction
from .line_items import match_lines
from .reconciler import TransactionSnapshot, plan_sale_create, plan_sale_delete, plan_sale_update
from .results import NOT_FOUND, OperationResult, ValidationError, service_operation
from .stock_policy import StatusImpactPolicy, normalize_status
from .stock_service import LedgerContext, apply_stock_moves

logger = logging.getLogger(__name__)

FULLY_PAID_STATUSES = frozenset({"completed", "paid"})
PARTIAL_PAYMENT_STATUSES = frozenset({"credit", "partial", "pending"})

_HEADER_FIELDS = (
    "status",
    "payment_method",
    "customer_id",
    "customer_name",
    "staff_id",
    "discount_cents",
    "received_cents",
    "total_cents",
    "sale_type",
    "sale_date",
)


@dataclass(frozen=True)
class ResolvedLine:
    """A payload line bound to its catalog entry."""
    source: LineInput
    entry: CatalogItem
    unit_cost_cents: int

    @property
    def kind(self) -> str:
        return self.entry.kind

    @property
    def is_service(self) -> bool:
        return self.entry.is_service

    @property
    def product_id(self) -> int:
        return self.source.product_id

    @property
    def quantity(self) -> int:
        return self.source.quantity

    @property
    def unit_price_cents(self) -> int:
        return self.source.unit_price_cents


def received_for_status(status: str, total_cents: int, raw_received, default: int = 0) -> int:
    """
    Amount received implied by the sale status.

    completed/paid are fully paid, cancelled receives nothing, and
    credit/partial/pending take the submitted amount (never above the total).
    """
    if status in FULLY_PAID_STATUSES:
        return total_cents
    if status == "cancelled":
        return 0
    if status in PARTIAL_PAYMENT_STATUSES:
        received = coerce_cents(raw_received, "received_cents", default=default)
        check_received(received, total_cents)
        return received
    return total_cents


def _resolve_lines(lines: list[LineInput]) -> list[ResolvedLine]:
    catalog = resolve_catalog_items(line.product_id for line in lines)
    resolved = []
    for line in lines:
        entry = catalog.get(line.product_id)
        if entry is None:
            raise ValidationError(f"Item {line.index}: Product or service {line.product_id} not found")
        cost = line.unit_cost_cents if line.unit_cost_cents is not None else entry.cost_cents
        resolved.append(ResolvedLine(line, entry, cost))
    return resolved


def _totals(lines, discount_cents: int) -> tuple[int, int]:
    subtotal = sum(line.unit_price_cents * line.quantity for line in lines)
    return subtotal, max(0, subtotal - discount_cents)


def _sale_type(lines) -> str:
    return SERVICE if any(line.is_service for line in lines) else PRODUCT


def _snapshot(sale: Sale) -> TransactionSnapshot:
    stocked = [(item.product_id, item.quantity) for item in sale.items if item.item_kind == PRODUCT]
    return TransactionSnapshot.of(sale.status, sale.payment_method, stocked)


def _ledger_context(sale: Sale, user_id: int | None) -> LedgerContext:
    return LedgerContext(
        reference_type="sale",
        reference_id=sale.id,
        user_id=user_id if user_id is not None else sale.created_by_user_id,
        device_id=sale.device_id,
        payment_method=sale.payment_method,
        status=sale.status,
        customer_name=sale.customer_name,
    )


def _financial_values(sale: Sale) -> dict:
    return {
        "total_cents": sale.total_cents,
        "cogs_cents": compute_cogs(sale.items),
        "received_cents": sale.received_cents,
        "outstanding_cents": sale.outstanding_cents,
        "status": sale.status,
        "payment_method": sale.payment_method,
    }


def _sale_event(sale: Sale, event_type: str, user_id, description: str, previous: dict | None = None) -> None:
    event = FinancialEvent(
        reference_type="sale",
        reference_id=sale.id,
        event_type=event_type,
        user_id=user_id if user_id is not None else sale.created_by_user_id,
        device_id=sale.device_id,
        description=description,
        previous_values=previous,
        **_financial_values(sale),
    )
    record_financial_event(event)


def _load_sale(sale_id: int, device_id: int | None = None, *, for_update: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if device_id is not None:
        query = query.filter_by(device_id=device_id)
    if for_update:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise ValidationError(f"Sale {sale_id} not found", kind=NOT_FOUND)
    return sale


def _check_version(sale: Sale, expected) -> None:
    if expected is None:
        return
    if coerce_int(expected, "version_id") != sale.version_id:
        raise ConcurrencyConflict(
            f"Sale {sale.id} was modified by another user (version {sale.version_id}); reload and try again"
        )


def _parse_header(payload: dict) -> dict:
    """Header fields present in the payload, validated. Absent keys are omitted."""
    header = {}
    if "status" in payload:
        header["status"] = normalize_status(payload.get("status"))
    if "payment_method" in payload:
        method = coerce_text(payload.get("payment_method"), "payment_method", max_length=50)
        header["payment_method"] = (method or "cash").lower()
    if "customer_id" in payload:
        header["customer_id"] = coerce_int(payload.get("customer_id"), "customer_id", required=False)
    if "customer_name" in payload:
        header["customer_name"] = coerce_text(payload.get("customer_name"), "customer_name", max_length=255)
    if "staff_id" in payload:
        header["staff_id"] = coerce_int(payload.get("staff_id"), "staff_id", required=False)
    if "discount_cents" in payload:
        header["discount_cents"] = coerce_cents(payload.get("discount_cents"), "discount_cents")
    if payload.get("sale_date") is not None:
        header["sale_date"] = coerce_date(payload.get("sale_date"), "sale_date")
    return header


@service_operation("create sale")
def create_sale(payload: dict) -> OperationResult:
    """Create a sale; committed statuses take stock immediately."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    header = _parse_header(payload)
    status = header.get("status", normalize_status(None))
    lines = parse_line_items(payload.get("items"))
    user_id = coerce_int(payload.get("user_id", payload.get("created_by_user_id")), "user_id", required=False)
    device_id = coerce_int(payload.get("device_id"), "device_id", required=False)
    policy = StatusImpactPolicy.from_config()

    def _op():
        resolved = _resolve_lines(lines)
        discount = header.get("discount_cents", 0)
        _, total = _totals(resolved, discount)
        received = received_for_status(status, total, payload.get("received_cents"))

        sale = Sale(
            device_id=device_id,
            customer_id=header.get("customer_id"),
            customer_name=header.get("customer_name"),
            created_by_user_id=user_id,
            staff_id=header.get("staff_id"),
            status=status,
            payment_method=header.get("payment_method", "cash"),
            sale_type=_sale_type(resolved),
            discount_cents=discount,
            total_cents=total,
            received_cents=received,
        )
        if header.get("sale_date") is not None:
            sale.sale_date = header["sale_date"]
        for line in resolved:
            sale.items.append(SaleItem(
                product_id=line.product_id,
                item_kind=line.kind,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                unit_cost_cents=line.unit_cost_cents,
                notes=line.source.notes,
            ))
        db.session.add(sale)
        db.session.flush()

        moves = plan_sale_create(_snapshot(sale), policy)
        entries = apply_stock_moves(moves, _ledger_context(sale, user_id))
        _sale_event(sale, "sale_recorded", user_id, f"Sale #{sale.id} recorded ({status})")
        return sale.to_dict(), entries

    data, entries = run_in_transaction(_op)
    logger.info("Created sale %s with %d ledger entries", data["id"], len(entries))
    return OperationResult.ok(
        "Sale created successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


def _line_signature(items) -> list[tuple]:
    return [
        (item.id, item.product_id, item.quantity, item.unit_price_cents, item.unit_cost_cents, item.notes)
        for item in items
    ]


@service_operation("update sale")
def update_sale(sale_id: int, payload: dict) -> OperationResult:
    """
    Edit a sale and reconcile stock against its stored state.

    Keys absent from the payload keep their stored values; when `items` is
    present it replaces the item list (matched by item id, omitted items
    are removed).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    header = _parse_header(payload)
    lines = parse_line_items(payload["items"]) if payload.get("items") is not None else None
    user_id = coerce_int(payload.get("user_id"), "user_id", required=False)
    device_id = coerce_int(payload.get("device_id"), "device_id", required=False)
    expected_version = payload.get("version_id")
    policy = StatusImpactPolicy.from_config()

    def _op():
        sale = _load_sale(sale_id, device_id, for_update=True)
        _check_version(sale, expected_version)

        old_snapshot = _snapshot(sale)
        previous = _financial_values(sale)
        previous_header = {name: getattr(sale, name) for name in _HEADER_FIELDS}
        previous_lines = _line_signature(sale.items)

        for name, value in header.items():
            setattr(sale, name, value)

        if lines is not None:
            resolved = {line.source.index: line for line in _resolve_lines(lines)}
            match = match_lines(sale.items, lines, f"sale {sale.id}")
            for item, line in match.updated:
                bound = resolved[line.index]
                # Keep the stored cost snapshot unless a new cost or product was given
                if line.unit_cost_cents is not None or item.product_id != bound.product_id:
                    item.unit_cost_cents = bound.unit_cost_cents
                item.product_id = bound.product_id
                item.item_kind = bound.kind
                item.quantity = bound.quantity
                item.unit_price_cents = bound.unit_price_cents
                item.notes = line.notes
            for item in match.removed:
                sale.items.remove(item)
            for line in match.added:
                bound = resolved[line.index]
                sale.items.append(SaleItem(
                    product_id=bound.product_id,
                    item_kind=bound.kind,
                    quantity=bound.quantity,
                    unit_price_cents=bound.unit_price_cents,
                    unit_cost_cents=bound.unit_cost_cents,
                    notes=line.notes,
                ))
            sale.sale_type = _sale_type(resolved.values())

        _, total = _totals(sale.items, sale.discount_cents or 0)
        sale.total_cents = total
        sale.received_cents = received_for_status(
            sale.status, total, payload.get("received_cents"), default=previous["received_cents"],
        )

        current_header = {name: getattr(sale, name) for name in _HEADER_FIELDS}
        if current_header == previous_header and _line_signature(sale.items) == previous_lines:
            data = sale.to_dict()
            db.session.rollback()
            return data, None

        sale.updated_at = utcnow()
        db.session.flush()

        moves = plan_sale_update(old_snapshot, _snapshot(sale), policy)
        entries = apply_stock_moves(moves, _ledger_context(sale, user_id))
        _sale_event(
            sale, "sale_adjusted", user_id,
            f"Sale #{sale.id} adjusted ({previous['status']} -> {sale.status})",
            previous=previous,
        )
        return sale.to_dict(), entries

    data, entries = run_in_transaction(_op)
    if entries is None:
        return OperationResult.ok("No changes detected", data=data)

    logger.info("Updated sale %s with %d ledger entries", sale_id, len(entries))
    return OperationResult.ok(
        "Sale updated successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


@service_operation("delete sale")
def delete_sale(sale_id: int, device_id: int | None = None, user_id: int | None = None) -> OperationResult:
    """Delete a sale, restoring stock it had taken."""
    policy = StatusImpactPolicy.from_config()

    def _op():
        sale = _load_sale(sale_id, device_id, for_update=True)
        data = sale.to_dict()

        moves = plan_sale_delete(_snapshot(sale), policy)
        entries = apply_stock_moves(moves, _ledger_context(sale, user_id))
        _sale_event(sale, "sale_deleted", user_id, f"Sale #{sale.id} deleted ({sale.status})")

        db.session.delete(sale)
        db.session.flush()
        return data, entries

    data, entries = run_in_transaction(_op)
    logger.info("Deleted sale %s with %d ledger entries", sale_id, len(entries))
    return OperationResult.ok(
        "Sale deleted successfully",
        data=data,
        ledger_entries=[entry.to_dict() for entry in entries],
    )


@service_operation("load sale")
def get_sale(sale_id: int, device_id: int | None = None) -> OperationResult:
    sale = _load_sale(sale_id, device_id)
    return OperationResult.ok("Sale loaded", data=sale.to_dict())

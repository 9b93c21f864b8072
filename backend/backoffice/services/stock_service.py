# Overview: Stock mutator; applies signed deltas to on-hand stock and pairs them with ledger entries.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..extensions import db
from ..models import Product, StockLedgerEntry
from .concurrency import lock_for_update, run_in_transaction
from .ledger_service import append_stock_entry
from .reconciler import StockMove
from .results import OperationResult, ValidationError, service_operation

logger = logging.getLogger(__name__)

SUBTRACT = "subtract"
ADD = "add"


@dataclass(frozen=True)
class StockMutation:
    product_id: int
    is_service: bool
    before: int | None = None
    after: int | None = None

    @property
    def applied(self) -> int:
        """Signed change actually written to stock (0 for services)."""
        if self.is_service:
            return 0
        return self.after - self.before


@dataclass(frozen=True)
class LedgerContext:
    """Who/what a batch of stock moves belongs to; copied onto every ledger row."""
    reference_type: str
    reference_id: int | None
    user_id: int | None = None
    device_id: int | None = None
    payment_method: str | None = None
    status: str | None = None
    customer_name: str | None = None


def apply_delta(
    product_id: int,
    magnitude: int,
    direction: str,
    context: str | None = None,
    *,
    clamp: bool = False,
) -> StockMutation:
    """
    Apply one stock change to a product.

    - Unknown ids are services: success, no mutation.
    - subtract may drive stock negative (logged, never blocked).
    - clamp floors the result at zero; the returned mutation carries the
      change that was really applied.
    """
    if isinstance(magnitude, bool) or not isinstance(magnitude, int) or magnitude < 0:
        raise ValueError("magnitude must be a non-negative integer")
    if direction not in (SUBTRACT, ADD):
        raise ValueError(f"invalid stock direction: {direction!r}")

    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        logger.debug("Skipping stock update for id %s: not a product (service)", product_id)
        return StockMutation(product_id=product_id, is_service=True)

    before = product.stock or 0
    if direction == SUBTRACT:
        if before < magnitude:
            logger.warning(
                "Insufficient stock for product %s: %d available, %d requested (%s)",
                product.name, before, magnitude, context or "stock reduction",
            )
        after = before - magnitude
    else:
        after = before + magnitude

    if clamp and after < 0:
        after = 0

    product.stock = after
    db.session.flush()

    logger.info(
        "Stock for product %s: %d -> %d (%s)",
        product.name, before, after, context or direction,
    )
    return StockMutation(product_id=product_id, is_service=False, before=before, after=after)


def apply_stock_moves(moves: Iterable[StockMove], context: LedgerContext) -> list[StockLedgerEntry]:
    """
    Drive planned moves through the mutator and the ledger.

    Must run inside an atomic scope. Returns the ledger entries written.
    """
    entries: list[StockLedgerEntry] = []
    for move in moves:
        applied = 0
        if move.quantity_change != 0:
            mutation = apply_delta(
                move.product_id,
                move.magnitude,
                move.direction,
                f"{context.reference_type} #{context.reference_id}: {move.reason}",
                clamp=move.clamp,
            )
            if mutation.is_service:
                continue
            applied = mutation.applied

        entry = append_stock_entry(
            product_id=move.product_id,
            change_type=move.reason,
            quantity_change=applied,
            reference_type=context.reference_type,
            reference_id=context.reference_id,
            notes=move.note,
            user_id=context.user_id,
            device_id=context.device_id,
            payment_method=context.payment_method,
            status=context.status,
            customer_name=context.customer_name,
        )
        if entry is not None:
            entries.append(entry)
    return entries


@service_operation("adjust stock")
def adjust_stock(
    product_id: int,
    quantity_delta: int,
    *,
    note: str | None = None,
    user_id: int | None = None,
    device_id: int | None = None,
) -> OperationResult:
    """Manual stock correction recorded as an 'adjustment' ledger entry."""
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise ValidationError("quantity_delta must be an integer")
    if quantity_delta == 0:
        raise ValidationError("quantity_delta must be non-zero")

    def _op():
        if db.session.get(Product, product_id) is None:
            raise ValidationError(f"Product {product_id} not found", kind="not_found")

        move = StockMove(product_id, quantity_delta, "adjustment", note or "Manual stock adjustment")
        entries = apply_stock_moves([move], LedgerContext("manual", None, user_id=user_id, device_id=device_id))
        product = db.session.get(Product, product_id)
        return product.to_dict(), entries

    product_data, entries = run_in_transaction(_op)
    return OperationResult.ok(
        "Stock adjusted successfully",
        data={"product": product_data},
        ledger_entries=[e.to_dict() for e in entries],
    )

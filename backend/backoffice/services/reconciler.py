# Overview: Transaction reconciler; plans stock moves from old/new transaction snapshots.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .stock_policy import (
    COMMITTED,
    RELEASED,
    StatusImpactPolicy,
    normalize_status,
    purchase_impact,
    sale_reason,
)
"""
Reconciliation is pure: the functions here only read snapshots and return an
ordered list of StockMove. Applying them (stock writes + ledger rows) is
stock_service.apply_stock_moves.

Quantities are merged per product before any comparison, so duplicate
product lines in one transaction never produce positional noise.
"""


@dataclass(frozen=True)
class LineSnapshot:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class TransactionSnapshot:
    status: str
    payment_method: str | None = None
    items: tuple[LineSnapshot, ...] = field(default_factory=tuple)
    # Purchases only: delivery status
    purchase_status: str | None = None

    @classmethod
    def of(cls, status, payment_method=None, items=(), purchase_status=None) -> "TransactionSnapshot":
        lines = tuple(
            item if isinstance(item, LineSnapshot) else LineSnapshot(int(item[0]), int(item[1]))
            for item in items
        )
        return cls(status, payment_method, lines, purchase_status)


@dataclass(frozen=True)
class StockMove:
    """
    One planned ledger event.

    quantity_change is signed: negative takes stock, positive gives it back,
    zero records an inert transition. clamp floors the resulting stock at 0.
    """
    product_id: int
    quantity_change: int
    reason: str
    note: str = ""
    clamp: bool = False

    @property
    def magnitude(self) -> int:
        return abs(self.quantity_change)

    @property
    def direction(self) -> str | None:
        if self.quantity_change < 0:
            return "subtract"
        if self.quantity_change > 0:
            return "add"
        return None


def merge_quantities(items: Iterable[LineSnapshot]) -> dict[int, int]:
    """Sum quantities per product, keeping first-seen order."""
    merged: dict[int, int] = {}
    for item in items:
        merged[item.product_id] = merged.get(item.product_id, 0) + int(item.quantity)
    return merged


def _union_order(first: dict[int, int], second: dict[int, int]) -> list[int]:
    ordered = list(first)
    ordered.extend(pid for pid in second if pid not in first)
    return ordered


def _policy(policy: StatusImpactPolicy | None) -> StatusImpactPolicy:
    return policy if policy is not None else StatusImpactPolicy.from_config()


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

def plan_sale_create(new: TransactionSnapshot, policy: StatusImpactPolicy | None = None) -> list[StockMove]:
    policy = _policy(policy)
    status = normalize_status(new.status)
    quantities = merge_quantities(new.items)
    method = new.payment_method or "cash"

    state = policy.sale_state(status)
    if state == COMMITTED:
        reason = sale_reason("sale", status)
        note = f"New sale created - {status} via {method}"
        return [StockMove(pid, -qty, reason, note) for pid, qty in quantities.items()]

    if state == RELEASED:
        reason = sale_reason("sale", status)
        note = f"Sale created with status {status} - no immediate stock impact"
    else:
        reason = "sale_pending"
        note = "Sale created as pending - no stock impact yet"
    return [StockMove(pid, 0, reason, note) for pid in quantities]


def _item_moves(old_q: dict[int, int], new_q: dict[int, int], status: str) -> list[StockMove]:
    moves = []
    for pid in _union_order(old_q, new_q):
        old_qty = old_q.get(pid, 0)
        new_qty = new_q.get(pid, 0)
        diff = new_qty - old_qty
        if diff == 0:
            continue
        if diff > 0:
            if old_qty == 0:
                reason = "sale_item_added"
                note = f"Item added to sale: {diff} units | Status: {status}"
            else:
                reason = "sale_item_increased"
                note = f"Sale item quantity increased by {diff} units"
            moves.append(StockMove(pid, -diff, reason, note))
        else:
            if new_qty == 0:
                reason = "sale_item_removed"
                note = f"Item removed from sale: {-diff} units restored"
            else:
                reason = "sale_item_decreased"
                note = f"Sale item quantity decreased by {-diff} units"
            moves.append(StockMove(pid, -diff, reason, note))
    return moves


def plan_sale_update(
    old: TransactionSnapshot,
    new: TransactionSnapshot,
    policy: StatusImpactPolicy | None = None,
) -> list[StockMove]:
    """
    Net stock moves for a sale edit.

    Entering COMMITTED takes the new quantities; leaving it gives back the
    old ones; staying COMMITTED applies per-product differences only.
    """
    policy = _policy(policy)
    old_status = normalize_status(old.status)
    new_status = normalize_status(new.status)
    old_q = merge_quantities(old.items)
    new_q = merge_quantities(new.items)

    was_committed = policy.sale_state(old_status) == COMMITTED
    now_committed = policy.sale_state(new_status) == COMMITTED
    status_changed = old_status != new_status

    if not was_committed and now_committed:
        note = f"Status changed from {old_status} to {new_status} - stock reduced"
        return [StockMove(pid, -qty, "sale_status_changed", note) for pid, qty in new_q.items()]

    if was_committed and not now_committed:
        note = f"Status changed from {old_status} to {new_status} - stock restored"
        reason = "sale_returned" if policy.sale_state(new_status) == RELEASED else "sale_pending"
        return [StockMove(pid, qty, reason, note) for pid, qty in old_q.items()]

    if was_committed and now_committed:
        moves = _item_moves(old_q, new_q, new_status)
        if status_changed:
            moved = {m.product_id for m in moves}
            note = f"Status changed from {old_status} to {new_status} - both affect stock equally"
            moves.extend(
                StockMove(pid, 0, "sale_status_changed", note)
                for pid in new_q
                if pid not in moved
            )
        return moves

    if status_changed:
        note = f"Status changed from {old_status} to {new_status} - no stock impact"
        return [StockMove(pid, 0, "sale_status_changed", note) for pid in new_q]
    return []


def plan_sale_delete(old: TransactionSnapshot, policy: StatusImpactPolicy | None = None) -> list[StockMove]:
    policy = _policy(policy)
    status = normalize_status(old.status)
    quantities = merge_quantities(old.items)

    if policy.sale_state(status) == COMMITTED:
        return [StockMove(pid, qty, "sale_deleted", "Sale deleted - stock restored") for pid, qty in quantities.items()]
    note = f"Sale deleted - no stock impact (was {status})"
    return [StockMove(pid, 0, "sale_deleted", note) for pid in quantities]


# ---------------------------------------------------------------------------
# Purchases (mirror image: committed purchases add stock)
# ---------------------------------------------------------------------------

def _purchase_adds(snapshot: TransactionSnapshot) -> bool:
    return purchase_impact(snapshot.status, snapshot.purchase_status).affects_stock


def plan_purchase_create(
    new: TransactionSnapshot,
    purchase_id: int | None = None,
    supplier: str | None = None,
) -> list[StockMove]:
    quantities = merge_quantities(new.items)
    ref = f"purchase #{purchase_id}" if purchase_id is not None else "purchase"

    if _purchase_adds(new):
        note = f"Stock added from {ref} - {supplier}" if supplier else f"Stock added from {ref}"
        return [StockMove(pid, qty, "purchase", note) for pid, qty in quantities.items()]

    if normalize_status(new.status, default="credit") == "cancelled":
        reason, note = "purchase_cancelled", "Purchase created as cancelled - no stock impact"
    else:
        delivery = normalize_status(new.purchase_status, default="delivered")
        reason, note = "purchase_pending", f"Purchase {delivery} - stock added on delivery"
    return [StockMove(pid, 0, reason, note) for pid in quantities]


def plan_purchase_update(
    old: TransactionSnapshot,
    new: TransactionSnapshot,
    purchase_id: int | None = None,
    supplier: str | None = None,
) -> list[StockMove]:
    was_added = _purchase_adds(old)
    should_add = _purchase_adds(new)
    old_q = merge_quantities(old.items)
    new_q = merge_quantities(new.items)
    status_changed = (
        normalize_status(old.status, default="credit") != normalize_status(new.status, default="credit")
        or normalize_status(old.purchase_status, default="delivered")
        != normalize_status(new.purchase_status, default="delivered")
    )
    ref = f"purchase #{purchase_id}" if purchase_id is not None else "purchase"
    tail = f" - {supplier}" if supplier else ""

    moves = []
    for pid in _union_order(old_q, new_q):
        before = old_q.get(pid, 0) if was_added else 0
        after = new_q.get(pid, 0) if should_add else 0
        net = after - before
        if net > 0:
            moves.append(StockMove(pid, net, "purchase", f"Stock increased by {net} from {ref} update{tail}"))
        elif net < 0:
            moves.append(StockMove(
                pid, net, "adjustment",
                f"Stock decreased by {-net} from {ref} update{tail}",
                clamp=True,
            ))
        elif status_changed and pid in new_q:
            moves.append(StockMove(pid, 0, "purchase_status_changed", f"Status of {ref} changed - no stock impact"))
    return moves


def plan_purchase_delete(old: TransactionSnapshot, purchase_id: int | None = None) -> list[StockMove]:
    quantities = merge_quantities(old.items)
    ref = f"purchase #{purchase_id}" if purchase_id is not None else "purchase"

    if _purchase_adds(old):
        note = f"Stock removed due to {ref} deletion"
        return [StockMove(pid, -qty, "purchase_deleted", note, clamp=True) for pid, qty in quantities.items()]
    note = f"Purchase deleted - no stock impact ({ref} was never received)"
    return [StockMove(pid, 0, "purchase_deleted", note) for pid in quantities]

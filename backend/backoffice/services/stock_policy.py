# Overview: Status impact policy; maps transaction statuses to stock commitment.

from __future__ import annotations

from typing import NamedTuple

from flask import current_app, has_app_context
"""
Stock commitment states

- UNCOMMITTED: pending; no stock taken.
- COMMITTED: completed/delivered/paid/credit/partial; stock taken.
- RELEASED: cancelled/returned/refunded; stock given back.

Matching is case-insensitive. Statuses outside the table count as COMMITTED
unless UNKNOWN_STATUS_AFFECTS_STOCK is disabled.
"""

UNCOMMITTED = "uncommitted"
COMMITTED = "committed"
RELEASED = "released"


class StockImpact(NamedTuple):
    affects_stock: bool
    reduces: bool

    @property
    def holds_stock(self) -> bool:
        return self.affects_stock and self.reduces


STOCK_IMPACT_STATUS: dict[str, StockImpact] = {
    "completed": StockImpact(True, True),
    "delivered": StockImpact(True, True),
    "paid": StockImpact(True, True),
    "credit": StockImpact(True, True),
    "partial": StockImpact(True, True),
    "pending": StockImpact(False, False),
    "cancelled": StockImpact(False, False),
    "returned": StockImpact(False, False),
    "refunded": StockImpact(False, False),
}

RELEASED_STATUSES = frozenset({"cancelled", "returned", "refunded"})
CREDIT_STATUSES = frozenset({"credit", "partial"})

DEFAULT_SALE_STATUS = "completed"


def normalize_status(status: str | None, default: str = DEFAULT_SALE_STATUS) -> str:
    if status is None:
        return default
    s = str(status).strip().lower()
    return s or default


class StatusImpactPolicy:
    """Fixed status table plus a configurable answer for unknown statuses."""

    def __init__(self, unknown_affects_stock: bool = True):
        self.unknown_affects_stock = unknown_affects_stock

    def impact(self, status: str | None) -> StockImpact:
        key = normalize_status(status)
        known = STOCK_IMPACT_STATUS.get(key)
        if known is not None:
            return known
        if self.unknown_affects_stock:
            return StockImpact(True, True)
        return StockImpact(False, False)

    def sale_state(self, status: str | None) -> str:
        if self.impact(status).holds_stock:
            return COMMITTED
        if normalize_status(status) in RELEASED_STATUSES:
            return RELEASED
        return UNCOMMITTED

    @classmethod
    def from_config(cls) -> "StatusImpactPolicy":
        if has_app_context():
            return cls(bool(current_app.config.get("UNKNOWN_STATUS_AFFECTS_STOCK", True)))
        return cls()


def impact(status: str | None) -> StockImpact:
    """Module-level shortcut honouring the app's unknown-status setting."""
    return StatusImpactPolicy.from_config().impact(status)


def purchase_impact(status: str | None, purchase_status: str | None) -> StockImpact:
    """
    Purchases add stock only while delivered and not cancelled.

    reduces is always False: a committed purchase adds inventory.
    """
    payment = normalize_status(status, default="credit")
    delivery = normalize_status(purchase_status, default="delivered")
    adds = delivery == "delivered" and payment != "cancelled"
    return StockImpact(adds, False)


def sale_reason(base: str, status: str | None) -> str:
    """
    Ledger reason code for a sale event in the given status.

    base='sale' is the create event; other bases pass through unless the
    status itself names the event (pending/cancelled/returned).
    """
    s = normalize_status(status)
    if s in ("completed", "paid", "delivered"):
        return "sale_completed" if base == "sale" else base
    if s == "pending":
        return "sale_pending"
    if s == "cancelled":
        return "sale_cancelled"
    if s in ("returned", "refunded"):
        return "sale_returned"
    if s in CREDIT_STATUSES:
        return "sale_credit" if base == "sale" else base
    return "sale_completed" if base == "sale" else base

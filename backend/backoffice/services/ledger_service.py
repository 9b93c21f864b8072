# Overview: Stock ledger; append-only product stock history and its audit queries.

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, StockLedgerEntry
"""
Stock Ledger Invariants (authoritative)

- Append-only: entries are never updated or deleted, including when the
  originating sale/purchase is deleted (a reversal entry is appended instead).
- Every change to Product.stock has exactly one entry whose quantity_change
  equals the change actually applied.
- Zero-quantity entries record transitions that are noteworthy but inert.
- Services have no ledger; appends for them succeed as no-ops.
- A failed append is logged and skipped; it never unwinds the enclosing
  transaction (stock is authoritative, the trail is best-effort).
"""

logger = logging.getLogger(__name__)

PAYMENT_METHOD_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "credit_card": "Credit Card",
    "debit_card": "Debit Card",
    "online": "Online",
    "upi": "UPI",
    "bank_transfer": "Bank Transfer",
    "cheque": "Cheque",
    "wallet": "Digital Wallet",
    "mixed": "Mixed Payment",
}


def payment_method_label(method: str | None) -> str | None:
    if not method:
        return None
    return PAYMENT_METHOD_LABELS.get(method.strip().lower(), method)


def enrich_note(
    note: str | None,
    *,
    payment_method: str | None = None,
    status: str | None = None,
    customer_name: str | None = None,
) -> str:
    text = note or ""
    label = payment_method_label(payment_method)
    if label:
        text += f" | Payment: {label}"
    if status:
        text += f" | Status: {status[:1].upper()}{status[1:]}"
    if customer_name:
        text += f" | Customer: {customer_name}"
    return text


def append_stock_entry(
    *,
    product_id: int,
    change_type: str,
    quantity_change: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    user_id: int | None = None,
    device_id: int | None = None,
    payment_method: str | None = None,
    status: str | None = None,
    customer_name: str | None = None,
) -> StockLedgerEntry | None:
    """
    Append one ledger entry for a product.

    Returns the flushed entry, or None when the target is not a product or
    the insert failed.
    """
    if db.session.get(Product, product_id) is None:
        logger.debug("Skipping stock history for id %s: not a product", product_id)
        return None

    entry = StockLedgerEntry(
        product_id=product_id,
        quantity=abs(quantity_change),
        quantity_change=quantity_change,
        change_type=change_type,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=enrich_note(
            notes,
            payment_method=payment_method,
            status=status,
            customer_name=customer_name,
        ),
        payment_method=payment_method,
        transaction_status=status,
        created_by_user_id=user_id,
        device_id=device_id,
    )

    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except SQLAlchemyError:
        logger.warning(
            "Failed to write stock history for product %s (%s %s #%s)",
            product_id, change_type, reference_type, reference_id,
            exc_info=True,
        )
        return None

    logger.info(
        "Stock history for product %s: %s %+d (%s #%s)",
        product_id, change_type, quantity_change, reference_type, reference_id,
    )
    return entry


def list_stock_history(
    product_id: int,
    *,
    reference_type: str | None = None,
    reference_id: int | None = None,
    since: datetime | None = None,
    limit: int = 200,
) -> list[StockLedgerEntry]:
    q = db.session.query(StockLedgerEntry).filter(StockLedgerEntry.product_id == product_id)
    if reference_type is not None:
        q = q.filter(StockLedgerEntry.reference_type == reference_type)
    if reference_id is not None:
        q = q.filter(StockLedgerEntry.reference_id == reference_id)
    if since is not None:
        q = q.filter(StockLedgerEntry.created_at >= since)

    return (
        q.order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


def entries_for_reference(reference_type: str, reference_id: int) -> list[StockLedgerEntry]:
    return (
        db.session.query(StockLedgerEntry)
        .filter_by(reference_type=reference_type, reference_id=reference_id)
        .order_by(StockLedgerEntry.id.asc())
        .all()
    )


def ledger_balance(product_id: int) -> int:
    """Net signed effect of all ledger entries for a product."""
    q = db.session.query(
        func.coalesce(func.sum(StockLedgerEntry.quantity_change), 0)
    ).filter(StockLedgerEntry.product_id == product_id)
    return int(q.scalar() or 0)


def find_ledger_discrepancies() -> list[dict]:
    """
    Products whose stock movement is not fully explained by their ledger.

    Completeness: stock - opening_stock == SUM(quantity_change).
    """
    balances = dict(
        db.session.query(
            StockLedgerEntry.product_id,
            func.coalesce(func.sum(StockLedgerEntry.quantity_change), 0),
        )
        .group_by(StockLedgerEntry.product_id)
        .all()
    )

    problems = []
    for product in db.session.query(Product).order_by(Product.id).all():
        ledger_net = int(balances.get(product.id, 0))
        stock_net = product.stock - product.opening_stock
        if ledger_net != stock_net:
            problems.append({
                "product_id": product.id,
                "name": product.name,
                "stock": product.stock,
                "opening_stock": product.opening_stock,
                "ledger_net": ledger_net,
                "difference": stock_net - ledger_net,
            })
    return problems

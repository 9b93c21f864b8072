from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockLedgerEntry(db.Model):
    """
    Immutable stock history row.

    - quantity is the magnitude; quantity_change is the signed effect that was
      actually applied to Product.stock (0 for recorded no-ops).
    - reference_id has no foreign key: transactions are hard-deleted but their
      ledger history stays.
    - Rows are never updated or deleted; reversals are new rows.
    """
    __tablename__ = "stock_ledger_entries"
    __table_args__ = (
        db.Index("ix_stock_ledger_reference", "reference_id", "reference_type"),
        db.Index("ix_stock_ledger_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    quantity_change = db.Column(db.Integer, nullable=False, default=0)
    change_type = db.Column(db.String(50), nullable=False, index=True)

    reference_type = db.Column(db.String(50), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)
    transaction_status = db.Column(db.String(50), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    device_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "quantity_change": self.quantity_change,
            "change_type": self.change_type,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "payment_method": self.payment_method,
            "transaction_status": self.transaction_status,
            "created_by_user_id": self.created_by_user_id,
            "device_id": self.device_id,
            "created_at": to_utc_z(self.created_at),
        }


class FinancialAdjustment(db.Model):
    """
    Journal written by the default financial recorder.

    Written in the same DB transaction as the stock changes it accompanies,
    so downstream accounting can consume it as an outbox.
    """
    __tablename__ = "financial_adjustments"
    __table_args__ = (
        db.Index("ix_financial_adjustments_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reference_type = db.Column(db.String(50), nullable=False)
    reference_id = db.Column(db.Integer, nullable=False)
    event_type = db.Column(db.String(50), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    cogs_cents = db.Column(db.Integer, nullable=False, default=0)
    received_cents = db.Column(db.Integer, nullable=False, default=0)
    outstanding_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(32), nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)
    user_id = db.Column(db.Integer, nullable=True)
    device_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)
    previous_values = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "event_type": self.event_type,
            "total_cents": self.total_cents,
            "cogs_cents": self.cogs_cents,
            "received_cents": self.received_cents,
            "outstanding_cents": self.outstanding_cents,
            "status": self.status,
            "payment_method": self.payment_method,
            "user_id": self.user_id,
            "device_id": self.device_id,
            "description": self.description,
            "previous_values": self.previous_values,
            "created_at": to_utc_z(self.created_at),
        }

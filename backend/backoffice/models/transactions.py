from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document.

    Status drives stock commitment (see services.stock_policy). Updates and
    deletes reconcile inventory against the previous snapshot of this row.

    version_id is an optimistic lock: a second writer holding a stale version
    fails instead of applying its deltas on top of the first writer's.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_device_date", "device_id", "sale_date"),
        db.Index("ix_sales_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Opaque tenant/device scope
    device_id = db.Column(db.Integer, nullable=True, index=True)

    customer_id = db.Column(db.Integer, nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)
    created_by_user_id = db.Column(db.Integer, nullable=True)
    staff_id = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="completed")
    payment_method = db.Column(db.String(50), nullable=False, default="cash")
    sale_type = db.Column(db.String(20), nullable=False, default="product")

    # All amounts in cents
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    received_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def outstanding_cents(self) -> int:
        return max(0, (self.total_cents or 0) - (self.received_cents or 0))

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "device_id": self.device_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "created_by_user_id": self.created_by_user_id,
            "staff_id": self.staff_id,
            "status": self.status,
            "payment_method": self.payment_method,
            "sale_type": self.sale_type,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "received_cents": self.received_cents,
            "outstanding_cents": self.outstanding_cents,
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # Catalog id: resolves to a Product, or to a Service when no product matches
    product_id = db.Column(db.Integer, nullable=False, index=True)
    item_kind = db.Column(db.String(16), nullable=False, default="product")

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    # Cost snapshot for COGS
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    sale = db.relationship("Sale", back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "item_kind": self.item_kind,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
            "notes": self.notes,
        }


class Purchase(db.Model):
    """
    Purchase (supplier receipt) document.

    Stock is added only while purchase_status is 'delivered' and the payment
    status is not 'cancelled'.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_device_date", "device_id", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, nullable=True, index=True)
    supplier = db.Column(db.String(255), nullable=False)

    # Payment status: paid, credit, partial, cancelled
    status = db.Column(db.String(32), nullable=False, default="credit")
    # Delivery status: delivered, pending, ordered
    purchase_status = db.Column(db.String(32), nullable=False, default="delivered")
    payment_method = db.Column(db.String(50), nullable=False, default="cash")

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    received_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def outstanding_cents(self) -> int:
        return max(0, (self.total_cents or 0) - (self.received_cents or 0))

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "device_id": self.device_id,
            "supplier": self.supplier,
            "status": self.status,
            "purchase_status": self.purchase_status,
            "payment_method": self.payment_method,
            "total_cents": self.total_cents,
            "received_cents": self.received_cents,
            "outstanding_cents": self.outstanding_cents,
            "purchase_date": to_utc_z(self.purchase_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase = db.relationship("Purchase", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
        }

from __future__ import annotations

from ..extensions import db
from martpos.time_utils import to_utc_z
from .catalog import BigId


class Sale(db.Model):
    """
    Completed sale in the ledger.

    Created once at checkout and afterwards only amended in place by
    mark-paid and the return workflow. Ids are assigned by the storage layer
    (not autoincrement) so they stay compatible with the flat-file backend.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_timestamp", "timestamp"),
    )

    id = db.Column(BigId, primary_key=True, autoincrement=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    bill_discount_type = db.Column(db.String(16), nullable=False, default="percent")
    bill_discount_rate = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    bill_discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    payment_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default="Cash")
    payment_status = db.Column(db.String(16), nullable=False, default="Paid", index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    items = db.relationship(
        "SaleItem",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        backref="sale",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.timestamp),
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "total_amount": self.total_amount,
            "total_profit": self.total_profit,
            "bill_discount_type": self.bill_discount_type,
            "bill_discount_rate": self.bill_discount_rate,
            "bill_discount_value": self.bill_discount_value,
            "payment": {
                "cash": self.payment_cash,
                "balance": self.payment_balance,
            },
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
        }


class SaleItem(db.Model):
    """Line item snapshot: price and cost are frozen at sale time."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(BigId, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # No FK: products may be deleted while their sales stay in the ledger
    product_id = db.Column(BigId, nullable=True)
    code = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    discount_type = db.Column(db.String(16), nullable=False, default="percent")
    discount_rate = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "code": self.code,
            "name": self.name,
            "qty": self.qty,
            "price": self.price,
            "cost": self.cost,
            "discount_type": self.discount_type,
            "discount_rate": self.discount_rate,
            "discount_value": self.discount_value,
        }

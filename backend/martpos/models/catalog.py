from __future__ import annotations

from ..extensions import db
from martpos.time_utils import to_utc_z, utcnow

# Legacy records carry millisecond-timestamp ids, beyond 32-bit range.
BigId = db.BigInteger().with_variant(db.Integer, "sqlite")


class Product(db.Model):
    """
    Product master record.

    `code` is the human-entered identifier (PRD-00000001). Uniqueness is
    checked by the products service before every write; the unique index is
    the last line of defence for the relational backend.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(BigId, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Default line discount applied when the product is added to a cart
    discount_type = db.Column(db.String(16), nullable=False, default="percent")
    discount_rate = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=3)

    # Relative reference into UPLOAD_FOLDER
    image = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "cost_price": self.cost_price,
            "retail_price": self.retail_price,
            "discount_type": self.discount_type,
            "discount_rate": self.discount_rate,
            "discount_value": self.discount_value,
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "image": self.image,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Category(db.Model):
    """Flat category list used to tag and filter products (names are not unique)."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(BigId, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

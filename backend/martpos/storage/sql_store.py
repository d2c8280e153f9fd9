# Overview: Relational backend on Flask-SQLAlchemy; requires an app context.

from __future__ import annotations

from functools import wraps

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from martpos.extensions import db
from martpos.models import Category, Product, Sale, SaleItem
from martpos.time_utils import parse_iso_datetime, utcnow
from .base import (
    PRODUCT_FIELDS,
    RecordNotFound,
    Storage,
    StorageError,
    next_sale_id,
    normalize_product,
    normalize_sale,
)

SALE_SCALAR_FIELDS = (
    "subtotal", "total_amount", "total_profit",
    "bill_discount_type", "bill_discount_rate", "bill_discount_value",
    "payment_method", "payment_status", "customer_name", "customer_phone",
)


def _guarded(func_):
    """Roll back and re-raise driver errors as StorageError."""
    @wraps(func_)
    def wrapper(*args, **kwargs):
        try:
            return func_(*args, **kwargs)
        except StorageError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Database request failed in {func_.__name__}") from exc
    return wrapper


def _apply_product(p: Product, values: dict) -> None:
    for key, value in values.items():
        if key in PRODUCT_FIELDS:
            setattr(p, key, value)


def _apply_sale(sale: Sale, values: dict) -> None:
    for key in SALE_SCALAR_FIELDS:
        if key in values:
            setattr(sale, key, values[key])
    if "timestamp" in values:
        sale.timestamp = parse_iso_datetime(values["timestamp"]) or utcnow()
    if "payment" in values:
        sale.payment_cash = values["payment"]["cash"]
        sale.payment_balance = values["payment"]["balance"]
    if "items" in values:
        sale.items = [
            SaleItem(position=position, **item)
            for position, item in enumerate(values["items"])
        ]


class SqlStorage(Storage):
    backend_name = "sql"

    # -- products ------------------------------------------------------------

    @_guarded
    def list_products(self) -> list[dict]:
        products = db.session.query(Product).order_by(Product.id.asc()).all()
        return [p.to_dict() for p in products]

    @_guarded
    def get_product(self, product_id: int) -> dict | None:
        p = db.session.get(Product, product_id)
        return p.to_dict() if p else None

    @_guarded
    def upsert_product(self, product: dict) -> dict:
        product_id = product.get("id")
        if product_id is None:
            p = Product()
            _apply_product(p, normalize_product(product))
            db.session.add(p)
        else:
            p = db.session.get(Product, product_id)
            if not p:
                raise RecordNotFound(f"Product {product_id} not found")
            _apply_product(p, normalize_product(product, partial=True))
        db.session.commit()
        return p.to_dict()

    @_guarded
    def adjust_stock(self, product_id: int, delta: int) -> dict:
        p = db.session.get(Product, product_id)
        if not p:
            raise RecordNotFound(f"Product {product_id} not found")
        # Relative update so the increment happens in the database
        db.session.query(Product).filter(Product.id == product_id).update(
            {Product.stock: Product.stock + int(delta), Product.updated_at: utcnow()},
            synchronize_session=False,
        )
        db.session.commit()
        db.session.refresh(p)
        return p.to_dict()

    @_guarded
    def delete_product(self, product_id: int) -> bool:
        p = db.session.get(Product, product_id)
        if not p:
            return False
        db.session.delete(p)
        db.session.commit()
        return True

    # -- categories ----------------------------------------------------------

    @_guarded
    def list_categories(self) -> list[dict]:
        categories = db.session.query(Category).order_by(Category.id.asc()).all()
        return [c.to_dict() for c in categories]

    @_guarded
    def add_category(self, name: str) -> dict:
        category = Category(name=name)
        db.session.add(category)
        db.session.commit()
        return category.to_dict()

    @_guarded
    def delete_category(self, category_id: int) -> bool:
        category = db.session.get(Category, category_id)
        if not category:
            return False
        db.session.delete(category)
        db.session.commit()
        return True

    # -- sales ---------------------------------------------------------------

    @_guarded
    def list_sales(self) -> list[dict]:
        sales = db.session.query(Sale).order_by(Sale.timestamp.desc(), Sale.id.desc()).all()
        return [s.to_dict() for s in sales]

    @_guarded
    def get_sale(self, sale_id: int) -> dict | None:
        sale = db.session.get(Sale, sale_id)
        return sale.to_dict() if sale else None

    @_guarded
    def create_sale(self, sale: dict) -> dict:
        values = normalize_sale(sale)
        existing_ids = [row[0] for row in db.session.query(Sale.id).all()]
        record = Sale(id=next_sale_id(existing_ids))
        values.setdefault("timestamp", None)
        _apply_sale(record, values)
        db.session.add(record)
        db.session.commit()
        return record.to_dict()

    @_guarded
    def update_sale(self, sale_id: int, patch: dict) -> dict:
        sale = db.session.get(Sale, sale_id)
        if not sale:
            raise RecordNotFound(f"Sale {sale_id} not found")
        _apply_sale(sale, normalize_sale(patch, partial=True))
        db.session.commit()
        return sale.to_dict()

    @_guarded
    def clear_sales(self) -> int:
        removed = db.session.query(Sale).count()
        db.session.query(SaleItem).delete(synchronize_session=False)
        db.session.query(Sale).delete(synchronize_session=False)
        db.session.commit()
        # Bulk deletes bypass the identity map
        db.session.expunge_all()
        return removed

    # -- maintenance ---------------------------------------------------------

    @_guarded
    def restore(self, products: list[dict], sales: list[dict]) -> None:
        db.session.query(SaleItem).delete(synchronize_session=False)
        db.session.query(Sale).delete(synchronize_session=False)
        db.session.query(Product).delete(synchronize_session=False)
        db.session.flush()
        db.session.expunge_all()

        for raw in products:
            p = Product(id=raw["id"])
            _apply_product(p, normalize_product(raw))
            db.session.add(p)

        for raw in sales:
            sale = Sale(id=raw["id"])
            values = normalize_sale(raw)
            values.setdefault("timestamp", None)
            _apply_sale(sale, values)
            db.session.add(sale)

        db.session.commit()

    @_guarded
    def ping(self) -> dict:
        return {
            "backend": self.backend_name,
            "products": db.session.query(func.count(Product.id)).scalar(),
            "categories": db.session.query(func.count(Category.id)).scalar(),
            "sales": db.session.query(func.count(Sale.id)).scalar(),
        }

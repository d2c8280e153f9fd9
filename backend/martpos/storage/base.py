# Overview: Storage contract shared by the flat-file and relational backends.

"""
Storage interface

Workflows (checkout, returns, reporting) receive a `Storage` and never know
which backend is active. Records cross this boundary as plain dicts shaped
like the models' to_dict() output: money as Decimal, timestamps as ISO-8601
strings with a trailing 'Z'.

Every backend failure is raised as StorageError; a mutating call against a
missing record raises RecordNotFound. Calls are independent: there is no
transaction spanning several of them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from martpos.services.pricing import DISCOUNT_PERCENT, money

# Sale ids at or above this are legacy millisecond timestamps
LEGACY_ID_THRESHOLD = 10 ** 12

DEFAULT_LOW_STOCK_THRESHOLD = 3

PRODUCT_MONEY_FIELDS = ("cost_price", "retail_price", "discount_rate", "discount_value")
SALE_MONEY_FIELDS = ("subtotal", "total_amount", "total_profit", "bill_discount_rate", "bill_discount_value")
ITEM_MONEY_FIELDS = ("price", "cost", "discount_rate", "discount_value")

PRODUCT_FIELDS = (
    "code", "name", "category", "cost_price", "retail_price",
    "discount_type", "discount_rate", "discount_value",
    "stock", "low_stock_threshold", "image",
)
PRODUCT_META_FIELDS = ("id", "created_at", "updated_at")


class StorageError(Exception):
    """A backing-store call failed ("request failed")."""


class RecordNotFound(StorageError):
    """The record a mutating call targets does not exist."""


def next_sale_id(existing_ids: Iterable[Any]) -> int:
    """1 + highest incremental id; legacy timestamp ids are skipped."""
    highest = 0
    for raw in existing_ids:
        try:
            value = int(raw)
        except (TypeError, ValueError):
            continue
        if value < LEGACY_ID_THRESHOLD:
            highest = max(highest, value)
    return highest + 1


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


def normalize_product(record: dict, *, partial: bool = False) -> dict:
    """
    Coerce a product payload to storage types.

    partial=True only touches keys that are present (patch semantics).
    """
    out = {k: v for k, v in record.items() if k in PRODUCT_FIELDS or k in PRODUCT_META_FIELDS}
    if not partial:
        out.setdefault("category", None)
        out.setdefault("discount_type", DISCOUNT_PERCENT)
        out.setdefault("stock", 0)
        out.setdefault("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD)
        out.setdefault("image", None)
        for field in PRODUCT_MONEY_FIELDS:
            out.setdefault(field, 0)

    for field in PRODUCT_MONEY_FIELDS:
        if field in out:
            out[field] = money(out[field])
    if "stock" in out:
        out["stock"] = _to_int(out["stock"])
    if "low_stock_threshold" in out:
        out["low_stock_threshold"] = _to_int(out["low_stock_threshold"], DEFAULT_LOW_STOCK_THRESHOLD)
    if out.get("discount_type") in (None, ""):
        out["discount_type"] = DISCOUNT_PERCENT
    return out


def normalize_sale_item(item: dict) -> dict:
    out = {
        "product_id": item.get("product_id", item.get("id")),
        "code": item.get("code"),
        "name": item.get("name") or "",
        "qty": _to_int(item.get("qty")),
        "discount_type": item.get("discount_type") or DISCOUNT_PERCENT,
    }
    for field in ITEM_MONEY_FIELDS:
        out[field] = money(item.get(field))
    return out


def normalize_sale(record: dict, *, partial: bool = False) -> dict:
    """Coerce a sale payload (or patch) to storage types."""
    out = dict(record)
    if not partial:
        out.setdefault("items", [])
        out.setdefault("bill_discount_type", DISCOUNT_PERCENT)
        out.setdefault("payment", {})
        out.setdefault("payment_method", "Cash")
        out.setdefault("payment_status", "Paid")
        out.setdefault("customer_name", None)
        out.setdefault("customer_phone", None)
        for field in SALE_MONEY_FIELDS:
            out.setdefault(field, 0)

    for field in SALE_MONEY_FIELDS:
        if field in out:
            out[field] = money(out[field])
    if "items" in out:
        out["items"] = [normalize_sale_item(item) for item in out["items"] or []]
    if "payment" in out:
        payment = out["payment"] or {}
        out["payment"] = {
            "cash": money(payment.get("cash")),
            "balance": money(payment.get("balance")),
        }
    if out.get("bill_discount_type") == "":
        out["bill_discount_type"] = DISCOUNT_PERCENT
    return out


class Storage(ABC):
    """Persistence API consumed by the services."""

    backend_name = "abstract"

    # -- products ------------------------------------------------------------

    @abstractmethod
    def list_products(self) -> list[dict]: ...

    @abstractmethod
    def get_product(self, product_id: int) -> dict | None: ...

    @abstractmethod
    def upsert_product(self, product: dict) -> dict:
        """Create when `id` is absent, otherwise merge into the existing record."""

    @abstractmethod
    def adjust_stock(self, product_id: int, delta: int) -> dict:
        """Add `delta` (positive or negative) to stock; returns the product."""

    @abstractmethod
    def delete_product(self, product_id: int) -> bool: ...

    # -- categories ----------------------------------------------------------

    @abstractmethod
    def list_categories(self) -> list[dict]: ...

    @abstractmethod
    def add_category(self, name: str) -> dict: ...

    @abstractmethod
    def delete_category(self, category_id: int) -> bool: ...

    # -- sales ---------------------------------------------------------------

    @abstractmethod
    def list_sales(self) -> list[dict]:
        """All sales, newest first."""

    @abstractmethod
    def get_sale(self, sale_id: int) -> dict | None: ...

    @abstractmethod
    def create_sale(self, sale: dict) -> dict:
        """Append a sale; the id is assigned here (next_sale_id)."""

    @abstractmethod
    def update_sale(self, sale_id: int, patch: dict) -> dict:
        """Shallow merge of `patch` into the stored sale (items replaced whole)."""

    @abstractmethod
    def clear_sales(self) -> int: ...

    # -- maintenance ---------------------------------------------------------

    @abstractmethod
    def restore(self, products: list[dict], sales: list[dict]) -> None:
        """Replace products and sales wholesale; categories are kept."""

    @abstractmethod
    def ping(self) -> dict:
        """Cheap round trip used by the health endpoint."""

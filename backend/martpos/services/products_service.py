# backend/martpos/services/products_service.py
"""
Products Service

Catalog reads and writes over whichever Storage backend is configured.
Payloads arrive already validated (validate_payload + enforce_rules_product);
this layer owns code uniqueness, image files and stock adjustments.
"""
from __future__ import annotations

import logging

from ..storage import DEFAULT_LOW_STOCK_THRESHOLD, RecordNotFound, Storage
from ..validation import ConflictError
from .identifier_service import next_product_code
from .image_service import delete_image, resolve_image

logger = logging.getLogger(__name__)


def is_low_stock(product: dict) -> bool:
    threshold = product.get("low_stock_threshold")
    if threshold is None:
        threshold = DEFAULT_LOW_STOCK_THRESHOLD
    return int(product.get("stock") or 0) <= int(threshold)


def list_products(
    storage: Storage,
    *,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
) -> dict:
    """
    Catalog listing with optional filters.

    Args:
        search: case-insensitive substring of name or code
        category: exact category name ("all" or empty means no filter)
        low_stock: only products at or below their low stock threshold

    Returns:
        Dict with 'items' and 'count'.
    """
    products = storage.list_products()

    needle = (search or "").strip().lower()
    if needle:
        products = [
            p for p in products
            if needle in (p.get("name") or "").lower() or needle in (p.get("code") or "").lower()
        ]

    if category and category != "all":
        products = [p for p in products if p.get("category") == category]

    if low_stock:
        products = [p for p in products if is_low_stock(p)]

    return {"items": products, "count": len(products)}


def get_product(storage: Storage, product_id: int) -> dict | None:
    return storage.get_product(product_id)


def _ensure_unique_code(storage: Storage, code: str, exclude_id: int | None = None) -> None:
    for product in storage.list_products():
        if product.get("code") == code and product["id"] != exclude_id:
            raise ConflictError(f"Product code already exists: {code}")


def create_product(storage: Storage, patch: dict, *, upload_folder: str) -> dict:
    patch = dict(patch)
    _ensure_unique_code(storage, patch["code"])

    if "image" in patch:
        patch["image"] = resolve_image(patch["image"], upload_folder)

    created = storage.upsert_product(patch)
    logger.info("Created product %s (%s)", created["code"], created["id"])
    return created


def update_product(storage: Storage, product_id: int, patch: dict, *, upload_folder: str) -> dict | None:
    """Returns None when the product does not exist."""
    existing = storage.get_product(product_id)
    if not existing:
        return None

    patch = dict(patch)
    if "code" in patch and patch["code"] != existing.get("code"):
        _ensure_unique_code(storage, patch["code"], exclude_id=existing["id"])

    if "image" in patch:
        patch["image"] = resolve_image(patch["image"], upload_folder, previous=existing.get("image"))

    patch["id"] = existing["id"]
    return storage.upsert_product(patch)


def delete_product(storage: Storage, product_id: int, *, upload_folder: str) -> bool:
    existing = storage.get_product(product_id)
    if not existing:
        return False

    deleted = storage.delete_product(product_id)
    if deleted:
        delete_image(existing.get("image"), upload_folder)
        logger.info("Deleted product %s (%s)", existing.get("code"), product_id)
    return deleted


def adjust_stock(storage: Storage, product_id: int, change: int) -> dict | None:
    """Relative stock change; returns None when the product does not exist."""
    try:
        return storage.adjust_stock(product_id, change)
    except RecordNotFound:
        return None


def next_code(storage: Storage) -> str:
    return next_product_code(p.get("code") for p in storage.list_products())


def products_by_id(storage: Storage) -> dict:
    return {p["id"]: p for p in storage.list_products()}

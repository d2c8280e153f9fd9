# Overview: Service-layer operations for the flat category list.

from __future__ import annotations

import logging

from ..storage import Storage
from ..validation import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Women's Wear",
    "Kids' Wear",
    "Baby Diapers",
    "Adult Diapers",
    "Decoration Items",
    "Gift Items",
    "Cosmetics & Perfumes",
    "Another Items",
)

MAX_CATEGORY_NAME = 120


def list_categories(storage: Storage, *, seed: bool = True) -> list[dict]:
    """All categories; an empty list is seeded with the defaults first."""
    categories = storage.list_categories()
    if categories or not seed:
        return categories

    for name in DEFAULT_CATEGORIES:
        storage.add_category(name)
    logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
    return storage.list_categories()


def add_category(storage: Storage, name) -> dict:
    name = (name or "").strip() if isinstance(name, str) or name is None else None
    if name is None:
        raise ValidationError("name must be a string")
    if not name:
        raise ValidationError("name cannot be blank")
    if len(name) > MAX_CATEGORY_NAME:
        raise ValidationError(f"name exceeds max length {MAX_CATEGORY_NAME}")
    return storage.add_category(name)


def delete_category(storage: Storage, category_id: int) -> bool:
    """Products keep their category text; only the list entry goes."""
    return storage.delete_category(category_id)

# Overview: Whole-store backup document and restore (products and sales; categories are kept).

from __future__ import annotations

import logging

from ..storage import Storage
from ..storage.base import normalize_product, normalize_sale
from martpos.time_utils import parse_iso_datetime, to_utc_z, utcnow

logger = logging.getLogger(__name__)

BACKUP_VERSION = 2


class BackupError(ValueError):
    """Raised when a backup document is malformed; nothing has been written."""
    pass


def build_backup(storage: Storage) -> dict:
    return {
        "version": BACKUP_VERSION,
        "timestamp": to_utc_z(utcnow()),
        "data": {
            "products": storage.list_products(),
            "sales": storage.list_sales(),
        },
    }


def _check_records(records, kind: str) -> list[dict]:
    if not isinstance(records, list):
        raise BackupError(f"data.{kind} must be a list")
    seen = set()
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise BackupError(f"data.{kind}[{index}] must be an object")
        record_id = record.get("id")
        if isinstance(record_id, bool) or not isinstance(record_id, int):
            raise BackupError(f"data.{kind}[{index}] needs an integer id")
        if record_id in seen:
            raise BackupError(f"data.{kind} has duplicate id {record_id}")
        seen.add(record_id)
    return records


def _check_product(index: int, product: dict) -> None:
    for field in ("code", "name"):
        value = product.get(field)
        if not isinstance(value, str) or not value.strip():
            raise BackupError(f"data.products[{index}] needs a non-blank {field}")
    try:
        normalize_product(product)
    except (TypeError, ValueError) as exc:
        raise BackupError(f"data.products[{index}]: {exc}")


def _check_sale(index: int, sale: dict) -> None:
    items = sale.get("items")
    if items is not None and (
        not isinstance(items, list) or not all(isinstance(item, dict) for item in items)
    ):
        raise BackupError(f"data.sales[{index}].items must be a list of objects")
    payment = sale.get("payment")
    if payment is not None and not isinstance(payment, dict):
        raise BackupError(f"data.sales[{index}].payment must be an object")
    try:
        normalize_sale(sale)
        timestamp = sale.get("timestamp")
        if timestamp is not None:
            if not isinstance(timestamp, str):
                raise ValueError("timestamp must be an ISO-8601 string")
            parse_iso_datetime(timestamp)
    except (TypeError, ValueError) as exc:
        raise BackupError(f"data.sales[{index}]: {exc}")


def validate_backup(document) -> tuple[list[dict], list[dict]]:
    """
    Accepts the full backup document or just its `data` section.

    Returns (products, sales).
    """
    if not isinstance(document, dict):
        raise BackupError("Invalid backup file format")

    data = document.get("data", document)
    if not isinstance(data, dict) or "products" not in data or "sales" not in data:
        raise BackupError("Invalid backup file format")

    version = document.get("version")
    if version is not None and version != BACKUP_VERSION:
        raise BackupError(f"Unsupported backup version {version!r}")

    products = _check_records(data["products"], "products")
    sales = _check_records(data["sales"], "sales")
    for index, product in enumerate(products):
        _check_product(index, product)
    for index, sale in enumerate(sales):
        _check_sale(index, sale)
    return products, sales


def restore_backup(storage: Storage, document) -> dict:
    """Replace all products and sales. Returns the restored counts."""
    products, sales = validate_backup(document)
    storage.restore(products, sales)
    logger.warning("Restored backup: %d products, %d sales", len(products), len(sales))
    return {"products": len(products), "sales": len(sales)}

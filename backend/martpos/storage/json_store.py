# Overview: Flat-file backend; the whole catalog and ledger live in one JSON document.

"""
JSON file storage

Layout: {"meta": {...}, "categories": [...], "products": [...], "sales": [...]}.
"meta" holds the next product and category ids; they only ever grow, so a
deleted product's id is never handed to a new one. Every call
reads the file, applies one change and writes it back. Writes go to a
temporary file in the same directory and are swapped in with os.replace so a
crash never leaves a half-written document. There is no locking: two
processes writing the same file race, last write wins.

Money is written as strings ("19.99") to keep Decimal precision.
"""

from __future__ import annotations

import json
import os
import tempfile
from decimal import Decimal
from pathlib import Path

from martpos.services.pricing import to_decimal
from martpos.time_utils import to_utc_z, utcnow
from .base import (
    ITEM_MONEY_FIELDS,
    PRODUCT_MONEY_FIELDS,
    SALE_MONEY_FIELDS,
    RecordNotFound,
    Storage,
    StorageError,
    next_sale_id,
    normalize_product,
    normalize_sale,
)

COLLECTIONS = ("categories", "products", "sales")
NEXT_ID_KEYS = {"products": "next_product_id", "categories": "next_category_id"}


def _encode(value):
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_money(record: dict, fields) -> dict:
    for field in fields:
        if field in record:
            record[field] = to_decimal(record[field], field)
    return record


def _decode_product(record: dict) -> dict:
    return _decode_money(record, PRODUCT_MONEY_FIELDS)


def _decode_sale(record: dict) -> dict:
    _decode_money(record, SALE_MONEY_FIELDS)
    for item in record.get("items") or []:
        _decode_money(item, ITEM_MONEY_FIELDS)
    payment = record.get("payment")
    if isinstance(payment, dict):
        _decode_money(payment, ("cash", "balance"))
    return record


def _same_id(left, right) -> bool:
    try:
        return int(left) == int(right)
    except (TypeError, ValueError):
        return False


class JsonFileStorage(Storage):
    backend_name = "json"

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    # -- file access ---------------------------------------------------------

    def _read(self) -> dict:
        try:
            if not self.path.exists():
                self._write({"meta": {}, **{key: [] for key in COLLECTIONS}})
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to read {self.path}") from exc

        for key in COLLECTIONS:
            data.setdefault(key, [])
        if not isinstance(data.get("meta"), dict):
            data["meta"] = {}
        data["products"] = [_decode_product(p) for p in data["products"]]
        data["sales"] = [_decode_sale(s) for s in data["sales"]]
        return data

    def _write(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".db-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, default=_encode)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Failed to write {self.path}") from exc

    @staticmethod
    def _highest_id(records: list[dict]) -> int:
        return max((int(r["id"]) for r in records if r.get("id") is not None), default=0)

    def _allocate_id(self, data: dict, kind: str) -> int:
        """Next id for `kind`; ids of deleted records are not reused."""
        key = NEXT_ID_KEYS[kind]
        new_id = max(int(data["meta"].get(key) or 1), self._highest_id(data[kind]) + 1)
        data["meta"][key] = new_id + 1
        return new_id

    # -- products ------------------------------------------------------------

    def list_products(self) -> list[dict]:
        return self._read()["products"]

    def get_product(self, product_id: int) -> dict | None:
        return next((p for p in self._read()["products"] if _same_id(p["id"], product_id)), None)

    def upsert_product(self, product: dict) -> dict:
        data = self._read()
        now = to_utc_z(utcnow())
        product_id = product.get("id")

        if product_id is None:
            record = normalize_product(product)
            record["id"] = self._allocate_id(data, "products")
            record["created_at"] = now
            record["updated_at"] = now
            data["products"].append(record)
        else:
            index = next(
                (i for i, p in enumerate(data["products"]) if _same_id(p["id"], product_id)),
                None,
            )
            if index is None:
                raise RecordNotFound(f"Product {product_id} not found")
            record = {**data["products"][index], **normalize_product(product, partial=True)}
            record["id"] = data["products"][index]["id"]
            record["updated_at"] = now
            data["products"][index] = record

        self._write(data)
        return record

    def adjust_stock(self, product_id: int, delta: int) -> dict:
        data = self._read()
        for product in data["products"]:
            if _same_id(product["id"], product_id):
                product["stock"] = int(product.get("stock") or 0) + int(delta)
                product["updated_at"] = to_utc_z(utcnow())
                self._write(data)
                return product
        raise RecordNotFound(f"Product {product_id} not found")

    def delete_product(self, product_id: int) -> bool:
        data = self._read()
        remaining = [p for p in data["products"] if not _same_id(p["id"], product_id)]
        if len(remaining) == len(data["products"]):
            return False
        data["products"] = remaining
        self._write(data)
        return True

    # -- categories ----------------------------------------------------------

    def list_categories(self) -> list[dict]:
        return self._read()["categories"]

    def add_category(self, name: str) -> dict:
        data = self._read()
        record = {"id": self._allocate_id(data, "categories"), "name": name}
        data["categories"].append(record)
        self._write(data)
        return record

    def delete_category(self, category_id: int) -> bool:
        data = self._read()
        remaining = [c for c in data["categories"] if not _same_id(c["id"], category_id)]
        if len(remaining) == len(data["categories"]):
            return False
        data["categories"] = remaining
        self._write(data)
        return True

    # -- sales ---------------------------------------------------------------

    def list_sales(self) -> list[dict]:
        sales = self._read()["sales"]
        # Same-second sales: higher id first
        return sorted(sales, key=lambda s: (s.get("timestamp") or "", int(s["id"])), reverse=True)

    def get_sale(self, sale_id: int) -> dict | None:
        return next((s for s in self._read()["sales"] if _same_id(s["id"], sale_id)), None)

    def create_sale(self, sale: dict) -> dict:
        data = self._read()
        record = normalize_sale(sale)
        record["id"] = next_sale_id(s.get("id") for s in data["sales"])
        record.setdefault("timestamp", to_utc_z(utcnow()))
        data["sales"].append(record)
        self._write(data)
        return record

    def update_sale(self, sale_id: int, patch: dict) -> dict:
        data = self._read()
        for index, sale in enumerate(data["sales"]):
            if _same_id(sale["id"], sale_id):
                record = {**sale, **normalize_sale(patch, partial=True)}
                record["id"] = sale["id"]
                data["sales"][index] = record
                self._write(data)
                return record
        raise RecordNotFound(f"Sale {sale_id} not found")

    def clear_sales(self) -> int:
        data = self._read()
        removed = len(data["sales"])
        data["sales"] = []
        self._write(data)
        return removed

    # -- maintenance ---------------------------------------------------------

    def restore(self, products: list[dict], sales: list[dict]) -> None:
        data = self._read()
        now = to_utc_z(utcnow())
        data["products"] = [
            {"created_at": now, "updated_at": now, **normalize_product(p), "id": p["id"]}
            for p in products
        ]
        data["sales"] = [{**normalize_sale(s), "id": s["id"]} for s in sales]
        self._write(data)

    def ping(self) -> dict:
        data = self._read()
        return {
            "backend": self.backend_name,
            "products": len(data["products"]),
            "categories": len(data["categories"]),
            "sales": len(data["sales"]),
        }

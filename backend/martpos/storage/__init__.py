# Overview: Resolves the configured storage backend for the running app.

from __future__ import annotations

from flask import Flask, current_app

from .base import DEFAULT_LOW_STOCK_THRESHOLD, RecordNotFound, Storage, StorageError
from .json_store import JsonFileStorage
from .sql_store import SqlStorage

STORAGE_EXTENSION_KEY = "martpos.storage"

__all__ = [
    "Storage", "StorageError", "RecordNotFound", "DEFAULT_LOW_STOCK_THRESHOLD",
    "JsonFileStorage", "SqlStorage",
    "build_storage", "get_storage",
]


def build_storage(app: Flask) -> Storage:
    backend = (app.config.get("STORAGE_BACKEND") or "sql").lower()
    if backend == "sql":
        return SqlStorage()
    if backend == "json":
        return JsonFileStorage(app.config["DATA_FILE"])
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r} (expected 'sql' or 'json')")


def get_storage() -> Storage:
    """
    Storage for the current app, created on first use.

    Resolved lazily so config changes made after create_app() (tests) are
    honoured.
    """
    app = current_app._get_current_object()
    storage = app.extensions.get(STORAGE_EXTENSION_KEY)
    if storage is None:
        storage = build_storage(app)
        app.extensions[STORAGE_EXTENSION_KEY] = storage
    return storage

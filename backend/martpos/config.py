# backend/martpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # "sql" uses SQLALCHEMY_DATABASE_URI, "json" uses DATA_FILE
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql")

    # SQLite DB stored in backend/instance/martpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///martpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Relative paths resolve under the Flask instance folder
    DATA_FILE = os.environ.get("DATA_FILE", os.path.join("data", "db.json"))
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join("data", "uploads"))

    # Product images arrive inline as data URLs
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 10 * 1024 * 1024))

    # Report cutoffs (today / this week / this month) use store-local midnight
    POS_TIMEZONE = os.environ.get("POS_TIMEZONE", "UTC")
    WEEK_START = os.environ.get("WEEK_START", "sunday")

    SALES_PER_PAGE = int(os.environ.get("SALES_PER_PAGE", 10))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }

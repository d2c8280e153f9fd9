# Overview: Flask API routes for health, backup/restore and uploaded product images.

# backend/martpos/routes/system.py
"""
System endpoints.

- /api/health reports whether the configured storage backend answers
- /api/backup and /api/restore move the whole catalog + ledger as one JSON document
- /uploads/<name> serves product images stored under UPLOAD_FOLDER
"""

import time

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from ..services.backup_service import BackupError, build_backup, restore_backup
from ..storage import StorageError, get_storage
from martpos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_storage_health() -> dict:
    """
    Check storage connectivity with a cheap read.

    Returns dict with status and details.
    """
    start_time = time.time()
    storage = get_storage()
    try:
        counts = storage.ping()
    except StorageError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "backend": storage.backend_name,
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error",
        }

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "status": "healthy",
        "backend": storage.backend_name,
        "latency_ms": round(elapsed_ms, 2),
        "details": counts,
    }


@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: storage healthy
    - 503: storage unreachable
    """
    storage_health = check_storage_health()
    http_status = 200 if storage_health["status"] == "healthy" else 503

    return {
        "status": storage_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"storage": storage_health},
    }, http_status


@system_bp.get("/api/backup")
def backup():
    try:
        document = build_backup(get_storage())
    except StorageError:
        current_app.logger.exception("Failed to build backup")
        return jsonify({"error": "Internal server error"}), 500

    response = jsonify(document)
    stamp = document["timestamp"][:10]
    response.headers["Content-Disposition"] = f'attachment; filename="martpos_backup_{stamp}.json"'
    return response


@system_bp.post("/api/restore")
def restore():
    """
    Replace products and sales with the uploaded backup. Categories are kept.

    Body: the backup document, or just its `data` object.
    """
    document = request.get_json(silent=True)
    try:
        restored = restore_backup(get_storage(), document)
    except BackupError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to restore backup")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "restored": restored}), 200


@system_bp.get("/uploads/<path:name>")
def uploaded_image(name: str):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], name)

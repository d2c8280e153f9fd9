# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import category_service
from ..storage import StorageError, get_storage
from ..validation import ValidationError

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    """List categories; an empty list is seeded with the defaults."""
    try:
        return jsonify(category_service.list_categories(get_storage()))
    except StorageError:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        category = category_service.add_category(get_storage(), payload.get("name"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(category), 201


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        deleted = category_service.delete_category(get_storage(), category_id)
    except StorageError:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Category not found"}), 404
    return jsonify({"ok": True}), 200

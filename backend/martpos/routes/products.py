# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/martpos/routes/products.py
"""
Product catalog routes.

Payloads are validated against the Product model columns whichever storage
backend is active; code uniqueness is a 409.
"""
from flask import Blueprint, Response, current_app, jsonify, request

from ..models import Product
from ..services import products_service
from ..services.export_service import export_filename, inventory_csv
from ..services.image_service import ImageError
from ..storage import StorageError, get_storage
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    enforce_rules_stock_adjust,
    ValidationError,
    ConflictError,
)
from martpos.time_utils import utcnow

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code", "name", "category", "cost_price", "retail_price",
        "discount_type", "discount_rate", "discount_value",
        "stock", "low_stock_threshold", "image",
    },
    required_on_create={"code", "name"},
    ignored_fields={"id", "created_at", "updated_at"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _validated_patch(payload, *, partial: bool) -> dict:
    """
    Column validation for everything but `image`, which may be a data URL far
    longer than the stored reference column.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    has_image = "image" in payload
    image = payload.pop("image", None)
    if image is not None and not isinstance(image, str):
        raise ValidationError("image must be a string")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    if has_image:
        patch["image"] = image
    return patch


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params:
    - search: substring of name or code (case-insensitive)
    - category: exact category name ("all" = no filter)
    - low_stock: true/1 to keep only products at or below their threshold
    """
    try:
        result = products_service.list_products(
            get_storage(),
            search=request.args.get("search"),
            category=request.args.get("category"),
            low_stock=_truthy(request.args.get("low_stock")),
        )
    except StorageError:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result)


@products_bp.get("/next-code")
def next_code_route():
    try:
        return jsonify({"code": products_service.next_code(get_storage())})
    except StorageError:
        current_app.logger.exception("Failed to compute next product code")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/export")
def export_products_route():
    """Inventory CSV download."""
    try:
        products = get_storage().list_products()
    except StorageError:
        current_app.logger.exception("Failed to export inventory")
        return jsonify({"error": "Internal server error"}), 500

    filename = export_filename("inventory", utcnow().date())
    return Response(
        inventory_csv(products),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(get_storage(), product_id)
    except StorageError:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500

    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product)


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    `image` may be a base64 data URL; it is stored under UPLOAD_FOLDER.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = _validated_patch(payload, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(
            get_storage(), patch, upload_folder=current_app.config["UPLOAD_FOLDER"]
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ImageError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = _validated_patch(payload, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(
            get_storage(), product_id, patch, upload_folder=current_app.config["UPLOAD_FOLDER"]
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ImageError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    if not updated:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Delete a product and its stored image. Recorded sales keep their snapshots."""
    try:
        deleted = products_service.delete_product(
            get_storage(), product_id, upload_folder=current_app.config["UPLOAD_FOLDER"]
        )
    except StorageError:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"ok": True}), 200


@products_bp.patch("/<int:product_id>/stock")
def adjust_stock_route(product_id: int):
    """Relative stock change. Body: {"change": int}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        change = enforce_rules_stock_adjust(payload.get("change"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.adjust_stock(get_storage(), product_id, change)
    except StorageError:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500

    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product), 200

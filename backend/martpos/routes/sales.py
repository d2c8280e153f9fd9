# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/martpos/routes/sales.py
"""Sales API routes: checkout, ledger queries, credit settlement and returns"""

from datetime import date

from flask import Blueprint, Response, current_app, jsonify, request

from ..services import checkout_service, return_service, sales_service
from ..services.cart_service import CartError, cart_from_payload, cart_item_count, cart_totals
from ..services.checkout_service import CheckoutError, PaymentDetails, StockSyncError
from ..services.export_service import export_filename, sales_csv
from ..services.pricing import cart_profit, money
from ..services.products_service import products_by_id
from ..services.return_service import ReturnError, SaleNotFoundError
from ..services.sales_service import SaleError, SaleNotFound
from ..storage import StorageError, get_storage
from martpos.time_utils import store_zone, to_store_local, utcnow


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _zone():
    return store_zone(current_app.config.get("POS_TIMEZONE"))


def _cart_from_request(payload: dict):
    return cart_from_payload(payload, products_by_id(get_storage()))


@sales_bp.get("")
def list_sales_route():
    """
    Sales history, newest first.

    Query params:
    - date: YYYY-MM-DD in store-local time
    - search: invoice number, customer name or phone
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default SALES_PER_PAGE, max 100)
    """
    raw_date = request.args.get("date")
    on_date = None
    if raw_date:
        try:
            on_date = date.fromisoformat(raw_date)
        except ValueError:
            return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int) or current_app.config["SALES_PER_PAGE"]

    try:
        result = sales_service.list_sales(
            get_storage(),
            on_date=on_date,
            search=request.args.get("search"),
            page=page,
            per_page=per_page,
            zone=_zone(),
        )
    except StorageError:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result)


@sales_bp.delete("")
def clear_sales_route():
    """Delete the whole sales history. Products and stock are untouched."""
    try:
        removed = sales_service.clear_sales(get_storage())
    except StorageError:
        current_app.logger.exception("Failed to clear sales")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.warning("Sales history cleared (%d sales)", removed)
    return jsonify({"success": True, "removed": removed}), 200


@sales_bp.get("/export")
def export_sales_route():
    """Sales history CSV download."""
    zone = _zone()
    try:
        sales = get_storage().list_sales()
    except StorageError:
        current_app.logger.exception("Failed to export sales")
        return jsonify({"error": "Internal server error"}), 500

    filename = export_filename("sales_history", to_store_local(utcnow(), zone).date())
    return Response(
        sales_csv(sales, zone),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@sales_bp.get("/lookup")
def lookup_sale_route():
    """Find a sale by invoice number (?invoice=INV-00000042)."""
    number = request.args.get("invoice")
    if not number:
        return jsonify({"error": "invoice required"}), 400

    try:
        sale = sales_service.get_sale_by_invoice(get_storage(), number)
    except SaleNotFound as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except StorageError:
        current_app.logger.exception("Failed to look up sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sales_service.sale_details(sale)), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Sale detail view: record, invoice number, price breakdown, allowed actions."""
    try:
        sale = sales_service.get_sale(get_storage(), sale_id)
    except SaleNotFound as e:
        return jsonify({"error": str(e)}), 404
    except StorageError:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sales_service.sale_details(sale)), 200


@sales_bp.post("/quote")
def quote_route():
    """
    Price a cart without recording anything.

    Body: same cart shape as /checkout (payment fields ignored).
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        cart = _cart_from_request(payload)
    except CartError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except StorageError:
        current_app.logger.exception("Failed to price cart")
        return jsonify({"error": "Internal server error"}), 500

    breakdown = cart_totals(cart)
    return jsonify({
        "breakdown": breakdown.to_dict(),
        "item_count": cart_item_count(cart),
        "total_profit": money(cart_profit(cart.lines, breakdown)),
    }), 200


@sales_bp.post("/checkout")
def checkout_route():
    """
    Record a sale from a cart and decrement stock.

    Body:
        {"items": [{"product_id": 1, "qty": 2}], "bill_discount_type": "percent",
         "bill_discount_rate": 10, "payment_method": "Cash", "cash_received": 200,
         "customer_name": "...", "customer_phone": "..."}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        cart = _cart_from_request(payload)
        payment = PaymentDetails.from_payload(payload)
        result = checkout_service.checkout(get_storage(), cart, payment)

    except CartError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except StockSyncError as e:
        # Sale exists; stock for the listed lines needs manual correction
        return jsonify({"error": str(e), "details": e.details, "sale": e.sale}), 500
    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except StorageError:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result.to_dict()), 201


@sales_bp.post("/<int:sale_id>/mark-paid")
def mark_paid_route(sale_id: int):
    try:
        sale = sales_service.mark_sale_paid(get_storage(), sale_id)
    except SaleNotFound as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except StorageError:
        current_app.logger.exception("Failed to mark sale paid")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale}), 200


@sales_bp.post("/<int:sale_id>/returns")
def return_items_route(sale_id: int):
    """Partial return. Body: {"line_index": 0, "qty": 1}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        sale = return_service.return_items(
            get_storage(), sale_id, payload.get("line_index"), payload.get("qty")
        )
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale}), 200


@sales_bp.post("/<int:sale_id>/return-full")
def return_full_route(sale_id: int):
    try:
        sale = return_service.return_full_bill(get_storage(), sale_id)
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to process full return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale}), 200

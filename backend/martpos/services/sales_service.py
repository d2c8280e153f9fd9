"""
Sales Service - ledger reads and the credit-sale settlement

Read operations never write: listing, lookup and the detail view model are
all derived from storage on each call.
"""

from __future__ import annotations

from datetime import date, timezone, tzinfo

from ..storage import Storage
from martpos.time_utils import parse_iso_datetime, to_store_local
from .checkout_service import PAYMENT_CASH, STATUS_CREDIT, STATUS_PAID
from .identifier_service import INVOICE_PREFIX, invoice_number, parse_id
from .pricing import ZERO, money, price_sale, to_decimal


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFound(SaleError):
    pass


def _sale_local_date(sale: dict, zone: tzinfo) -> date | None:
    ts = parse_iso_datetime(sale.get("timestamp"))
    if ts is None:
        return None
    return to_store_local(ts, zone).date()


def _matches_search(sale: dict, needle: str) -> bool:
    haystacks = (
        invoice_number(sale["id"]).lower(),
        (sale.get("customer_name") or "").lower(),
        (sale.get("customer_phone") or "").lower(),
    )
    return any(needle in h for h in haystacks)


def list_sales(
    storage: Storage,
    *,
    on_date: date | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    zone: tzinfo = timezone.utc,
) -> dict:
    """
    Sales history, newest first, with optional filters and pagination.

    Args:
        on_date: keep sales whose store-local date equals this date
        search: case-insensitive match on invoice number, customer name, phone
        page: 1-indexed page. If None, returns all items.
        per_page: items per page (default 10, max 100)

    Returns:
        Dict with 'items', 'count', 'totals' (over every filtered sale, not
        just the page) and pagination metadata if paginated.
    """
    sales = storage.list_sales()

    if on_date is not None:
        sales = [s for s in sales if _sale_local_date(s, zone) == on_date]

    needle = (search or "").strip().lower()
    if needle:
        sales = [s for s in sales if _matches_search(s, needle)]

    totals = {
        "total_amount": money(sum((to_decimal(s.get("total_amount")) for s in sales), ZERO)),
        "total_profit": money(sum((to_decimal(s.get("total_profit")) for s in sales), ZERO)),
    }

    if page is None:
        return {"items": sales, "count": len(sales), "totals": totals}

    per_page = max(1, min(per_page or 10, 100))
    total = len(sales)
    total_pages = max(1, (total + per_page - 1) // per_page)
    # Out-of-range pages snap back to the last page
    page = min(max(page, 1), total_pages)

    start = (page - 1) * per_page
    items = sales[start:start + per_page]

    return {
        "items": items,
        "count": len(items),
        "totals": totals,
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_sale(storage: Storage, sale_id: int) -> dict:
    sale = storage.get_sale(sale_id)
    if not sale:
        raise SaleNotFound(f"Sale {sale_id} not found")
    return sale


def get_sale_by_invoice(storage: Storage, number: str) -> dict:
    """Lookup by formatted invoice number, e.g. INV-00000042."""
    try:
        sale_id = parse_id(number, INVOICE_PREFIX)
    except ValueError as exc:
        raise SaleError(str(exc))
    return get_sale(storage, sale_id)


def sale_details(sale: dict) -> dict:
    """
    View model for the sale detail screen / reprint.

    The price breakdown is re-derived from the stored snapshots; after a
    return it describes the remaining lines, not the original bill.
    """
    return {
        "sale": sale,
        "invoice_number": invoice_number(sale["id"]),
        "breakdown": price_sale(sale).to_dict(),
        "line_totals": [
            money(to_decimal(item.get("price")) * int(item.get("qty") or 0))
            for item in sale.get("items") or []
        ],
        "can_mark_paid": sale.get("payment_status") == STATUS_CREDIT,
        "can_return": bool(sale.get("items")),
    }


def mark_sale_paid(storage: Storage, sale_id: int) -> dict:
    """Settle a credit sale in cash for its current total."""
    sale = get_sale(storage, sale_id)
    if sale.get("payment_status") != STATUS_CREDIT:
        raise SaleError(
            f"Only credit sales can be marked paid. Sale {sale_id} is {sale.get('payment_status')}"
        )

    return storage.update_sale(sale_id, {
        "payment_status": STATUS_PAID,
        "payment_method": PAYMENT_CASH,
        "payment": {"cash": sale["total_amount"], "balance": ZERO},
    })


def clear_sales(storage: Storage) -> int:
    """Delete the whole sales history. Returns how many sales were removed."""
    return storage.clear_sales()

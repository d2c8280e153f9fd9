"""
Return Processing Service

Partial returns (one line, some quantity) and full-bill returns against a
recorded sale. Both restock first, then rewrite the sale in place; the
pre-return state is not kept anywhere.

ACCOUNTING NOTE:
After a partial return the sale totals are recomputed as sum(qty * price)
and sum((price - cost) * qty) over the remaining lines. Line and bill
discounts are not re-applied, so the recomputed total can be higher than
what the customer originally paid for the same lines.
"""

from __future__ import annotations

import logging

from ..storage import RecordNotFound, Storage
from .identifier_service import invoice_number
from .pricing import ZERO, money, recompute_after_return, to_decimal

logger = logging.getLogger(__name__)


class ReturnError(Exception):
    """Raised for return validation errors; nothing has been written."""
    pass


class SaleNotFoundError(ReturnError):
    pass


def _load_sale(storage: Storage, sale_id: int) -> dict:
    sale = storage.get_sale(sale_id)
    if not sale:
        raise SaleNotFoundError(f"Sale {sale_id} not found")
    return sale


def _restock(storage: Storage, sale_id: int, item: dict, qty: int) -> None:
    try:
        storage.adjust_stock(item["product_id"], qty)
    except RecordNotFound:
        # Product deleted since the sale; the ledger side of the return still applies
        logger.warning(
            "Return on %s: product_id=%s no longer exists, %s unit(s) not restocked",
            invoice_number(sale_id), item["product_id"], qty,
        )


def return_items(storage: Storage, sale_id: int, line_index: int, return_qty: int) -> dict:
    """
    Return `return_qty` units of the sale line at `line_index`.

    Returns the updated sale.

    Raises:
        SaleNotFoundError: unknown sale
        ReturnError: bad index, qty < 1, or more than was purchased
        StorageError: restock or sale update failed
    """
    sale = _load_sale(storage, sale_id)
    items = [dict(item) for item in sale.get("items") or []]

    if isinstance(line_index, bool) or not isinstance(line_index, int) or not 0 <= line_index < len(items):
        raise ReturnError(f"Sale {sale_id} has no line {line_index}")
    if isinstance(return_qty, bool) or not isinstance(return_qty, int) or return_qty <= 0:
        raise ReturnError("Return quantity must be a positive integer")

    item = items[line_index]
    if return_qty > item["qty"]:
        raise ReturnError(
            f"Cannot return {return_qty} units. Original sale only had {item['qty']} units."
        )

    _restock(storage, sale_id, item, return_qty)

    item["qty"] -= return_qty
    if item["qty"] == 0:
        items.pop(line_index)
    else:
        items[line_index] = item

    total_amount, total_profit = recompute_after_return(items)
    patch = {
        "items": items,
        "total_amount": total_amount,
        "total_profit": total_profit,
    }
    payment = sale.get("payment")
    if payment:
        # Cash stays as received; balance becomes the amount owed back
        cash = to_decimal(payment.get("cash"))
        patch["payment"] = {"cash": cash, "balance": money(cash - total_amount)}

    updated = storage.update_sale(sale_id, patch)
    logger.info(
        "Returned %s x product_id=%s from %s",
        return_qty, item["product_id"], invoice_number(sale_id),
    )
    return updated


def return_full_bill(storage: Storage, sale_id: int) -> dict:
    """
    Return every line of a sale: restock all quantities and zero the sale.

    Raises:
        SaleNotFoundError: unknown sale
        ReturnError: sale has no items left (already returned)
        StorageError: a restock or the sale update failed
    """
    sale = _load_sale(storage, sale_id)
    items = sale.get("items") or []
    if not items:
        raise ReturnError(f"Sale {sale_id} has no items left to return")

    for item in items:
        _restock(storage, sale_id, item, item["qty"])

    patch = {
        "items": [],
        "subtotal": ZERO,
        "total_amount": ZERO,
        "total_profit": ZERO,
    }
    payment = sale.get("payment")
    if payment:
        cash = to_decimal(payment.get("cash"))
        patch["payment"] = {"cash": cash, "balance": cash}

    updated = storage.update_sale(sale_id, patch)
    logger.info("Full bill returned %s (%d lines restocked)", invoice_number(sale_id), len(items))
    return updated

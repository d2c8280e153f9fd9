# Overview: CSV exports of the sales ledger and the inventory list.

from __future__ import annotations

import csv
import io
from datetime import date, timezone, tzinfo

from martpos.time_utils import parse_iso_datetime, to_store_local
from .checkout_service import ANONYMOUS_CUSTOMER, PAYMENT_CASH, STATUS_PAID
from .identifier_service import invoice_number
from .pricing import money

SALES_COLUMNS = [
    "Date", "Invoice ID", "Customer", "Phone", "Method", "Status",
    "Subtotal", "Total Amount", "Profit", "Items Count",
]

INVENTORY_COLUMNS = [
    "Code", "Name", "Category", "Cost Price", "Retail Price", "Stock", "Low Stock Threshold",
]


def _write_rows(header: list[str], rows) -> str:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(header)
    writer.writerows(rows)
    return out.getvalue()


def _local_stamp(value, zone: tzinfo) -> str:
    ts = parse_iso_datetime(value)
    if ts is None:
        return ""
    return to_store_local(ts, zone).strftime("%Y-%m-%d %H:%M:%S")


def sales_csv(sales: list[dict], zone: tzinfo = timezone.utc) -> str:
    rows = (
        [
            _local_stamp(sale.get("timestamp"), zone),
            invoice_number(sale["id"]),
            sale.get("customer_name") or ANONYMOUS_CUSTOMER,
            sale.get("customer_phone") or "",
            sale.get("payment_method") or PAYMENT_CASH,
            sale.get("payment_status") or STATUS_PAID,
            money(sale.get("subtotal")),
            money(sale.get("total_amount")),
            money(sale.get("total_profit")),
            len(sale.get("items") or []),
        ]
        for sale in sales
    )
    return _write_rows(SALES_COLUMNS, rows)


def inventory_csv(products: list[dict]) -> str:
    rows = (
        [
            product.get("code") or "",
            product.get("name") or "",
            product.get("category") or "",
            money(product.get("cost_price")),
            money(product.get("retail_price")),
            product.get("stock") or 0,
            product.get("low_stock_threshold") if product.get("low_stock_threshold") is not None else 3,
        ]
        for product in products
    )
    return _write_rows(INVENTORY_COLUMNS, rows)


def export_filename(kind: str, today: date) -> str:
    return f"{kind}_{today.isoformat()}.csv"

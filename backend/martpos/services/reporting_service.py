# Overview: Service-layer operations for reporting; recomputed from the full ledger on each call.

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal

from ..storage import Storage
from martpos.time_utils import local_to_utc_naive, parse_iso_datetime, to_store_local, to_utc_z, utcnow
from .pricing import HUNDRED, ZERO, money, to_decimal

TOP_PRODUCTS_LIMIT = 5
TOP_CATEGORIES_LIMIT = 4
FALLBACK_CATEGORY = "General"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def week_start_index(name: str | int) -> int:
    if isinstance(name, int):
        if not 0 <= name <= 6:
            raise ReportError("week start must be 0 (Monday) .. 6 (Sunday)")
        return name
    try:
        return WEEKDAYS.index(str(name).strip().lower())
    except ValueError:
        raise ReportError(f"Unknown week start day {name!r}")


def period_cutoffs(
    now: datetime | None = None,
    zone: tzinfo = timezone.utc,
    week_start: str | int = "sunday",
) -> dict[str, datetime]:
    """
    Start of today / this week / this month at store-local midnight,
    returned as UTC-naive datetimes comparable with stored timestamps.

    `now` is UTC-naive (defaults to the current time).
    """
    local_now = to_store_local(now or utcnow(), zone)
    today = local_now.date()

    days_since_week_start = (today.weekday() - week_start_index(week_start)) % 7
    week_day = today - timedelta(days=days_since_week_start)
    month_day = today.replace(day=1)

    def _midnight(day):
        return local_to_utc_naive(datetime.combine(day, time.min, tzinfo=zone))

    return {
        "today": _midnight(today),
        "week": _midnight(week_day),
        "month": _midnight(month_day),
    }


def aggregate_sales(
    sales: list[dict],
    products: list[dict],
    *,
    now: datetime | None = None,
    zone: tzinfo = timezone.utc,
    week_start: str | int = "sunday",
) -> dict:
    """
    Revenue/profit per period plus product and category rankings.

    Period buckets are cumulative: a sale from today also counts toward the
    week and the month. Product revenue is price * qty (before discounts).
    Categories come from the *current* catalog by product id; lines whose
    product is gone fall into "General".
    """
    cutoffs = period_cutoffs(now, zone, week_start)
    periods = {name: {"revenue": ZERO, "profit": ZERO} for name in cutoffs}

    category_by_product = {p["id"]: p.get("category") or FALLBACK_CATEGORY for p in products}

    item_sales: dict = {}
    category_sales: dict[str, Decimal] = {}

    for sale in sales:
        ts = parse_iso_datetime(sale.get("timestamp"))
        if ts is not None:
            for name, cutoff in cutoffs.items():
                if ts >= cutoff:
                    periods[name]["revenue"] += to_decimal(sale.get("total_amount"))
                    periods[name]["profit"] += to_decimal(sale.get("total_profit"))

        for item in sale.get("items") or []:
            qty = int(item.get("qty") or 0)
            revenue = to_decimal(item.get("price")) * qty
            product_id = item.get("product_id")

            entry = item_sales.setdefault(
                product_id,
                {"product_id": product_id, "name": item.get("name"), "qty": 0, "revenue": ZERO},
            )
            entry["qty"] += qty
            entry["revenue"] += revenue

            category = category_by_product.get(product_id, FALLBACK_CATEGORY)
            category_sales[category] = category_sales.get(category, ZERO) + revenue

    top_products = sorted(item_sales.values(), key=lambda e: e["qty"], reverse=True)[:TOP_PRODUCTS_LIMIT]

    top_categories = sorted(category_sales.items(), key=lambda kv: kv[1], reverse=True)[:TOP_CATEGORIES_LIMIT]
    # Share of the listed categories' combined revenue, not of all revenue
    top_total = sum((revenue for _, revenue in top_categories), ZERO)

    return {
        "periods": {
            name: {"revenue": money(values["revenue"]), "profit": money(values["profit"])}
            for name, values in periods.items()
        },
        "top_products": [
            {**entry, "revenue": money(entry["revenue"])} for entry in top_products
        ],
        "top_categories": [
            {
                "name": name,
                "revenue": money(revenue),
                "percent": money(revenue / top_total * HUNDRED) if top_total else money(0),
            }
            for name, revenue in top_categories
        ],
    }


def build_dashboard(
    storage: Storage,
    *,
    now: datetime | None = None,
    zone: tzinfo = timezone.utc,
    week_start: str | int = "sunday",
) -> dict:
    """Dashboard report over the whole ledger and the current catalog."""
    now = now or utcnow()
    report = aggregate_sales(
        storage.list_sales(),
        storage.list_products(),
        now=now,
        zone=zone,
        week_start=week_start,
    )
    cutoffs = period_cutoffs(now, zone, week_start)
    report["cutoffs"] = {name: to_utc_z(cutoff) for name, cutoff in cutoffs.items()}
    return report

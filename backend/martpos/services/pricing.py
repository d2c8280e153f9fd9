# Overview: Pure cart and sale arithmetic; no storage, no Flask.

"""
Pricing Engine

Turns cart lines plus a bill-level discount into subtotal, discounts and the
grand total, and derives the approximate profit recorded on a sale.

RULES:
- line_total = qty * unit_price
- line discount is a fixed amount or line_total * rate / 100
- totals are only clamped at the max(0, ...) boundaries; negative inputs are
  accepted as-is
- sale profit subtracts the bill discount once from the summed line profits
  (not pro-rated per line) and floors at 0
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Sequence, Union

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

DISCOUNT_PERCENT = "percent"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENT, DISCOUNT_FIXED)


class PricingError(ValueError):
    """Raised when a value cannot be interpreted as an amount."""


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Coerce API/JSON input (int, float, str, Decimal, None) to Decimal."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise PricingError(f"{field} must be a number")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PricingError(f"{field} must be a number")
    if not result.is_finite():
        raise PricingError(f"{field} must be a finite number")
    return result


def money(value: Any) -> Decimal:
    """Quantize to 2 decimal places for persistence."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# DISCOUNTS
# =============================================================================

@dataclass(frozen=True)
class Percent:
    rate: Decimal = ZERO

    def amount_off(self, base: Decimal) -> Decimal:
        return base * self.rate / HUNDRED


@dataclass(frozen=True)
class Fixed:
    amount: Decimal = ZERO

    def amount_off(self, base: Decimal) -> Decimal:
        return self.amount


Discount = Union[Percent, Fixed]

NO_DISCOUNT = Percent(ZERO)


def discount_from_fields(discount_type: str | None, rate: Any = None, value: Any = None) -> Discount:
    """Build a Discount from the stored (type, rate, value) triple."""
    if discount_type == DISCOUNT_FIXED:
        return Fixed(to_decimal(value, "discount_value"))
    if discount_type in (None, "", DISCOUNT_PERCENT):
        return Percent(to_decimal(rate, "discount_rate"))
    raise PricingError(f"discount_type must be one of {', '.join(DISCOUNT_TYPES)}")


def discount_to_fields(discount: Discount) -> dict:
    """Inverse of discount_from_fields; the inactive field is always 0."""
    if isinstance(discount, Fixed):
        return {
            "discount_type": DISCOUNT_FIXED,
            "discount_rate": money(0),
            "discount_value": money(discount.amount),
        }
    return {
        "discount_type": DISCOUNT_PERCENT,
        "discount_rate": money(discount.rate),
        "discount_value": money(0),
    }


def product_default_discount(product: dict) -> Discount:
    """The line discount a product carries into the cart."""
    return discount_from_fields(
        product.get("discount_type"),
        product.get("discount_rate"),
        product.get("discount_value"),
    )


# =============================================================================
# CART PRICING
# =============================================================================

@dataclass(frozen=True)
class CartLine:
    product_id: int
    code: str | None
    name: str
    unit_price: Decimal
    unit_cost: Decimal
    qty: int = 1
    discount: Discount = NO_DISCOUNT


@dataclass(frozen=True)
class LinePrice:
    line_total: Decimal
    line_discount: Decimal
    net_line_total: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    lines: tuple[LinePrice, ...]
    subtotal: Decimal
    item_discount_total: Decimal
    after_item_discount: Decimal
    bill_discount_amount: Decimal
    final_total: Decimal
    total_discount: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": money(self.subtotal),
            "item_discount_total": money(self.item_discount_total),
            "bill_discount_amount": money(self.bill_discount_amount),
            "total_discount": money(self.total_discount),
            "total_amount": money(self.final_total),
            "lines": [
                {
                    "line_total": money(line.line_total),
                    "line_discount": money(line.line_discount),
                    "net_line_total": money(line.net_line_total),
                }
                for line in self.lines
            ],
        }


def price_line(qty: Any, unit_price: Any, discount: Discount) -> LinePrice:
    line_total = Decimal(qty) * to_decimal(unit_price)
    line_discount = discount.amount_off(line_total)
    return LinePrice(
        line_total=line_total,
        line_discount=line_discount,
        net_line_total=max(ZERO, line_total - line_discount),
    )


def price_cart(lines: Sequence[CartLine], bill_discount: Discount = NO_DISCOUNT) -> PriceBreakdown:
    """Price an ordered sequence of cart lines plus a bill-level discount."""
    priced = tuple(price_line(line.qty, line.unit_price, line.discount) for line in lines)

    subtotal = sum((p.line_total for p in priced), ZERO)
    item_discount_total = sum((p.line_discount for p in priced), ZERO)
    after_item_discount = subtotal - item_discount_total
    bill_discount_amount = bill_discount.amount_off(after_item_discount)

    return PriceBreakdown(
        lines=priced,
        subtotal=subtotal,
        item_discount_total=item_discount_total,
        after_item_discount=after_item_discount,
        bill_discount_amount=bill_discount_amount,
        final_total=max(ZERO, after_item_discount - bill_discount_amount),
        total_discount=item_discount_total + bill_discount_amount,
    )


def cart_profit(lines: Sequence[CartLine], breakdown: PriceBreakdown) -> Decimal:
    """
    Approximate sale profit.

    Each line earns its post-discount revenue minus cost * qty; the bill
    discount is then subtracted once and the result floored at 0.
    """
    line_profit = sum(
        (
            priced.net_line_total - line.unit_cost * line.qty
            for line, priced in zip(lines, breakdown.lines)
        ),
        ZERO,
    )
    return max(ZERO, line_profit - breakdown.bill_discount_amount)


# =============================================================================
# STORED SALES
# =============================================================================

def sale_lines(sale: dict) -> list[CartLine]:
    """Rebuild cart lines from a stored sale's item snapshots."""
    return [
        CartLine(
            product_id=item.get("product_id"),
            code=item.get("code"),
            name=item.get("name") or "",
            unit_price=to_decimal(item.get("price")),
            unit_cost=to_decimal(item.get("cost")),
            qty=int(item.get("qty") or 0),
            discount=discount_from_fields(
                item.get("discount_type"),
                item.get("discount_rate"),
                item.get("discount_value"),
            ),
        )
        for item in sale.get("items") or []
    ]


def sale_bill_discount(sale: dict) -> Discount:
    return discount_from_fields(
        sale.get("bill_discount_type"),
        sale.get("bill_discount_rate"),
        sale.get("bill_discount_value"),
    )


def price_sale(sale: dict) -> PriceBreakdown:
    """Re-derive the price breakdown of a recorded sale (display / reprint)."""
    return price_cart(sale_lines(sale), sale_bill_discount(sale))


def recompute_after_return(items: Iterable[dict]) -> tuple[Decimal, Decimal]:
    """
    Totals of a sale after a partial return: (total_amount, total_profit).

    Only qty * price and (price - cost) * qty are summed; neither line nor
    bill discounts are re-applied.
    """
    items = list(items)
    total_amount = sum((to_decimal(i.get("price")) * int(i.get("qty") or 0) for i in items), ZERO)
    total_profit = sum(
        ((to_decimal(i.get("price")) - to_decimal(i.get("cost"))) * int(i.get("qty") or 0) for i in items),
        ZERO,
    )
    return money(total_amount), money(total_profit)

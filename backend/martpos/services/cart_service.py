# Overview: Cart state and reducer-style operations; pure, no storage.

"""
Cart Service

The cart is an immutable CartState; every operation takes a state and returns
a new one, so cart math can be exercised without a UI or a server.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping

from .pricing import (
    NO_DISCOUNT,
    CartLine,
    Discount,
    PriceBreakdown,
    PricingError,
    discount_from_fields,
    money,
    price_cart,
    product_default_discount,
    to_decimal,
)


class CartError(ValueError):
    """Raised when a cart payload cannot be turned into cart lines."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class CartState:
    lines: tuple[CartLine, ...] = ()
    bill_discount: Discount = NO_DISCOUNT

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_id) -> CartLine | None:
        return next((line for line in self.lines if line.product_id == product_id), None)


def empty_cart() -> CartState:
    return CartState()


def line_from_product(product: dict, qty: int = 1, discount: Discount | None = None) -> CartLine:
    """New cart line carrying the product's default discount."""
    return CartLine(
        product_id=product["id"],
        code=product.get("code"),
        name=product.get("name") or "",
        unit_price=to_decimal(product.get("retail_price"), "retail_price"),
        unit_cost=to_decimal(product.get("cost_price"), "cost_price"),
        qty=qty,
        discount=discount if discount is not None else product_default_discount(product),
    )


def _replace_line(state: CartState, product_id, new_line: CartLine | None) -> CartState:
    lines = []
    for line in state.lines:
        if line.product_id == product_id:
            if new_line is not None:
                lines.append(new_line)
        else:
            lines.append(line)
    return replace(state, lines=tuple(lines))


def add_to_cart(state: CartState, product: dict) -> CartState:
    existing = state.find(product["id"])
    if existing:
        return _replace_line(state, existing.product_id, replace(existing, qty=existing.qty + 1))
    return replace(state, lines=state.lines + (line_from_product(product),))


def update_cart_item_qty(state: CartState, product_id, change: int) -> CartState:
    """Step quantity up or down by one; a line reaching 0 leaves the cart."""
    line = state.find(product_id)
    if line is None:
        return state
    qty = line.qty + 1 if change > 0 else line.qty - 1
    if qty <= 0:
        return remove_from_cart(state, product_id)
    return _replace_line(state, product_id, replace(line, qty=qty))


def remove_from_cart(state: CartState, product_id) -> CartState:
    return _replace_line(state, product_id, None)


def set_item_discount(state: CartState, product_id, discount: Discount) -> CartState:
    line = state.find(product_id)
    if line is None:
        return state
    return _replace_line(state, product_id, replace(line, discount=discount))


def set_bill_discount(state: CartState, discount: Discount) -> CartState:
    return replace(state, bill_discount=discount)


def clear_cart(state: CartState | None = None) -> CartState:
    return empty_cart()


def cart_totals(state: CartState) -> PriceBreakdown:
    return price_cart(state.lines, state.bill_discount)


def cart_item_count(state: CartState) -> int:
    return sum(line.qty for line in state.lines)


def _payload_discount(payload: Mapping, prefix: str = "") -> Discount | None:
    discount_type = payload.get(f"{prefix}discount_type")
    if discount_type is None and f"{prefix}discount_rate" not in payload and f"{prefix}discount_value" not in payload:
        return None
    return discount_from_fields(
        discount_type,
        money(payload.get(f"{prefix}discount_rate")),
        money(payload.get(f"{prefix}discount_value")),
    )


def cart_from_payload(payload: Mapping, products_by_id: Mapping) -> CartState:
    """
    Build a CartState from a checkout/quote request.

    Expected shape:
        {"items": [{"product_id": 1, "qty": 2, "discount_type": "percent",
                    "discount_rate": 5}],
         "bill_discount_type": "fixed", "bill_discount_value": 50}

    Unit price and cost always come from the current catalog. A line without
    discount fields gets the product's default discount.
    """
    items = payload.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise CartError("items must be a list")

    state = empty_cart()
    unknown = []
    try:
        for raw in items:
            if not isinstance(raw, Mapping):
                raise CartError("each item must be an object")
            product_id = raw.get("product_id")
            product = products_by_id.get(product_id)
            if product is None:
                unknown.append(product_id)
                continue

            qty = raw.get("qty", 1)
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
                raise CartError("qty must be an integer >= 1", details={"product_id": product_id})

            existing = state.find(product["id"])
            if existing:
                # Repeated product ids collapse into one line
                state = _replace_line(state, existing.product_id, replace(existing, qty=existing.qty + qty))
                continue

            discount = _payload_discount(raw)
            state = replace(state, lines=state.lines + (line_from_product(product, qty, discount),))

        bill_discount = _payload_discount(payload, prefix="bill_")
    except PricingError as exc:
        raise CartError(str(exc))

    if unknown:
        raise CartError("Unknown product in cart", details={"product_ids": unknown})

    if bill_discount is not None:
        state = set_bill_discount(state, bill_discount)
    return state

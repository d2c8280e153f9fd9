"""
Checkout Service - cart to ledger

Validates the cart and payment, records the sale with price/cost snapshots,
then decrements stock line by line.

CONSISTENCY:
The sale write and the stock decrements are separate storage calls. If a
decrement fails after the sale was written, the sale is NOT rolled back:
every failure is logged and a StockSyncError names the sale and the lines
whose stock still needs correcting. The caller keeps its cart on any error;
the cleared cart is only handed back on success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from ..storage import Storage, StorageError
from martpos.time_utils import to_utc_z, utcnow
from .cart_service import CartState, clear_cart
from .identifier_service import invoice_number
from .pricing import ZERO, cart_profit, discount_to_fields, money, price_cart, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_CASH = "Cash"
PAYMENT_CREDIT = "Credit"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CREDIT)

STATUS_PAID = "Paid"
STATUS_CREDIT = "Credit"

ANONYMOUS_CUSTOMER = "Anonymous"


class CheckoutError(Exception):
    """Raised for checkout validation errors; nothing has been persisted."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptyCartError(CheckoutError):
    pass


class InsufficientFundsError(CheckoutError):
    pass


class StockSyncError(CheckoutError):
    """The sale is recorded but some stock decrements failed."""
    def __init__(self, message: str, sale: dict, failed_items: list[dict]):
        super().__init__(
            message,
            details={
                "sale_id": sale["id"],
                "invoice_number": invoice_number(sale["id"]),
                "failed_items": failed_items,
            },
        )
        self.sale = sale
        self.failed_items = failed_items


@dataclass(frozen=True)
class PaymentDetails:
    method: str = PAYMENT_CASH
    cash_received: Decimal = ZERO
    customer_name: str | None = None
    customer_phone: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PaymentDetails":
        method = payload.get("payment_method") or PAYMENT_CASH
        if method not in PAYMENT_METHODS:
            raise CheckoutError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
        try:
            cash = to_decimal(payload.get("cash_received"), "cash_received")
        except ValueError as exc:
            raise CheckoutError(str(exc))
        return cls(
            method=method,
            cash_received=cash,
            customer_name=(payload.get("customer_name") or "").strip() or None,
            customer_phone=(payload.get("customer_phone") or "").strip() or None,
        )


@dataclass
class CheckoutResult:
    sale: dict
    invoice_number: str
    cart: CartState = field(default_factory=clear_cart)

    def to_dict(self) -> dict:
        return {"sale": self.sale, "invoice_number": self.invoice_number}


def build_sale(cart: CartState, payment: PaymentDetails) -> dict:
    """
    Price the cart and assemble the sale record (without id).

    Raises EmptyCartError / InsufficientFundsError before anything is written.
    """
    if cart.is_empty:
        raise EmptyCartError("Cart is empty")

    breakdown = price_cart(cart.lines, cart.bill_discount)
    total_amount = money(breakdown.final_total)

    if payment.method == PAYMENT_CASH and payment.cash_received < total_amount:
        raise InsufficientFundsError(
            "Insufficient cash",
            details={
                "total_amount": str(total_amount),
                "cash_received": str(money(payment.cash_received)),
            },
        )

    if payment.method == PAYMENT_CREDIT:
        cash, balance, status = ZERO, ZERO, STATUS_CREDIT
    else:
        cash, balance, status = payment.cash_received, payment.cash_received - total_amount, STATUS_PAID

    bill_fields = discount_to_fields(cart.bill_discount)

    return {
        "timestamp": to_utc_z(utcnow()),
        "items": [
            {
                "product_id": line.product_id,
                "code": line.code,
                "name": line.name,
                "qty": line.qty,
                # Snapshots: later product edits must not rewrite history
                "price": money(line.unit_price),
                "cost": money(line.unit_cost),
                **discount_to_fields(line.discount),
            }
            for line in cart.lines
        ],
        "subtotal": money(breakdown.subtotal),
        "total_amount": total_amount,
        "total_profit": money(cart_profit(cart.lines, breakdown)),
        "bill_discount_type": bill_fields["discount_type"],
        "bill_discount_rate": bill_fields["discount_rate"],
        "bill_discount_value": bill_fields["discount_value"],
        "payment": {"cash": money(cash), "balance": money(balance)},
        "payment_method": payment.method,
        "payment_status": status,
        "customer_name": payment.customer_name or ANONYMOUS_CUSTOMER,
        "customer_phone": payment.customer_phone or "",
    }


def checkout(storage: Storage, cart: CartState, payment: PaymentDetails) -> CheckoutResult:
    """
    Record a sale and decrement stock.

    Raises:
        EmptyCartError, InsufficientFundsError: validation, nothing written
        StorageError: the sale could not be recorded, nothing written
        StockSyncError: sale recorded, some stock decrements failed
    """
    sale = storage.create_sale(build_sale(cart, payment))
    number = invoice_number(sale["id"])

    failed_items = []
    for line in cart.lines:
        try:
            storage.adjust_stock(line.product_id, -line.qty)
        except StorageError as exc:
            logger.error(
                "Stock decrement failed for %s product_id=%s qty=%s: %s",
                number, line.product_id, line.qty, exc,
            )
            failed_items.append({"product_id": line.product_id, "qty": line.qty, "error": str(exc)})

    if failed_items:
        raise StockSyncError(
            f"Sale {number} recorded but stock was not updated for {len(failed_items)} item(s)",
            sale=sale,
            failed_items=failed_items,
        )

    logger.info("Checkout complete %s total=%s items=%d", number, sale["total_amount"], len(cart.lines))
    return CheckoutResult(sale=sale, invoice_number=number, cart=clear_cart(cart))

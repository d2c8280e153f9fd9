# Overview: Pytest coverage for cart reducers and cart payload parsing.

from decimal import Decimal

import pytest

from martpos.services.cart_service import (
    CartError,
    add_to_cart,
    cart_from_payload,
    cart_item_count,
    cart_totals,
    clear_cart,
    empty_cart,
    remove_from_cart,
    set_bill_discount,
    set_item_discount,
    update_cart_item_qty,
)
from martpos.services.pricing import Fixed, Percent


PEN = {
    "id": 1, "code": "PRD-00000001", "name": "Pen", "retail_price": Decimal("100.00"),
    "cost_price": Decimal("60.00"), "discount_type": "percent", "discount_rate": Decimal("0"),
    "discount_value": Decimal("0"),
}
BOOK = {
    "id": 2, "code": "PRD-00000002", "name": "Book", "retail_price": Decimal("250.00"),
    "cost_price": Decimal("200.00"), "discount_type": "fixed", "discount_rate": Decimal("0"),
    "discount_value": Decimal("10.00"),
}


class TestReducers:

    def test_add_new_product(self):
        state = add_to_cart(empty_cart(), PEN)
        assert len(state.lines) == 1
        assert state.lines[0].qty == 1
        assert state.lines[0].unit_price == Decimal("100.00")

    def test_add_existing_increments(self):
        state = add_to_cart(add_to_cart(empty_cart(), PEN), PEN)
        assert len(state.lines) == 1
        assert state.lines[0].qty == 2

    def test_add_carries_product_default_discount(self):
        state = add_to_cart(empty_cart(), BOOK)
        assert state.lines[0].discount == Fixed(Decimal("10.00"))

    def test_reducers_do_not_mutate_input(self):
        original = add_to_cart(empty_cart(), PEN)
        add_to_cart(original, PEN)
        assert original.lines[0].qty == 1

    def test_update_qty_steps_by_one(self):
        state = add_to_cart(empty_cart(), PEN)
        state = update_cart_item_qty(state, 1, +5)
        assert state.lines[0].qty == 2

    def test_update_qty_to_zero_removes_line(self):
        state = add_to_cart(empty_cart(), PEN)
        state = update_cart_item_qty(state, 1, -1)
        assert state.is_empty

    def test_update_qty_unknown_product_is_noop(self):
        state = add_to_cart(empty_cart(), PEN)
        assert update_cart_item_qty(state, 99, 1) == state

    def test_remove_keeps_order_of_others(self):
        state = add_to_cart(add_to_cart(empty_cart(), PEN), BOOK)
        state = remove_from_cart(state, 1)
        assert [line.product_id for line in state.lines] == [2]

    def test_item_and_bill_discount(self):
        state = add_to_cart(empty_cart(), PEN)
        state = update_cart_item_qty(state, 1, 1)
        state = set_item_discount(state, 1, Fixed(Decimal("20")))
        state = set_bill_discount(state, Percent(Decimal("10")))

        totals = cart_totals(state)
        assert totals.final_total == Decimal("162")

    def test_clear_and_count(self):
        state = add_to_cart(add_to_cart(add_to_cart(empty_cart(), PEN), PEN), BOOK)
        assert cart_item_count(state) == 3
        assert clear_cart(state).is_empty


class TestCartFromPayload:

    def _products(self):
        return {1: PEN, 2: BOOK}

    def test_builds_lines_from_catalog_prices(self):
        state = cart_from_payload(
            {"items": [{"product_id": 1, "qty": 2, "retail_price": "1"}],
             "bill_discount_type": "percent", "bill_discount_rate": 10},
            self._products(),
        )
        assert state.lines[0].unit_price == Decimal("100.00")
        assert cart_totals(state).final_total == Decimal("180")

    def test_repeated_ids_collapse(self):
        state = cart_from_payload(
            {"items": [{"product_id": 1, "qty": 1}, {"product_id": 1, "qty": 2}]},
            self._products(),
        )
        assert len(state.lines) == 1
        assert state.lines[0].qty == 3

    def test_line_discount_override(self):
        state = cart_from_payload(
            {"items": [{"product_id": 2, "qty": 1, "discount_type": "percent", "discount_rate": 0}]},
            self._products(),
        )
        assert state.lines[0].discount == Percent(Decimal("0"))

    def test_unknown_product(self):
        with pytest.raises(CartError) as exc:
            cart_from_payload({"items": [{"product_id": 42, "qty": 1}]}, self._products())
        assert exc.value.details == {"product_ids": [42]}

    @pytest.mark.parametrize("qty", [0, -1, 1.5, "2", True])
    def test_bad_qty(self, qty):
        with pytest.raises(CartError):
            cart_from_payload({"items": [{"product_id": 1, "qty": qty}]}, self._products())

    def test_bad_discount_type(self):
        with pytest.raises(CartError):
            cart_from_payload(
                {"items": [{"product_id": 1, "qty": 1}], "bill_discount_type": "bogus"},
                self._products(),
            )

    def test_items_must_be_list(self):
        with pytest.raises(CartError):
            cart_from_payload({"items": "nope"}, self._products())

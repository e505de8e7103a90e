"""Unit tests for CartService.

Covers:
- Lazy cart creation per owner.
- Adding: merge into the existing line, price re-snapshot, variant lines.
- Validation: unavailable products and variants, live stock checks.
- Updating, removing and clearing lines, including foreign item ids.
- Totals always equal the sum of the lines.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.carts.exceptions import CartItemNotFound
from modules.carts.models import Cart, CartItem
from modules.products.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)

pytestmark = pytest.mark.unit

OWNER = "session:abc123"


def _add(service, product, quantity=1, variant=None, owner=OWNER):
    return service.add_item(
        owner,
        AddCartItemDTO(
            product_id=product.id,
            variant_id=variant.id if variant else None,
            quantity=quantity,
        ),
    )


def _assert_totals_consistent(cart):
    items = list(cart.items.all())
    assert cart.total_items == sum(i.quantity for i in items)
    assert cart.total_amount == sum((i.total_price for i in items), Decimal("0.00"))
    for item in items:
        assert item.total_price == item.unit_price * item.quantity


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


class TestGetCart:
    def test_creates_empty_cart_lazily(self, cart_service):
        cart = cart_service.get_cart(OWNER)
        assert cart.is_empty
        assert cart.total_amount == Decimal("0.00")
        assert Cart.objects.filter(owner_key=OWNER).count() == 1

    def test_same_owner_same_cart(self, cart_service):
        assert cart_service.get_cart(OWNER).id == cart_service.get_cart(OWNER).id

    def test_owners_are_isolated(self, cart_service, product):
        _add(cart_service, product, 2)
        other = cart_service.get_cart("session:other")
        assert other.is_empty


# ---------------------------------------------------------------------------
# Adding
# ---------------------------------------------------------------------------


class TestAddItem:
    def test_adds_line_with_price_snapshot(self, cart_service, make_product):
        product = make_product(price="12.50", stock=5)
        cart = _add(cart_service, product, 2)

        item = cart.items.get()
        assert item.unit_price == Decimal("12.50")
        assert item.total_price == Decimal("25.00")
        assert cart.total_items == 2
        assert cart.total_amount == Decimal("25.00")

    def test_same_product_merges(self, cart_service, product):
        _add(cart_service, product, 2)
        cart = _add(cart_service, product, 3)

        assert cart.items.count() == 1
        assert cart.items.get().quantity == 5
        _assert_totals_consistent(cart)

    def test_merge_resnapshots_price(self, cart_service, make_product):
        product = make_product(price="10.00")
        _add(cart_service, product, 1)
        product.price = Decimal("11.00")
        product.save()

        cart = _add(cart_service, product, 1)

        item = cart.items.get()
        assert item.unit_price == Decimal("11.00")
        assert cart.total_amount == Decimal("22.00")

    def test_variant_is_separate_line(self, cart_service, make_product, make_variant):
        product = make_product(price="10.00")
        variant = make_variant(product, price="14.00")
        _add(cart_service, product, 1)
        cart = _add(cart_service, product, 1, variant)

        assert cart.items.count() == 2
        assert cart.total_amount == Decimal("24.00")
        _assert_totals_consistent(cart)

    def test_merge_checks_combined_quantity(self, cart_service, make_product):
        product = make_product(stock=4)
        _add(cart_service, product, 3)

        with pytest.raises(InsufficientStock, match="requested 5, available 4"):
            _add(cart_service, product, 2)

        assert CartItem.objects.get().quantity == 3

    def test_variant_stock_is_checked(self, cart_service, make_product, make_variant):
        product = make_product(stock=100)
        variant = make_variant(product, stock=1, name="Travel")
        with pytest.raises(InsufficientStock, match=r"\(Travel\)"):
            _add(cart_service, product, 2, variant)

    def test_unknown_product(self, cart_service):
        with pytest.raises(ProductNotFound):
            cart_service.add_item(OWNER, AddCartItemDTO(product_id=uuid4()))

    def test_unknown_product_is_unavailable(self):
        assert issubclass(ProductNotFound, ProductUnavailable)

    def test_inactive_product(self, cart_service, make_product):
        product = make_product(is_active=False)
        with pytest.raises(ProductUnavailable):
            _add(cart_service, product)

    def test_soft_deleted_product(self, cart_service, product):
        product.delete()
        with pytest.raises(ProductUnavailable):
            _add(cart_service, product)

    def test_variant_of_other_product(self, cart_service, make_product, make_variant):
        product = make_product()
        foreign = make_variant(make_product())
        with pytest.raises(ProductUnavailable, match="does not belong"):
            _add(cart_service, product, 1, foreign)

    def test_inactive_variant(self, cart_service, make_product, make_variant):
        product = make_product()
        variant = make_variant(product, is_active=False)
        with pytest.raises(ProductUnavailable):
            _add(cart_service, product, 1, variant)

    @pytest.mark.parametrize("quantity", [0, 11, -1])
    def test_quantity_bounds(self, quantity):
        with pytest.raises(ValidationError):
            AddCartItemDTO(product_id=uuid4(), quantity=quantity)


# ---------------------------------------------------------------------------
# Updating / removing
# ---------------------------------------------------------------------------


class TestUpdateItem:
    def test_sets_quantity(self, cart_service, product):
        item_id = _add(cart_service, product, 1).items.get().id

        cart = cart_service.update_item(OWNER, item_id, UpdateCartItemDTO(quantity=4))

        assert cart.items.get().quantity == 4
        assert cart.total_amount == Decimal("200.00")

    def test_zero_removes_line(self, cart_service, product):
        item_id = _add(cart_service, product, 1).items.get().id

        cart = cart_service.update_item(OWNER, item_id, UpdateCartItemDTO(quantity=0))

        assert cart.is_empty
        assert cart.total_items == 0

    def test_update_checks_stock(self, cart_service, make_product):
        product = make_product(stock=3)
        item_id = _add(cart_service, product, 1).items.get().id

        with pytest.raises(InsufficientStock):
            cart_service.update_item(OWNER, item_id, UpdateCartItemDTO(quantity=4))

    def test_update_refuses_unavailable_product(self, cart_service, product):
        item_id = _add(cart_service, product, 1).items.get().id
        product.is_active = False
        product.save()

        with pytest.raises(ProductUnavailable):
            cart_service.update_item(OWNER, item_id, UpdateCartItemDTO(quantity=2))

    def test_foreign_item_is_not_found(self, cart_service, product):
        item_id = _add(cart_service, product, 1, owner="session:other").items.get().id

        with pytest.raises(CartItemNotFound):
            cart_service.update_item(OWNER, item_id, UpdateCartItemDTO(quantity=2))

        assert CartItem.objects.get(pk=item_id).quantity == 1

    def test_malformed_item_id(self, cart_service):
        with pytest.raises(CartItemNotFound):
            cart_service.update_item(OWNER, "not-a-uuid", UpdateCartItemDTO(quantity=1))


class TestRemoveAndClear:
    def test_remove_unavailable_item_is_allowed(self, cart_service, make_product):
        keep = make_product(price="10.00")
        gone = make_product(price="20.00")
        _add(cart_service, keep, 1)
        cart = _add(cart_service, gone, 1)
        gone_item = cart.items.get(product=gone)
        gone.delete()

        cart = cart_service.remove_item(OWNER, gone_item.id)

        assert cart.items.count() == 1
        assert cart.total_amount == Decimal("10.00")

    def test_remove_foreign_item(self, cart_service, product):
        item_id = _add(cart_service, product, 1, owner="session:other").items.get().id
        with pytest.raises(CartItemNotFound):
            cart_service.remove_item(OWNER, item_id)

    def test_clear(self, cart_service, make_product):
        _add(cart_service, make_product(), 1)
        _add(cart_service, make_product(), 2)

        cart = cart_service.clear(OWNER)

        assert cart.is_empty
        assert cart.total_items == 0
        assert cart.total_amount == Decimal("0.00")

    def test_clear_empty_cart(self, cart_service):
        assert cart_service.clear(OWNER).is_empty

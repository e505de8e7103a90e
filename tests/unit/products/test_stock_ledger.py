"""Unit tests for the StockLedger.

Covers:
- Conditional decrement on product rows and variant rows.
- Refusal (InsufficientStock) leaves the row untouched.
- Soft-deleted rows are invisible to the ledger.
- Release returns units and reports missing rows.
"""

from __future__ import annotations

import pytest

from modules.products.exceptions import InsufficientStock
from modules.products.stock import StockLedger

pytestmark = pytest.mark.unit


@pytest.fixture()
def ledger():
    return StockLedger()


class TestDecrement:
    def test_decrements_product_row(self, ledger, make_product):
        product = make_product(stock=5)

        remaining = ledger.decrement_if_available(product.id, 3)

        product.refresh_from_db()
        assert remaining == 2
        assert product.stock_quantity == 2

    def test_decrements_variant_row_not_product(self, ledger, make_product, make_variant):
        product = make_product(stock=50)
        variant = make_variant(product, stock=4)

        remaining = ledger.decrement_if_available(product.id, 4, variant.id)

        product.refresh_from_db()
        variant.refresh_from_db()
        assert remaining == 0
        assert variant.stock_quantity == 0
        assert product.stock_quantity == 50

    def test_exact_stock_is_allowed(self, ledger, make_product):
        product = make_product(stock=1)
        assert ledger.decrement_if_available(product.id, 1) == 0

    def test_refuses_when_stock_is_short(self, ledger, make_product):
        product = make_product(stock=2, name="Rose Oil")

        with pytest.raises(InsufficientStock, match="Rose Oil"):
            ledger.decrement_if_available(product.id, 3, label="Rose Oil")

        product.refresh_from_db()
        assert product.stock_quantity == 2

    def test_refuses_soft_deleted_row(self, ledger, make_product):
        product = make_product(stock=10)
        product.delete()

        with pytest.raises(InsufficientStock):
            ledger.decrement_if_available(product.id, 1)

    def test_rejects_non_positive_quantity(self, ledger, make_product):
        product = make_product(stock=10)
        with pytest.raises(ValueError):
            ledger.decrement_if_available(product.id, 0)


class TestReadAndLock:
    def test_available_reports_live_stock(self, ledger, make_product, make_variant):
        product = make_product(stock=7)
        variant = make_variant(product, stock=3)

        assert ledger.available(product.id) == 7
        assert ledger.available(product.id, variant.id) == 3

    def test_available_is_zero_for_missing_row(self, ledger, make_product):
        product = make_product(stock=7)
        product.hard_delete()
        assert ledger.available(product.id) == 0

    def test_lock_returns_row(self, ledger, make_product):
        product = make_product(stock=7)
        assert ledger.lock(product.id) == product


class TestRelease:
    def test_release_returns_units(self, ledger, make_product):
        product = make_product(stock=1)

        assert ledger.release(product.id, 4) is True

        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_release_on_missing_row_reports_false(self, ledger, make_product):
        product = make_product(stock=1)
        product_id = product.id
        product.hard_delete()

        assert ledger.release(product_id, 4) is False

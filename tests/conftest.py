from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.carts.dtos import AddCartItemDTO
from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.services import CartService
from modules.core.identity import user_owner_key
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import AddressDTO, CreateOrderDTO
from modules.orders.pricing import PricingPolicy
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductVariant
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()

OWNER = "user:test-owner"

ADDRESS = {
    "first_name": "Jane",
    "last_name": "Doe",
    "address_line_1": "742 Evergreen Terrace",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62704",
    "country": "US",
    "phone": "555-0100",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test fresh."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def user():
    return User.objects.create_user(username="shopper", password="testpass123")


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff", password="testpass123", is_staff=True
    )


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated customer."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def admin_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def user_owner(user):
    return user_owner_key(user.pk)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make(price="50.00", stock=10, **overrides) -> Product:
        counter["n"] += 1
        defaults = {
            "sku": f"TEST-{counter['n']:03d}",
            "name": f"Test Product {counter['n']}",
            "price": Decimal(price),
            "stock_quantity": stock,
        }
        defaults.update(overrides)
        return Product.objects.create(**defaults)

    return _make


@pytest.fixture()
def make_variant():
    counter = {"n": 0}

    def _make(product: Product, price="60.00", stock=5, **overrides) -> ProductVariant:
        counter["n"] += 1
        defaults = {
            "product": product,
            "sku": f"{product.sku}-V{counter['n']}",
            "name": f"Size {counter['n']}",
            "price": Decimal(price),
            "stock_quantity": stock,
        }
        defaults.update(overrides)
        return ProductVariant.objects.create(**defaults)

    return _make


@pytest.fixture()
def product(make_product):
    return make_product(price="50.00", stock=10)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def cart_service():
    return CartService(
        cart_repository=CartDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        pricing_policy=PricingPolicy(),
    )


@pytest.fixture()
def checkout_dto():
    """Build a ``CreateOrderDTO`` for *owner_key*."""

    def _build(owner_key: str = OWNER, payment_method=PaymentMethod.CREDIT_CARD, **extra):
        address = AddressDTO(**ADDRESS)
        return CreateOrderDTO(
            owner_key=owner_key,
            payment_method=payment_method,
            shipping_address=address,
            billing_address=address,
            **extra,
        )

    return _build


@pytest.fixture()
def place_order(cart_service, order_service, checkout_dto):
    """Fill a cart with ``[(product, quantity), ...]`` and check out."""

    def _place(lines, owner_key: str = OWNER, payment_method=PaymentMethod.CREDIT_CARD):
        for product, quantity in lines:
            cart_service.add_item(
                owner_key, AddCartItemDTO(product_id=product.id, quantity=quantity)
            )
        return order_service.create_order(checkout_dto(owner_key, payment_method))

    return _place

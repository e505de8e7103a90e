"""Integration tests for customer order reads and tracking."""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.core.identity import user_owner_key
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.state_machine import OrderStateMachine

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"
User = get_user_model()


def _detail(order) -> str:
    return f"{ORDERS_URL}{order.id}/"


@pytest.fixture()
def my_order(place_order, product, user_owner):
    return place_order([(product, 2)], owner_key=user_owner)


@pytest.fixture()
def other_client():
    other = User.objects.create_user(username="someone-else", password="x")
    client = APIClient()
    client.force_authenticate(user=other)
    return client, user_owner_key(other.pk)


class TestListOrders:
    def test_lists_only_own_orders(self, auth_client, my_order, place_order, make_product):
        place_order([(make_product(), 1)], owner_key="user:stranger")

        response = auth_client.get(ORDERS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["order_number"] == my_order.order_number
        assert "items" not in data["results"][0]

    def test_newest_first(self, auth_client, place_order, make_product, user_owner):
        first = place_order([(make_product(), 1)], owner_key=user_owner)
        second = place_order([(make_product(), 1)], owner_key=user_owner)

        results = auth_client.get(ORDERS_URL).json()["results"]

        assert [r["id"] for r in results] == [str(second.id), str(first.id)]

    def test_page_size(self, auth_client, place_order, make_product, user_owner):
        for _ in range(3):
            place_order([(make_product(), 1)], owner_key=user_owner)

        data = auth_client.get(ORDERS_URL, {"page_size": 2}).json()

        assert data["count"] == 3
        assert len(data["results"]) == 2
        assert data["next"] is not None


class TestRetrieveOrder:
    def test_own_order(self, auth_client, my_order):
        response = auth_client.get(_detail(my_order))

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == my_order.order_number
        assert data["items"][0]["quantity"] == 2
        assert data["items"][0]["total_price"] == "100.00"
        assert "admin_notes" not in data

    def test_foreign_order_is_not_found(self, other_client, my_order):
        client, _ = other_client

        response = client.get(_detail(my_order))

        assert response.status_code == 404

    def test_unknown_order(self, auth_client):
        assert auth_client.get(f"{ORDERS_URL}{uuid4()}/").status_code == 404

    def test_soft_deleted_order_is_hidden(self, auth_client, my_order):
        my_order.delete()
        assert auth_client.get(_detail(my_order)).status_code == 404


class TestTracking:
    def test_new_order_timeline(self, auth_client, my_order):
        response = auth_client.get(f"{_detail(my_order)}tracking/")

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == my_order.order_number
        assert data["status"] == "PENDING"
        assert data["status_label"] == "Pending"
        assert data["tracking_number"] is None
        assert [e["status"] for e in data["events"]] == ["PENDING"]

    def test_delivered_cod_timeline(self, auth_client, place_order, product, user_owner):
        order = place_order(
            [(product, 1)],
            owner_key=user_owner,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
        )
        machine = OrderStateMachine(OrderDjangoRepository())
        for status in (
            OrderStatus.CONFIRMED,
            OrderStatus.PREPARING,
            OrderStatus.READY_FOR_DELIVERY,
        ):
            machine.transition_to(order, status)
        machine.transition_to(
            order, OrderStatus.OUT_FOR_DELIVERY, tracking_number="1Z999", carrier="UPS"
        )
        machine.transition_to(order, OrderStatus.DELIVERED)

        data = auth_client.get(f"{_detail(order)}tracking/").json()

        assert data["status"] == "DELIVERED"
        assert data["payment_status"] == "PAID"
        assert data["carrier"] == "UPS"
        assert data["tracking_number"] == "1Z999"
        assert len(data["events"]) == 7
        assert {e["event_type"] for e in data["events"]} == {"STATUS", "PAYMENT"}
        assert data["events"][-1]["status"] == "PENDING"

    def test_foreign_tracking_is_not_found(self, other_client, my_order):
        client, _ = other_client
        assert client.get(f"{_detail(my_order)}tracking/").status_code == 404

"""Integration tests for staff order management (/api/v1/admin/orders/)."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.core.identity import user_owner_key
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.state_machine import OrderStateMachine

pytestmark = pytest.mark.integration

ADMIN_URL = "/api/v1/admin/orders/"


def _detail(order) -> str:
    return f"{ADMIN_URL}{order.id}/"


def _status(admin_client, order, status, **extra):
    return admin_client.patch(
        f"{_detail(order)}status/", {"status": status, **extra}, format="json"
    )


@pytest.fixture()
def order(place_order, product):
    return place_order([(product, 3)])


class TestPermissions:
    def test_customer_is_forbidden(self, auth_client, order):
        assert auth_client.get(ADMIN_URL).status_code == 403
        assert _status(auth_client, order, "CONFIRMED").status_code == 403

    def test_anonymous_is_unauthorized(self, api_client):
        assert api_client.get(ADMIN_URL).status_code == 401


class TestAdminList:
    def test_lists_all_owners(self, admin_client, place_order, make_product):
        place_order([(make_product(), 1)], owner_key="user:a")
        place_order([(make_product(), 1)], owner_key="user:b")

        data = admin_client.get(ADMIN_URL).json()

        assert data["count"] == 2

    def test_filter_by_status(self, admin_client, place_order, make_product):
        keep = place_order([(make_product(), 1)])
        other = place_order([(make_product(), 1)])
        _status(admin_client, other, "CONFIRMED")

        data = admin_client.get(ADMIN_URL, {"status": "PENDING"}).json()

        assert [r["id"] for r in data["results"]] == [str(keep.id)]

    def test_filter_by_payment_method(self, admin_client, place_order, make_product):
        place_order([(make_product(), 1)])
        cod = place_order([(make_product(), 1)], payment_method="cash_on_delivery")

        data = admin_client.get(ADMIN_URL, {"payment_method": "cash_on_delivery"}).json()

        assert [r["id"] for r in data["results"]] == [str(cod.id)]

    def test_filter_by_order_number(self, admin_client, order, place_order, make_product):
        place_order([(make_product(), 1)])

        data = admin_client.get(
            ADMIN_URL, {"order_number": order.order_number[-4:].lower()}
        ).json()

        assert str(order.id) in [r["id"] for r in data["results"]]

    def test_filter_by_date_range(self, admin_client, order):
        today = timezone.localdate()
        tomorrow = today + timedelta(days=1)

        assert admin_client.get(ADMIN_URL, {"start_date": today}).json()["count"] == 1
        assert admin_client.get(ADMIN_URL, {"start_date": tomorrow}).json()["count"] == 0
        assert admin_client.get(ADMIN_URL, {"end_date": today}).json()["count"] == 1

    def test_invalid_filter_value(self, admin_client):
        response = admin_client.get(ADMIN_URL, {"status": "SHIPPED"})
        assert response.status_code == 400

    def test_retrieve_shows_owner_and_admin_notes(self, admin_client, order):
        data = admin_client.get(_detail(order)).json()

        assert data["owner_key"] == order.owner_key
        assert data["admin_notes"] == ""


class TestStatusUpdate:
    def test_confirm(self, admin_client, order, staff_user):
        response = _status(admin_client, order, "confirmed", notes="Checked stock")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CONFIRMED"
        latest = data["status_history"][0]
        assert latest["previous_status"] == "PENDING"
        assert latest["status"] == "CONFIRMED"
        assert latest["notes"] == "Checked stock"
        assert latest["actor_id"] == user_owner_key(staff_user.pk)

    def test_default_history_note(self, admin_client, order):
        data = _status(admin_client, order, "CONFIRMED").json()

        assert data["status_history"][0]["notes"] == "Status changed from PENDING to CONFIRMED"

    @pytest.mark.parametrize(
        ("field", "value"),
        [("notes", "n" * 1001), ("carrier", "c" * 51)],
    )
    def test_field_length_limits(self, admin_client, order, field, value):
        response = _status(admin_client, order, "CONFIRMED", **{field: value})

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == field
        order.refresh_from_db()
        assert order.status == "PENDING"

    def test_skip_is_rejected(self, admin_client, order):
        response = _status(admin_client, order, "DELIVERED")

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "invalid_transition"
        order.refresh_from_db()
        assert order.status == "PENDING"

    def test_unknown_status(self, admin_client, order):
        response = _status(admin_client, order, "LOST")
        assert response.status_code == 400

    def test_shipping_details_recorded(self, admin_client, order):
        for status in ("CONFIRMED", "PREPARING", "READY_FOR_DELIVERY"):
            _status(admin_client, order, status)

        data = _status(
            admin_client,
            order,
            "OUT_FOR_DELIVERY",
            tracking_number="1Z999",
            carrier="UPS",
            admin_notes="Fragile",
        ).json()

        assert data["tracking_number"] == "1Z999"
        assert data["carrier"] == "UPS"
        assert data["admin_notes"] == "Fragile"
        assert data["shipped_at"] is not None

    def test_cancel_through_status_restocks(self, admin_client, order, product):
        response = _status(admin_client, order, "CANCELLED")

        assert response.status_code == 200
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_unknown_order(self, admin_client):
        response = admin_client.patch(
            f"{ADMIN_URL}{uuid4()}/status/", {"status": "CONFIRMED"}, format="json"
        )
        assert response.status_code == 404


class TestCancel:
    def test_cancel_restocks_and_records_reason(self, admin_client, order, product):
        product.refresh_from_db()
        assert product.stock_quantity == 7

        response = admin_client.post(
            f"{_detail(order)}cancel/", {"reason": "Customer request"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CANCELLED"
        assert data["status_history"][0]["notes"] == "Cancelled: Customer request"
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_cancel_twice_is_refused(self, admin_client, order, product):
        admin_client.post(f"{_detail(order)}cancel/", {}, format="json")

        response = admin_client.post(f"{_detail(order)}cancel/", {}, format="json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "not_cancellable"
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_delivered_order_cannot_be_cancelled(self, admin_client, order):
        machine = OrderStateMachine(OrderDjangoRepository())
        for status in (
            "CONFIRMED",
            "PREPARING",
            "READY_FOR_DELIVERY",
            "OUT_FOR_DELIVERY",
            "DELIVERED",
        ):
            machine.transition_to(order, status)

        response = admin_client.post(f"{_detail(order)}cancel/", {}, format="json")

        assert response.status_code == 400
        assert Order.objects.get(pk=order.pk).status == "DELIVERED"

"""Integration tests for Celery configuration and the outbox relay task."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously in the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "storefront"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_outbox_relay_is_scheduled(self, settings):
        schedule = settings.CELERY_BEAT_SCHEDULE["relay-outbox-events"]
        assert schedule["task"] == "core.relay_outbox_events"

    def test_relay_task_is_registered(self):
        from config.celery import app
        from modules.core import tasks  # noqa: F401

        assert "core.relay_outbox_events" in app.tasks


class TestRelayOutboxEvents:
    def test_publishes_checkout_event(self, place_order, product):
        from modules.core.tasks import relay_outbox_events

        order = place_order([(product, 1)])

        result = relay_outbox_events.delay()

        assert result.successful()
        assert result.result == {"published": 1, "failed": 0}
        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None

    def test_nothing_to_relay(self):
        from modules.core.tasks import relay_outbox_events

        assert relay_outbox_events() == {"published": 0, "failed": 0}

    def test_published_rows_are_not_relayed_again(self, place_order, product):
        from modules.core.tasks import relay_outbox_events

        place_order([(product, 1)])
        relay_outbox_events()

        assert relay_outbox_events() == {"published": 0, "failed": 0}

    def test_unknown_event_is_marked_failed(self):
        from modules.core.tasks import relay_outbox_events

        row = OutboxEvent.objects.create(
            event_type="SomethingElse", payload={}, aggregate_id="x", topic="orders"
        )

        assert relay_outbox_events() == {"published": 0, "failed": 1}
        row.refresh_from_db()
        assert row.status == EventStatus.FAILED
        assert row.retry_count == 1
        assert "SomethingElse" in row.error_message

    def test_handler_error_is_retried_until_budget(self, settings, place_order, product):
        from modules.core.tasks import relay_outbox_events

        settings.OUTBOX_MAX_RETRIES = 2
        place_order([(product, 1)])

        with patch(
            "modules.core.tasks.event_bus.publish", side_effect=RuntimeError("broker down")
        ):
            first = relay_outbox_events()
            second = relay_outbox_events()
            third = relay_outbox_events()

        assert first == {"published": 0, "failed": 1}
        assert second == {"published": 0, "failed": 1}
        assert third == {"published": 0, "failed": 0}
        row = OutboxEvent.objects.get()
        assert row.retry_count == 2
        assert row.error_message == "broker down"

    def test_batch_size_limits_rows(self, place_order, make_product):
        from modules.core.tasks import relay_outbox_events

        for _ in range(3):
            place_order([(make_product(), 1)])

        assert relay_outbox_events(batch_size=2) == {"published": 2, "failed": 0}
        assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1

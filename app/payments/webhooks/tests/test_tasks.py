"""
Tests for webhook Celery tasks.

Tests cover:
- process_webhook_event: dispatch, status bookkeeping, failures
- retry_failed_webhooks: re-queue under the retry limit
- cleanup_stuck_webhooks / cleanup_old_webhooks: periodic maintenance
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone
from freezegun import freeze_time

from bookings.models import Booking
from bookings.state_machines import BookingStatus
from core.services import ServiceResult
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tasks import (
    cleanup_old_webhooks,
    cleanup_stuck_webhooks,
    process_webhook_event,
    retry_failed_webhooks,
)
from payments.tests.factories import WebhookEventFactory
from payments.webhooks.tests.payloads import payment_intent, webhook_event_for

DISPATCH = "payments.tasks.dispatch_webhook"


def reload(event):
    return WebhookEvent.objects.get(pk=event.pk)


# =============================================================================
# process_webhook_event
# =============================================================================


class TestProcessWebhookEvent:
    def test_marks_event_processed(self, pending_webhook_event):
        result = process_webhook_event(str(pending_webhook_event.id))

        assert result == {
            "status": "processed",
            "webhook_event_id": str(pending_webhook_event.id),
            "stripe_event_id": pending_webhook_event.stripe_event_id,
            "result": None,
        }
        event = reload(pending_webhook_event)
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.processed_at is not None
        assert event.retry_count == 1

    def test_applies_event_to_booking(self, accepted_booking):
        event = webhook_event_for("payment_intent.succeeded", payment_intent(accepted_booking))

        result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        assert result["result"]["status"] == BookingStatus.PAID
        assert Booking.objects.get(pk=accepted_booking.pk).status == BookingStatus.PAID

    def test_unknown_id_returns_not_found(self, db):
        result = process_webhook_event("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"

    def test_processed_event_skipped(self, processed_webhook_event):
        with patch(DISPATCH) as mock_dispatch:
            result = process_webhook_event(str(processed_webhook_event.id))

        assert result["status"] == "already_processed"
        mock_dispatch.assert_not_called()
        assert reload(processed_webhook_event).retry_count == 1

    def test_handler_failure_marks_failed(self, pending_webhook_event):
        failure = ServiceResult.failure("Booking was modified concurrently", "STALE_RECORD")

        with patch(DISPATCH, return_value=failure):
            result = process_webhook_event(str(pending_webhook_event.id))

        assert result == {
            "status": "handler_failed",
            "webhook_event_id": str(pending_webhook_event.id),
            "error": "Booking was modified concurrently",
        }
        event = reload(pending_webhook_event)
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "Booking was modified concurrently"

    def test_exception_recorded_and_reraised(self, pending_webhook_event):
        with patch(DISPATCH, side_effect=RuntimeError("database went away")):
            with pytest.raises(RuntimeError):
                process_webhook_event(str(pending_webhook_event.id))

        event = reload(pending_webhook_event)
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "RuntimeError: database went away"

    def test_failed_event_retried_to_success(self, failed_webhook_event):
        with patch(DISPATCH, return_value=ServiceResult.success({"ok": True})):
            result = process_webhook_event(str(failed_webhook_event.id))

        assert result["status"] == "processed"
        event = reload(failed_webhook_event)
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 3
        assert event.error_message == ""


# =============================================================================
# retry_failed_webhooks
# =============================================================================


class TestRetryFailedWebhooks:
    def test_queues_events_under_limit(self, failed_webhook_event, settings):
        settings.WEBHOOK_MAX_RETRIES = 5

        with patch("payments.tasks.process_webhook_event.delay") as mock_delay:
            result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(failed_webhook_event.id))

    def test_exhausted_events_left_failed(self, db, settings):
        settings.WEBHOOK_MAX_RETRIES = 5
        exhausted = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=5)

        with patch("payments.tasks.process_webhook_event.delay") as mock_delay:
            result = retry_failed_webhooks()

        assert result == {"queued_count": 0}
        mock_delay.assert_not_called()
        assert reload(exhausted).status == WebhookEventStatus.FAILED

    def test_ignores_pending_and_processed(self, pending_webhook_event, processed_webhook_event):
        with patch("payments.tasks.process_webhook_event.delay") as mock_delay:
            result = retry_failed_webhooks()

        assert result == {"queued_count": 0}
        mock_delay.assert_not_called()


# =============================================================================
# Maintenance
# =============================================================================


class TestCleanupStuckWebhooks:
    def test_resets_stale_processing_events(self, db, settings):
        settings.WEBHOOK_STUCK_AFTER_MINUTES = 30
        with freeze_time("2026-03-01 12:00:00"):
            stuck = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)

        with freeze_time("2026-03-01 12:31:00"):
            fresh = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)
            result = cleanup_stuck_webhooks()

        assert result == {"reset_count": 1}
        assert reload(stuck).status == WebhookEventStatus.FAILED
        assert "timed out" in reload(stuck).error_message
        assert reload(fresh).status == WebhookEventStatus.PROCESSING

    def test_reset_events_become_retryable(self, processing_webhook_event):
        WebhookEvent.objects.filter(pk=processing_webhook_event.pk).update(
            updated_at=timezone.now() - timedelta(hours=2)
        )

        cleanup_stuck_webhooks()

        assert reload(processing_webhook_event).can_retry


class TestCleanupOldWebhooks:
    def test_deletes_processed_events_past_retention(self, db, settings):
        settings.WEBHOOK_RETENTION_DAYS = 90
        old = WebhookEventFactory()
        old.mark_processed()
        old.save()
        WebhookEvent.objects.filter(pk=old.pk).update(
            processed_at=timezone.now() - timedelta(days=91)
        )
        recent = WebhookEventFactory()
        recent.mark_processed()
        recent.save()

        result = cleanup_old_webhooks()

        assert result == {"deleted_count": 1}
        assert not WebhookEvent.objects.filter(pk=old.pk).exists()
        assert WebhookEvent.objects.filter(pk=recent.pk).exists()

    def test_keeps_failed_events(self, failed_webhook_event):
        WebhookEvent.objects.filter(pk=failed_webhook_event.pk).update(
            created_at=timezone.now() - timedelta(days=365)
        )

        result = cleanup_old_webhooks(days=1)

        assert result == {"deleted_count": 0}
        assert WebhookEvent.objects.filter(pk=failed_webhook_event.pk).exists()

"""
Celery configuration for the escrow service.

Celery runs the asynchronous half of the payment flow:
- process_webhook_event applies verified Stripe events to bookings and providers
- retry_failed_webhooks, cleanup_stuck_webhooks and cleanup_old_webhooks run on
  the django-celery-beat schedule registered by the payments migrations

Redis is the broker and result backend (CELERY_BROKER_URL). Tasks are
auto-discovered from the installed Django apps.

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))

    # Worker and scheduler:
    celery -A config worker -l info
    celery -A config beat -l info --scheduler django_celery_beat.schedulers:DatabaseScheduler
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

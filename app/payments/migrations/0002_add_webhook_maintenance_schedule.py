"""
Add celery-beat schedules for webhook maintenance.

- retry_failed_webhooks: every 5 minutes
- cleanup_stuck_webhooks: every 15 minutes
- cleanup_old_webhooks: daily
"""

from django.db import migrations

SCHEDULES = [
    (
        "Retry Failed Webhooks",
        "payments.tasks.retry_failed_webhooks",
        5,
        "minutes",
        "Re-queues FAILED webhook events below WEBHOOK_MAX_RETRIES.",
    ),
    (
        "Reset Stuck Webhooks",
        "payments.tasks.cleanup_stuck_webhooks",
        15,
        "minutes",
        "Marks webhook events stuck in PROCESSING as FAILED so they are retried.",
    ),
    (
        "Delete Old Webhooks",
        "payments.tasks.cleanup_old_webhooks",
        1,
        "days",
        "Deletes processed webhook events older than WEBHOOK_RETENTION_DAYS.",
    ),
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic webhook maintenance tasks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, every, period, description in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(every=every, period=period)
        PeriodicTask.objects.get_or_create(
            name=name,
            defaults={
                "task": task,
                "interval": schedule,
                "enabled": True,
                "description": description,
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=[name for name, *_ in SCHEDULES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]

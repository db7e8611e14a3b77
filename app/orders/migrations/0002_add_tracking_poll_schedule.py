"""
Add celery-beat schedule for the carrier tracking poll.

poll_carrier_tracking asks AfterShip about every SHIPPED order and marks
the ones the carrier reports as delivered. The interval comes from
TRACKING_POLL_INTERVAL_MINUTES at migration time.
"""

from django.conf import settings
from django.db import migrations

TASK_NAME = "poll-carrier-tracking"


def create_periodic_task(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=settings.TRACKING_POLL_INTERVAL_MINUTES,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "orders.tasks.poll_carrier_tracking",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Checks shipped orders against AfterShip and marks delivered "
                "ones, which releases vendor escrow."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("orders", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]

"""
Celery configuration for the marketplace backend.

Celery runs the periodic work that sits outside the request/webhook model:
- Carrier tracking poll (orders.tasks.poll_carrier_tracking), which confirms
  delivery for shipped orders and releases escrowed funds

Redis is both the message broker and result backend. Tasks are auto-discovered
from all installed Django apps; the beat schedule lives in settings
(CELERY_BEAT_SCHEDULE) and is synced into django-celery-beat.

Usage:
    from orders.tasks import poll_carrier_tracking

    poll_carrier_tracking.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("marketplace")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

"""
Celery configuration for the billing service.

Celery runs the periodic billing sweeps (scheduled payouts, escrow
releases, reconciliation). Redis is both the message broker and result
backend; periodic schedules live in the database via django-celery-beat.

Usage:
    from billing.workers.payout_scheduler import process_scheduled_payouts

    process_scheduled_payouts.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Tasks live in billing.workers, exposed through billing/tasks.py
app.autodiscover_tasks()

"""
Add celery-beat schedules for the billing sweeps.

- Process Scheduled Payouts: daily at 06:00 UTC
- Release Due Escrow Holds: every hour
- Run Payout Reconciliation: every 30 minutes
"""

from django.db import migrations

PERIODIC_TASKS = [
    {
        "name": "Process Scheduled Payouts",
        "task": "billing.workers.payout_scheduler.process_scheduled_payouts",
        "description": (
            "Claims due PayoutSchedules and processes the pending payouts "
            "of each scheduled placement."
        ),
    },
    {
        "name": "Release Due Escrow Holds",
        "task": "billing.workers.escrow_release.release_due_escrow_holds",
        "interval": (1, "hours"),
        "description": "Releases active escrow holds whose release date has passed.",
    },
    {
        "name": "Run Payout Reconciliation",
        "task": "billing.workers.reconciliation_worker.run_payout_reconciliation",
        "interval": (30, "minutes"),
        "description": (
            "Reports payouts stuck in processing and released holds that "
            "were not stamped on their payout."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the billing periodic tasks."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in PERIODIC_TASKS:
        defaults = {
            "task": entry["task"],
            "enabled": True,
            "description": entry["description"],
        }
        if "interval" in entry:
            every, period = entry["interval"]
            defaults["interval"], _ = IntervalSchedule.objects.get_or_create(
                every=every,
                period=period,
            )
        else:
            defaults["crontab"], _ = CrontabSchedule.objects.get_or_create(
                minute="0",
                hour="6",
                day_of_week="*",
                day_of_month="*",
                month_of_year="*",
            )

        PeriodicTask.objects.get_or_create(name=entry["name"], defaults=defaults)


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in PERIODIC_TASKS],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]

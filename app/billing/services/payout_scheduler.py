"""
Scheduled payout sweep.

A PayoutSchedule says "process the payouts of this placement once
scheduled_date has passed". The sweep claims each due schedule with a
conditional update, so two overlapping sweeps never process the same
schedule, then runs every PENDING payout of the placement through the
engine.

Usage:
    from billing.services import build_payout_scheduler

    summary = build_payout_scheduler().process_due_schedules()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from django.utils import timezone

from billing.exceptions import StaleRecordError
from billing.models import PayoutSchedule
from billing.repository import PayoutRepository
from billing.services.payout_engine import PayoutEngine
from billing.state_machines import PayoutStatus
from core.services import BaseService


@dataclass
class ScheduleSweepResult:
    """Counts of one scheduler sweep."""

    schedules_triggered: int = 0
    schedules_skipped: int = 0
    schedules_failed: int = 0
    payouts_processed: int = 0
    payouts_failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "schedules_triggered": self.schedules_triggered,
            "schedules_skipped": self.schedules_skipped,
            "schedules_failed": self.schedules_failed,
            "payouts_processed": self.payouts_processed,
            "payouts_failed": self.payouts_failed,
            "errors": list(self.errors),
        }


class PayoutScheduler(BaseService):
    """
    Processes due payout schedules.

    The sweep never raises for a single schedule or payout. Payout failures
    are stored on the schedule's last_error; a schedule that fails outside
    its payouts (claim, store errors) is logged and counted in
    schedules_failed, and the sweep moves on.
    """

    def __init__(
        self,
        engine: PayoutEngine,
        repository: PayoutRepository,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.engine = engine
        self.repository = repository
        self.clock = clock

    def process_due_schedules(self) -> ScheduleSweepResult:
        logger = self.get_logger()
        result = ScheduleSweepResult()
        now = self.clock()

        due = self.repository.list_due_schedules(now)
        logger.info("Starting scheduled payout sweep", extra={"due_count": len(due)})

        for schedule in due:
            try:
                self.repository.claim_schedule(schedule, triggered_at=now)
            except StaleRecordError:
                logger.info(
                    "Schedule already claimed by another sweep",
                    extra={"schedule_id": str(schedule.id)},
                )
                result.schedules_skipped += 1
                continue
            except Exception as e:
                self._record_schedule_failure(schedule, e, result, logger)
                continue

            result.schedules_triggered += 1
            try:
                self._process_schedule(schedule, result, logger)
            except Exception as e:
                self._record_schedule_failure(schedule, e, result, logger)

        logger.info("Scheduled payout sweep complete", extra=result.to_dict())
        return result

    def _process_schedule(
        self,
        schedule: PayoutSchedule,
        result: ScheduleSweepResult,
        logger: logging.Logger,
    ) -> None:
        payouts = self.repository.list_payouts_for_placement(schedule.placement_id)
        if not payouts:
            logger.warning(
                "No payouts found for scheduled placement",
                extra={
                    "schedule_id": str(schedule.id),
                    "placement_id": str(schedule.placement_id),
                },
            )

        processed = 0
        last_error = None
        for payout in payouts:
            if payout.status != PayoutStatus.PENDING:
                continue
            try:
                self.engine.process_payout(payout.id)
                processed += 1
            except Exception as e:
                last_error = f"{payout.id}: {e}"
                result.payouts_failed += 1
                result.errors.append(last_error)
                logger.exception(
                    "Scheduled payout failed",
                    extra={
                        "schedule_id": str(schedule.id),
                        "payout_id": str(payout.id),
                    },
                )

        result.payouts_processed += processed
        self.repository.record_schedule_result(
            schedule,
            processed_count=processed,
            last_error=last_error,
        )

    @staticmethod
    def _record_schedule_failure(
        schedule: PayoutSchedule,
        error: Exception,
        result: ScheduleSweepResult,
        logger: logging.Logger,
    ) -> None:
        result.schedules_failed += 1
        result.errors.append(f"schedule {schedule.id}: {error}")
        logger.exception(
            "Scheduled payout sweep failed for schedule",
            extra={
                "schedule_id": str(schedule.id),
                "placement_id": str(schedule.placement_id),
            },
        )

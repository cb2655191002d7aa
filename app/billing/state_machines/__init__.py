"""
State machine definitions for billing models.

Exports the status enums used with django-fsm on Payout, and the plain
status enums of the other billing models.
"""

from billing.state_machines.states import (
    AuditEventType,
    EscrowHoldStatus,
    OnboardingStatus,
    PayoutScheduleStatus,
    PayoutSplitStatus,
    PayoutStatus,
)

__all__ = [
    "AuditEventType",
    "EscrowHoldStatus",
    "OnboardingStatus",
    "PayoutScheduleStatus",
    "PayoutSplitStatus",
    "PayoutStatus",
]

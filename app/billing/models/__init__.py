"""
Billing domain models.

- Payout: One transfer obligation to a recruiter
- PayoutSplit: A collaborator's share of a payout
- EscrowHold: Funds withheld from a placement until release
- PayoutSchedule: Deferred trigger to process a placement's payouts
- PayoutAuditLog: Append-only payout event trail
- ConnectedAccount: A recruiter's Stripe Connect account
"""

from billing.models.audit_log import PayoutAuditLog
from billing.models.connected_account import ConnectedAccount
from billing.models.escrow_hold import EscrowHold
from billing.models.payout import Payout
from billing.models.payout_schedule import PayoutSchedule
from billing.models.payout_split import PayoutSplit

__all__ = [
    "ConnectedAccount",
    "EscrowHold",
    "Payout",
    "PayoutAuditLog",
    "PayoutSchedule",
    "PayoutSplit",
]

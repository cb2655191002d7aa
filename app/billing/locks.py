"""
Concurrency control for billing records.

Status changes are written with a conditional update: the UPDATE only
matches when the row is still in the status the caller read. Exactly one
of several concurrent callers wins; the others get StaleRecordError and
must not perform any side effect that depended on winning.

Usage:

    from billing.locks import conditional_update

    conditional_update(
        Payout,
        payout.pk,
        expected_status=PayoutStatus.PENDING,
        status=PayoutStatus.PROCESSING,
        processing_started_at=now,
    )

Note:
    The update is a single statement, so it is safe outside a transaction.
    Callers that pair it with other writes (audit rows) wrap both in
    transaction.atomic() so they commit together.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from django.db import models
from django.db.models import F
from django.utils import timezone

from billing.exceptions import StaleRecordError
from core.exceptions import NotFoundError

T = TypeVar("T", bound=models.Model)


def conditional_update(
    model_class: type[T],
    pk: Any,
    expected_status: str | Iterable[str],
    **changes: Any,
) -> int:
    """
    Update a record only if it is still in the expected status.

    Increments the version counter and stamps updated_at alongside the
    requested changes.

    Args:
        model_class: Django model class with 'status' and 'version' fields
        pk: Primary key of the record
        expected_status: Status (or statuses) the row must currently have
        **changes: Field values to write

    Returns:
        The new version number

    Raises:
        StaleRecordError: Row exists but is no longer in expected_status
        NotFoundError: Row does not exist
    """
    if isinstance(expected_status, str):
        expected = [expected_status]
    else:
        expected = list(expected_status)

    rows = model_class.objects.filter(pk=pk, status__in=expected).update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **changes,
    )

    model_name = model_class.__name__
    current = model_class.objects.filter(pk=pk).values("status", "version").first()

    if current is None:
        raise NotFoundError(
            f"{model_name} {pk} not found",
            error_code=f"{model_name.upper()}_NOT_FOUND",
            details={"pk": str(pk)},
        )

    if rows == 0:
        raise StaleRecordError(
            f"{model_name} {pk} is no longer in status {' or '.join(expected)} "
            f"(current {current['status']})",
            details={
                "pk": str(pk),
                "expected_status": expected,
                "current_status": current["status"],
            },
        )

    return current["version"]

"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    VersionedMixin: Monotonic version counter

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin

    class Payout(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
        ...

Note:
    Always list mixins before BaseModel in inheritance.
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import F


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    IDs are generated client-side before the insert, so services can log
    and reference a record before it is saved.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)",
    )

    class Meta:
        abstract = True


class VersionedMixin(models.Model):
    """
    Monotonic version counter.

    save() on an existing row increments the counter in the database;
    billing.locks.conditional_update increments it for queryset updates.
    In-memory instances touched by conditional updates lag the stored
    value until refresh_from_db() is called.
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on every update",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment.
        """
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

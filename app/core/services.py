"""
Service layer base class.

Services own business rules and transaction boundaries. Views, Celery
tasks and management code call services; services call repositories and
adapters.

Usage:
    from core.services import BaseService

    class PayoutEngine(BaseService):
        def create_payout(self, ...):
            self.validate_required(placement_id=placement_id)
            with self.atomic():
                ...
            self.get_logger().info("Created payout", extra={...})

Design Notes:
    - Expected failures are raised as BaseApplicationError subclasses
    - Collaborators are passed to __init__ so tests can substitute them
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from django.db import transaction

from core.exceptions import ValidationError


class BaseService:
    """
    Base class for service layer classes.

    Provides a per-class logger, an explicit transaction helper and
    required-field validation.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield

    @classmethod
    def validate_required(cls, **kwargs) -> None:
        """
        Raise ValidationError if any keyword value is None or blank.

        Example:
            cls.validate_required(placement_id=placement_id, trigger_event=event)
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            raise ValidationError(
                "Required fields missing",
                error_code="VALIDATION_ERROR",
                details=errors,
            )

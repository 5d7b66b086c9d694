import typing as t
import uuid

from django.core.exceptions import NON_FIELD_ERRORS, ValidationError
from django.db import models

UNIQUE_ERROR_CODES = frozenset({"unique", "unique_together"})


class TimeStampedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Override the save method to call full_clean before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


def is_unique_violation(exc: ValidationError) -> bool:
    """Whether a full_clean error was raised by a multi-field unique constraint.

    ``full_clean`` checks constraints before the insert, so a row committed
    concurrently between a ``get`` and a ``create`` surfaces as this error
    rather than as an ``IntegrityError``.
    """
    errors = getattr(exc, "error_dict", {}).get(NON_FIELD_ERRORS, [])
    return any(error.code in UNIQUE_ERROR_CODES for error in errors)

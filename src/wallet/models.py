"""Models for wallet passes, device registrations and device logs.

A pass is identified by its pass type identifier and serial number. Devices
register for push updates per pass; registrations reference passes through
that logical key rather than a foreign key, exactly like the Apple Wallet
web service addresses them.
"""

import typing as t

from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel

PUSH_TOKEN_LENGTH = 64


class WalletPass(TimeStampedModel):
    """A versioned pass definition.

    ``version_updated_at`` is the logical version used for change detection.
    It only ever moves forward when the pass is mutated.
    """

    class TemplateType(models.TextChoices):
        """Supported pass templates."""

        BOARDING_PASS = "boarding_pass", "Boarding Pass"
        COUPON = "coupon", "Coupon"
        GENERIC = "generic", "Generic"
        EVENT_TICKET = "event_ticket", "Event Ticket"
        STORE_CARD = "store_card", "Store Card"
        LOYALTY_CARD = "loyalty_card", "Loyalty Card"

    pass_type_identifier = models.CharField(max_length=255, db_index=True)
    serial_number = models.CharField(max_length=255, db_index=True)
    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Pass content, passed through to the pass file generator.",
    )
    template_type = models.CharField(
        max_length=20,
        choices=TemplateType.choices,
        default=TemplateType.GENERIC,
    )
    version_updated_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Logical version of the pass. Advances on every mutation.",
    )
    created_by = models.CharField(max_length=255, blank=True, null=True)

    class Meta:
        verbose_name = "Wallet Pass"
        verbose_name_plural = "Wallet Passes"
        constraints = [
            models.UniqueConstraint(
                fields=["pass_type_identifier", "serial_number"],
                name="unique_pass_type_serial",
            )
        ]

    def __str__(self) -> str:
        return f"{self.pass_type_identifier}/{self.serial_number}"

    @property
    def last_modified_timestamp(self) -> int:
        """The pass version as whole UNIX seconds."""
        return int(self.version_updated_at.timestamp())


class WalletPassRegistration(TimeStampedModel):
    """A device's subscription to push updates for one pass."""

    device_library_identifier = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Unique identifier provided by the wallet app for this device.",
    )
    pass_type_identifier = models.CharField(max_length=255, db_index=True)
    serial_number = models.CharField(max_length=255, db_index=True)
    push_token = models.CharField(
        max_length=PUSH_TOKEN_LENGTH,
        help_text="Token used to send push notifications to this device.",
    )
    registered_at = models.DateTimeField(default=timezone.now)
    last_notified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "Wallet Pass Registration"
        verbose_name_plural = "Wallet Pass Registrations"
        constraints = [
            models.UniqueConstraint(
                fields=["device_library_identifier", "pass_type_identifier", "serial_number"],
                name="unique_device_pass_registration",
            )
        ]
        indexes = [
            models.Index(fields=["pass_type_identifier", "serial_number"], name="wallet_registration_pass_idx"),
            models.Index(
                fields=["device_library_identifier", "pass_type_identifier"],
                name="wallet_registration_device_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.pass_type_identifier}/{self.serial_number} on {self.device_library_identifier[:8]}..."


class WalletPassLog(TimeStampedModel):
    """Append-only log of device-reported and service events.

    Rows are immutable once written.
    """

    class Level(models.TextChoices):
        """Log levels."""

        INFO = "info", "Info"
        ERROR = "error", "Error"

    device_library_identifier = models.CharField(max_length=255, db_index=True)
    message = models.TextField()
    level = models.CharField(max_length=10, choices=Level.choices, default=Level.INFO, db_index=True)
    pass_type_identifier = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    serial_number = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    context = models.JSONField(null=True, blank=True)

    class Meta:
        verbose_name = "Wallet Pass Log"
        verbose_name_plural = "Wallet Pass Logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["level", "-created_at"], name="wallet_log_level_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_level_display()} - {self.created_at}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Insert the log entry. Existing entries cannot be changed."""
        if not self._state.adding:
            raise ValueError("Wallet pass log entries are immutable.")
        super().save(*args, **kwargs)

"""Persistence of pass definitions and their logical version.

The store only persists. Notifying registered devices is orchestrated by the
caller after a successful write (see ``dispatcher.enqueue_pass_update``).
"""

import datetime as dt
import typing as t

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from common.models import is_unique_violation
from wallet.exceptions import PassNotFoundError
from wallet.merge import JsonObject, merge_objects
from wallet.models import WalletPass

logger = structlog.get_logger(__name__)


def next_version(previous: dt.datetime | None) -> dt.datetime:
    """Return a version timestamp strictly after ``previous``.

    Uses the current time unless the clock has not moved past the previous
    version, in which case the version is bumped by one microsecond.
    """
    now = timezone.now()
    if previous is not None and now <= previous:
        return previous + dt.timedelta(microseconds=1)
    return now


def create_or_replace(
    pass_type_identifier: str,
    serial_number: str,
    data: JsonObject,
    template_type: str = WalletPass.TemplateType.GENERIC,
    created_by: str | None = None,
) -> WalletPass:
    """Create a pass or replace the existing one with the same key.

    Args:
        pass_type_identifier: The pass type identifier.
        serial_number: The pass serial number.
        data: The complete pass data.
        template_type: The pass template.
        created_by: Optional free-text origin of the pass.

    Returns:
        The stored pass, carrying a new version.
    """
    try:
        wallet_pass, created = _write_pass(pass_type_identifier, serial_number, data, template_type, created_by)
    except ValidationError as exc:
        if not is_unique_violation(exc):
            raise
        # Another request inserted the same key after our lookup; replace that row.
        wallet_pass, created = _write_pass(pass_type_identifier, serial_number, data, template_type, created_by)

    logger.info(
        "pass_stored",
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
        created=created,
    )
    return wallet_pass


def _write_pass(
    pass_type_identifier: str,
    serial_number: str,
    data: JsonObject,
    template_type: str,
    created_by: str | None,
) -> tuple[WalletPass, bool]:
    with transaction.atomic():
        wallet_pass, created = WalletPass.objects.select_for_update().get_or_create(
            pass_type_identifier=pass_type_identifier,
            serial_number=serial_number,
            defaults={
                "data": data,
                "template_type": template_type,
                "created_by": created_by,
                "version_updated_at": timezone.now(),
            },
        )

        if not created:
            wallet_pass.data = data
            wallet_pass.template_type = template_type
            if created_by is not None:
                wallet_pass.created_by = created_by
            wallet_pass.version_updated_at = next_version(wallet_pass.version_updated_at)
            wallet_pass.save()
    return wallet_pass, created


def merge_update(pass_type_identifier: str, serial_number: str, partial_data: JsonObject) -> WalletPass:
    """Deep-merge partial data into an existing pass.

    Raises:
        PassNotFoundError: If no pass exists for the key.
    """
    with transaction.atomic():
        wallet_pass = (
            WalletPass.objects.select_for_update()
            .filter(pass_type_identifier=pass_type_identifier, serial_number=serial_number)
            .first()
        )
        if wallet_pass is None:
            raise PassNotFoundError(pass_type_identifier, serial_number)

        wallet_pass.data = merge_objects(t.cast(JsonObject, wallet_pass.data or {}), partial_data)
        wallet_pass.version_updated_at = next_version(wallet_pass.version_updated_at)
        wallet_pass.save()

    logger.info("pass_updated", pass_type_identifier=pass_type_identifier, serial_number=serial_number)
    return wallet_pass


def get_pass(pass_type_identifier: str, serial_number: str) -> WalletPass:
    """Load a pass by its key.

    Raises:
        PassNotFoundError: If no pass exists for the key.
    """
    wallet_pass = WalletPass.objects.filter(
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
    ).first()
    if wallet_pass is None:
        raise PassNotFoundError(pass_type_identifier, serial_number)
    return wallet_pass

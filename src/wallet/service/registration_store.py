"""Device registrations and change detection.

Registrations record which devices want push updates for which passes.
Change detection joins a device's registrations with the passes they refer
to and filters on pass version.
"""

import datetime as dt
import re

import structlog
from django.core.exceptions import ValidationError
from django.db.models import QuerySet
from django.utils import timezone

from common.models import is_unique_violation
from wallet.exceptions import InvalidPushTokenError
from wallet.models import PUSH_TOKEN_LENGTH, WalletPass, WalletPassRegistration

logger = structlog.get_logger(__name__)

PUSH_TOKEN_RE = re.compile(rf"^[0-9a-f]{{{PUSH_TOKEN_LENGTH}}}$", re.IGNORECASE)


def validate_push_token(push_token: str | None) -> bool:
    """Check that a push token is exactly 64 hexadecimal characters."""
    return push_token is not None and PUSH_TOKEN_RE.fullmatch(push_token) is not None


def upsert_registration(
    device_library_identifier: str,
    pass_type_identifier: str,
    serial_number: str,
    push_token: str,
) -> tuple[WalletPassRegistration, bool]:
    """Register a device for updates to a pass, or refresh an existing registration.

    Safe to repeat: the (device, pass type, serial) triple is unique and a
    repeated call updates the push token in place.

    Returns:
        Tuple of (registration, created).

    Raises:
        InvalidPushTokenError: If the push token is malformed.
    """
    if not validate_push_token(push_token):
        raise InvalidPushTokenError("Push token must be 64 hexadecimal characters.")

    lookup = {
        "device_library_identifier": device_library_identifier,
        "pass_type_identifier": pass_type_identifier,
        "serial_number": serial_number,
    }
    defaults = {"push_token": push_token, "registered_at": timezone.now()}
    try:
        registration, created = WalletPassRegistration.objects.update_or_create(defaults=defaults, **lookup)
    except ValidationError as exc:
        if not is_unique_violation(exc):
            raise
        # Another request inserted the same key after our lookup; update that row.
        registration, created = WalletPassRegistration.objects.update_or_create(defaults=defaults, **lookup)

    logger.info(
        "device_registered",
        device_id=device_library_identifier[:20],
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
        created=created,
    )
    return registration, created


def remove_registration(device_library_identifier: str, pass_type_identifier: str, serial_number: str) -> bool:
    """Remove a registration if present.

    Returns:
        True if a registration was removed, False if none existed.
    """
    deleted_count, _ = WalletPassRegistration.objects.filter(
        device_library_identifier=device_library_identifier,
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
    ).delete()

    if deleted_count:
        logger.info(
            "device_unregistered",
            device_id=device_library_identifier[:20],
            pass_type_identifier=pass_type_identifier,
            serial_number=serial_number,
        )
    return deleted_count > 0


def list_registrations_for_pass(pass_type_identifier: str, serial_number: str) -> QuerySet[WalletPassRegistration]:
    """All registrations for a pass that can be reached by push."""
    return WalletPassRegistration.objects.filter(
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
    ).exclude(push_token="")


def list_changed_serials(
    device_library_identifier: str,
    pass_type_identifier: str,
    since: int | None = None,
) -> tuple[int, list[str]]:
    """Find the passes a device should re-fetch.

    Only serial numbers the device registered under this pass type are
    considered. A pass has changed when its version, in whole UNIX seconds, is
    strictly greater than ``since``; ``None`` or a negative value matches every
    registered pass.

    Args:
        device_library_identifier: The device asking for updates.
        pass_type_identifier: The pass type the device asks about.
        since: UNIX timestamp the device last synchronised at.

    Returns:
        Tuple of (last_updated, serial_numbers). ``last_updated`` is the
        newest matching version in UNIX seconds, or now if nothing matched,
        but never later than the last fully elapsed second.
    """
    registered_serials = WalletPassRegistration.objects.filter(
        device_library_identifier=device_library_identifier,
        pass_type_identifier=pass_type_identifier,
    ).values("serial_number")

    passes = WalletPass.objects.filter(
        pass_type_identifier=pass_type_identifier,
        serial_number__in=registered_serials,
    )
    if since is not None and since >= 0:
        try:
            threshold = dt.datetime.fromtimestamp(since + 1, tz=dt.UTC)
        except (OverflowError, OSError, ValueError):
            # Later than any representable version
            return _last_updated(None), []
        # Versions are compared at second granularity so that echoing back
        # ``last_updated`` never reports the same version twice.
        passes = passes.filter(version_updated_at__gte=threshold)

    rows = list(passes.order_by("serial_number").values_list("serial_number", "version_updated_at"))
    latest = max((version for _, version in rows), default=None)
    return _last_updated(latest), [serial for serial, _ in rows]


def _last_updated(latest: dt.datetime | None) -> int:
    """The sync tag to hand back to the device.

    A write can still land in the current second after this answer, so the
    tag is held back to the previous second. Echoing it then re-reports
    versions from the current second instead of missing a later one.
    """
    last_closed_second = int(timezone.now().timestamp()) - 1
    if latest is None:
        return last_closed_second
    return min(int(latest.timestamp()), last_closed_second)

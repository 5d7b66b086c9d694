"""Append-only store of device-reported and service log events."""

import datetime as dt
import typing as t

import structlog
from django.utils import timezone

from wallet.models import WalletPassLog

logger = structlog.get_logger(__name__)

UNKNOWN_DEVICE = "unknown"
UNKNOWN_MESSAGE = "Unknown error"
MAX_IDENTIFIER_LENGTH = 255


def _append(
    level: str,
    device_library_identifier: str,
    message: str,
    pass_type_identifier: str | None = None,
    serial_number: str | None = None,
    context: dict[str, t.Any] | None = None,
) -> WalletPassLog:
    return WalletPassLog.objects.create(
        device_library_identifier=(device_library_identifier or UNKNOWN_DEVICE)[:MAX_IDENTIFIER_LENGTH],
        message=message or UNKNOWN_MESSAGE,
        level=level,
        pass_type_identifier=pass_type_identifier[:MAX_IDENTIFIER_LENGTH] if pass_type_identifier else None,
        serial_number=serial_number[:MAX_IDENTIFIER_LENGTH] if serial_number else None,
        context=context,
    )


def log_info(
    device_library_identifier: str,
    message: str,
    pass_type_identifier: str | None = None,
    serial_number: str | None = None,
    context: dict[str, t.Any] | None = None,
) -> WalletPassLog:
    """Append an informational log entry."""
    return _append(
        WalletPassLog.Level.INFO, device_library_identifier, message, pass_type_identifier, serial_number, context
    )


def log_error(
    device_library_identifier: str,
    message: str,
    pass_type_identifier: str | None = None,
    serial_number: str | None = None,
    context: dict[str, t.Any] | None = None,
) -> WalletPassLog:
    """Append an error log entry."""
    return _append(
        WalletPassLog.Level.ERROR, device_library_identifier, message, pass_type_identifier, serial_number, context
    )


def _as_text(value: t.Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def record_device_logs(device_library_identifier: str | None, entries: t.Iterable[t.Any]) -> int:
    """Store log messages uploaded by a device.

    Devices send either plain strings or objects carrying ``message`` and
    optionally ``passTypeIdentifier``, ``serialNumber`` and ``context``.
    Every entry is stored at error level; nothing is rejected.

    Returns:
        The number of stored entries.
    """
    device_id = _as_text(device_library_identifier) or UNKNOWN_DEVICE
    count = 0
    for entry in entries:
        if isinstance(entry, dict):
            context = entry.get("context")
            log_error(
                device_id,
                _as_text(entry.get("message")) or UNKNOWN_MESSAGE,
                pass_type_identifier=_as_text(entry.get("passTypeIdentifier")),
                serial_number=_as_text(entry.get("serialNumber")),
                context=context if isinstance(context, dict) else None,
            )
        else:
            log_error(device_id, entry if isinstance(entry, str) and entry else UNKNOWN_MESSAGE)
        count += 1

    logger.info("device_logs_recorded", device_id=device_id[:20], count=count)
    return count


def prune_device_logs(older_than_days: int) -> int:
    """Delete log entries older than the retention window.

    Returns:
        The number of deleted entries.
    """
    cutoff = timezone.now() - dt.timedelta(days=older_than_days)
    deleted, _ = WalletPassLog.objects.filter(created_at__lt=cutoff).delete()
    return deleted

"""Celery tasks for wallet pass operations.

These tasks move push fan-out off the request path: pass writes enqueue
``notify_pass_update`` after commit, and a periodic task prunes old device
logs.
"""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import DatabaseError

logger = structlog.get_logger(__name__)


@shared_task(
    name="wallet.notify_pass_update",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
)
def notify_pass_update(self: object, pass_type_identifier: str, serial_number: str) -> dict[str, int]:
    """Send wake-up notifications to every device registered for a pass.

    Args:
        self: Celery task instance (bound task).
        pass_type_identifier: The pass type identifier.
        serial_number: The pass serial number.

    Returns:
        Dictionary with 'attempted', 'succeeded' and 'failed' counts.
    """
    from wallet.service.dispatcher import NotificationDispatcher

    logger.info(
        "sending_pass_update_notifications",
        pass_type_identifier=pass_type_identifier,
        serial_number=serial_number,
    )

    result = NotificationDispatcher().broadcast(pass_type_identifier, serial_number)

    if not result.ok:
        logger.error(
            "pass_update_notifications_all_failed",
            pass_type_identifier=pass_type_identifier,
            serial_number=serial_number,
            attempted=result.attempted,
        )

    return result.as_dict()


@shared_task(name="wallet.prune_device_logs")
def prune_device_logs() -> dict[str, int]:
    """Delete device log entries older than the configured retention window.

    Returns:
        Dictionary with 'deleted' count.
    """
    from wallet.service.device_log import prune_device_logs as prune

    deleted = prune(settings.WALLET_DEVICE_LOG_RETENTION_DAYS)
    if deleted:
        logger.info("wallet_device_logs_pruned", deleted=deleted)
    return {"deleted": deleted}

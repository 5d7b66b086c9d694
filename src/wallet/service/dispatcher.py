"""Fan-out of pass update notifications to registered devices.

After a pass is written, :func:`enqueue_pass_update` schedules a Celery task
once the surrounding transaction commits. The task runs
:meth:`NotificationDispatcher.broadcast`, which wakes up every registered
device in parallel. A failing or slow device never prevents delivery to the
others.
"""

import math
import time
import typing as t
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from wallet.models import WalletPassRegistration
from wallet.push import PushDeliveryError, PushSender, get_push_sender
from wallet.service.registration_store import list_registrations_for_pass

logger = structlog.get_logger(__name__)


@dataclass
class DispatchResult:
    """Aggregate outcome of a broadcast."""

    attempted: int = 0
    succeeded: int = 0
    failed_devices: list[str] = field(default_factory=list)
    # Sends still running when the broadcast gave up on them
    abandoned: int = 0

    @property
    def ok(self) -> bool:
        """True when nobody was registered or at least one device was reached."""
        return self.attempted == 0 or self.succeeded > 0

    def as_dict(self) -> dict[str, int]:
        """Summary suitable for task results and command output."""
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": len(self.failed_devices),
        }


class NotificationDispatcher:
    """Sends wake-up notifications for a pass to all registered devices."""

    def __init__(
        self,
        sender: PushSender | None = None,
        timeout: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            sender: Push transport. Defaults to the configured sender.
            timeout: Seconds allowed per send. Defaults to ``WALLET_PUSH_TIMEOUT``.
            max_workers: Parallel sends. Defaults to ``WALLET_PUSH_MAX_WORKERS``.
        """
        self.sender = sender or get_push_sender()
        self.timeout = timeout if timeout is not None else settings.WALLET_PUSH_TIMEOUT
        self.max_workers = max(1, max_workers or settings.WALLET_PUSH_MAX_WORKERS)

    def broadcast(self, pass_type_identifier: str, serial_number: str) -> DispatchResult:
        """Notify every device registered for a pass.

        Args:
            pass_type_identifier: The pass type identifier.
            serial_number: The pass serial number.

        Returns:
            The aggregate outcome. ``result.ok`` is False only when devices
            were registered and every send failed.
        """
        registrations = list(list_registrations_for_pass(pass_type_identifier, serial_number))
        result = DispatchResult(attempted=len(registrations))

        if not registrations:
            logger.info(
                "no_registrations_for_pass",
                pass_type_identifier=pass_type_identifier,
                serial_number=serial_number,
            )
            return result

        delivered = self._send_all(registrations, pass_type_identifier, result)

        if delivered:
            WalletPassRegistration.objects.filter(pk__in=delivered).update(last_notified_at=timezone.now())

        logger.info(
            "update_notifications_sent",
            pass_type_identifier=pass_type_identifier,
            serial_number=serial_number,
            **result.as_dict(),
        )
        return result

    def _send_all(
        self,
        registrations: list[WalletPassRegistration],
        topic: str,
        result: DispatchResult,
    ) -> list[t.Any]:
        workers = min(self.max_workers, len(registrations))
        # Every send gets ``timeout`` seconds of wall time once it is scheduled.
        deadline = time.monotonic() + self.timeout * math.ceil(len(registrations) / workers)
        delivered: list[t.Any] = []

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="wallet-push")
        futures: list[tuple[WalletPassRegistration, Future[None]]] = []
        try:
            futures = [
                (registration, executor.submit(self._send_one, registration, topic))
                for registration in registrations
            ]
            for registration, future in futures:
                device_id = registration.device_library_identifier[:20]
                try:
                    future.result(timeout=max(0.0, deadline - time.monotonic()))
                except TimeoutError:
                    logger.warning("push_notification_timeout", device_id=device_id, timeout=self.timeout)
                    result.failed_devices.append(registration.device_library_identifier)
                except PushDeliveryError as e:
                    logger.warning(
                        "push_notification_failed",
                        device_id=device_id,
                        error=str(e),
                        status=e.status_code,
                        reason=e.reason,
                    )
                    result.failed_devices.append(registration.device_library_identifier)
                except Exception:
                    logger.exception("push_notification_error", device_id=device_id)
                    result.failed_devices.append(registration.device_library_identifier)
                else:
                    logger.info("push_notification_sent", device_id=device_id)
                    result.succeeded += 1
                    delivered.append(registration.pk)
        finally:
            # Sends that overran their deadline are abandoned, not awaited. Their
            # threads only end when the sender honours ``timeout``.
            result.abandoned = sum(1 for _, future in futures if future.running())
            executor.shutdown(wait=False, cancel_futures=True)
            if result.abandoned:
                logger.warning("push_sends_abandoned", count=result.abandoned, timeout=self.timeout)

        return delivered

    def _send_one(self, registration: WalletPassRegistration, topic: str) -> None:
        self.sender.send(registration.push_token, topic=topic, timeout=self.timeout)


def enqueue_pass_update(pass_type_identifier: str, serial_number: str) -> None:
    """Schedule device notifications for a pass once the current transaction commits.

    Failing to enqueue is logged and never affects the write that triggered it.
    """

    def send_update_notifications() -> None:
        from wallet.tasks import notify_pass_update

        notify_pass_update.delay(pass_type_identifier, serial_number)

    transaction.on_commit(send_update_notifications, robust=True)

"""Push delivery for wallet pass updates.

When a pass changes we send an empty "wake-up" push to every registered
device, which then asks the web service which passes changed and fetches
them. The transport itself is pluggable: the sender class is configured via
``settings.WALLET_PUSH_SENDER`` and must implement :class:`PushSender`.
"""

import typing as t

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

logger = structlog.get_logger(__name__)


class PushDeliveryError(Exception):
    """Raised when a push notification could not be delivered.

    Attributes:
        status_code: Status code reported by the push service, if available.
        reason: Error reason reported by the push service, if available.
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error message describing what went wrong.
            status_code: Status code from the push service, if available.
            reason: Error reason from the push service, if available.
        """
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class PushSender(t.Protocol):
    """Protocol for push transports.

    Implementations send a silent wake-up to a single device and raise
    :class:`PushDeliveryError` if delivery fails. They must honour
    ``timeout`` (seconds) for any network I/O: the dispatcher stops waiting
    once it has passed, and a send that keeps running holds its worker thread
    until it returns.
    """

    def send(self, push_token: str, *, topic: str, timeout: float) -> None:
        """Send a wake-up notification to one device.

        Args:
            push_token: The device push token from registration.
            topic: The pass type identifier the update belongs to.
            timeout: Maximum seconds to spend on this delivery.

        Raises:
            PushDeliveryError: If the notification fails to send.
        """
        ...


class LoggingPushSender:
    """Push sender that records the wake-up instead of contacting APNs.

    Used in development and tests, and as a stand-in until a real transport
    is configured.
    """

    def send(self, push_token: str, *, topic: str, timeout: float) -> None:
        """Log the notification and report success."""
        logger.info(
            "push_notification_simulated",
            device_token_prefix=push_token[:8],
            topic=topic,
            timeout=timeout,
        )


_push_sender: PushSender | None = None


def get_push_sender() -> PushSender:
    """Get the configured push sender singleton.

    Returns:
        An instance of the class named by ``settings.WALLET_PUSH_SENDER``.
    """
    global _push_sender
    if _push_sender is None:
        sender_class = import_string(settings.WALLET_PUSH_SENDER)
        _push_sender = t.cast(PushSender, sender_class())
    return _push_sender

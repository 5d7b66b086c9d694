"""Tests for wallet/service/dispatcher.py."""

import threading
import typing as t
from unittest.mock import MagicMock, patch

import pytest

from wallet.models import WalletPass, WalletPassRegistration
from wallet.service import registration_store
from wallet.service.dispatcher import DispatchResult, NotificationDispatcher, enqueue_pass_update

from .conftest import PASS_TYPE_ID, FakePushSender

pytestmark = pytest.mark.django_db

TOKENS = ["1" * 64, "2" * 64, "3" * 64]


@pytest.fixture
def three_devices(wallet_pass: WalletPass) -> list[WalletPassRegistration]:
    """Three devices registered for wallet_pass."""
    return [
        registration_store.upsert_registration(f"device-{i}", PASS_TYPE_ID, wallet_pass.serial_number, token)[0]
        for i, token in enumerate(TOKENS)
    ]


class TestDispatchResult:
    def test_ok_without_registrations(self) -> None:
        assert DispatchResult().ok is True

    def test_ok_with_partial_success(self) -> None:
        assert DispatchResult(attempted=3, succeeded=1, failed_devices=["a", "b"]).ok is True

    def test_not_ok_when_all_failed(self) -> None:
        assert DispatchResult(attempted=2, succeeded=0, failed_devices=["a", "b"]).ok is False

    def test_as_dict(self) -> None:
        result = DispatchResult(attempted=3, succeeded=2, failed_devices=["a"])

        assert result.as_dict() == {"attempted": 3, "succeeded": 2, "failed": 1}


class TestBroadcast:
    def test_one_failing_device_does_not_block_others(
        self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration]
    ) -> None:
        sender = FakePushSender(failing_tokens={TOKENS[1]})

        result = NotificationDispatcher(sender=sender).broadcast(PASS_TYPE_ID, wallet_pass.serial_number)

        assert result.attempted == 3
        assert result.succeeded == 2
        assert result.failed_devices == ["device-1"]
        assert result.ok is True
        assert sorted(token for token, _ in sender.sent) == [TOKENS[0], TOKENS[2]]
        assert all(topic == PASS_TYPE_ID for _, topic in sender.sent)

    def test_marks_notified_registrations(
        self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration]
    ) -> None:
        sender = FakePushSender(failing_tokens={TOKENS[1]})

        NotificationDispatcher(sender=sender).broadcast(PASS_TYPE_ID, wallet_pass.serial_number)

        notified = WalletPassRegistration.objects.filter(last_notified_at__isnull=False)
        assert set(notified.values_list("device_library_identifier", flat=True)) == {"device-0", "device-2"}

    def test_no_registrations_is_ok(self, wallet_pass: WalletPass) -> None:
        sender = FakePushSender()

        result = NotificationDispatcher(sender=sender).broadcast(PASS_TYPE_ID, wallet_pass.serial_number)

        assert result.attempted == 0
        assert result.ok is True
        assert sender.sent == []

    def test_all_failing_is_not_ok(self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration]) -> None:
        sender = FakePushSender(failing_tokens=set(TOKENS))

        result = NotificationDispatcher(sender=sender).broadcast(PASS_TYPE_ID, wallet_pass.serial_number)

        assert result.ok is False
        assert len(result.failed_devices) == 3
        assert result.abandoned == 0

    def test_unexpected_errors_count_as_failures(
        self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration]
    ) -> None:
        sender = MagicMock()
        sender.send.side_effect = [None, RuntimeError("socket closed"), None]

        result = NotificationDispatcher(sender=sender, max_workers=1).broadcast(
            PASS_TYPE_ID, wallet_pass.serial_number
        )

        assert result.succeeded == 2
        assert len(result.failed_devices) == 1

    def test_slow_device_times_out(self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration]) -> None:
        """A send exceeding its timeout counts as failed and others still succeed."""
        release = threading.Event()

        class SlowSender(FakePushSender):
            def send(self, push_token: str, *, topic: str, timeout: float) -> None:
                if push_token == TOKENS[0]:
                    release.wait(5)
                super().send(push_token, topic=topic, timeout=timeout)

        sender = SlowSender()
        try:
            result = NotificationDispatcher(sender=sender, timeout=0.2, max_workers=3).broadcast(
                PASS_TYPE_ID, wallet_pass.serial_number
            )
        finally:
            release.set()

        assert result.failed_devices == ["device-0"]
        assert result.succeeded == 2
        assert result.abandoned == 1

    def test_uses_configured_sender(
        self, wallet_pass: WalletPass, three_devices: list[WalletPassRegistration], fake_sender: FakePushSender
    ) -> None:
        NotificationDispatcher().broadcast(PASS_TYPE_ID, wallet_pass.serial_number)

        assert len(fake_sender.sent) == 3


class TestEnqueuePassUpdate:
    def test_schedules_task_after_commit(self, django_capture_on_commit_callbacks: t.Any) -> None:
        with patch("wallet.tasks.notify_pass_update.delay") as mock_delay:
            with django_capture_on_commit_callbacks(execute=False) as callbacks:
                enqueue_pass_update(PASS_TYPE_ID, "S1")

            mock_delay.assert_not_called()
            assert len(callbacks) == 1

            callbacks[0]()

        mock_delay.assert_called_once_with(PASS_TYPE_ID, "S1")

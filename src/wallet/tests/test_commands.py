"""Tests for the notify_pass management command."""

from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import CommandError, call_command

from wallet.models import WalletPass, WalletPassRegistration

from .conftest import PASS_TYPE_ID, FakePushSender

pytestmark = pytest.mark.django_db


def test_sends_notifications(
    wallet_pass: WalletPass, registration: WalletPassRegistration, fake_sender: FakePushSender
) -> None:
    out = StringIO()

    call_command("notify_pass", PASS_TYPE_ID, wallet_pass.serial_number, stdout=out)

    assert "Notified 1/1 devices" in out.getvalue()
    assert fake_sender.sent == [(registration.push_token, PASS_TYPE_ID)]


def test_reports_all_failed(
    wallet_pass: WalletPass, registration: WalletPassRegistration, fake_sender: FakePushSender
) -> None:
    fake_sender.failing_tokens = {registration.push_token}
    out = StringIO()

    call_command("notify_pass", PASS_TYPE_ID, wallet_pass.serial_number, stdout=out)

    assert "(1 failed)" in out.getvalue()


def test_async_queues_task(wallet_pass: WalletPass) -> None:
    out = StringIO()

    with patch("wallet.management.commands.notify_pass.notify_pass_update.delay") as mock_delay:
        call_command("notify_pass", PASS_TYPE_ID, wallet_pass.serial_number, "--async", stdout=out)

    mock_delay.assert_called_once_with(PASS_TYPE_ID, wallet_pass.serial_number)
    assert "Queued" in out.getvalue()


def test_unknown_pass() -> None:
    with pytest.raises(CommandError):
        call_command("notify_pass", PASS_TYPE_ID, "missing")

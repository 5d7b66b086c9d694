"""Test fixtures for wallet app tests.

Only wallet-specific fixtures are defined here; Celery eager mode and the
push sender / pass generator reset live in src/conftest.py.
"""

import typing as t
from collections.abc import Callable, Generator
from unittest.mock import patch

import pytest
from django.db.models import Model, QuerySet
from django.test.client import Client

import wallet.push
from wallet.models import WalletPass, WalletPassRegistration
from wallet.push import PushDeliveryError
from wallet.service import pass_store, registration_store

PASS_TYPE_ID = "pass.com.example.event"
DEVICE_ID = "a1b2c3d4e5f6device"


class FakePushSender:
    """Push sender that records sends and fails for selected tokens."""

    def __init__(self, failing_tokens: set[str] | None = None) -> None:
        self.failing_tokens = failing_tokens or set()
        self.sent: list[tuple[str, str]] = []

    def send(self, push_token: str, *, topic: str, timeout: float) -> None:
        if push_token in self.failing_tokens:
            raise PushDeliveryError("Device token is no longer active", status_code=410, reason="Unregistered")
        self.sent.append((push_token, topic))


# --- Push fixtures ---


@pytest.fixture
def push_token() -> str:
    """A valid push token."""
    return "a" * 64


@pytest.fixture
def fake_sender() -> Generator[FakePushSender, None, None]:
    """Install a recording push sender as the configured sender."""
    sender = FakePushSender()
    wallet.push._push_sender = sender
    yield sender
    wallet.push._push_sender = None


# --- Model fixtures ---


@pytest.fixture
def wallet_pass() -> WalletPass:
    """A stored event ticket pass."""
    return pass_store.create_or_replace(
        pass_type_identifier=PASS_TYPE_ID,
        serial_number="SERIAL-1",
        data={"description": "Concert", "eventTicket": {"primaryFields": [{"key": "event", "value": "Concert"}]}},
        template_type=WalletPass.TemplateType.EVENT_TICKET,
    )


@pytest.fixture
def registration(wallet_pass: WalletPass, push_token: str) -> WalletPassRegistration:
    """DEVICE_ID registered for wallet_pass."""
    reg, _ = registration_store.upsert_registration(
        device_library_identifier=DEVICE_ID,
        pass_type_identifier=wallet_pass.pass_type_identifier,
        serial_number=wallet_pass.serial_number,
        push_token=push_token,
    )
    return reg


# --- Client fixtures ---


@pytest.fixture
def wallet_client() -> Client:
    """A client sending a well-formed ApplePass authorization header."""
    return Client(headers={"Authorization": "ApplePass vxwxd7J8AlNNFPS8k0a0FfUFtq0ewzFdc"})


# --- Concurrency fixtures ---


@pytest.fixture
def missed_lookup() -> Generator[Callable[[type[Model]], None], None, None]:
    """Make the next ``get`` on a model miss although the row exists.

    This reproduces another request committing the same key between our
    lookup and our insert.
    """
    original_get = QuerySet.get
    pending: set[type[Model]] = set()

    def get(queryset: QuerySet[t.Any], *args: t.Any, **kwargs: t.Any) -> t.Any:
        if queryset.model in pending:
            pending.discard(queryset.model)
            raise queryset.model.DoesNotExist
        return original_get(queryset, *args, **kwargs)

    with patch.object(QuerySet, "get", get):
        yield pending.add

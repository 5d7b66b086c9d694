"""
This conftest.py provides fixtures shared by all app tests.
"""

import typing as t
from collections.abc import Generator

import pytest
from django.test.client import Client

import wallet.generator
import wallet.push


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without async complications.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def reset_wallet_singletons() -> Generator[None, None, None]:
    """Drop cached push sender and pass generator so settings overrides apply."""
    wallet.push._push_sender = None
    wallet.generator._pass_generator = None
    yield
    wallet.push._push_sender = None
    wallet.generator._pass_generator = None


@pytest.fixture(autouse=True)
def serve_any_pass_type(settings: t.Any) -> None:
    """Tests serve every pass type unless they restrict it explicitly."""
    settings.WALLET_PASS_TYPE_IDENTIFIERS = []


@pytest.fixture
def anon_client() -> Client:
    """A client without the ApplePass authorization header."""
    return Client()

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from whatsapp_twilio.config import get_settings
from whatsapp_twilio.mock import MockCounterStore, MockMessageClient, MockSignatureValidator
from whatsapp_twilio.whatsapp import WhatsApp

FROM_NUMBER = "+1234567890"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep real credentials in the environment from leaking into tests."""
    for name in (
        "TWILIO_ACCOUNT_SID",
        "TWILIO_AUTH_TOKEN",
        "TWILIO_FROM_NUMBER",
        "WHATSAPP_TIMEOUT",
        "WHATSAPP_RATE_LIMIT_ENABLED",
        "WHATSAPP_MAX_REQUESTS_PER_MINUTE",
        "WHATSAPP_RATE_LIMIT_WINDOW",
        "WHATSAPP_VALIDATE_SIGNATURE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def config() -> dict[str, Any]:
    return {
        "account_sid": "ACtest",
        "auth_token": "test-auth-token",
        "from_number": FROM_NUMBER,
        "timeout": 30,
    }


@pytest.fixture
def client() -> MockMessageClient:
    return MockMessageClient()


@pytest.fixture
def validator() -> MockSignatureValidator:
    return MockSignatureValidator(valid=True)


@pytest.fixture
def make_whatsapp(
    config: dict[str, Any],
    client: MockMessageClient,
    validator: MockSignatureValidator,
) -> Callable[..., WhatsApp]:
    """Build a facade over the mock collaborators, with config overrides."""

    def _make(counter_store: MockCounterStore | None = None, **overrides: Any) -> WhatsApp:
        return WhatsApp(
            {**config, **overrides},
            client=client,
            validator=validator,
            counter_store=counter_store,
        )

    return _make


@pytest.fixture
def whatsapp(make_whatsapp: Callable[..., WhatsApp]) -> WhatsApp:
    return make_whatsapp()

from __future__ import annotations

from typing import Any

import pytest

from whatsapp_twilio.config import Settings, get_settings
from whatsapp_twilio.errors import ErrorCode, ErrorKind, WhatsAppError
from whatsapp_twilio.mock import MockCounterStore, MockMessageClient
from whatsapp_twilio.twilio_client import TwilioMessageClient, TwilioSignatureValidator
from whatsapp_twilio.whatsapp import WhatsApp


@pytest.mark.parametrize("missing", ["account_sid", "auth_token", "from_number"])
def test_missing_required_key_is_configuration_error(config: dict[str, Any], missing: str) -> None:
    del config[missing]

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(config)

    assert excinfo.value.kind is ErrorKind.CONFIGURATION
    assert excinfo.value.code == ErrorCode.MISSING_CONFIG
    assert missing in excinfo.value.message


@pytest.mark.parametrize("field", ["account_sid", "auth_token", "from_number"])
def test_blank_required_field_is_configuration_error(config: dict[str, Any], field: str) -> None:
    config[field] = "   "

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(config)

    assert excinfo.value.kind is ErrorKind.CONFIGURATION
    assert f"'{field}' cannot be empty" in excinfo.value.message


@pytest.mark.parametrize("number", ["1234567890", "+0123456789", "++1234567890", "+1234abc5678"])
def test_malformed_from_number_is_configuration_error(config: dict[str, Any], number: str) -> None:
    config["from_number"] = number

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(config)

    assert excinfo.value.kind is ErrorKind.CONFIGURATION
    assert excinfo.value.code == ErrorCode.INVALID_PHONE_NUMBER


def test_non_mapping_config_is_rejected() -> None:
    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(["not", "a", "mapping"])  # type: ignore[arg-type]

    assert excinfo.value.kind is ErrorKind.CONFIGURATION


def test_wrongly_typed_config_is_configuration_error(config: dict[str, Any]) -> None:
    config["rate_limit"] = {"max_requests_per_minute": "lots"}

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(config)

    assert excinfo.value.kind is ErrorKind.CONFIGURATION


def test_defaults(config: dict[str, Any]) -> None:
    del config["timeout"]
    settings = Settings.model_validate(config)

    assert settings.timeout == 30
    assert settings.rate_limit.enabled is True
    assert settings.rate_limit.max_requests_per_minute == 60
    assert settings.rate_limit.window == 60
    assert settings.webhook.signature_header == "X-Twilio-Signature"
    assert settings.webhook.validate_signature is True
    assert settings.templates == {}


def test_settings_are_immutable(config: dict[str, Any]) -> None:
    settings = Settings.model_validate(config)

    with pytest.raises(Exception):
        settings.from_number = "+19999999999"  # type: ignore[misc]


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "ACenv")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "env-token")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+14155550100")
    monkeypatch.setenv("WHATSAPP_TIMEOUT", "12.5")
    monkeypatch.setenv("WHATSAPP_MAX_REQUESTS_PER_MINUTE", "5")
    monkeypatch.setenv("WHATSAPP_VALIDATE_SIGNATURE", "false")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.account_sid == "ACenv"
    assert settings.from_number == "+14155550100"
    assert settings.timeout == 12.5
    assert settings.rate_limit.max_requests_per_minute == 5
    assert settings.webhook.validate_signature is False

    wa = WhatsApp(client=MockMessageClient())
    assert wa.from_number == "+14155550100"


def test_missing_environment_is_configuration_error() -> None:
    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp()

    assert excinfo.value.kind is ErrorKind.CONFIGURATION


@pytest.mark.parametrize(
    ("name", "value", "field"),
    [
        ("WHATSAPP_MAX_REQUESTS_PER_MINUTE", "sixty", "max_requests_per_minute"),
        ("WHATSAPP_RATE_LIMIT_WINDOW", "1.5", "window"),
        ("WHATSAPP_RATE_LIMIT_ENABLED", "maybe", "enabled"),
        ("WHATSAPP_VALIDATE_SIGNATURE", "sometimes", "validate_signature"),
    ],
)
def test_malformed_environment_value_is_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
    config: dict[str, Any],
    name: str,
    value: str,
    field: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(config)
    assert excinfo.value.kind is ErrorKind.CONFIGURATION
    assert field in excinfo.value.message


def test_malformed_environment_timeout_without_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "ACenv")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "env-token")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+14155550100")
    monkeypatch.setenv("WHATSAPP_TIMEOUT", "abc")
    get_settings.cache_clear()

    with pytest.raises(WhatsAppError) as excinfo:
        WhatsApp(client=MockMessageClient())
    assert excinfo.value.kind is ErrorKind.CONFIGURATION


def test_default_collaborators_are_twilio_backed(config: dict[str, Any]) -> None:
    wa = WhatsApp(config)

    assert isinstance(wa.client, TwilioMessageClient)
    assert isinstance(wa.validator, TwilioSignatureValidator)
    assert wa.rate_limiter is None


def test_rate_limiter_needs_store_and_enabled_flag(config: dict[str, Any]) -> None:
    assert WhatsApp(config, counter_store=MockCounterStore()).rate_limiter is not None

    config["rate_limit"] = {"enabled": False}
    assert WhatsApp(config, counter_store=MockCounterStore()).rate_limiter is None

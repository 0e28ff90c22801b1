from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class RateLimitSettings(BaseModel):
    # Raw environment strings are coerced (and rejected) by pydantic
    model_config = ConfigDict(frozen=True, validate_default=True)

    # Only enforced when the facade is also given a counter store
    enabled: bool = Field(
        default_factory=lambda: os.getenv("WHATSAPP_RATE_LIMIT_ENABLED", "true")
    )
    max_requests_per_minute: int = Field(
        default_factory=lambda: os.getenv("WHATSAPP_MAX_REQUESTS_PER_MINUTE", "60")
    )
    # Seconds before a recipient's counter expires
    window: int = Field(default_factory=lambda: os.getenv("WHATSAPP_RATE_LIMIT_WINDOW", "60"))


class WebhookSettings(BaseModel):
    model_config = ConfigDict(frozen=True, validate_default=True)

    signature_header: str = "X-Twilio-Signature"
    validate_signature: bool = Field(
        default_factory=lambda: os.getenv("WHATSAPP_VALIDATE_SIGNATURE", "true")
    )


class TemplateDefinition(BaseModel):
    """A pre-approved WhatsApp content template registered in Twilio."""

    model_config = ConfigDict(frozen=True)

    sid: str
    # Defaults to the key the template is registered under
    name: str | None = None
    content: str | None = None
    # Variable key ("1", "2", ...) -> declared type ("date", "time", "amount", "status")
    components: dict[str, str] = Field(default_factory=dict)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, validate_default=True)

    # --- Twilio credentials and WhatsApp sender ---
    account_sid: str | None = Field(default_factory=lambda: os.getenv("TWILIO_ACCOUNT_SID"))
    auth_token: str | None = Field(default_factory=lambda: os.getenv("TWILIO_AUTH_TOKEN"))
    from_number: str | None = Field(default_factory=lambda: os.getenv("TWILIO_FROM_NUMBER"))

    # Seconds; passed to the Twilio HTTP client
    timeout: float = Field(default_factory=lambda: os.getenv("WHATSAPP_TIMEOUT", "30"))

    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    # Template name -> definition. No built-in templates.
    templates: dict[str, TemplateDefinition] = Field(default_factory=dict)


@lru_cache
def get_settings() -> Settings:
    return Settings()

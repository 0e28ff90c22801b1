from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

from pydantic import ValidationError as PydanticValidationError
from twilio.base.exceptions import TwilioException, TwilioRestException

from .config import Settings, get_settings
from .errors import (
    ErrorCode,
    WhatsAppError,
    configuration_error,
    connection_error,
    rate_limit_error,
    upstream_error,
    validation_error,
)
from .models import (
    DeliveryReceipt,
    InboundWebhookEvent,
    MediaAttachment,
    OutboundMessage,
    WebhookResult,
)
from .phone import is_valid_e164, mask_number, strip_whatsapp_prefix, to_whatsapp_address
from .ratelimit import CounterStore, RateLimiter
from .templates import TemplateRegistry, encode_variables, is_valid_template_sid
from .twilio_client import (
    MessageClient,
    SignatureValidator,
    TwilioMessageClient,
    TwilioSignatureValidator,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH: Final[int] = 1600
MAX_MEDIA: Final[int] = 10
REQUIRED_CONFIG: Final[tuple[str, ...]] = ("account_sid", "auth_token", "from_number")

# Twilio reports these either as the HTTP status or as its own error code
RATE_LIMIT_CODES: Final[frozenset[int]] = frozenset({429, 20429})
AUTH_ERROR_CODES: Final[frozenset[int]] = frozenset({401, 403, 20003})
NOT_FOUND_CODES: Final[frozenset[int]] = frozenset({404, 20404})


def _load_settings(config: Settings | Mapping[str, Any] | None) -> Settings:
    if config is None:
        try:
            return get_settings()
        except PydanticValidationError as exc:
            raise configuration_error(f"Invalid configuration: {exc}") from exc
    if isinstance(config, Settings):
        return config
    if not isinstance(config, Mapping):
        raise configuration_error("WhatsApp configuration is required")

    missing = [key for key in REQUIRED_CONFIG if key not in config]
    if missing:
        raise configuration_error(f"Missing required configuration: {', '.join(missing)}")
    try:
        return Settings.model_validate(dict(config))
    except PydanticValidationError as exc:
        raise configuration_error(f"Invalid configuration: {exc}") from exc


def _validate_settings(settings: Settings) -> None:
    for field in REQUIRED_CONFIG:
        value = getattr(settings, field)
        if value is None or not value.strip():
            raise configuration_error(f"Configuration field '{field}' cannot be empty")

    if not is_valid_e164(settings.from_number):
        raise configuration_error(
            "Invalid 'from_number' format in configuration. "
            "Must be E.164 format (e.g., +1234567890)",
            ErrorCode.INVALID_PHONE_NUMBER,
        )


def _validate_body(body: object) -> str:
    if not isinstance(body, str):
        raise validation_error("Message content is required", ErrorCode.EMPTY_MESSAGE)
    if not body.strip():
        raise validation_error("Message content cannot be empty", ErrorCode.EMPTY_MESSAGE)
    if len(body) > MAX_MESSAGE_LENGTH:
        raise validation_error(
            f"Message exceeds maximum length of {MAX_MESSAGE_LENGTH} characters",
            ErrorCode.MESSAGE_TOO_LONG,
        )
    try:
        body.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise validation_error(
            "Message contains invalid characters or encoding", ErrorCode.INVALID_ENCODING
        ) from exc
    return body


def _text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return None if value is None else str(value)


def translate_twilio_error(exc: TwilioException) -> WhatsAppError:
    """Map a Twilio SDK failure onto a WhatsAppError."""
    if not isinstance(exc, TwilioRestException):
        return connection_error(
            f"Twilio authentication error: {exc}", ErrorCode.AUTHENTICATION_FAILED
        )

    status = exc.status
    code = exc.code or status
    message = exc.msg

    if code in RATE_LIMIT_CODES or status == 429:
        return rate_limit_error(
            f"Twilio rate limit exceeded: {message}", ErrorCode.TWILIO_LIMIT_EXCEEDED
        )
    if code in AUTH_ERROR_CODES or status in (401, 403):
        return connection_error(
            "Failed to authenticate with Twilio API", ErrorCode.AUTHENTICATION_FAILED
        )
    if code in NOT_FOUND_CODES or status == 404:
        return connection_error(f"Resource not found: {message}", ErrorCode.RESOURCE_NOT_FOUND)
    if status == 400:
        return validation_error(f"Invalid parameters: {message}", ErrorCode.INVALID_PARAMETERS)
    return upstream_error(f"Twilio API error: {message}", code)


class WhatsApp:
    """
    Send and receive WhatsApp messages through Twilio.

    Collaborators default to the Twilio SDK; pass ``client``, ``validator``
    or ``counter_store`` to substitute them (see ``whatsapp_twilio.mock``).
    Per-recipient rate limiting only runs when a ``counter_store`` is given
    and ``settings.rate_limit.enabled`` is true.
    """

    def __init__(
        self,
        settings: Settings | Mapping[str, Any] | None = None,
        *,
        client: MessageClient | None = None,
        validator: SignatureValidator | None = None,
        counter_store: CounterStore | None = None,
    ) -> None:
        self.settings = _load_settings(settings)
        _validate_settings(self.settings)

        # Narrowed by _validate_settings
        account_sid: str = self.settings.account_sid  # type: ignore[assignment]
        auth_token: str = self.settings.auth_token  # type: ignore[assignment]
        self.from_number: str = self.settings.from_number  # type: ignore[assignment]

        self.client: MessageClient = client or TwilioMessageClient(
            account_sid, auth_token, timeout=self.settings.timeout
        )
        self.validator: SignatureValidator = validator or TwilioSignatureValidator(auth_token)
        self.templates = TemplateRegistry(self.settings.templates)

        self.rate_limiter: RateLimiter | None = None
        if counter_store is not None and self.settings.rate_limit.enabled:
            self.rate_limiter = RateLimiter(
                counter_store,
                max_requests=self.settings.rate_limit.max_requests_per_minute,
                window=self.settings.rate_limit.window,
            )

    # --- Outbound ---

    def send_message(
        self,
        to: str,
        body: str,
        template_id: str | None = None,
        template_vars: str | Mapping[str, Any] | None = None,
    ) -> DeliveryReceipt:
        if not is_valid_e164(to):
            raise validation_error(
                f"Invalid phone number format: {to}", ErrorCode.INVALID_PHONE_NUMBER
            )

        if self.rate_limiter is not None:
            self.rate_limiter.hit(to)

        _validate_body(body)

        if template_id is not None and not is_valid_template_sid(template_id):
            raise validation_error(
                f"Invalid template SID format: {template_id}", ErrorCode.INVALID_TEMPLATE_SID
            )
        encoded_vars = encode_variables(template_vars) if template_vars is not None else None

        message = OutboundMessage(
            to=to, body=body, template_id=template_id, template_vars=encoded_vars
        )
        return self._deliver(message)

    def send_template(
        self,
        to: str,
        template_name: str,
        variables: Mapping[str, Any] | None = None,
    ) -> DeliveryReceipt:
        """Send a configured content template, checking its declared variables first."""
        template = self.templates.get(template_name)
        variables = variables or {}
        self.templates.validate_variables(template, variables)
        return self.send_message(
            to,
            template.content or template.name or template_name,
            template_id=template.sid,
            template_vars=variables if variables else None,
        )

    def _deliver(self, message: OutboundMessage) -> DeliveryReceipt:
        try:
            sent = self.client.create(
                to_whatsapp_address(message.to),
                from_=to_whatsapp_address(self.from_number),
                body=message.body,
                content_sid=message.template_id,
                content_variables=message.template_vars,
            )
        except TwilioException as exc:
            error = translate_twilio_error(exc)
            logger.error(f"WhatsApp send to {mask_number(message.to)} failed: {error!r}")
            raise error from exc

        logger.info(f"WhatsApp message {sent.sid} sent to {mask_number(message.to)}")
        return DeliveryReceipt(sid=sent.sid, to=sent.to, from_=sent.from_, status=sent.status)

    # --- Inbound ---

    def validate_webhook_signature(
        self,
        signature: str | None,
        url: str | None,
        params: Mapping[str, Any],
    ) -> bool:
        if not signature:
            raise validation_error("Missing webhook signature", ErrorCode.MISSING_SIGNATURE)
        if not url:
            raise validation_error("Missing webhook URL", ErrorCode.MISSING_WEBHOOK_URL)

        if not self.validator.validate(signature, url, params):
            logger.warning(f"Rejected webhook with invalid signature for {url}")
            raise validation_error("Invalid webhook signature", ErrorCode.INVALID_SIGNATURE)
        return True

    def handle_webhook(
        self,
        payload: Mapping[str, Any],
        url: str | None = None,
        signature: str | None = None,
    ) -> WebhookResult:
        """
        Validate an inbound Twilio webhook and normalise it.

        Payloads without a ``Body`` (e.g. delivery status callbacks) produce a
        ``no_messages`` result rather than an error.
        """
        if not isinstance(payload, Mapping):
            raise validation_error(
                "Invalid webhook payload format", ErrorCode.INVALID_PARAMETERS
            )

        message_sid = payload.get("MessageSid")
        if not message_sid:
            raise validation_error(
                "Missing MessageSid in webhook data", ErrorCode.MISSING_MESSAGE_SID
            )

        if self.settings.webhook.validate_signature:
            self.validate_webhook_signature(signature, url, payload)

        if "Body" not in payload:
            return WebhookResult(status="no_messages")

        event = InboundWebhookEvent(
            message_sid=str(message_sid),
            from_number=self._webhook_number(payload, "From"),
            to_number=self._webhook_number(payload, "To"),
            body=_text(payload, "Body"),
            status=_text(payload, "Status")
            or _text(payload, "MessageStatus")
            or _text(payload, "SmsStatus"),
            media=self._extract_media(payload),
            error_code=_text(payload, "ErrorCode"),
            error_message=_text(payload, "ErrorMessage"),
        )
        logger.info(f"Accepted WhatsApp webhook {message_sid} with {len(event.media)} media")
        return WebhookResult(status="success", messages=[event])

    @staticmethod
    def _webhook_number(payload: Mapping[str, Any], field: str) -> str | None:
        raw = payload.get(field)
        if raw is None or raw == "":
            return None
        number = strip_whatsapp_prefix(str(raw))
        if not is_valid_e164(number):
            raise validation_error(
                f"Invalid phone number format: {raw}", ErrorCode.INVALID_PHONE_NUMBER
            )
        return number

    @staticmethod
    def _extract_media(payload: Mapping[str, Any]) -> list[MediaAttachment]:
        raw_count = payload.get("NumMedia") or 0
        try:
            count = int(raw_count)
        except (TypeError, ValueError) as exc:
            raise validation_error(
                f"Invalid parameters: NumMedia must be an integer, got {raw_count!r}",
                ErrorCode.INVALID_PARAMETERS,
            ) from exc

        media: list[MediaAttachment] = []
        for i in range(min(max(count, 0), MAX_MEDIA)):
            url = _text(payload, f"MediaUrl{i}")
            if url:
                media.append(
                    MediaAttachment(url=url, content_type=_text(payload, f"MediaContentType{i}"))
                )
        return media

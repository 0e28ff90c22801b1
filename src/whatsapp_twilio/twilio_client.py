from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from twilio.http.http_client import TwilioHttpClient
from twilio.request_validator import RequestValidator
from twilio.rest import Client


@dataclass(frozen=True)
class SentMessage:
    sid: str
    to: str
    from_: str
    status: str | None = None


class MessageClient(Protocol):
    """Creates messages on the provider; raises Twilio exceptions on failure."""

    def create(
        self,
        to: str,
        *,
        from_: str,
        body: str,
        content_sid: str | None = None,
        content_variables: str | None = None,
    ) -> SentMessage: ...


class SignatureValidator(Protocol):
    def validate(self, signature: str, url: str, params: Mapping[str, Any]) -> bool: ...


class TwilioMessageClient:
    """MessageClient backed by ``twilio.rest.Client``."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        timeout: float | None = None,
        client: Client | None = None,
    ) -> None:
        self._client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout),
        )

    def create(
        self,
        to: str,
        *,
        from_: str,
        body: str,
        content_sid: str | None = None,
        content_variables: str | None = None,
    ) -> SentMessage:
        params: dict[str, Any] = {"to": to, "from_": from_, "body": body}
        # Content fields are left unset unless a template is used
        if content_sid:
            params["content_sid"] = content_sid
        if content_variables:
            params["content_variables"] = content_variables

        message = self._client.messages.create(**params)
        return SentMessage(
            sid=message.sid,
            to=message.to,
            from_=message.from_,
            status=str(message.status) if message.status is not None else None,
        )


class TwilioSignatureValidator:
    """SignatureValidator backed by ``twilio.request_validator.RequestValidator``."""

    def __init__(self, auth_token: str) -> None:
        self._validator = RequestValidator(auth_token)

    def validate(self, signature: str, url: str, params: Mapping[str, Any]) -> bool:
        # Twilio signs the full URL (scheme and host included) and the sorted form body
        return bool(self._validator.validate(url, dict(params), signature))

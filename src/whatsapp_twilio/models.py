from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class OutboundMessage(BaseModel):
    """A validated send request, addressed in E.164 (no channel prefix)."""

    to: str
    body: str
    template_id: str | None = None
    template_vars: str | None = None


class DeliveryReceipt(BaseModel):
    sid: str
    to: str
    from_: str = Field(alias="from")
    status: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class MediaAttachment(BaseModel):
    url: str
    content_type: str | None = None


class InboundWebhookEvent(BaseModel):
    message_sid: str
    from_number: str | None = None
    to_number: str | None = None
    body: str | None = None
    status: str | None = None
    media: list[MediaAttachment] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)
    error_code: str | None = None
    error_message: str | None = None


class WebhookResult(BaseModel):
    status: Literal["success", "no_messages"]
    messages: list[InboundWebhookEvent] = Field(default_factory=list)

"""Send and receive WhatsApp messages through the Twilio API."""

from dotenv import load_dotenv

load_dotenv()

from .config import Settings, TemplateDefinition, get_settings  # noqa: E402
from .errors import ErrorCode, ErrorKind, WhatsAppError  # noqa: E402
from .models import (  # noqa: E402
    DeliveryReceipt,
    InboundWebhookEvent,
    MediaAttachment,
    WebhookResult,
)
from .ratelimit import TTLCounterStore  # noqa: E402
from .whatsapp import WhatsApp  # noqa: E402

__all__ = [
    "DeliveryReceipt",
    "ErrorCode",
    "ErrorKind",
    "InboundWebhookEvent",
    "MediaAttachment",
    "Settings",
    "TTLCounterStore",
    "TemplateDefinition",
    "WebhookResult",
    "WhatsApp",
    "WhatsAppError",
    "get_settings",
]

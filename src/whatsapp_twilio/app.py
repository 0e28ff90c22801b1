from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import BackgroundTasks, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import ErrorCode, ErrorKind, WhatsAppError
from .models import InboundWebhookEvent
from .whatsapp import WhatsApp

EMPTY_TWIML = """<?xml version="1.0" encoding="UTF-8"?>
<Response></Response>"""

MessageHandler = Callable[[InboundWebhookEvent], None]


class SendMessageRequest(BaseModel):
    to: str
    body: str
    template_id: str | None = None
    template_vars: str | dict[str, Any] | None = None


def http_status_for(error: WhatsAppError) -> int:
    if error.kind is ErrorKind.VALIDATION:
        return 400
    if error.kind is ErrorKind.RATE_LIMIT:
        return 429
    if error.kind is ErrorKind.CONNECTION:
        return 404 if error.code == ErrorCode.RESOURCE_NOT_FOUND else 401
    if error.kind is ErrorKind.CONFIGURATION:
        return 500
    return 502


def create_app(
    whatsapp: WhatsApp | None = None,
    on_message: MessageHandler | None = None,
) -> FastAPI:
    """
    Build the HTTP surface around a WhatsApp facade.

    When ``whatsapp`` is None the facade is created from the environment on
    the first request. ``on_message`` runs as a background task for every
    inbound message accepted by the webhook.
    """
    app = FastAPI(title="whatsapp-twilio", version="0.1.0")
    app.state.whatsapp = whatsapp

    def get_whatsapp(request: Request) -> WhatsApp:
        if request.app.state.whatsapp is None:
            request.app.state.whatsapp = WhatsApp()
        return request.app.state.whatsapp

    @app.exception_handler(WhatsAppError)
    async def whatsapp_error_handler(request: Request, exc: WhatsAppError) -> JSONResponse:
        return JSONResponse(exc.to_response(), status_code=http_status_for(exc))

    @app.post("/whatsapp/messages")
    def send_message(
        payload: SendMessageRequest,
        wa: WhatsApp = Depends(get_whatsapp),
    ) -> JSONResponse:
        """
        Send a WhatsApp message.

        Accepts JSON:

          { "to": "+14155550123", "body": "Hello" }
        """
        receipt = wa.send_message(
            payload.to,
            payload.body,
            template_id=payload.template_id,
            template_vars=payload.template_vars,
        )
        return JSONResponse(
            {
                "status": "success",
                "sid": receipt.sid,
                "to": receipt.to,
                "from": receipt.from_,
                "message_status": receipt.status,
            }
        )

    @app.post("/whatsapp/webhook")
    async def whatsapp_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        wa: WhatsApp = Depends(get_whatsapp),
    ) -> Response:
        """
        Twilio WhatsApp webhook.

        Twilio signs the exact public URL it called, so the app must see the
        same scheme and host (configure proxy headers when behind one).
        """
        form = await request.form()
        payload = {key: value for key, value in form.items() if isinstance(value, str)}
        signature = request.headers.get(wa.settings.webhook.signature_header)

        result = wa.handle_webhook(payload, str(request.url), signature)

        if on_message is not None:
            for event in result.messages:
                background_tasks.add_task(on_message, event)

        # Empty TwiML so Twilio sends no automatic reply
        return Response(content=EMPTY_TWIML, media_type="application/xml")

    return app


app = create_app()

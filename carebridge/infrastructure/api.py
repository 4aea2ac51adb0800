from __future__ import annotations

import hmac
import logging
import time

from fastapi import Depends, FastAPI, Form, Header, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel
from twilio.request_validator import RequestValidator

from carebridge.agent.actions.handle_incoming_sms import DispatchError, DispatchOutcome
from carebridge.agent.extremities.twilio_sms_extremity import TwilioConfigError
from carebridge.agent.io.contracts import InboundSms
from carebridge.config import settings
from carebridge.config.settings import SmsConfigError
from carebridge.infrastructure.sms_gateway import gateway

logger = logging.getLogger(__name__)

_EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'

app = FastAPI(title="CareBridge SMS API", version="0.1.0")


class InboundSmsPayload(BaseModel):
    from_number: str
    to_number: str
    body: str
    message_sid: str | None = None


async def verify_twilio_signature(request: Request) -> None:
    """Reject webhook calls whose ``X-Twilio-Signature`` does not match."""
    if not settings.get_validate_twilio_signature():
        return
    auth_token = settings.get_twilio_auth_token()
    if not auth_token:
        logger.error("Twilio signature validation enabled but TWILIO_AUTH_TOKEN is not set")
        raise HTTPException(status_code=503, detail="SMS webhook not configured")
    signature = request.headers.get("X-Twilio-Signature", "")
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}
    if not signature or not RequestValidator(auth_token).validate(
        _signed_url(request), params, signature
    ):
        logger.warning("Rejected SMS webhook with invalid signature path=%s", request.url.path)
        raise HTTPException(status_code=403, detail="Invalid Twilio signature")


def require_api_token(authorization: str | None = Header(None)) -> None:
    expected = settings.get_api_token()
    if not expected:
        raise HTTPException(status_code=403, detail="JSON SMS endpoint disabled")
    scheme, _, token = str(authorization or "").partition(" ")
    if scheme != "Bearer" or not hmac.compare_digest(token.strip(), expected):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/sms/messages", dependencies=[Depends(require_api_token)])
def receive_message(payload: InboundSmsPayload) -> dict[str, str]:
    outcome = _dispatch(
        InboundSms(
            from_number=payload.from_number,
            to_number=payload.to_number,
            body=payload.body,
            message_sid=payload.message_sid,
            received_at=time.time(),
        )
    )
    return {"status": outcome.value}


@app.post("/sms/inbound", dependencies=[Depends(verify_twilio_signature)])
def receive_twilio_webhook(
    from_number: str = Form(..., alias="From"),
    to_number: str = Form(..., alias="To"),
    body: str = Form("", alias="Body"),
    message_sid: str | None = Form(None, alias="MessageSid"),
) -> Response:
    _dispatch(
        InboundSms(
            from_number=from_number,
            to_number=to_number,
            body=body,
            message_sid=message_sid,
            received_at=time.time(),
        )
    )
    return Response(content=_EMPTY_TWIML, media_type="application/xml")


def _signed_url(request: Request) -> str:
    base_url = settings.get_public_base_url()
    if not base_url:
        return str(request.url)
    query = f"?{request.url.query}" if request.url.query else ""
    return f"{base_url}{request.url.path}{query}"


def _dispatch(message: InboundSms) -> DispatchOutcome:
    try:
        dispatcher = gateway.get_dispatcher()
    except (SmsConfigError, TwilioConfigError) as exc:
        logger.error("SMS dispatcher not configured: %s", exc)
        raise HTTPException(status_code=503, detail="SMS dispatcher not configured") from exc
    try:
        return dispatcher.handle(message)
    except DispatchError as exc:
        raise HTTPException(status_code=502, detail=f"SMS dispatch failed stage={exc.stage}") from exc

"""Twilio transport for outbound SMS."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import requests
from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from carebridge.agent.io.contracts import OutboundSms
from carebridge.agent.observability.log_manager import mask_phone_number
from carebridge.config import settings

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 10.0


class SmsTransportError(RuntimeError):
    pass


class SmsTransportAuthError(SmsTransportError):
    pass


class SmsTransportRateLimitError(SmsTransportError):
    pass


class TwilioConfigError(ValueError):
    pass


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC


def load_twilio_config() -> TwilioConfig:
    account_sid = str(os.getenv("TWILIO_ACCOUNT_SID") or "").strip()
    auth_token = settings.get_twilio_auth_token() or ""
    if not account_sid or not auth_token:
        raise TwilioConfigError("TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN are required")
    return TwilioConfig(
        account_sid=account_sid,
        auth_token=auth_token,
        request_timeout_sec=_as_float(
            os.getenv("TWILIO_REQUEST_TIMEOUT_SEC"), DEFAULT_REQUEST_TIMEOUT_SEC, minimum=1.0
        ),
    )


class TwilioSmsTransport:
    """Sends each message with one ``messages.create`` call.

    There is no retry: a timed-out request may still have been delivered.
    Raised errors carry the HTTP status and Twilio error code only, never
    the response text, which echoes the destination number.
    """

    def __init__(self, config: TwilioConfig, client: Any | None = None) -> None:
        self._client = client or Client(
            config.account_sid,
            config.auth_token,
            http_client=TwilioHttpClient(timeout=config.request_timeout_sec),
        )

    def send(self, message: OutboundSms) -> None:
        try:
            sent = self._client.messages.create(
                to=message.to_number,
                from_=message.from_number,
                body=message.body,
            )
        except TwilioRestException as exc:
            raise _map_rest_error(exc) from exc
        except requests.RequestException as exc:
            raise SmsTransportError(f"Twilio request failed type={type(exc).__name__}") from exc
        logger.info(
            "Twilio message accepted to=%s sid=%s",
            mask_phone_number(message.to_number),
            getattr(sent, "sid", None),
        )


def _map_rest_error(exc: TwilioRestException) -> SmsTransportError:
    status = exc.status
    detail = f"status={status} code={exc.code}"
    if status in {401, 403}:
        return SmsTransportAuthError(f"Twilio auth failed {detail}")
    if status == 429:
        return SmsTransportRateLimitError(f"Twilio rate limited {detail}")
    return SmsTransportError(f"Twilio send failed {detail}")


def _as_float(value: str | None, default: float, *, minimum: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return max(parsed, minimum)

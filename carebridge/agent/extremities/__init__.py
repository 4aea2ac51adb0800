from __future__ import annotations

from carebridge.agent.extremities.log_sms_extremity import LogSmsTransport
from carebridge.agent.extremities.twilio_sms_extremity import (
    SmsTransportAuthError,
    SmsTransportError,
    SmsTransportRateLimitError,
    TwilioConfig,
    TwilioConfigError,
    TwilioSmsTransport,
    load_twilio_config,
)
from carebridge.agent.io.adapters import SmsTransport
from carebridge.config import settings


def build_sms_transport_from_env() -> SmsTransport:
    if settings.get_sms_transport() == "log":
        return LogSmsTransport()
    return TwilioSmsTransport(load_twilio_config())


__all__ = [
    "LogSmsTransport",
    "SmsTransportAuthError",
    "SmsTransportError",
    "SmsTransportRateLimitError",
    "TwilioConfig",
    "TwilioConfigError",
    "TwilioSmsTransport",
    "build_sms_transport_from_env",
    "load_twilio_config",
]

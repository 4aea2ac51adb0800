from __future__ import annotations

import os

from carebridge.agent.io.contracts import DispatcherConfig

DEFAULT_SMS_TRANSPORT = "twilio"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8000

_SMS_TRANSPORTS = {"twilio", "log"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class SmsConfigError(ValueError):
    pass


def get_system_phone_number() -> str | None:
    configured = os.getenv("CAREBRIDGE_SYSTEM_PHONE_NUMBER")
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return None


def get_sms_transport() -> str:
    configured = str(os.getenv("CAREBRIDGE_SMS_TRANSPORT") or "").strip().lower()
    if configured in _SMS_TRANSPORTS:
        return configured
    return DEFAULT_SMS_TRANSPORT


def get_log_level() -> str:
    configured = os.getenv("CAREBRIDGE_LOG_LEVEL")
    level = (
        configured.strip().upper()
        if isinstance(configured, str) and configured.strip()
        else DEFAULT_LOG_LEVEL
    )
    return level


def get_api_host() -> str:
    configured = os.getenv("CAREBRIDGE_API_HOST")
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return DEFAULT_API_HOST


def get_api_port() -> int:
    configured = os.getenv("CAREBRIDGE_API_PORT")
    if configured is None:
        return DEFAULT_API_PORT
    try:
        value = int(configured)
    except (TypeError, ValueError):
        return DEFAULT_API_PORT
    if not 0 < value < 65536:
        return DEFAULT_API_PORT
    return value


def load_dispatcher_config() -> DispatcherConfig:
    phone_number = get_system_phone_number()
    if not phone_number:
        raise SmsConfigError("CAREBRIDGE_SYSTEM_PHONE_NUMBER is required")
    return DispatcherConfig(system_phone_number=phone_number)


def get_twilio_auth_token() -> str | None:
    configured = os.getenv("TWILIO_AUTH_TOKEN")
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return None


def get_validate_twilio_signature() -> bool:
    configured = str(os.getenv("CAREBRIDGE_VALIDATE_TWILIO_SIGNATURE") or "").strip().lower()
    return configured not in _FALSE_VALUES


def get_public_base_url() -> str | None:
    """Externally visible base URL Twilio signs webhook requests against."""
    configured = os.getenv("CAREBRIDGE_PUBLIC_BASE_URL")
    if isinstance(configured, str) and configured.strip():
        return configured.strip().rstrip("/")
    return None


def get_api_token() -> str | None:
    configured = os.getenv("CAREBRIDGE_API_TOKEN")
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return None

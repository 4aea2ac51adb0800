from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundSms:
    from_number: str
    to_number: str
    body: str
    message_sid: str | None = None
    received_at: float | None = None


@dataclass(frozen=True)
class OutboundSms:
    to_number: str
    from_number: str
    body: str


@dataclass(frozen=True)
class UserIdentity:
    user_id: str
    phone_number: str
    created_at: str | None = None


@dataclass(frozen=True)
class DispatcherConfig:
    system_phone_number: str

from __future__ import annotations

import re
import string
from enum import Enum

from carebridge.agent.io.contracts import UserIdentity

REGISTRATION_REPLY_TOKENS: tuple[str, ...] = ("YES", "Y", "OK", "OKAY", "CONFIRM", "START")

_ASCII_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)
_EDGE_SPACE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")


class MessageKind(str, Enum):
    REGISTRATION_REPLY = "registration_reply"
    OTHER = "other"


class RegistrationState(str, Enum):
    UNKNOWN = "unknown"
    REGISTERED = "registered"


def normalize_body(body: str | None) -> str:
    """Trim and uppercase a message body for token matching.

    Only ASCII letters are case-mapped, so the result does not depend on the
    process locale or on Unicode special casing. Leading and trailing
    whitespace and byte order marks are removed.
    """
    return _EDGE_SPACE.sub("", str(body or "")).translate(_ASCII_UPPER)


def is_registration_reply(normalized_body: str) -> bool:
    return normalized_body in REGISTRATION_REPLY_TOKENS


def classify_message(body: str | None) -> MessageKind:
    if is_registration_reply(normalize_body(body)):
        return MessageKind.REGISTRATION_REPLY
    return MessageKind.OTHER


def resolve_registration_state(identity: UserIdentity | None) -> RegistrationState:
    if identity is None:
        return RegistrationState.UNKNOWN
    return RegistrationState.REGISTERED

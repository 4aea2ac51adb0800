from __future__ import annotations

from typing import Protocol

from carebridge.agent.io.contracts import InboundSms, OutboundSms, UserIdentity


class UserDirectory(Protocol):
    """Maps phone addresses to user identities.

    Implementations own the one-identity-per-address invariant: ``create_user``
    must behave as create-if-absent, including when two callers race on the
    same address.
    """

    def find_by_address(self, address: str) -> UserIdentity | None:
        ...

    def create_user(self, address: str) -> UserIdentity:
        ...


class SmsTransport(Protocol):
    """Delivers outbound messages. Failures are raised, never swallowed."""

    def send(self, message: OutboundSms) -> None:
        ...


class RegisteredMessageHandler(Protocol):
    """Handles non-registration messages from already registered senders."""

    def __call__(self, message: InboundSms) -> None:
        ...

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, TypeVar

from carebridge.agent.cognition.registration import (
    MessageKind,
    RegistrationState,
    classify_message,
    resolve_registration_state,
)
from carebridge.agent.cognition.templates import (
    render_confirmation_message,
    render_welcome_message,
)
from carebridge.agent.io.adapters import RegisteredMessageHandler, SmsTransport, UserDirectory
from carebridge.agent.io.contracts import DispatcherConfig, InboundSms, OutboundSms, UserIdentity
from carebridge.agent.observability.log_manager import (
    LogManager,
    get_log_manager,
    mask_phone_number,
)

_COMPONENT = "actions.handle_incoming_sms"

T = TypeVar("T")


class DispatchOutcome(str, Enum):
    CONFIRMATION_SENT = "confirmation_sent"
    WELCOME_SENT = "welcome_sent"
    NO_ACTION = "no_action"
    DELEGATED = "delegated"


class DispatchError(RuntimeError):
    """A directory, transport or handler call failed during dispatch."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"sms dispatch failed at {stage}: {cause}")
        self.stage = stage
        self.cause = cause


class SmsDispatcher:
    """Routes one inbound SMS into the registration flow.

    Holds no per-sender state; registration state is read from the directory
    on every call, so one instance can be shared across threads. For the same
    sender, concurrent registration replies rely on the directory's
    create-if-absent guarantee.
    """

    def __init__(
        self,
        *,
        directory: UserDirectory,
        transport: SmsTransport,
        config: DispatcherConfig,
        registered_handler: RegisteredMessageHandler | None = None,
        log_manager: LogManager | None = None,
    ) -> None:
        self._directory = directory
        self._transport = transport
        self._config = config
        self._registered_handler = registered_handler
        self._log = log_manager or get_log_manager()

    def handle(self, message: InboundSms) -> DispatchOutcome:
        kind = classify_message(message.body)
        self._emit("sms.dispatch.classified", message, kind=kind.value)
        if kind is MessageKind.REGISTRATION_REPLY:
            return self._handle_registration_reply(message)

        identity = self._call("lookup", message, self._directory.find_by_address, message.from_number)
        state = resolve_registration_state(identity)
        if state is RegistrationState.UNKNOWN:
            return self._handle_first_contact(message)
        return self._handle_registered_message(message)

    def _handle_registration_reply(self, message: InboundSms) -> DispatchOutcome:
        identity = self._call("lookup", message, self._directory.find_by_address, message.from_number)
        if resolve_registration_state(identity) is RegistrationState.UNKNOWN:
            self._create_user(message)
        self._send(message, render_confirmation_message())
        self._emit(
            "sms.dispatch.sent",
            message,
            state=RegistrationState.REGISTERED.value,
            outcome=DispatchOutcome.CONFIRMATION_SENT.value,
        )
        return DispatchOutcome.CONFIRMATION_SENT

    def _handle_first_contact(self, message: InboundSms) -> DispatchOutcome:
        self._send(message, render_welcome_message())
        self._emit(
            "sms.dispatch.sent",
            message,
            state=RegistrationState.UNKNOWN.value,
            outcome=DispatchOutcome.WELCOME_SENT.value,
        )
        return DispatchOutcome.WELCOME_SENT

    def _handle_registered_message(self, message: InboundSms) -> DispatchOutcome:
        if self._registered_handler is None:
            self._emit(
                "sms.dispatch.no_action",
                message,
                state=RegistrationState.REGISTERED.value,
                outcome=DispatchOutcome.NO_ACTION.value,
            )
            return DispatchOutcome.NO_ACTION
        self._call("delegate", message, self._registered_handler, message)
        self._emit(
            "sms.dispatch.delegated",
            message,
            state=RegistrationState.REGISTERED.value,
            outcome=DispatchOutcome.DELEGATED.value,
        )
        return DispatchOutcome.DELEGATED

    def _create_user(self, message: InboundSms) -> UserIdentity:
        identity = self._call("create", message, self._directory.create_user, message.from_number)
        self._emit(
            "sms.dispatch.user_created",
            message,
            state=RegistrationState.REGISTERED.value,
            payload={"user_id": identity.user_id},
        )
        return identity

    def _send(self, message: InboundSms, body: str) -> None:
        outbound = OutboundSms(
            to_number=message.from_number,
            from_number=self._config.system_phone_number,
            body=body,
        )
        self._call("send", message, self._transport.send, outbound)

    def _call(self, stage: str, message: InboundSms, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except Exception as exc:
            self._log.emit_exception(
                event="sms.dispatch.failed",
                exc=exc,
                component=_COMPONENT,
                message_sid=message.message_sid,
                phone=mask_phone_number(message.from_number),
                stage=stage,
                redact=(message.from_number,),
            )
            raise DispatchError(stage, exc) from exc

    def _emit(
        self,
        event: str,
        message: InboundSms,
        *,
        kind: str | None = None,
        state: str | None = None,
        outcome: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self._log.emit(
            event=event,
            component=_COMPONENT,
            message_sid=message.message_sid,
            phone=mask_phone_number(message.from_number),
            kind=kind,
            state=state,
            outcome=outcome,
            payload=payload,
        )

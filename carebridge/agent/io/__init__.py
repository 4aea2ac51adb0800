from carebridge.agent.io.contracts import (
    DispatcherConfig,
    InboundSms,
    OutboundSms,
    UserIdentity,
)
from carebridge.agent.io.adapters import RegisteredMessageHandler, SmsTransport, UserDirectory

__all__ = [
    "DispatcherConfig",
    "InboundSms",
    "OutboundSms",
    "UserIdentity",
    "RegisteredMessageHandler",
    "SmsTransport",
    "UserDirectory",
]

from carebridge.agent.actions.handle_incoming_sms import (
    DispatchError,
    DispatchOutcome,
    SmsDispatcher,
)

__all__ = ["DispatchError", "DispatchOutcome", "SmsDispatcher"]

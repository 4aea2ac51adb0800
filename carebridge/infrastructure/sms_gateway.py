from __future__ import annotations

import threading
from dataclasses import dataclass, field

from carebridge.agent.actions.handle_incoming_sms import SmsDispatcher
from carebridge.agent.runtime import build_dispatcher


@dataclass
class SmsGateway:
    dispatcher: SmsDispatcher | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def configure(self, dispatcher: SmsDispatcher | None) -> None:
        with self._lock:
            self.dispatcher = dispatcher

    def get_dispatcher(self) -> SmsDispatcher:
        with self._lock:
            if self.dispatcher is None:
                self.dispatcher = build_dispatcher()
            return self.dispatcher


gateway = SmsGateway()

"""Dry-run transport: logs outbound SMS instead of delivering it."""

from __future__ import annotations

import threading

from carebridge.agent.io.contracts import OutboundSms
from carebridge.agent.observability.log_manager import get_component_logger, mask_phone_number

logger = get_component_logger("extremities.log_sms_extremity")


class LogSmsTransport:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sent: list[OutboundSms] = []

    def send(self, message: OutboundSms) -> None:
        with self._lock:
            self._sent.append(message)
        logger.info(
            "dry-run sms event=sms.transport.dry_run phone=%s chars=%s",
            mask_phone_number(message.to_number),
            len(message.body),
        )

    @property
    def sent(self) -> list[OutboundSms]:
        with self._lock:
            return list(self._sent)

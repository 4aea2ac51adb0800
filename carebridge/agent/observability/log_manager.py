from __future__ import annotations

import json
import logging
import re
import traceback
from typing import Any

_DEFAULT_LOGGER_NAME = "carebridge.agent.observability"


class LogManager:
    """Structured single-line JSON logging for dispatch events.

    Message bodies never go through here; callers pass masked phone numbers.
    """

    def __init__(self, logger_name: str = _DEFAULT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)

    def emit(
        self,
        *,
        level: str = "info",
        event: str,
        message: str | None = None,
        component: str | None = None,
        message_sid: str | None = None,
        phone: str | None = None,
        kind: str | None = None,
        state: str | None = None,
        outcome: str | None = None,
        stage: str | None = None,
        error_code: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        normalized_level = str(level or "info").lower()
        event_payload: dict[str, Any] = {
            "level": normalized_level,
            "event": str(event or "unknown_event"),
            "component": component,
            "message_sid": message_sid,
            "phone": phone,
            "kind": kind,
            "state": state,
            "outcome": outcome,
            "stage": stage,
            "error_code": error_code,
            "message": message,
        }
        if isinstance(payload, dict) and payload:
            event_payload.update(payload)
        self._log_text_line(level=normalized_level, payload=event_payload)

    def emit_exception(
        self,
        *,
        event: str,
        exc: BaseException,
        message: str | None = None,
        component: str | None = None,
        message_sid: str | None = None,
        phone: str | None = None,
        stage: str | None = None,
        error_code: str | None = None,
        payload: dict[str, Any] | None = None,
        redact: tuple[str, ...] = (),
    ) -> None:
        """Emit an error event for ``exc``.

        Every string in ``redact`` is masked wherever it appears in the
        exception text or the stack excerpt.
        """
        exception_message = _redact(str(exc), redact)
        merged_payload = dict(payload or {})
        merged_payload.update(
            {
                "exception_type": type(exc).__name__,
                "exception_message": exception_message,
                "stack_excerpt": _redact(
                    "".join(traceback.format_exception(type(exc), exc, exc.__traceback__, limit=10)),
                    redact,
                ),
            }
        )
        self.emit(
            level="error",
            event=event,
            message=_redact(message, redact) if message else exception_message,
            component=component,
            message_sid=message_sid,
            phone=phone,
            stage=stage,
            error_code=error_code or type(exc).__name__,
            payload=merged_payload,
        )

    def _log_text_line(self, *, level: str, payload: dict[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        if level == "debug":
            self._logger.debug("event %s", line)
        elif level in {"warning", "warn"}:
            self._logger.warning("event %s", line)
        elif level == "error":
            self._logger.error("event %s", line)
        else:
            self._logger.info("event %s", line)


class StructuredLoggerAdapter:
    """Logger-style adapter that writes via LogManager.

    ``key=value`` pairs found in the formatted text are lifted into the
    structured fields, so ``logger.info("sent phone=%s", masked)`` works.
    """

    def __init__(self, *, manager: LogManager, component: str) -> None:
        self._manager = manager
        self._component = component

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(level="debug", msg=msg, args=args, kwargs=kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(level="info", msg=msg, args=args, kwargs=kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(level="warning", msg=msg, args=args, kwargs=kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(level="error", msg=msg, args=args, kwargs=kwargs)

    def _emit(self, *, level: str, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        text = self._format(msg, args)
        context = self._extract_context(text=text, kwargs=kwargs)
        self._manager.emit(
            level=level,
            event=context["event"],
            component=self._component,
            message_sid=context["message_sid"],
            phone=context["phone"],
            outcome=context["outcome"],
            stage=context["stage"],
            error_code=context["error_code"],
            message=text,
        )

    @staticmethod
    def _format(msg: str, args: tuple[Any, ...]) -> str:
        if not args:
            return str(msg)
        try:
            return str(msg) % args
        except (TypeError, ValueError):
            arg_text = ", ".join(str(v) for v in args)
            return f"{msg} | args={arg_text}"

    def _extract_context(self, *, text: str, kwargs: dict[str, Any]) -> dict[str, Any]:
        extra = kwargs.get("extra")
        extra_map = extra if isinstance(extra, dict) else {}
        merged: dict[str, Any] = {**_extract_kv_pairs(text), **extra_map}
        return {
            "event": str(merged.get("event") or f"{self._component}.log"),
            "message_sid": _as_text_or_none(merged.get("message_sid")),
            "phone": _as_text_or_none(merged.get("phone")),
            "outcome": _as_text_or_none(merged.get("outcome")),
            "stage": _as_text_or_none(merged.get("stage")),
            "error_code": _as_text_or_none(merged.get("error_code")),
        }


_DEFAULT_MANAGER: LogManager | None = None


def get_log_manager() -> LogManager:
    global _DEFAULT_MANAGER
    if _DEFAULT_MANAGER is None:
        _DEFAULT_MANAGER = LogManager()
    return _DEFAULT_MANAGER


def get_component_logger(component: str) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(manager=get_log_manager(), component=component)


def mask_phone_number(phone: str | None) -> str | None:
    text = str(phone or "").strip()
    if not text:
        return None
    if len(text) <= 4:
        return "*" * len(text)
    return "*" * (len(text) - 4) + text[-4:]


_KEY_VALUE_PATTERN = re.compile(r"([A-Za-z_][A-Za-z0-9_.-]*)=([^\s]+)")


def _extract_kv_pairs(text: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for key, raw_value in _KEY_VALUE_PATTERN.findall(str(text or "")):
        value = raw_value.strip().strip(",")
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        result[key] = value
    return result


def _as_text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _redact(text: str, values: tuple[str, ...]) -> str:
    for raw in values:
        value = str(raw or "").strip()
        # Longest form first, then the digits without a leading plus.
        for candidate in (value, value.lstrip("+")):
            if len(candidate) > 4:
                text = text.replace(candidate, mask_phone_number(candidate) or "")
    return text

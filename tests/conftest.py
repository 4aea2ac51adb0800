from __future__ import annotations

from pathlib import Path

import pytest

_CAREBRIDGE_ENV_VARS = (
    "CAREBRIDGE_SYSTEM_PHONE_NUMBER",
    "CAREBRIDGE_SMS_TRANSPORT",
    "CAREBRIDGE_LOG_LEVEL",
    "CAREBRIDGE_API_HOST",
    "CAREBRIDGE_API_PORT",
    "CAREBRIDGE_API_TOKEN",
    "CAREBRIDGE_PUBLIC_BASE_URL",
    "CAREBRIDGE_VALIDATE_TWILIO_SIGNATURE",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_REQUEST_TIMEOUT_SEC",
)


@pytest.fixture(autouse=True)
def _isolate_carebridge_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep every test on its own directory db and off real Twilio credentials.
    for name in _CAREBRIDGE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CAREBRIDGE_DB_PATH", str(tmp_path / "carebridge.db"))

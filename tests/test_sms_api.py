from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from twilio.request_validator import RequestValidator

from carebridge.agent.actions.handle_incoming_sms import SmsDispatcher
from carebridge.agent.io.contracts import DispatcherConfig, OutboundSms, UserIdentity
from carebridge.infrastructure.api import app
from carebridge.infrastructure.sms_gateway import gateway

SYSTEM_NUMBER = "+15551234567"
SENDER = "+15550001111"
AUTH_TOKEN = "twilio-test-token"
API_TOKEN = "api-test-token"
WEBHOOK_URL = "http://testserver/sms/inbound"
API_HEADERS = {"Authorization": f"Bearer {API_TOKEN}"}


@dataclass
class _Directory:
    users: dict[str, UserIdentity] = field(default_factory=dict)

    def find_by_address(self, address: str) -> UserIdentity | None:
        return self.users.get(address)

    def create_user(self, address: str) -> UserIdentity:
        return self.users.setdefault(address, UserIdentity(user_id="user-1", phone_number=address))


@dataclass
class _Transport:
    fail: bool = False
    sent: list[OutboundSms] = field(default_factory=list)

    def send(self, message: OutboundSms) -> None:
        if self.fail:
            raise ConnectionError("carrier unreachable")
        self.sent.append(message)


@pytest.fixture(autouse=True)
def _api_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", AUTH_TOKEN)
    monkeypatch.setenv("CAREBRIDGE_API_TOKEN", API_TOKEN)


@pytest.fixture
def restore_gateway() -> Iterator[None]:
    original = gateway.dispatcher
    try:
        yield
    finally:
        gateway.configure(original)


def _signed(params: dict[str, str], url: str = WEBHOOK_URL) -> dict[str, str]:
    return {"X-Twilio-Signature": RequestValidator(AUTH_TOKEN).compute_signature(url, params)}


def _configure(directory: _Directory, transport: _Transport) -> None:
    gateway.configure(
        SmsDispatcher(
            directory=directory,
            transport=transport,
            config=DispatcherConfig(system_phone_number=SYSTEM_NUMBER),
        )
    )


def test_health() -> None:
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_twilio_webhook_sends_welcome_and_returns_empty_twiml(restore_gateway: None) -> None:
    directory = _Directory()
    transport = _Transport()
    _configure(directory, transport)
    params = {
        "From": SENDER,
        "To": SYSTEM_NUMBER,
        "Body": "Hi, I think I might be pregnant.",
        "MessageSid": "SM123",
    }

    response = TestClient(app).post("/sms/inbound", data=params, headers=_signed(params))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<Response></Response>" in response.text
    assert len(transport.sent) == 1
    assert transport.sent[0].to_number == SENDER
    assert "welcome" in transport.sent[0].body.lower()
    assert directory.users == {}


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"X-Twilio-Signature": "forged"},
        _signed({"From": "+15559990000", "To": SYSTEM_NUMBER, "Body": "YES"}),
    ],
)
def test_twilio_webhook_rejects_unsigned_or_forged_requests(
    restore_gateway: None, headers: dict[str, str]
) -> None:
    directory = _Directory()
    transport = _Transport()
    _configure(directory, transport)

    response = TestClient(app).post(
        "/sms/inbound",
        data={"From": SENDER, "To": SYSTEM_NUMBER, "Body": "YES"},
        headers=headers,
    )

    assert response.status_code == 403
    assert transport.sent == []
    assert directory.users == {}


def test_twilio_webhook_validates_against_public_base_url(
    restore_gateway: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CAREBRIDGE_PUBLIC_BASE_URL", "https://sms.example.org/")
    transport = _Transport()
    _configure(_Directory(), transport)
    params = {"From": SENDER, "To": SYSTEM_NUMBER, "Body": "hello"}
    client = TestClient(app)

    local = client.post("/sms/inbound", data=params, headers=_signed(params))
    public = client.post(
        "/sms/inbound",
        data=params,
        headers=_signed(params, url="https://sms.example.org/sms/inbound"),
    )

    assert local.status_code == 403
    assert public.status_code == 200
    assert len(transport.sent) == 1


def test_twilio_webhook_without_auth_token_is_unavailable(
    restore_gateway: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("TWILIO_AUTH_TOKEN")
    transport = _Transport()
    _configure(_Directory(), transport)

    response = TestClient(app).post(
        "/sms/inbound", data={"From": SENDER, "To": SYSTEM_NUMBER, "Body": "hello"}
    )

    assert response.status_code == 503
    assert transport.sent == []


def test_twilio_webhook_signature_check_can_be_disabled(
    restore_gateway: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CAREBRIDGE_VALIDATE_TWILIO_SIGNATURE", "false")
    transport = _Transport()
    _configure(_Directory(), transport)

    response = TestClient(app).post(
        "/sms/inbound", data={"From": SENDER, "To": SYSTEM_NUMBER, "Body": "hello"}
    )

    assert response.status_code == 200
    assert len(transport.sent) == 1


def test_json_endpoint_reports_outcome(restore_gateway: None) -> None:
    directory = _Directory()
    transport = _Transport()
    _configure(directory, transport)
    client = TestClient(app)

    first = client.post(
        "/sms/messages",
        json={"from_number": SENDER, "to_number": SYSTEM_NUMBER, "body": "yes"},
        headers=API_HEADERS,
    )
    second = client.post(
        "/sms/messages",
        json={"from_number": SENDER, "to_number": SYSTEM_NUMBER, "body": "thanks!"},
        headers=API_HEADERS,
    )

    assert first.status_code == 200
    assert first.json() == {"status": "confirmation_sent"}
    assert second.json() == {"status": "no_action"}
    assert SENDER in directory.users
    assert len(transport.sent) == 1


@pytest.mark.parametrize(
    ("headers", "status_code"),
    [
        ({}, 401),
        ({"Authorization": "Bearer wrong-token"}, 401),
        ({"Authorization": API_TOKEN}, 401),
    ],
)
def test_json_endpoint_requires_bearer_token(
    restore_gateway: None, headers: dict[str, str], status_code: int
) -> None:
    directory = _Directory()
    transport = _Transport()
    _configure(directory, transport)

    response = TestClient(app).post(
        "/sms/messages",
        json={"from_number": SENDER, "to_number": SYSTEM_NUMBER, "body": "YES"},
        headers=headers,
    )

    assert response.status_code == status_code
    assert transport.sent == []
    assert directory.users == {}


def test_json_endpoint_is_disabled_without_api_token(
    restore_gateway: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("CAREBRIDGE_API_TOKEN")
    transport = _Transport()
    _configure(_Directory(), transport)

    response = TestClient(app).post(
        "/sms/messages",
        json={"from_number": SENDER, "to_number": SYSTEM_NUMBER, "body": "hello"},
        headers=API_HEADERS,
    )

    assert response.status_code == 403
    assert transport.sent == []


def test_dispatch_failure_maps_to_bad_gateway(restore_gateway: None) -> None:
    _configure(_Directory(), _Transport(fail=True))
    params = {"From": SENDER, "To": SYSTEM_NUMBER, "Body": "hello"}

    response = TestClient(app).post("/sms/inbound", data=params, headers=_signed(params))

    assert response.status_code == 502
    assert "stage=send" in response.json()["detail"]


def test_unconfigured_dispatcher_maps_to_service_unavailable(restore_gateway: None) -> None:
    gateway.configure(None)

    response = TestClient(app).post(
        "/sms/messages",
        json={"from_number": SENDER, "to_number": SYSTEM_NUMBER, "body": "hello"},
        headers=API_HEADERS,
    )

    assert response.status_code == 503
    assert gateway.dispatcher is None

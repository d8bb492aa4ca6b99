import json

import pytest
import requests

import send_sms
from conftest import StubSession, StubTable, load_event
from party_utils.notifier import Notifier
from party_utils.solapi_client import SolapiClient, SolapiConfig
from party_utils.store import RegistrationStore


@pytest.fixture
def table():
    return StubTable([{"id": "reg-001", "name": "Kim", "phone": "01011112222", "sms_sent": False}])


def _wire(monkeypatch, table, session):
    gateway = SolapiClient(SolapiConfig("NCSTESTKEY", "s3cr3t", "0212345678"), session=session)
    notifier = Notifier(gateway, RegistrationStore(table), clock=lambda: "2026-03-10T09:00:00.000Z")
    monkeypatch.setattr(send_sms, "_notifier", notifier)


def test_preflight_is_permissive():
    resp = send_sms.lambda_handler(load_event("api_options.json"), None)

    assert resp["statusCode"] == 200
    assert resp["headers"] == {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"message": "hello", "registrationId": "reg-001"},
        {"phone": "010-1111-2222", "registrationId": "reg-001"},
        {"phone": "", "message": "hello"},
    ],
)
def test_missing_phone_or_message_is_400(monkeypatch, table, payload):
    session = StubSession()
    _wire(monkeypatch, table, session)

    resp = send_sms.lambda_handler({"body": json.dumps(payload)}, None)

    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "phone and message are required"}
    assert resp["headers"]["Access-Control-Allow-Origin"] == "*"
    assert session.calls == []


def test_manual_approval_sends_and_marks(monkeypatch, table):
    session = StubSession()
    _wire(monkeypatch, table, session)

    resp = send_sms.lambda_handler(load_event("api_send_sms.json"), None)

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"]) == {"success": True, "smsResult": {"groupInfo": {"status": "SENDING"}}}
    message = session.calls[0]["json"]["messages"][0]
    assert message["to"] == "01011112222"
    assert message["type"] == "SMS"
    assert table.items["reg-001"]["sms_sent"] is True
    assert table.items["reg-001"]["sms_sent_at"] == "2026-03-10T09:00:00.000Z"


@pytest.mark.parametrize("length, expected", [(90, "SMS"), (91, "LMS")])
def test_message_length_selects_type(monkeypatch, table, length, expected):
    session = StubSession()
    _wire(monkeypatch, table, session)

    send_sms.lambda_handler({"phone": "01011112222", "message": "x" * length}, None)

    assert session.calls[0]["json"]["messages"][0]["type"] == expected


def test_without_registration_id_nothing_is_written(monkeypatch, table):
    session = StubSession()
    _wire(monkeypatch, table, session)

    resp = send_sms.lambda_handler({"body": json.dumps({"phone": "01099998888", "message": "hi"})}, None)

    assert resp["statusCode"] == 200
    assert len(session.calls) == 1
    assert table.calls == []


def test_gateway_exception_is_500_and_row_stays_unsent(monkeypatch, table):
    _wire(monkeypatch, table, StubSession(error=requests.ConnectionError("dns failure")))

    resp = send_sms.lambda_handler(load_event("api_send_sms.json"), None)

    assert resp["statusCode"] == 500
    assert "dns failure" in json.loads(resp["body"])["error"]
    assert table.items["reg-001"]["sms_sent"] is False


def test_already_notified_row_is_not_resent(monkeypatch, table):
    table.items["reg-001"]["sms_sent"] = True
    session = StubSession()
    _wire(monkeypatch, table, session)

    resp = send_sms.lambda_handler(load_event("api_send_sms.json"), None)

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"])["skipped"] == "already_sent"
    assert session.calls == []

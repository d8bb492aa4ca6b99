import json

import pytest

import register
from conftest import StubS3, StubTable, client_error, load_event
from party_utils.blobs import BlobStore
from party_utils.registration import RegistrationService
from party_utils.store import RegistrationStore
from party_utils.validation import VARIANTS

TS = 1700000000


@pytest.fixture
def backend(monkeypatch):
    table = StubTable()
    s3 = StubS3()
    service = RegistrationService(
        store=RegistrationStore(table),
        blobs=BlobStore(s3, "registrations", "ap-northeast-2"),
        variant=VARIANTS["basic"],
        clock=lambda: TS,
    )
    monkeypatch.setattr(register, "_service", service)
    return table, s3


def _post(form):
    return {
        "requestContext": {"http": {"method": "POST", "path": "/registrations"}},
        "body": json.dumps(form),
    }


def test_submission_creates_unsent_row_with_photo_urls(backend, kim_form):
    table, s3 = backend

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 201
    assert resp["headers"]["Access-Control-Allow-Origin"] == "*"
    body = json.loads(resp["body"])
    assert body["success"] is True

    assert len(table.items) == 1
    row = table.items[body["registration"]["id"]]
    assert row["name"] == "Kim"
    assert row["phone"] == "01011112222"
    assert row["birth_date"] == "1999-05-01"
    assert row["instagram_id"] == "@kim"
    assert row["sms_sent"] is False
    assert "sms_sent_at" not in row

    assert set(s3.objects) == {f"{TS * 1000}_body.jpg", f"{TS * 1000}_face.jpg"}
    assert row["body_photo_url"].endswith(f"/{TS * 1000}_body.jpg")
    assert row["face_photo_url"].endswith(f"/{TS * 1000}_face.jpg")
    assert body["registration"]["body_photo_url"] == row["body_photo_url"]


@pytest.mark.parametrize("birth_date", ["1985-01-01", "2007-01-01"])
def test_ineligible_birth_year_makes_no_network_call(backend, kim_form, birth_date):
    table, s3 = backend
    kim_form["birthDate"] = birth_date

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 400
    body = json.loads(resp["body"])
    assert body["error"] == "validation_failed"
    assert set(body["errors"]) == {"birthDate"}
    assert table.calls == []
    assert s3.objects == {} and s3.deleted == []


def test_missing_photos_are_field_errors(backend):
    table, s3 = backend

    resp = register.lambda_handler(_post(load_event("form_kim.json")), None)

    assert resp["statusCode"] == 400
    assert set(json.loads(resp["body"])["errors"]) == {"bodyPhoto", "facePhoto"}
    assert table.calls == []
    assert s3.objects == {}


def test_unreadable_photo_is_reported_on_its_field(backend, kim_form):
    table, s3 = backend
    kim_form["facePhoto"] = {"filename": "face.jpg", "data": "bm90IGFuIGltYWdl"}

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 400
    assert json.loads(resp["body"])["errors"] == {"facePhoto": "얼굴 사진 파일을 확인해주세요"}
    assert s3.objects == {}


def test_upload_failure_creates_no_row(backend, kim_form):
    table, s3 = backend
    s3.fail_suffix = "_face"

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"])["errors"]["submit"] == register.SUBMIT_FAILED
    assert table.items == {}
    assert not any(call[0] == "put_item" for call in table.calls)
    assert s3.objects == {}
    assert s3.deleted == [f"{TS * 1000}_body.jpg"]


def test_insert_failure_removes_uploaded_photos(backend, kim_form):
    table, s3 = backend
    table.put_error = client_error("ValidationException")

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"])["errors"]["submit"] == register.SERVER_MISCONFIGURED
    assert s3.objects == {}
    assert sorted(s3.deleted) == [f"{TS * 1000}_body.jpg", f"{TS * 1000}_face.jpg"]


def test_throttled_insert_asks_for_retry(backend, kim_form):
    table, _ = backend
    table.put_error = client_error("ProvisionedThroughputExceededException")

    resp = register.lambda_handler(_post(kim_form), None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"])["errors"]["submit"] == register.SUBMIT_FAILED


def test_invalid_json_is_rejected(backend):
    resp = register.lambda_handler({"body": "{not json"}, None)
    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "invalid_json"}


def test_preflight(backend):
    resp = register.lambda_handler(load_event("api_options.json"), None)
    assert resp["statusCode"] == 200
    assert resp["headers"]["Access-Control-Allow-Methods"] == "POST, OPTIONS"


def test_unknown_variant_is_a_server_misconfiguration(monkeypatch):
    monkeypatch.setattr(register, "_service", None)
    monkeypatch.setenv("FORM_VARIANT", "winter")

    resp = register.lambda_handler(_post({}), None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == {"error": "server_misconfigured"}

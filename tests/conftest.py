import base64
import io
import json
from pathlib import Path

import pytest
from botocore.exceptions import ClientError
from PIL import Image

EVENTS_DIR = Path(__file__).parent / "events"


def load_event(name):
    with open(EVENTS_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class StubTable:
    """In-memory stand-in for a boto3 DynamoDB Table resource."""

    def __init__(self, items=(), key="id"):
        self.key = key
        self.items = {item[key]: dict(item) for item in items}
        self.calls = []
        self.put_error = None
        self.scan_pages = None
        self.scan_error = None

    def put_item(self, Item, ConditionExpression=None):
        self.calls.append(("put_item", Item))
        if self.put_error:
            raise self.put_error
        if ConditionExpression and Item[self.key] in self.items:
            raise client_error("ConditionalCheckFailedException")
        self.items[Item[self.key]] = dict(Item)
        return {}

    def get_item(self, Key):
        self.calls.append(("get_item", Key))
        item = self.items.get(Key[self.key])
        return {"Item": dict(item)} if item else {}

    def update_item(self, Key, UpdateExpression, ConditionExpression, ExpressionAttributeValues):
        self.calls.append(("update_item", Key))
        item = self.items.get(Key[self.key])
        if item is None or item.get("sms_sent"):
            raise client_error("ConditionalCheckFailedException", "UpdateItem")
        item["sms_sent"] = ExpressionAttributeValues[":sent"]
        item["sms_sent_at"] = ExpressionAttributeValues[":sent_at"]
        return {}

    def scan(self, **kwargs):
        self.calls.append(("scan", kwargs))
        if self.scan_error:
            raise self.scan_error
        if self.scan_pages is not None:
            page = kwargs.get("ExclusiveStartKey", {}).get("page", 0)
            resp = {"Items": self.scan_pages[page]}
            if page + 1 < len(self.scan_pages):
                resp["LastEvaluatedKey"] = {"page": page + 1}
            return resp
        return {"Items": list(self.items.values())}


class StubS3:
    def __init__(self, fail_suffix=None):
        self.objects = {}
        self.deleted = []
        self.fail_suffix = fail_suffix

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail_suffix and self.fail_suffix in Key:
            raise client_error("InternalError", "PutObject")
        self.objects[Key] = {"Bucket": Bucket, "Body": Body, "ContentType": ContentType}
        return {"ETag": '"etag"'}

    def delete_object(self, Bucket, Key):
        self.deleted.append(Key)
        self.objects.pop(Key, None)
        return {}


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class StubSession:
    """Records requests.Session.post calls made by the Solapi client."""

    def __init__(self, response=None, error=None):
        self.response = response or StubResponse(200, {"groupInfo": {"status": "SENDING"}})
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def make_photo(size=(800, 600), fmt="JPEG", color=(200, 120, 90)):
    buf = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    Image.new(mode, size, fill).save(buf, format=fmt)
    return buf.getvalue()


def photo_payload(filename="photo.jpg", **kwargs):
    return {
        "filename": filename,
        "data": base64.b64encode(make_photo(**kwargs)).decode("ascii"),
    }


@pytest.fixture
def kim_form():
    form = load_event("form_kim.json")
    form["bodyPhoto"] = photo_payload("body.jpg", size=(1600, 2400))
    form["facePhoto"] = photo_payload("face.jpg", size=(900, 900))
    return form

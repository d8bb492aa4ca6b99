from typing import Any, Dict, List, Optional

from boto3.dynamodb.types import TypeDeserializer

from party_utils.http import json_response, parse_body
from party_utils.logger import get_logger
from party_utils.notifier import Notifier, approval_message, build_notifier

logger = get_logger("notify")

_deserializer = TypeDeserializer()

# Solapi client + DynamoDB table, built once per container on first use
_notifier: Optional[Notifier] = None


def _get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier


def _stream_records(event: dict) -> List[Dict[str, Any]]:
    """New rows from a DynamoDB Streams batch; MODIFY / REMOVE are ignored."""
    records = []
    for rec in event.get("Records", []):
        if rec.get("eventName") != "INSERT":
            continue
        image = rec.get("dynamodb", {}).get("NewImage") or {}
        records.append({k: _deserializer.deserialize(v) for k, v in image.items()})
    return records


def _dispatch(notifier: Notifier, record: Dict[str, Any]) -> Dict[str, Any]:
    return notifier.notify(
        phone=str(record["phone"]),
        text=approval_message(record),
        registration_id=record.get("id"),
    )


def _handle_stream(event: dict) -> dict:
    records = _stream_records(event)
    logger.info("notify.stream_start: received %d insert records", len(records))
    if not records:
        return json_response(200, {"success": True, "results": []})

    notifier = _get_notifier()
    results = []
    failures = []

    for record in records:
        registration_id = record.get("id")
        if not record.get("phone"):
            logger.warning("notify.missing_phone", extra={"registration_id": registration_id})
            continue

        try:
            results.append({"id": registration_id, **_dispatch(notifier, record)})
        except Exception as e:
            logger.exception(
                "notify.dispatch_error",
                extra={"registration_id": registration_id, "error": str(e)},
            )
            failures.append({"id": registration_id, "error": str(e)})

    if failures:
        return json_response(500, {"error": failures[0]["error"], "failures": failures, "results": results})
    return json_response(200, {"success": True, "results": results})


def lambda_handler(event, context):
    logger.info(
        "notify.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    try:
        if "Records" in event:
            return _handle_stream(event)

        # Database webhook: {"type": "INSERT", "table": "registrations", "record": {...}}
        payload = parse_body(event)
        if payload.get("type") not in (None, "INSERT"):
            logger.info("notify.ignored", extra={"event_type": payload.get("type")})
            return json_response(200, {"success": True, "skipped": "not_insert"})

        record = payload.get("record")
        if not isinstance(record, dict) or not record.get("phone"):
            return json_response(400, {"error": "record with phone is required"})

        result = _dispatch(_get_notifier(), record)
        return json_response(200, result)

    except Exception as e:
        logger.exception("notify.failed", extra={"error": str(e)})
        return json_response(500, {"error": str(e)})

import base64
import json
from typing import Any, Dict, Optional

from party_utils.logger import get_logger

logger = get_logger("http")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def request_method(event: dict) -> str:
    """HTTP method for both HttpApi (v2) and REST API (v1) events."""
    method = event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod")
    return (method or "").upper()


def request_path(event: dict) -> str:
    return event.get("rawPath") or event.get("path") or ""


def query_params(event: dict) -> Dict[str, str]:
    return event.get("queryStringParameters") or {}


def parse_body(event: dict) -> dict:
    """
    Extract and parse the JSON body from the Lambda event.

    - For API Gateway / HttpApi: event["body"] is a JSON string, possibly
      base64-encoded when isBase64Encoded is set.
    - For direct invocations and tests: event may already be the payload.
    """
    body = event.get("body")

    if isinstance(body, str):
        raw_body = body
        if event.get("isBase64Encoded"):
            raw_body = base64.b64decode(raw_body).decode("utf-8")
    elif isinstance(body, dict):
        return body
    else:
        # Fallback: treat the whole event as the payload
        return event

    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        logger.warning(
            "http.invalid_json",
            extra={"body_preview": str(raw_body)[:200]},
        )
        raise

    if not isinstance(payload, dict):
        raise json.JSONDecodeError("Expected a JSON object", raw_body, 0)
    return payload


def json_response(status_code: int, body: Any, cors: bool = False, headers: Optional[Dict[str, str]] = None) -> dict:
    merged = {"Content-Type": "application/json"}
    if cors:
        merged["Access-Control-Allow-Origin"] = "*"
    if headers:
        merged.update(headers)
    return {
        "statusCode": status_code,
        "headers": merged,
        "body": json.dumps(body, ensure_ascii=False, default=str),
    }


def preflight_response() -> dict:
    return {
        "statusCode": 200,
        "headers": dict(CORS_HEADERS),
        "body": "ok",
    }

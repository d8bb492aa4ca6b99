from typing import Optional

from botocore.exceptions import ClientError

from party_utils.errors import ValidationError
from party_utils.http import json_response, parse_body, preflight_response, request_method
from party_utils.logger import get_logger
from party_utils.registration import RegistrationService, build_registration_service

logger = get_logger("register")

SUBMIT_FAILED = "신청 중 오류가 발생했습니다. 다시 시도해주세요."
SERVER_MISCONFIGURED = "서버 설정 오류입니다. 관리자에게 문의해주세요."

# Built once per container on first use
_service: Optional[RegistrationService] = None


def _get_service() -> RegistrationService:
    global _service
    if _service is None:
        _service = build_registration_service()
    return _service


def _submit_error_message(error: Exception) -> str:
    """A schema / table problem is ours to fix, anything else is worth a retry."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        if code in ("ValidationException", "ResourceNotFoundException"):
            return SERVER_MISCONFIGURED
    return SUBMIT_FAILED


def lambda_handler(event, context):
    if request_method(event) == "OPTIONS":
        return preflight_response()

    logger.info(
        "register.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    # 1) Build service lazily (env + AWS clients)
    try:
        service = _get_service()
    except RuntimeError as e:
        logger.error("register.env_error", extra={"error": str(e)})
        return json_response(500, {"error": "server_misconfigured"}, cors=True)

    # 2) Parse JSON body
    try:
        form = parse_body(event)
    except ValueError:
        return json_response(400, {"error": "invalid_json"}, cors=True)

    # 3) Validate → compress → upload → insert
    try:
        saved = service.submit(form)
    except ValidationError as e:
        logger.info("register.validation_failed", extra={"fields": sorted(e.errors)})
        return json_response(400, {"error": "validation_failed", "errors": e.errors}, cors=True)
    except Exception as e:
        logger.exception("register.submit_failed", extra={"error": str(e)})
        return json_response(
            500,
            {"error": "submit_failed", "errors": {"submit": _submit_error_message(e)}},
            cors=True,
        )

    return json_response(
        201,
        {
            "success": True,
            "registration": {
                "id": saved["id"],
                "body_photo_url": saved["body_photo_url"],
                "face_photo_url": saved["face_photo_url"],
            },
        },
        cors=True,
    )

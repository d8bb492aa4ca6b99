from typing import Optional

from party_utils.http import json_response, parse_body, preflight_response, request_method
from party_utils.logger import get_logger, mask_phone
from party_utils.notifier import Notifier, build_notifier

logger = get_logger("send_sms")

# Solapi client + DynamoDB table, built once per container on first use
_notifier: Optional[Notifier] = None


def _get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier


def lambda_handler(event, context):
    """
    Manual approval trigger from the admin page.

    Body: {"phone": "...", "message": "...", "registrationId": "..."}
    registrationId is optional; without it nothing is written back.
    """
    if request_method(event) == "OPTIONS":
        return preflight_response()

    logger.info(
        "send_sms.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    try:
        payload = parse_body(event)
        phone = payload.get("phone")
        message = payload.get("message")
        registration_id = payload.get("registrationId")

        if not phone or not message:
            logger.warning(
                "send_sms.missing_fields",
                extra={"phone_present": bool(phone), "message_present": bool(message)},
            )
            return json_response(400, {"error": "phone and message are required"}, cors=True)

        result = _get_notifier().notify(str(phone), str(message), registration_id)
        logger.info(
            "send_sms.done",
            extra={"registration_id": registration_id, "to": mask_phone(phone)},
        )
        return json_response(200, result, cors=True)

    except Exception as e:
        logger.exception("send_sms.failed", extra={"error": str(e)})
        return json_response(500, {"error": str(e)}, cors=True)

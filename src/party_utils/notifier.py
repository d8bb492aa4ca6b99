import os
from typing import Any, Callable, Dict, Mapping, Optional

import boto3

from party_utils.config import load_storage_config
from party_utils.logger import get_logger, mask_phone
from party_utils.solapi_client import SolapiClient, build_client
from party_utils.store import RegistrationStore, utc_now_iso

logger = get_logger("notifier")

DEFAULT_APPROVAL_TEMPLATE = (
    "[MIDNIGHT IN SADANG] {name}님, 파티 신청이 승인되었습니다. "
    "{event_line}"
    "안내드린 계좌로 참가비를 입금해주시면 참가가 확정됩니다."
)


def approval_message(record: Mapping[str, Any], template: Optional[str] = None) -> str:
    """Deposit / approval notice for one registration."""
    template = template or os.getenv("APPROVAL_MESSAGE_TEMPLATE") or DEFAULT_APPROVAL_TEMPLATE
    event_date = str(record.get("event_date") or "")
    return template.format(
        name=str(record.get("name") or "").strip(),
        event_date=event_date,
        event_line=f"참가일: {event_date}. " if event_date else "",
    )


class Notifier:
    """
    Sends one SMS and marks the originating registration as notified.

    Notification status only moves unsent → sent. Any exception propagates
    before the row is touched, so a failed send leaves it unsent.
    """

    def __init__(
        self,
        gateway: SolapiClient,
        store: RegistrationStore,
        clock: Optional[Callable[[], str]] = None,
    ):
        self._gateway = gateway
        self._store = store
        self._clock = clock or utc_now_iso

    def notify(self, phone: str, text: str, registration_id: Optional[str] = None) -> Dict[str, Any]:
        if registration_id:
            existing = self._store.get(registration_id)
            if existing and existing.get("sms_sent"):
                logger.info("notifier.already_sent", extra={"registration_id": registration_id})
                return {"success": True, "skipped": "already_sent"}

        sms_result = self._gateway.send(phone, text)
        logger.info(
            "notifier.sms_sent",
            extra={"registration_id": registration_id, "to": mask_phone(phone), "length": len(text)},
        )

        if registration_id:
            # Recorded once the HTTP call completed, whatever the gateway said.
            if not self._store.mark_sms_sent(registration_id, self._clock()):
                logger.warning(
                    "notifier.mark_skipped",
                    extra={"registration_id": registration_id},
                )

        return {"success": True, "smsResult": sms_result}


def build_notifier() -> Notifier:
    """Wire a Notifier to Solapi (credentials from Secrets Manager) and DynamoDB."""
    conf = load_storage_config()
    dynamodb = boto3.resource("dynamodb", region_name=conf.region)
    return Notifier(
        gateway=build_client(),
        store=RegistrationStore(dynamodb.Table(conf.registrations_table)),
    )

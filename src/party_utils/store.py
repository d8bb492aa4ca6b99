import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from party_utils.logger import get_logger

logger = get_logger("store")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _plain(value: Any) -> Any:
    # boto3 hands numbers back as Decimal
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class RegistrationStore:
    """The `registrations` table. Rows are inserted once and updated once."""

    def __init__(self, table):
        self._table = table

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        item = dict(record)
        item["id"] = str(uuid.uuid4())
        item.setdefault("created_at", utc_now_iso())
        item.setdefault("sms_sent", False)

        self._table.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(id)",
        )
        logger.info("store.inserted", extra={"registration_id": item["id"]})
        return item

    def get(self, registration_id: str) -> Optional[Dict[str, Any]]:
        resp = self._table.get_item(Key={"id": registration_id})
        item = resp.get("Item")
        return _plain(item) if item else None

    def mark_sms_sent(self, registration_id: str, sent_at: str) -> bool:
        """
        Flip `sms_sent` and stamp `sms_sent_at` in one conditional update.

        Returns False (and writes nothing) when the row does not exist or was
        already marked by another invocation.
        """
        try:
            self._table.update_item(
                Key={"id": registration_id},
                UpdateExpression="SET sms_sent = :sent, sms_sent_at = :sent_at",
                ConditionExpression="attribute_exists(id) AND (attribute_not_exists(sms_sent) OR sms_sent = :unsent)",
                ExpressionAttributeValues={
                    ":sent": True,
                    ":sent_at": sent_at,
                    ":unsent": False,
                },
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise


class EventSettingsStore:
    """Read-only view of per-date cohort counts used by the capacity gauges."""

    def __init__(self, table):
        self._table = table

    def all(self) -> Dict[str, Dict[str, Any]]:
        settings: Dict[str, Dict[str, Any]] = {}
        kwargs: Dict[str, Any] = {}
        while True:
            resp = self._table.scan(**kwargs)
            for item in resp.get("Items", []):
                row = _plain(item)
                settings[row["event_date"]] = row
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return settings
            kwargs["ExclusiveStartKey"] = last_key

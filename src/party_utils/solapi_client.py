import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from party_utils.logger import get_logger, mask_phone
from party_utils.secrets import get_solapi_secrets
from party_utils.validation import normalize_phone

logger = get_logger("solapi_client")

SOLAPI_SEND_URL = "https://api.solapi.com/messages/v4/send-many/detail"

# Solapi sends anything longer than this as LMS (long message)
SHORT_MESSAGE_LIMIT = 90

REQUEST_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class SolapiConfig:
    api_key: str
    api_secret: str
    sender: str

    @classmethod
    def from_secrets(cls, secrets: Dict[str, Any]) -> "SolapiConfig":
        """
        Build the config from the Secrets Manager payload:

            {"api_key": "...", "api_secret": "...", "sender": "01012345678"}

        `sender_phone` is accepted as an alias for `sender`.
        """
        api_key = secrets.get("api_key")
        api_secret = secrets.get("api_secret")
        sender = normalize_phone(secrets.get("sender") or secrets.get("sender_phone"))

        missing = [
            name
            for name, value in [
                ("api_key", api_key),
                ("api_secret", api_secret),
                ("sender", sender),
            ]
            if not value
        ]

        if missing:
            logger.error("solapi.missing_secrets", extra={"missing": missing})
            raise RuntimeError(f"Missing Solapi secrets: {', '.join(missing)}")

        return cls(api_key=api_key, api_secret=api_secret, sender=sender)


def message_type(text: str) -> str:
    return "SMS" if len(text) <= SHORT_MESSAGE_LIMIT else "LMS"


def iso_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sign(api_secret: str, date: str, salt: str) -> str:
    return hmac.new(
        api_secret.encode("utf-8"),
        (date + salt).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def auth_header(config: SolapiConfig, date: Optional[str] = None, salt: Optional[str] = None) -> str:
    """
    Solapi HMAC-SHA256 authorization header. A new timestamp and salt are
    generated for every call unless given explicitly.
    """
    date = date or iso_timestamp()
    salt = salt or uuid.uuid4().hex
    signature = sign(config.api_secret, date, salt)
    return f"HMAC-SHA256 apiKey={config.api_key}, date={date}, salt={salt}, signature={signature}"


class SolapiClient:
    def __init__(self, config: SolapiConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()

    def build_payload(self, to: str, text: str) -> Dict[str, Any]:
        return {
            "messages": [
                {
                    "to": normalize_phone(to),
                    "from": self.config.sender,
                    "text": text,
                    "type": message_type(text),
                }
            ]
        }

    def send(self, to: str, text: str) -> Any:
        """
        POST one message and return the gateway's response body as-is
        (decoded JSON, or the raw text when it is not JSON).

        Only transport errors raise; gateway-level failures are returned to
        the caller to relay.
        """
        payload = self.build_payload(to, text)
        message = payload["messages"][0]

        resp = self._session.post(
            SOLAPI_SEND_URL,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": auth_header(self.config),
            },
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

        try:
            result = resp.json()
        except ValueError:
            result = resp.text

        logger.info(
            "solapi.response",
            extra={
                "status_code": resp.status_code,
                "to": mask_phone(message["to"]),
                "type": message["type"],
            },
        )
        return result


def build_client() -> SolapiClient:
    """Build a Solapi client from the credentials in Secrets Manager."""
    config = SolapiConfig.from_secrets(get_solapi_secrets())
    logger.info("solapi.client_initialized")
    return SolapiClient(config)

import os
from dataclasses import dataclass
from typing import Optional

from party_utils.logger import get_logger

logger = get_logger("config")

DEFAULT_REGION = "ap-northeast-2"


@dataclass(frozen=True)
class StorageConfig:
    region: str
    registrations_table: str
    event_settings_table: str
    bucket: str
    public_base_url: Optional[str] = None


def load_storage_config() -> StorageConfig:
    """
    Load table / bucket names for the registration store.

    REGISTRATIONS_TABLE, EVENT_SETTINGS_TABLE and REGISTRATIONS_BUCKET fall back
    to the names used in every environment so far. Setting one of them to an
    empty string is treated as a misconfiguration.
    """
    values = {
        "REGISTRATIONS_TABLE": os.getenv("REGISTRATIONS_TABLE", "registrations"),
        "EVENT_SETTINGS_TABLE": os.getenv("EVENT_SETTINGS_TABLE", "event_settings"),
        "REGISTRATIONS_BUCKET": os.getenv("REGISTRATIONS_BUCKET", "registrations"),
    }

    missing = [name for name, value in values.items() if not value]
    if missing:
        msg = f"Missing required environment variables: {', '.join(missing)}"
        logger.error(msg)
        raise RuntimeError(msg)

    return StorageConfig(
        region=os.getenv("AWS_REGION", DEFAULT_REGION),
        registrations_table=values["REGISTRATIONS_TABLE"],
        event_settings_table=values["EVENT_SETTINGS_TABLE"],
        bucket=values["REGISTRATIONS_BUCKET"],
        public_base_url=os.getenv("PUBLIC_ASSET_BASE_URL") or None,
    )

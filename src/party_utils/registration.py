import time
from typing import Any, Callable, Dict, Mapping, Optional

import boto3

from party_utils.blobs import BlobStore
from party_utils.config import load_storage_config
from party_utils.errors import ValidationError
from party_utils.images import CompressedImage, compress_image, decode_photo
from party_utils.logger import get_logger
from party_utils.store import RegistrationStore
from party_utils.validation import FormVariant, build_record, get_variant, validate_form

logger = get_logger("registration")

PHOTO_FIELDS = ("bodyPhoto", "facePhoto")

_PHOTO_UNREADABLE = {
    "bodyPhoto": "전신 사진 파일을 확인해주세요",
    "facePhoto": "얼굴 사진 파일을 확인해주세요",
}


class RegistrationService:
    """
    Turns one submitted form into one `registrations` row:
    validate → recompress photos → upload both → insert.
    """

    def __init__(
        self,
        store: RegistrationStore,
        blobs: BlobStore,
        variant: FormVariant,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._store = store
        self._blobs = blobs
        self.variant = variant
        self._clock = clock or time.time

    def _prepare_photos(self, form: Mapping[str, Any]) -> Dict[str, CompressedImage]:
        prepared: Dict[str, CompressedImage] = {}
        errors: Dict[str, str] = {}
        for field in PHOTO_FIELDS:
            try:
                _, raw = decode_photo(form.get(field))
                prepared[field] = compress_image(raw)
            except ValueError as e:
                logger.warning("registration.photo_unreadable", extra={"field": field, "error": str(e)})
                errors[field] = _PHOTO_UNREADABLE[field]
        if errors:
            raise ValidationError(errors)
        return prepared

    def submit(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        photos = {field: form.get(field) for field in PHOTO_FIELDS}
        errors = validate_form(form, photos, self.variant)
        if errors:
            raise ValidationError(errors)

        prepared = self._prepare_photos(form)

        timestamp_ms = int(self._clock() * 1000)
        body_key, face_key = self._blobs.upload_pair(
            prepared["bodyPhoto"],
            prepared["facePhoto"],
            timestamp_ms,
        )

        record = build_record(form)
        record["body_photo_url"] = self._blobs.public_url(body_key)
        record["face_photo_url"] = self._blobs.public_url(face_key)

        try:
            saved = self._store.insert(record)
        except Exception as e:
            logger.error(
                "registration.insert_failed",
                extra={"error": str(e), "keys": [body_key, face_key]},
            )
            self._blobs.delete_quietly(body_key, face_key)
            raise

        logger.info(
            "registration.created",
            extra={
                "registration_id": saved["id"],
                "variant": self.variant.name,
                "gender": saved["gender"],
                "event_date": saved.get("event_date"),
            },
        )
        return saved


def build_registration_service() -> RegistrationService:
    """Wire the service to DynamoDB and S3 from environment configuration."""
    conf = load_storage_config()
    variant = get_variant()
    dynamodb = boto3.resource("dynamodb", region_name=conf.region)
    s3 = boto3.client("s3", region_name=conf.region)

    logger.info(
        "registration.service_initialized",
        extra={"table": conf.registrations_table, "bucket": conf.bucket, "variant": variant.name},
    )
    return RegistrationService(
        store=RegistrationStore(dynamodb.Table(conf.registrations_table)),
        blobs=BlobStore(s3, conf.bucket, conf.region, conf.public_base_url),
        variant=variant,
    )

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple
from urllib.parse import quote

from party_utils.errors import UploadError
from party_utils.images import CompressedImage
from party_utils.logger import get_logger

logger = get_logger("blobs")


class BlobStore:
    """Photo storage in the `registrations` S3 bucket."""

    def __init__(self, s3_client, bucket: str, region: str, public_base_url: Optional[str] = None):
        self._s3 = s3_client
        self.bucket = bucket
        self.region = region
        self._public_base_url = (public_base_url or "").rstrip("/")

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        self._s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return key

    def public_url(self, key: str) -> str:
        base = self._public_base_url or f"https://{self.bucket}.s3.{self.region}.amazonaws.com"
        return f"{base}/{quote(key)}"

    def delete(self, key: str) -> None:
        self._s3.delete_object(Bucket=self.bucket, Key=key)

    def delete_quietly(self, *keys: str) -> None:
        """Best-effort cleanup of orphaned photos; failures are logged only."""
        for key in keys:
            try:
                self.delete(key)
                logger.info("blobs.deleted", extra={"key": key})
            except Exception as e:
                logger.error("blobs.delete_failed", extra={"key": key, "error": str(e)})

    def upload_pair(
        self,
        body: CompressedImage,
        face: CompressedImage,
        timestamp_ms: int,
    ) -> Tuple[str, str]:
        """
        Upload the body and face photos concurrently as
        `<timestamp>_body.<ext>` / `<timestamp>_face.<ext>`.

        Both must succeed. When one fails the other is deleted again and
        UploadError is raised, so no photo is left without a row.
        """
        body_key = f"{timestamp_ms}_body.{body.ext}"
        face_key = f"{timestamp_ms}_face.{face.ext}"

        with ThreadPoolExecutor(max_workers=2) as pool:
            body_future = pool.submit(self.upload, body_key, body.data, body.content_type)
            face_future = pool.submit(self.upload, face_key, face.data, face.content_type)

        uploaded = []
        failures = []
        for key, future in ((body_key, body_future), (face_key, face_future)):
            error = future.exception()
            if error is None:
                uploaded.append(key)
            else:
                failures.append((key, error))

        if failures:
            for key, error in failures:
                logger.error("blobs.upload_failed", extra={"key": key, "error": str(error)})
            self.delete_quietly(*uploaded)
            key, error = failures[0]
            raise UploadError(f"upload failed for {key}: {error}") from error

        logger.info("blobs.uploaded", extra={"keys": [body_key, face_key], "bucket": self.bucket})
        return body_key, face_key

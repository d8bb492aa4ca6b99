import base64
import io
from dataclasses import dataclass
from typing import Any, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from party_utils.logger import get_logger

logger = get_logger("images")

MAX_BYTES = 1024 * 1024
MAX_EDGE = 1200
MIN_EDGE = 200

# Pillow format -> (file extension, content type)
OUTPUT_FORMATS = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
}

_QUALITY_STEPS = (85, 75, 65, 55, 45, 35)


@dataclass(frozen=True)
class CompressedImage:
    data: bytes
    ext: str
    content_type: str
    width: int
    height: int


def decode_photo(payload: Any) -> Tuple[str, bytes]:
    """
    Photos are posted as {"filename": "...", "data": "<base64>"}; a bare base64
    string or a data: URL is accepted too. Raises ValueError on bad base64.
    """
    if isinstance(payload, dict):
        filename = str(payload.get("filename") or "")
        data = payload.get("data") or ""
    else:
        filename = ""
        data = payload or ""

    if not isinstance(data, str) or not data:
        raise ValueError("photo payload has no data")

    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]

    return filename, base64.b64decode(data, validate=True)


def _encode(img: Image.Image, fmt: str, quality: int) -> bytes:
    buf = io.BytesIO()
    if fmt == "PNG":
        img.save(buf, format=fmt, optimize=True)
    else:
        img.save(buf, format=fmt, quality=quality, optimize=True)
    return buf.getvalue()


def compress_image(data: bytes) -> CompressedImage:
    """
    Re-encode a photo so its longest edge is at most MAX_EDGE pixels and the
    result is at most MAX_BYTES. JPEG / WEBP step the quality down, then the
    dimensions; PNG that stays too large is re-encoded as JPEG.
    """
    try:
        img = Image.open(io.BytesIO(data))
        source_format = img.format
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"unreadable image: {e}") from e

    fmt = source_format if source_format in OUTPUT_FORMATS else "JPEG"
    img.thumbnail((MAX_EDGE, MAX_EDGE))

    if fmt == "PNG":
        encoded = _encode(img, fmt, 0)
        if len(encoded) <= MAX_BYTES:
            return _result(encoded, fmt, img)
        fmt = "JPEG"

    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    while True:
        for quality in _QUALITY_STEPS:
            encoded = _encode(img, fmt, quality)
            if len(encoded) <= MAX_BYTES:
                return _result(encoded, fmt, img)

        if max(img.size) <= MIN_EDGE:
            logger.warning(
                "images.over_budget",
                extra={"bytes": len(encoded), "width": img.width, "height": img.height},
            )
            return _result(encoded, fmt, img)

        img = img.resize((max(1, int(img.width * 0.8)), max(1, int(img.height * 0.8))))


def _result(encoded: bytes, fmt: str, img: Image.Image) -> CompressedImage:
    ext, content_type = OUTPUT_FORMATS[fmt]
    return CompressedImage(
        data=encoded,
        ext=ext,
        content_type=content_type,
        width=img.width,
        height=img.height,
    )

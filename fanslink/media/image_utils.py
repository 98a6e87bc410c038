from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from fanslink.errors import InvalidImageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_MB = 0.5
DEFAULT_MAX_DIMENSION = 1920
MIN_DIMENSION = 64
JPEG_QUALITY_STEPS = (90, 80, 70, 60, 50, 40)
SHRINK_FACTOR = 0.75

MIME_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


def detect_image_format(data: bytes) -> str:
    """
    Validates that `data` is a real image and returns its format
    (e.g. 'PNG', 'JPEG', 'WEBP', 'GIF'), or an empty string otherwise.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return (img.format or "").upper()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return ""


def mime_type_for_format(image_format: str) -> str:
    return MIME_BY_FORMAT.get(image_format.upper(), "application/octet-stream")


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )


def _encode(img: Image.Image, image_format: str, quality: int | None = None) -> bytes:
    buffer = io.BytesIO()
    if image_format == "JPEG":
        img.convert("RGB").save(buffer, format="JPEG", quality=quality, optimize=True)
    elif image_format == "WEBP":
        img.save(buffer, format="WEBP", quality=quality)
    else:
        img.save(buffer, format=image_format, optimize=True)
    return buffer.getvalue()


def compress_image(
    data: bytes,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
) -> tuple[bytes, str]:
    """
    Shrinks an image until it fits within `max_dimension` on its longest side
    and `max_size_mb` in bytes.

    Images already within both limits are returned untouched. Otherwise the
    image is scaled down and re-encoded: JPEG for opaque images, PNG and
    then WEBP for images with transparency, lowering quality and then
    dimensions until the size target is met.

    Args:
        data (bytes): The original image bytes.
        max_size_mb (float): Target upper bound for the encoded size.
        max_dimension (int): Upper bound for width and height in pixels.

    Returns:
        tuple[bytes, str]: The encoded bytes and their MIME type.

    Raises:
        InvalidImageError: If the bytes cannot be decoded as an image.
    """
    max_bytes = int(max_size_mb * 1024 * 1024)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError("File is not a valid image") from e

    original_format = (img.format or "").upper()
    if len(data) <= max_bytes and max(img.size) <= max_dimension:
        return data, mime_type_for_format(original_format)

    img.thumbnail((max_dimension, max_dimension))
    formats = ("PNG", "WEBP") if _has_alpha(img) else ("JPEG",)

    encoded = b""
    image_format = formats[0]
    while True:
        for image_format in formats:
            if image_format == "PNG":
                encoded = _encode(img, "PNG")
                if len(encoded) <= max_bytes:
                    return encoded, mime_type_for_format("PNG")
                continue
            for quality in JPEG_QUALITY_STEPS:
                encoded = _encode(img, image_format, quality)
                if len(encoded) <= max_bytes:
                    return encoded, mime_type_for_format(image_format)

        width, height = img.size
        if max(width, height) * SHRINK_FACTOR < MIN_DIMENSION:
            logger.warning(
                "Could not compress image below %d bytes; returning %d bytes",
                max_bytes,
                len(encoded),
            )
            return encoded, mime_type_for_format(image_format)
        img = img.resize(
            (max(1, int(width * SHRINK_FACTOR)), max(1, int(height * SHRINK_FACTOR)))
        )

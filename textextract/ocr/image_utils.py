"""Image payload helpers: decoding, MIME sniffing and recompression."""

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from textextract.errors import ImageTooLargeError, InvalidImageError
from textextract.utils.logger import get_logger

logger = get_logger(__name__)

_PNG_SIGNATURE = b"\x89PNG"
_JPEG_SIGNATURE = b"\xff\xd8"


def detect_mime_type(data: bytes) -> str:
    """Identify the image type from its leading bytes.

    Caller-supplied content types are not trusted. Unknown signatures are
    reported as JPEG, which is what OCR.space assumes for bare payloads.

    Args:
        data: Raw image bytes.

    Returns:
        ``image/png``, ``image/webp`` or ``image/jpeg``.
    """
    if data[:4] == _PNG_SIGNATURE:
        return "image/png"
    if data[:2] == _JPEG_SIGNATURE:
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def decode_base64_image(payload: str) -> bytes:
    """Decode a base64 string or ``data:`` URL into raw bytes.

    Args:
        payload: Base64 text, optionally prefixed with ``data:<mime>;base64,``.
            Line breaks inside the base64 text are ignored.

    Returns:
        Decoded bytes.

    Raises:
        InvalidImageError: If the payload is empty or not valid base64.
    """
    if not payload or not payload.strip():
        raise InvalidImageError("No image provided")

    encoded = payload.strip()
    if encoded.startswith("data:"):
        _, _, encoded = encoded.partition(",")
    encoded = "".join(encoded.split())

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("Image is not valid base64") from exc

    if not data:
        raise InvalidImageError("No image provided")
    return data


def to_data_url(data: bytes) -> str:
    """Encode image bytes as a ``data:`` URL with a sniffed MIME type."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{detect_mime_type(data)};base64,{encoded}"


def open_image(data: bytes) -> Image.Image:
    """Open image bytes with Pillow.

    Raises:
        InvalidImageError: If Pillow cannot identify the image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Unsupported or corrupt image file") from exc
    return image


def compress_image(
    data: bytes,
    max_bytes: int,
    max_dimension: int = 1200,
    start_quality: float = 0.7,
    quality_step: float = 0.1,
    min_quality: float = 0.3,
) -> bytes:
    """Re-encode an image as JPEG until it fits under ``max_bytes``.

    The image is first scaled down so neither side exceeds
    ``max_dimension``, then saved at ``start_quality`` and re-saved at
    lower qualities in ``quality_step`` decrements until it fits or
    ``min_quality`` is reached.

    Args:
        data: Original image bytes.
        max_bytes: Payload ceiling.
        max_dimension: Longest allowed side in pixels.
        start_quality: First JPEG quality tried, in (0, 1].
        quality_step: Quality decrement between attempts.
        min_quality: Lowest quality tried.

    Returns:
        JPEG bytes no larger than ``max_bytes``.

    Raises:
        InvalidImageError: If the bytes are not a readable image.
        ImageTooLargeError: If the floor quality is still over the ceiling.
    """
    image = open_image(data)
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.thumbnail((max_dimension, max_dimension))

    # Qualities are stepped in integer percent to avoid float drift.
    quality = round(start_quality * 100)
    step = max(1, round(quality_step * 100))
    floor = round(min_quality * 100)

    compressed = _encode_jpeg(image, quality)
    while len(compressed) > max_bytes and quality - step >= floor:
        quality -= step
        compressed = _encode_jpeg(image, quality)

    logger.info(
        "Compressed image %d -> %d bytes (%dx%d, quality %d)",
        len(data),
        len(compressed),
        image.width,
        image.height,
        quality,
    )
    if len(compressed) > max_bytes:
        raise ImageTooLargeError(len(compressed), max_bytes)
    return compressed


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()

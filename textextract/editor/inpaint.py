"""Content-aware removal of text regions from an image.

Builds a binary mask from region rectangles and fills the masked pixels
from their surroundings with OpenCV inpainting, so edited text can be
drawn over a clean background.
"""

import cv2
import numpy as np

from textextract.errors import InvalidImageError
from textextract.ocr.models import TextRegion
from textextract.utils.logger import get_logger

logger = get_logger(__name__)


def build_mask(
    shape: tuple[int, int], regions: list[TextRegion], padding: int = 2
) -> np.ndarray:
    """Create an 8-bit mask with region rectangles set to 255.

    Args:
        shape: ``(height, width)`` of the image.
        regions: Regions to mask.
        padding: Extra pixels added on every side of each rectangle.

    Returns:
        Mask array of the given shape.
    """
    height, width = shape
    mask = np.zeros((height, width), dtype=np.uint8)
    for region in regions:
        x1 = max(0, region.x - padding)
        y1 = max(0, region.y - padding)
        x2 = min(width, region.x + region.width + padding)
        y2 = min(height, region.y + region.height + padding)
        if x2 > x1 and y2 > y1:
            mask[y1:y2, x1:x2] = 255
    return mask


def inpaint_regions(
    image: bytes,
    regions: list[TextRegion],
    padding: int = 2,
    radius: int = 3,
    method: str = "telea",
) -> bytes:
    """Erase text regions from an image.

    Args:
        image: Encoded image bytes.
        regions: Regions to erase.
        padding: Mask padding in pixels.
        radius: Inpainting neighborhood radius.
        method: ``"telea"`` or ``"ns"`` (Navier-Stokes).

    Returns:
        PNG-encoded image bytes.

    Raises:
        InvalidImageError: If the image cannot be decoded.
        ValueError: If an unsupported method is specified.
    """
    flags = {"telea": cv2.INPAINT_TELEA, "ns": cv2.INPAINT_NS}
    if method not in flags:
        raise ValueError(f"Unsupported inpaint method: {method}")

    decoded = cv2.imdecode(np.frombuffer(image, dtype=np.uint8), cv2.IMREAD_COLOR)
    if decoded is None:
        raise InvalidImageError("Unsupported or corrupt image file")

    mask = build_mask(decoded.shape[:2], regions, padding)
    if mask.any():
        result = cv2.inpaint(decoded, mask, radius, flags[method])
    else:
        result = decoded

    ok, encoded = cv2.imencode(".png", result)
    if not ok:
        raise InvalidImageError("Could not encode the cleaned image")

    logger.info(
        "Inpainted %d regions (%d masked pixels)",
        len(regions),
        int(np.count_nonzero(mask)),
    )
    return encoded.tobytes()

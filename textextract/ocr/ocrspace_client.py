"""HTTP client for the OCR.space parse API.

Sends images as base64 data URLs (or multipart files for the edge
function), validates the response envelope, and converts the optional
text overlay into line-level text regions.
"""

from typing import Any

import httpx

from textextract.errors import OCRProviderError
from textextract.text.confidence import calculate_confidence
from textextract.utils.config import OCRConfig
from textextract.utils.logger import get_logger

from .image_utils import to_data_url
from .models import ProviderResult, TextRegion

logger = get_logger(__name__)

PROVIDER_NAME = "ocr.space"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_form(
    config: OCRConfig,
    language: str | None = None,
    is_table: bool = False,
    overlay: bool | None = None,
) -> dict[str, str]:
    """Build the form fields shared by every OCR.space request.

    Args:
        config: OCR configuration (engine and defaults).
        language: OCR language code. Defaults to ``config.default_lang``.
        is_table: Ask the provider to preserve table row structure.
        overlay: Request word coordinates. Defaults to
            ``config.request_overlay``.

    Returns:
        Form field mapping without the image itself.
    """
    return {
        "language": language or config.default_lang,
        "OCREngine": str(config.engine),
        "detectOrientation": "true",
        "scale": "true",
        "isTable": _flag(is_table),
        "isOverlayRequired": _flag(
            config.request_overlay if overlay is None else overlay
        ),
    }


def parsed_text(payload: dict[str, Any]) -> str:
    """Join the text of every parsed page in a provider response."""
    results = payload.get("ParsedResults") or []
    return "\n".join((r or {}).get("ParsedText") or "" for r in results)


def check_payload(payload: Any) -> dict[str, Any]:
    """Validate the response envelope.

    Raises:
        OCRProviderError: If the body is not an object or the provider
            flagged a processing error.
    """
    if not isinstance(payload, dict):
        raise OCRProviderError(PROVIDER_NAME, "Malformed response from OCR API")
    if payload.get("IsErroredOnProcessing"):
        message = payload.get("ErrorMessage") or "OCR processing failed"
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        raise OCRProviderError(PROVIDER_NAME, str(message))
    return payload


def overlay_regions(payload: dict[str, Any]) -> list[TextRegion]:
    """Convert the first page's text overlay into one region per line."""
    results = payload.get("ParsedResults") or []
    if not results:
        return []
    overlay = (results[0] or {}).get("TextOverlay") or {}

    regions: list[TextRegion] = []
    for line in overlay.get("Lines") or []:
        words = line.get("Words") or []
        if not words:
            continue
        text = line.get("LineText") or " ".join(w.get("WordText", "") for w in words)
        left = min(int(w.get("Left", 0)) for w in words)
        top = min(int(w.get("Top", 0)) for w in words)
        right = max(int(w.get("Left", 0)) + int(w.get("Width", 0)) for w in words)
        bottom = max(int(w.get("Top", 0)) + int(w.get("Height", 0)) for w in words)
        regions.append(
            TextRegion(
                id=f"region-{len(regions) + 1}",
                text=text,
                original_text=text,
                x=left,
                y=top,
                width=right - left,
                height=bottom - top,
                confidence=float(calculate_confidence(text)),
            )
        )
    return regions


class OCRSpaceClient:
    """Synchronous OCR.space client used as the primary provider.

    Args:
        config: OCR configuration with the endpoint, key and timeout.
        transport: Optional httpx transport, used by tests.
    """

    name = PROVIDER_NAME

    def __init__(
        self, config: OCRConfig, transport: httpx.BaseTransport | None = None
    ) -> None:
        self.config = config
        self._transport = transport

    def recognize(
        self, image: bytes, language: str | None = None, is_table: bool = False
    ) -> ProviderResult:
        """Run OCR on an image.

        Args:
            image: Image bytes, already within the payload ceiling.
            language: OCR language code.
            is_table: Preserve table structure.

        Returns:
            Provider result with text, regions and the raw response.

        Raises:
            OCRProviderError: On missing key, HTTP failure, timeout,
                malformed JSON or a provider-reported error.
        """
        if not self.config.api_key:
            raise OCRProviderError(self.name, "OCR_SPACE_API_KEY is not configured")

        form = build_form(self.config, language, is_table)
        form["base64Image"] = to_data_url(image)

        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                transport=self._transport,
            ) as client:
                response = client.post(
                    self.config.api_url,
                    data=form,
                    headers={"apikey": self.config.api_key},
                )
        except httpx.TimeoutException as exc:
            raise OCRProviderError(
                self.name,
                f"Request timed out after {self.config.timeout_seconds:g}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise OCRProviderError(self.name, f"Request failed: {exc}") from exc

        if response.is_error:
            raise OCRProviderError(
                self.name,
                f"OCR API request failed: {response.status_code} "
                f"{response.reason_phrase}",
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise OCRProviderError(self.name, "OCR API returned invalid JSON") from exc

        payload = check_payload(body)
        try:
            text = parsed_text(payload)
            regions = overlay_regions(payload)
        except (TypeError, AttributeError, ValueError) as exc:
            raise OCRProviderError(
                self.name, "Malformed response from OCR API"
            ) from exc
        logger.info(
            "OCR.space returned %d characters in %d regions", len(text), len(regions)
        )
        return ProviderResult(
            provider=self.name, text=text, regions=regions, raw=payload
        )

"""OCR gateway with a hosted primary provider and a local fallback.

The primary provider gets one attempt on a payload that fits its size
ceiling. Any provider failure falls through to the local engine on the
original image; if that fails too the call ends with a single
user-facing error.
"""

from dataclasses import dataclass
from typing import Protocol

from textextract.errors import InvalidImageError, OCRFailedError, OCRProviderError
from textextract.text.confidence import calculate_confidence, count_words
from textextract.text.filters import TextFilter
from textextract.utils.config import AppConfig
from textextract.utils.logger import get_logger

from .image_utils import compress_image, detect_mime_type
from .models import OCRResult, ProviderResult
from .ocrspace_client import OCRSpaceClient
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)


class OCRProvider(Protocol):
    """Anything that can turn image bytes into text."""

    name: str

    def recognize(
        self, image: bytes, language: str | None = None, is_table: bool = False
    ) -> ProviderResult: ...


@dataclass
class Attempt:
    """Outcome of one provider call: either a result or an error."""

    provider: str
    result: ProviderResult | None = None
    error: OCRProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def attempt(
    provider: OCRProvider,
    image: bytes,
    language: str | None,
    is_table: bool,
) -> Attempt:
    """Call a provider and capture its failure instead of raising.

    Args:
        provider: OCR provider to call.
        image: Image bytes to send.
        language: OCR language code.
        is_table: Preserve table structure.

    Returns:
        Attempt holding the result or the provider error.
    """
    try:
        result = provider.recognize(image, language, is_table)
        return Attempt(provider.name, result=result)
    except OCRProviderError as exc:
        logger.warning("OCR provider %s failed: %s", provider.name, exc)
        return Attempt(provider.name, error=exc)


class OCRGateway:
    """Runs OCR with fallback and normalizes the result.

    Args:
        config: Application configuration.
        primary: Hosted provider tried first.
        fallback: Local provider tried when the primary fails.
        text_filter: Heuristic filter applied when requested.
    """

    def __init__(
        self,
        config: AppConfig,
        primary: OCRProvider,
        fallback: OCRProvider,
        text_filter: TextFilter | None = None,
    ) -> None:
        self.config = config
        self.primary = primary
        self.fallback = fallback
        self.text_filter = text_filter or TextFilter(config.filter)

    def prepare_payload(self, image: bytes) -> bytes:
        """Shrink an image to the primary provider's payload ceiling.

        Images at or under the ceiling are returned untouched.

        Raises:
            ImageTooLargeError: If compression cannot reach the ceiling.
        """
        ocr = self.config.ocr
        if len(image) <= ocr.max_payload_bytes:
            return image
        logger.info(
            "Image is %d bytes, over the %d byte ceiling; compressing",
            len(image),
            ocr.max_payload_bytes,
        )
        return compress_image(
            image,
            max_bytes=ocr.max_payload_bytes,
            max_dimension=ocr.compress_max_dimension,
            start_quality=ocr.compress_start_quality,
            quality_step=ocr.compress_quality_step,
            min_quality=ocr.compress_min_quality,
        )

    def recognize(
        self,
        image: bytes,
        language: str | None = None,
        is_table: bool = False,
    ) -> ProviderResult:
        """Try the primary provider, then the fallback.

        Raises:
            InvalidImageError: If the upload is empty or over the upload limit.
            ImageTooLargeError: If the image cannot be compressed enough.
            OCRFailedError: If both providers fail.
        """
        if not image:
            raise InvalidImageError("No image provided")
        if len(image) > self.config.ocr.max_upload_bytes:
            limit_mb = self.config.ocr.max_upload_bytes / (1024 * 1024)
            raise InvalidImageError(f"Image is larger than the {limit_mb:g} MB limit")

        logger.info(
            "Recognizing %s image of %d bytes", detect_mime_type(image), len(image)
        )
        payload = self.prepare_payload(image)

        first = attempt(self.primary, payload, language, is_table)
        if first.ok:
            return first.result

        second = attempt(self.fallback, image, language, is_table)
        if second.ok:
            logger.info("Fallback provider %s succeeded", second.provider)
            return second.result

        logger.error("All OCR providers failed")
        raise OCRFailedError([first.error, second.error])

    def process(
        self,
        image: bytes,
        language: str | None = None,
        is_table: bool = False,
        use_filtering: bool = False,
    ) -> OCRResult:
        """Extract text from an image and score it.

        Args:
            image: Uploaded image bytes.
            language: OCR language code.
            is_table: Preserve table structure.
            use_filtering: Run the heuristic noise filter on the text.

        Returns:
            Normalized OCR result. ``raw_text`` is set only when filtering
            changed the text.
        """
        result = self.recognize(image, language, is_table)
        extracted = result.text
        confidence = calculate_confidence(extracted)

        final_text = extracted
        if use_filtering and extracted:
            final_text = self.text_filter.filter(extracted) or extracted

        return OCRResult(
            extracted_text=final_text,
            confidence=confidence,
            word_count=count_words(final_text),
            provider=result.provider,
            raw_text=extracted if final_text != extracted else None,
            regions=result.regions,
        )


def build_gateway(config: AppConfig) -> OCRGateway:
    """Wire OCR.space as primary and Tesseract as fallback."""
    return OCRGateway(
        config,
        primary=OCRSpaceClient(config.ocr),
        fallback=TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            psm=config.ocr.psm,
        ),
        text_filter=TextFilter(config.filter),
    )

"""Local Tesseract OCR used when the hosted provider is unavailable.

Extracts text with pytesseract and groups word boxes into line-level
text regions.
"""

import pytesseract
from pytesseract import TesseractError, TesseractNotFoundError

from textextract.errors import InvalidImageError, OCRProviderError
from textextract.utils.logger import get_logger

from .image_utils import open_image
from .models import ProviderResult, TextRegion

logger = get_logger(__name__)

PROVIDER_NAME = "tesseract"


class TesseractEngine:
    """Wrapper around Tesseract for full-image text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
    """

    name = PROVIDER_NAME

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def recognize(
        self, image: bytes, language: str | None = None, is_table: bool = False
    ) -> ProviderResult:
        """Extract text and line regions from image bytes.

        Args:
            image: Raw image bytes in any Pillow-readable format.
            language: OCR language code. Defaults to the engine default.
            is_table: Use a single-block segmentation mode that keeps
                column order.

        Returns:
            Provider result with full text and line regions.

        Raises:
            OCRProviderError: If the image cannot be read or Tesseract fails.
        """
        lang = language or self.default_lang
        psm = 6 if is_table else self.psm
        config = f"--psm {psm}"

        try:
            pil_image = open_image(image)
            if pil_image.mode not in ("RGB", "L"):
                pil_image = pil_image.convert("RGB")
            text = pytesseract.image_to_string(pil_image, lang=lang, config=config)
            data = pytesseract.image_to_data(
                pil_image,
                lang=lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except InvalidImageError as exc:
            raise OCRProviderError(self.name, str(exc)) from exc
        except TesseractNotFoundError as exc:
            raise OCRProviderError(self.name, "Tesseract is not installed") from exc
        except TesseractError as exc:
            raise OCRProviderError(self.name, f"Tesseract failed: {exc}") from exc

        regions = self._line_regions(data)
        logger.info(
            "Tesseract extracted %d characters in %d regions", len(text), len(regions)
        )
        return ProviderResult(provider=self.name, text=text.strip(), regions=regions)

    def _line_regions(self, data: dict) -> list[TextRegion]:
        """Group word boxes from ``image_to_data`` into line regions.

        Args:
            data: pytesseract output in dictionary form.

        Returns:
            One region per (block, paragraph, line), in reading order.
        """
        lines: dict[tuple[int, int, int], list[int]] = {}
        for i in range(len(data["text"])):
            word_text = str(data["text"][i]).strip()
            if float(data["conf"][i]) <= 0 or not word_text:
                continue
            key = (
                int(data["block_num"][i]),
                int(data.get("par_num", [0] * len(data["text"]))[i]),
                int(data["line_num"][i]),
            )
            lines.setdefault(key, []).append(i)

        regions: list[TextRegion] = []
        for indices in lines.values():
            text = " ".join(str(data["text"][i]).strip() for i in indices)
            left = min(int(data["left"][i]) for i in indices)
            top = min(int(data["top"][i]) for i in indices)
            right = max(int(data["left"][i]) + int(data["width"][i]) for i in indices)
            bottom = max(int(data["top"][i]) + int(data["height"][i]) for i in indices)
            confidence = sum(float(data["conf"][i]) for i in indices) / len(indices)
            regions.append(
                TextRegion(
                    id=f"region-{len(regions) + 1}",
                    text=text,
                    original_text=text,
                    x=left,
                    y=top,
                    width=right - left,
                    height=bottom - top,
                    confidence=round(confidence, 1),
                )
            )
        return regions


"""Data classes shared by the OCR providers and the gateway."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TextRegion:
    """A recognized line of text with its bounding box in image pixels."""

    id: str
    text: str
    original_text: str
    x: int
    y: int
    width: int
    height: int
    confidence: float
    is_visible: bool = True
    is_edited: bool = False
    is_deleted: bool = False


@dataclass
class ProviderResult:
    """Raw output of a single OCR provider."""

    provider: str
    text: str
    regions: list[TextRegion] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass
class OCRResult:
    """Normalized result returned by the gateway."""

    extracted_text: str
    confidence: int
    word_count: int
    provider: str
    raw_text: str | None = None
    regions: list[TextRegion] = field(default_factory=list)

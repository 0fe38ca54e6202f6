"""Shared test fixtures for the TextExtract test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from textextract.errors import OCRProviderError
from textextract.ocr.models import ProviderResult, TextRegion
from textextract.utils.config import AppConfig


def make_png_bytes(width: int = 200, height: int = 100) -> bytes:
    """Encode a white image with a dark bar as PNG."""
    image = np.full((height, width, 3), 255, dtype=np.uint8)
    image[height // 3 : height // 2, width // 5 : width - width // 5] = 20
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


class StubProvider:
    """OCR provider returning a fixed text or failing."""

    def __init__(
        self,
        name: str,
        text: str = "",
        fail: bool = False,
        regions: list[TextRegion] | None = None,
    ) -> None:
        self.name = name
        self.text = text
        self.fail = fail
        self.regions = regions or []
        self.calls: list[bytes] = []

    def recognize(
        self, image: bytes, language: str | None = None, is_table: bool = False
    ) -> ProviderResult:
        self.calls.append(image)
        if self.fail:
            raise OCRProviderError(self.name, "boom")
        return ProviderResult(provider=self.name, text=self.text, regions=self.regions)


@pytest.fixture
def png_bytes() -> bytes:
    """Return a small PNG image."""
    return make_png_bytes()


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration pointing the blog at a temporary directory."""
    config = AppConfig()
    config.ocr.api_key = "test-key"
    config.blog.posts_dir = str(tmp_path / "posts")
    return config


@pytest.fixture
def blog_dir(tmp_path: Path) -> Path:
    """Create a blog directory with three articles."""
    posts = tmp_path / "posts"
    posts.mkdir(exist_ok=True)
    (posts / "2024-01-15-first.md").write_text(
        "---\n"
        "title: First Post\n"
        "slug: first-post\n"
        "excerpt: The first one.\n"
        "author: Ann\n"
        "publishedDate: 2024-01-15\n"
        "readingTime: 4 min\n"
        "tags: [OCR, Tutorials]\n"
        "---\n\n"
        "Body of the first post.\n",
        encoding="utf-8",
    )
    (posts / "2024-03-01-second.md").write_text(
        "---\n"
        "title: Second Post\n"
        "slug: second-post\n"
        "excerpt: Accuracy tips.\n"
        "publishedDate: 2024-03-01\n"
        "tags: [Tips]\n"
        "---\n\n"
        "Use high contrast images.\n",
        encoding="utf-8",
    )
    (posts / "2023-12-01-untitled.md").write_text(
        "No front matter here.\n", encoding="utf-8"
    )
    return posts

"""Pydantic request/response schemas for the FastAPI endpoints.

Field names are snake_case in Python and camelCase on the wire, matching
what the web client sends and expects.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from textextract.blog.service import BlogArticle
from textextract.ocr.models import TextRegion


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractTextRequest(CamelModel):
    """Request body for ``POST /api/extract-text``."""

    image: str
    language: str = "eng"
    is_table: bool = False
    use_filtering: bool = False
    user_id: str | None = None


class TextRegionModel(CamelModel):
    """Wire form of a text region."""

    id: str
    text: str
    original_text: str
    x: int
    y: int
    width: int
    height: int
    confidence: float = 0.0
    is_visible: bool = True
    is_edited: bool = False
    is_deleted: bool = False

    @classmethod
    def from_region(cls, region: TextRegion) -> "TextRegionModel":
        return cls(**vars(region))

    def to_region(self) -> TextRegion:
        return TextRegion(**self.model_dump())


class UsageInfo(CamelModel):
    image_count: int
    daily_limit: int


class ExtractTextResponse(CamelModel):
    """Response for ``POST /api/extract-text``."""

    success: bool
    text: str = ""
    confidence: int = 0
    words: int = 0
    error: str | None = None
    raw_text: str | None = None
    text_regions: list[TextRegionModel] | None = None
    provider: str | None = None
    processing_time_ms: float | None = None
    usage: UsageInfo | None = None
    upgrade_required: bool | None = None


class InpaintRequest(CamelModel):
    image: str
    regions: list[TextRegionModel]
    padding: int = Field(default=2, ge=0, le=50)


class InpaintResponse(CamelModel):
    success: bool
    cleaned_image: str | None = None
    error: str | None = None


class ComposeRequest(CamelModel):
    regions: list[TextRegionModel]


class ComposeResponse(CamelModel):
    text: str
    words: int


class RegisterUserRequest(CamelModel):
    id: str
    username: str | None = None
    email: str | None = None
    is_premium: bool = False


class UsageResponse(CamelModel):
    user_id: str
    can_process: bool
    reason: str | None = None
    usage: UsageInfo


class BlogArticleModel(CamelModel):
    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    author: str
    published_date: str
    reading_time: str
    tags: list[str]

    @classmethod
    def from_article(cls, article: BlogArticle) -> "BlogArticleModel":
        return cls(**vars(article))


class BlogListResponse(CamelModel):
    articles: list[BlogArticleModel]
    total: int
    page: int
    total_pages: int


class TagsResponse(CamelModel):
    tags: list[str]


class HealthResponse(CamelModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    ocr_space_configured: bool
    usage_backend: str

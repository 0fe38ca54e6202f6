"""FastAPI application for the TextExtract backend.

Provides OCR extraction with usage limits, text-region helpers, image
inpainting, blog content, the sitemap and a health check. Services are
built once by :func:`build_services` and injected into :func:`create_app`.
"""

import base64
import shutil
import time
from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from textextract.blog.service import BlogService, paginate
from textextract.editor.inpaint import inpaint_regions
from textextract.editor.regions import compose_text
from textextract.errors import (
    ImageTooLargeError,
    InvalidImageError,
    OCRFailedError,
)
from textextract.ocr.gateway import OCRGateway, build_gateway
from textextract.ocr.image_utils import decode_base64_image
from textextract.text.confidence import count_words
from textextract.usage.store import MemoryUsageStore, create_usage_store
from textextract.usage.tracker import LIMIT_EXCEEDED_REASON, UsageTracker
from textextract.utils.config import AppConfig, load_config
from textextract.utils.logger import get_logger
from textextract.web.sitemap import generate_sitemap

from .schemas import (
    BlogArticleModel,
    BlogListResponse,
    ComposeRequest,
    ComposeResponse,
    ExtractTextRequest,
    ExtractTextResponse,
    HealthResponse,
    InpaintRequest,
    InpaintResponse,
    RegisterUserRequest,
    TagsResponse,
    TextRegionModel,
    UsageInfo,
    UsageResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"


@dataclass
class Services:
    """Long-lived service objects shared by all requests."""

    config: AppConfig
    gateway: OCRGateway
    usage: UsageTracker
    blog: BlogService


def build_services(config: AppConfig) -> Services:
    """Construct the OCR gateway, usage tracker and blog service.

    Args:
        config: Application configuration.

    Returns:
        Initialized services.
    """
    gateway = build_gateway(config)
    usage = UsageTracker(
        create_usage_store(config.usage.database_url),
        daily_limit=config.usage.daily_limit,
    )
    return Services(
        config=config,
        gateway=gateway,
        usage=usage,
        blog=BlogService(config.blog.posts_dir),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]

router = APIRouter()


def _error_response(status_code: int, body: ExtractTextResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServicesDep) -> HealthResponse:
    """Return system health status."""
    store = services.usage.store
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        ocr_space_configured=bool(services.config.ocr.api_key),
        usage_backend="memory" if isinstance(store, MemoryUsageStore) else "database",
    )


@router.post(
    "/api/extract-text",
    response_model=ExtractTextResponse,
    response_model_exclude_none=True,
)
async def extract_text(
    body: ExtractTextRequest, services: ServicesDep
) -> ExtractTextResponse | JSONResponse:
    """Extract text from a base64 image.

    Args:
        body: Image payload and OCR options.
        services: Injected services.

    Returns:
        Extracted text with confidence, word count and regions. Failures
        return ``success: false`` with an ``error`` message: 400 for a bad
        image, 403 for an entitlement denial, 413 for an image that cannot
        be compressed, 502 when every provider fails and 500 otherwise.
    """
    start_time = time.time()

    if body.user_id:
        decision = services.usage.can_process_image(body.user_id)
        if not decision.can_process:
            return _error_response(
                403,
                ExtractTextResponse(
                    success=False,
                    error=decision.reason,
                    upgrade_required=decision.reason == LIMIT_EXCEEDED_REASON,
                    usage=UsageInfo(
                        image_count=decision.image_count,
                        daily_limit=decision.daily_limit,
                    ),
                ),
            )

    try:
        image = decode_base64_image(body.image)
        result = await run_in_threadpool(
            services.gateway.process,
            image,
            body.language,
            body.is_table,
            body.use_filtering,
        )
    except InvalidImageError as exc:
        return _error_response(400, ExtractTextResponse(success=False, error=str(exc)))
    except ImageTooLargeError as exc:
        return _error_response(413, ExtractTextResponse(success=False, error=str(exc)))
    except OCRFailedError as exc:
        return _error_response(502, ExtractTextResponse(success=False, error=str(exc)))
    except Exception:
        logger.exception("OCR extraction error")
        return _error_response(
            500,
            ExtractTextResponse(
                success=False, error="Failed to extract text from image"
            ),
        )

    usage = None
    if body.user_id:
        services.usage.record_image_processing(
            body.user_id, result.word_count, result.confidence
        )
        decision = services.usage.can_process_image(body.user_id)
        usage = UsageInfo(
            image_count=decision.image_count, daily_limit=decision.daily_limit
        )

    return ExtractTextResponse(
        success=True,
        text=result.extracted_text,
        confidence=result.confidence,
        words=result.word_count,
        raw_text=result.raw_text,
        text_regions=[TextRegionModel.from_region(r) for r in result.regions],
        provider=result.provider,
        processing_time_ms=(time.time() - start_time) * 1000,
        usage=usage,
    )


@router.post(
    "/api/inpaint-image",
    response_model=InpaintResponse,
    response_model_exclude_none=True,
)
async def inpaint_image(body: InpaintRequest) -> InpaintResponse:
    """Erase the given text regions from an image."""
    try:
        image = decode_base64_image(body.image)
        cleaned = await run_in_threadpool(
            inpaint_regions,
            image,
            [r.to_region() for r in body.regions],
            body.padding,
        )
    except InvalidImageError as exc:
        return InpaintResponse(success=False, error=str(exc))

    encoded = base64.b64encode(cleaned).decode("ascii")
    return InpaintResponse(
        success=True, cleaned_image=f"data:image/png;base64,{encoded}"
    )


@router.post("/api/text-regions/compose", response_model=ComposeResponse)
async def compose_regions(body: ComposeRequest) -> ComposeResponse:
    """Build the final text from edited regions."""
    text = compose_text([r.to_region() for r in body.regions])
    return ComposeResponse(text=text, words=count_words(text))


@router.post("/api/users", response_model=UsageResponse, status_code=201)
async def register_user(
    body: RegisterUserRequest, services: ServicesDep
) -> UsageResponse:
    """Register a user so their usage can be tracked."""
    services.usage.register_user(
        body.id, body.username, body.email, is_premium=body.is_premium
    )
    return await get_usage(body.id, services)


@router.get("/api/usage/{user_id}", response_model=UsageResponse)
async def get_usage(user_id: str, services: ServicesDep) -> UsageResponse:
    """Report whether a user can process another image today."""
    decision = services.usage.can_process_image(user_id)
    return UsageResponse(
        user_id=user_id,
        can_process=decision.can_process,
        reason=decision.reason,
        usage=UsageInfo(
            image_count=decision.image_count, daily_limit=decision.daily_limit
        ),
    )


@router.get("/api/blog", response_model=BlogListResponse)
async def list_articles(
    services: ServicesDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    tag: str | None = None,
    q: str | None = None,
) -> BlogListResponse:
    """List blog articles, optionally filtered by tag or search query.

    ``limit`` defaults to the configured ``blog.page_size``.
    """
    limit = limit or services.config.blog.page_size
    if tag:
        articles = services.blog.get_articles_by_tag(tag)
    elif q:
        articles = services.blog.search_articles(q)
    else:
        articles = services.blog.get_all_articles()

    result = paginate(articles, page, limit)
    return BlogListResponse(
        articles=[BlogArticleModel.from_article(a) for a in result.articles],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/api/blog/tags", response_model=TagsResponse)
async def list_tags(services: ServicesDep) -> TagsResponse:
    return TagsResponse(tags=services.blog.get_all_tags())


@router.post("/api/blog/refresh", response_model=BlogListResponse)
async def refresh_blog(services: ServicesDep) -> BlogListResponse:
    """Reload articles from disk."""
    services.blog.refresh_cache()
    return await list_articles(services)


@router.get("/api/blog/{slug}", response_model=BlogArticleModel)
async def get_article(slug: str, services: ServicesDep) -> BlogArticleModel:
    article = services.blog.get_article_by_slug(slug)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article not found: {slug}")
    return BlogArticleModel.from_article(article)


@router.get("/sitemap.xml")
async def sitemap(request: Request, services: ServicesDep) -> Response:
    """Serve the XML sitemap for the requesting host."""
    xml = generate_sitemap(str(request.base_url), services.blog.get_all_articles())
    return Response(content=xml, media_type="application/xml")


def create_app(
    config: AppConfig | None = None, services: Services | None = None
) -> FastAPI:
    """Create the backend application.

    Args:
        config: Application configuration. Loaded from disk if omitted.
        services: Prebuilt services. Built from ``config`` if omitted.

    Returns:
        Configured FastAPI application.
    """
    if services is None:
        services = build_services(config or load_config())

    application = FastAPI(
        title="TextExtract Pro API",
        description="Extract editable text from images",
        version=VERSION,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.services = services
    application.include_router(router)
    return application

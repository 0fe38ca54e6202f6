"""Configuration management for the TextExtract service.

Loads and validates YAML configuration with sensible defaults, then
applies environment variable overrides for secrets and deployment
specific values.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for the OCR providers and upload handling."""

    api_url: str = "https://api.ocr.space/parse/image"
    api_key: str = ""
    default_lang: str = "eng"
    engine: int = 2
    timeout_seconds: float = 20.0
    request_overlay: bool = True
    max_payload_bytes: int = 1024 * 1024
    max_upload_bytes: int = 10 * 1024 * 1024
    compress_max_dimension: int = 1200
    compress_start_quality: float = 0.7
    compress_quality_step: float = 0.1
    compress_min_quality: float = 0.3
    tesseract_cmd: str | None = None
    psm: int = 3


class FilterConfig(BaseModel):
    """Thresholds for the heuristic OCR text filter."""

    max_lines: int = 20
    compact_max_lines: int = 5
    min_real_words: int = 3
    max_weird_chars: int = 5
    max_symbol_ratio: float = 0.6
    duplicate_similarity: float = 0.9


class UsageConfig(BaseModel):
    """Configuration for per-user usage tracking."""

    daily_limit: int = 3
    database_url: str | None = None


class BlogConfig(BaseModel):
    """Configuration for the markdown blog."""

    posts_dir: str = "blog-posts"
    page_size: int = 10


class ProxyConfig(BaseModel):
    """Configuration for the edge proxy in front of the backend."""

    backend_origin: str = "http://127.0.0.1:8000"
    timeout_seconds: float = 30.0


class AuthConfig(BaseModel):
    """OAuth credentials passed through to the login integration."""

    google_client_id: str | None = None
    google_client_secret: str | None = None
    callback_domains: list[str] = Field(default_factory=list)

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    usage: UsageConfig = Field(default_factory=UsageConfig)
    blog: BlogConfig = Field(default_factory=BlogConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = "INFO"


def apply_env_overrides(
    config: AppConfig, environ: dict[str, str] | None = None
) -> AppConfig:
    """Overlay environment variables onto a loaded configuration.

    Args:
        config: Configuration loaded from file or defaults.
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        The same configuration object, updated in place.
    """
    env = os.environ if environ is None else environ

    api_key = env.get("OCR_SPACE_API_KEY") or env.get("OCRSPACE_API_KEY")
    if api_key:
        config.ocr.api_key = api_key
    if env.get("DATABASE_URL"):
        config.usage.database_url = env["DATABASE_URL"]
    if env.get("GOOGLE_CLIENT_ID"):
        config.auth.google_client_id = env["GOOGLE_CLIENT_ID"]
    if env.get("GOOGLE_CLIENT_SECRET"):
        config.auth.google_client_secret = env["GOOGLE_CLIENT_SECRET"]
    if env.get("REPLIT_DOMAINS"):
        config.auth.callback_domains = [
            d.strip() for d in env["REPLIT_DOMAINS"].split(",") if d.strip()
        ]
    if env.get("BACKEND_ORIGIN"):
        config.proxy.backend_origin = env["BACKEND_ORIGIN"]
    if env.get("LOG_LEVEL"):
        config.log_level = env["LOG_LEVEL"]
    return config


def load_config(
    path: Path | None = None, environ: dict[str, str] | None = None
) -> AppConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.
        environ: Environment mapping used for overrides.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        config = AppConfig(**raw)
    else:
        logger.info("No config file found at %s, using defaults", path)
        config = AppConfig()

    return apply_env_overrides(config, environ)

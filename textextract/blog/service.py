"""Markdown blog articles loaded from files with YAML front matter.

Articles are read once and cached in memory until ``refresh_cache`` is
called. Rendering markdown to HTML is left to the web client.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from textextract.utils.logger import get_logger

logger = get_logger(__name__)

_FRONT_MATTER = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)


@dataclass
class BlogArticle:
    """A published blog article."""

    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    author: str
    published_date: str
    reading_time: str
    tags: list[str] = field(default_factory=list)


@dataclass
class ArticlePage:
    """One page of articles."""

    articles: list[BlogArticle]
    total: int
    page: int
    total_pages: int


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Separate a YAML front matter block from the markdown body.

    Args:
        text: Full file contents.

    Returns:
        Tuple of (front matter mapping, body). Files without front matter
        return an empty mapping and the whole text.

    Raises:
        yaml.YAMLError: If the front matter is not valid YAML.
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        data = {}
    return data, text[match.end() :]


def _as_date_string(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    if value:
        return str(value)
    return date.today().isoformat()


def _sort_key(article: BlogArticle) -> date:
    try:
        return date.fromisoformat(article.published_date[:10])
    except ValueError:
        return date.min


def paginate(articles: list[BlogArticle], page: int, limit: int) -> ArticlePage:
    """Slice ``articles`` into 1-based pages of ``limit`` items."""
    total = len(articles)
    start = (page - 1) * limit
    return ArticlePage(
        articles=articles[start : start + limit],
        total=total,
        page=page,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


class BlogService:
    """Loads, caches and queries blog articles.

    Args:
        posts_dir: Directory holding ``*.md`` article files. Created if
            missing.
    """

    def __init__(self, posts_dir: Path | str = Path("blog-posts")) -> None:
        self.posts_dir = Path(posts_dir)
        self.posts_dir.mkdir(parents=True, exist_ok=True)
        self._cache: list[BlogArticle] | None = None

    def _load_article(self, path: Path, article_id: str) -> BlogArticle:
        front_matter, body = split_front_matter(path.read_text(encoding="utf-8"))
        tags = front_matter.get("tags")
        return BlogArticle(
            id=article_id,
            title=str(front_matter.get("title") or "Untitled"),
            slug=str(front_matter.get("slug") or path.stem),
            excerpt=str(front_matter.get("excerpt") or ""),
            content=body.strip(),
            author=str(front_matter.get("author") or "Staff Writer"),
            published_date=_as_date_string(front_matter.get("publishedDate")),
            reading_time=str(front_matter.get("readingTime") or "5 min"),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        )

    def load_articles(self) -> list[BlogArticle]:
        """Read every article file from disk, newest first.

        Files are visited in descending filename order and numbered in that
        order; a file that fails to parse is logged and skipped.
        """
        files = sorted(
            self.posts_dir.glob("*.md"), key=lambda p: p.name, reverse=True
        )
        articles: list[BlogArticle] = []
        for index, path in enumerate(files, 1):
            try:
                articles.append(self._load_article(path, str(index)))
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
                logger.error("Error processing blog file %s: %s", path.name, exc)

        articles.sort(key=_sort_key, reverse=True)
        logger.info("Loaded %d blog articles from %s", len(articles), self.posts_dir)
        return articles

    def get_all_articles(self) -> list[BlogArticle]:
        if self._cache is None:
            self._cache = self.load_articles()
        return self._cache

    def refresh_cache(self) -> None:
        """Drop cached articles so the next query reloads from disk."""
        self._cache = None

    def get_article_by_slug(self, slug: str) -> BlogArticle | None:
        return next((a for a in self.get_all_articles() if a.slug == slug), None)

    def get_article_by_id(self, article_id: str) -> BlogArticle | None:
        return next((a for a in self.get_all_articles() if a.id == article_id), None)

    def get_articles_paginated(self, page: int = 1, limit: int = 10) -> ArticlePage:
        """Return one page of articles.

        Args:
            page: 1-based page number.
            limit: Articles per page.

        Returns:
            The requested slice with totals.
        """
        return paginate(self.get_all_articles(), page, limit)

    def get_articles_by_tag(self, tag: str) -> list[BlogArticle]:
        wanted = tag.lower()
        return [
            a
            for a in self.get_all_articles()
            if any(t.lower() == wanted for t in a.tags)
        ]

    def get_all_tags(self) -> list[str]:
        return sorted({tag for a in self.get_all_articles() for tag in a.tags})

    def search_articles(self, query: str) -> list[BlogArticle]:
        """Case-insensitive search over title, excerpt, content and tags."""
        needle = query.lower()
        return [
            a
            for a in self.get_all_articles()
            if needle in a.title.lower()
            or needle in a.excerpt.lower()
            or needle in a.content.lower()
            or any(needle in t.lower() for t in a.tags)
        ]

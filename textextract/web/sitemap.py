"""XML sitemap for the public pages and blog articles."""

from dataclasses import dataclass
from datetime import date
from xml.sax.saxutils import escape

from textextract.blog.service import BlogArticle


@dataclass(frozen=True)
class SitemapEntry:
    path: str
    lastmod: str
    changefreq: str
    priority: str


# (path, changefreq, priority)
STATIC_PAGES: list[tuple[str, str, str]] = [
    ("/", "daily", "1.0"),
    ("/blog", "weekly", "0.9"),
    ("/settings", "monthly", "0.5"),
    ("/premium", "monthly", "0.7"),
    ("/terms", "yearly", "0.3"),
    ("/privacy", "yearly", "0.3"),
    ("/refund-policy", "yearly", "0.3"),
]


def sitemap_entries(
    articles: list[BlogArticle], today: date | None = None
) -> list[SitemapEntry]:
    """List one entry per static page followed by one per article.

    Args:
        articles: Published blog articles.
        today: Date used as ``lastmod`` for static pages.

    Returns:
        Sitemap entries in output order.
    """
    current = (today or date.today()).isoformat()
    entries = [
        SitemapEntry(path, current, changefreq, priority)
        for path, changefreq, priority in STATIC_PAGES
    ]
    entries.extend(
        SitemapEntry(f"/blog/{article.slug}", article.published_date, "monthly", "0.8")
        for article in articles
    )
    return entries


def generate_sitemap(
    base_url: str, articles: list[BlogArticle], today: date | None = None
) -> str:
    """Render the sitemap XML document.

    Args:
        base_url: Scheme and host the site is served from.
        articles: Published blog articles.
        today: Date used as ``lastmod`` for static pages.

    Returns:
        Sitemap XML as a string.
    """
    base = base_url.rstrip("/")
    urls = "\n".join(
        "  <url>\n"
        f"    <loc>{escape(base + entry.path)}</loc>\n"
        f"    <lastmod>{escape(entry.lastmod)}</lastmod>\n"
        f"    <changefreq>{entry.changefreq}</changefreq>\n"
        f"    <priority>{entry.priority}</priority>\n"
        "  </url>"
        for entry in sitemap_entries(articles, today)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{urls}\n"
        "</urlset>\n"
    )

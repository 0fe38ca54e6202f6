"""Command-line interface for one-off extraction and site content.

Provides subcommands for extracting text from a local image, writing the
sitemap, and listing blog articles.
"""

import argparse
import json
import sys
from pathlib import Path

from textextract.blog.service import BlogService
from textextract.errors import TextExtractError
from textextract.ocr.gateway import build_gateway
from textextract.utils.config import load_config
from textextract.utils.logger import get_logger, setup_logging
from textextract.web.sitemap import generate_sitemap

logger = get_logger(__name__)


def extract_file(
    file_path: Path,
    language: str | None = None,
    is_table: bool = False,
    filter_mode: str = "none",
) -> dict[str, object]:
    """Run OCR on a local image file.

    Args:
        file_path: Image file to process.
        language: OCR language code.
        is_table: Preserve table structure.
        filter_mode: ``"none"``, ``"full"`` or ``"compact"``.

    Returns:
        Dictionary with text, confidence, word count and provider.
    """
    config = load_config()
    gateway = build_gateway(config)

    result = gateway.process(
        file_path.read_bytes(),
        language=language,
        is_table=is_table,
        use_filtering=filter_mode == "full",
    )
    text = result.extracted_text
    raw_text = result.raw_text
    if filter_mode == "compact" and text:
        compact = gateway.text_filter.filter_compact(text) or text
        if compact != text:
            raw_text, text = text, compact

    output: dict[str, object] = {
        "filename": file_path.name,
        "text": text,
        "confidence": result.confidence,
        "words": len(text.split()),
        "provider": result.provider,
    }
    if raw_text is not None:
        output["rawText"] = raw_text
    return output


def write_sitemap(base_url: str, output: Path | None = None) -> str:
    """Generate the sitemap from the configured blog directory.

    Args:
        base_url: Public site origin.
        output: Optional file to write.

    Returns:
        The sitemap XML.
    """
    config = load_config()
    blog = BlogService(config.blog.posts_dir)
    xml = generate_sitemap(base_url, blog.get_all_articles())
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(xml, encoding="utf-8")
        logger.info("Sitemap written to %s", output)
    return xml


def list_articles(tag: str | None = None, query: str | None = None) -> list[str]:
    """Return ``slug<TAB>date<TAB>title`` lines for matching articles."""
    config = load_config()
    blog = BlogService(config.blog.posts_dir)
    if tag:
        articles = blog.get_articles_by_tag(tag)
    elif query:
        articles = blog.search_articles(query)
    else:
        articles = blog.get_all_articles()
    return [f"{a.slug}\t{a.published_date}\t{a.title}" for a in articles]


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="TextExtract command-line tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser("extract", help="Extract text from an image")
    extract_parser.add_argument("file", type=Path, help="Image file to process")
    extract_parser.add_argument("-l", "--language", help="OCR language (default: eng)")
    extract_parser.add_argument(
        "--table", action="store_true", help="Preserve table structure"
    )
    extract_parser.add_argument(
        "--filter",
        choices=["none", "full", "compact"],
        default="none",
        dest="filter_mode",
        help="Noise filter mode (default: none)",
    )
    extract_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    sitemap_parser = subparsers.add_parser("sitemap", help="Generate sitemap.xml")
    sitemap_parser.add_argument(
        "--base-url", required=True, help="Public site origin, e.g. https://example.com"
    )
    sitemap_parser.add_argument("-o", "--output", type=Path, help="Output XML file")

    blog_parser = subparsers.add_parser("blog", help="List blog articles")
    blog_parser.add_argument("--tag", help="Only articles with this tag")
    blog_parser.add_argument("-q", "--query", help="Search text")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_file(
                args.file, args.language, args.table, args.filter_mode
            )
        except TextExtractError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "sitemap":
        xml = write_sitemap(args.base_url, args.output)
        if args.output:
            print(f"Sitemap written to {args.output}")
        else:
            print(xml)
    elif args.command == "blog":
        for line in list_articles(args.tag, args.query):
            print(line)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()

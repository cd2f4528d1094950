"""Reduce a fetched page to the content worth capturing."""

import re

from .exceptions import ExtractionEmptyError
from .models import ExtractedContent, ScrapedContent

MIN_CONTENT_LENGTH = 50
MAX_CONTENT_LENGTH = 8000

_TITLE_KEYS = ("og_title", "ogTitle", "og:title")
_AUTHOR_KEYS = ("author", "article:author", "articleAuthor")
_DATE_KEYS = ("published_time", "publishedTime", "article:published_time", "date")
_DESCRIPTION_KEYS = ("description", "og_description", "ogDescription")

# Lines that are pure navigation chrome in scraped markdown
_CHROME_LINE = re.compile(
    r"^\s*(\[(skip to (main )?content|back to top|menu)\]\(.*\)|!\[\]\(.*\))\s*$",
    re.IGNORECASE,
)


def _first(metadata: dict, keys) -> str:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, list):
            value = value[0] if value else ""
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def clean_content(text: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    """Collapse whitespace, drop chrome lines and cap the length."""
    lines = [line for line in text.splitlines() if not _CHROME_LINE.match(line)]
    text = "\n".join(re.sub(r"[ \t\u00a0]+", " ", line).strip() for line in lines)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return text[:limit]


def extract_content(page: ScrapedContent) -> ExtractedContent:
    """Build ExtractedContent from a page, or raise ExtractionEmptyError."""
    main_content = clean_content(page.markdown or "")
    if len(main_content) < MIN_CONTENT_LENGTH:
        raise ExtractionEmptyError(
            f"Page content too short to capture ({len(main_content)} chars)"
        )

    metadata = {}
    author = _first(page.metadata, _AUTHOR_KEYS)
    if author:
        metadata["author"] = author
    published = _first(page.metadata, _DATE_KEYS)
    if published:
        metadata["publishDate"] = published
    description = _first(page.metadata, _DESCRIPTION_KEYS)
    if description:
        metadata["description"] = description

    title = _first(page.metadata, _TITLE_KEYS) or page.title.strip() or "Untitled"
    return ExtractedContent(title=title, main_content=main_content, metadata=metadata)

"""YAML frontmatter and markdown formatting for daily journal reports."""

from datetime import date
from itertools import groupby

from .models import JournalEntry

CAPTURE_CATEGORY = "capture"
BROWSING_CATEGORY = "browsing"

_HEADINGS = {
    CAPTURE_CATEGORY: "Captured Pages",
    BROWSING_CATEGORY: "Pages Visited",
}


def format_frontmatter(day: date, entries: list[JournalEntry]) -> str:
    """Generate YAML frontmatter for a daily report."""
    categories = sorted({e.category for e in entries})
    lines = [
        "---",
        f"title: \"Journal {day.isoformat()}\"",
        f"date: {day.isoformat()}",
        f"entries: {len(entries)}",
    ]
    if categories:
        lines.append("categories:")
        for category in categories:
            lines.append(f"  - \"{_escape_yaml(category)}\"")
    else:
        lines.append("categories: []")
    lines.append("---")
    return "\n".join(lines)


def format_entry(entry: JournalEntry) -> str:
    """Render one entry as a markdown block."""
    time_label = entry.timestamp.astimezone().strftime("%H:%M")
    lines = [f"### {time_label}"]
    url = entry.metadata.get("url")
    title = entry.metadata.get("title")
    if url:
        label = title or url
        lines.append(f"Source: [{_escape_link(label)}]({url})")
    pattern = entry.metadata.get("pattern")
    if isinstance(pattern, dict) and pattern.get("name"):
        lines.append(f"Pattern: {pattern['name']}")
    lines.append("")
    lines.append(entry.content.strip())
    return "\n".join(lines)


def format_daily_report(day: date, entries: list[JournalEntry]) -> str:
    """Format a complete daily report: frontmatter, then entries by category.

    Captured content is listed last under its own heading.
    """
    frontmatter = format_frontmatter(day, entries)
    parts = [frontmatter, "", f"# Journal for {day.strftime('%Y-%m-%d')}", ""]

    if not entries:
        parts.append("No entries.")
        return "\n".join(parts) + "\n"

    def sort_key(e: JournalEntry):
        return (e.category == CAPTURE_CATEGORY, e.category, e.timestamp)

    for category, group in groupby(sorted(entries, key=sort_key), key=lambda e: e.category):
        heading = _HEADINGS.get(category, category)
        parts.append(f"## {heading}")
        parts.append("")
        for entry in group:
            parts.append(format_entry(entry))
            parts.append("")

    return "\n".join(parts).rstrip() + "\n"


def _escape_yaml(text: str) -> str:
    """Escape special characters for YAML string values."""
    text = text.replace("\\", "\\\\")
    text = text.replace('"', '\\"')
    text = text.replace("\n", " ")
    return text


def _escape_link(text: str) -> str:
    return text.replace("[", "\\[").replace("]", "\\]").replace("\n", " ")

"""Data models for web2journal."""

import secrets
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from .exceptions import ErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format datetime as ISO 8601 with millisecond precision."""
    return dt.isoformat(timespec="milliseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse ISO 8601, accepting the trailing 'Z' browsers emit."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def generate_pattern_id() -> str:
    return f"pattern-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def generate_entry_id(now: Optional[datetime] = None) -> str:
    now = now or utc_now()
    return f"{now.strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(4)}"


@dataclass
class ScrapedContent:
    """Represents a page as seen by the tab: URL, title and raw markdown."""

    url: str
    title: str
    markdown: str
    metadata: dict = field(default_factory=dict)
    scraped_at: datetime = field(default_factory=utc_now)


@dataclass
class ExtractedContent:
    """Cleaned page content ready to be captured."""

    title: str
    main_content: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ContentPattern:
    """A user rule mapping a URL shape to an LLM prompt.

    Instances are immutable. Editing a pattern produces a new value with the
    same id, so anything holding a pattern holds a snapshot of it.
    """

    id: str
    name: str
    url_pattern: str
    prompt: str
    enabled: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def with_updates(self, **changes: Any) -> "ContentPattern":
        changes.pop("id", None)
        changes.pop("created_at", None)
        changes.setdefault("updated_at", utc_now())
        return replace(self, **changes)

    def snapshot(self) -> dict:
        """The parts of the pattern recorded on a journal entry."""
        return {
            "name": self.name,
            "urlPattern": self.url_pattern,
            "prompt": self.prompt,
            "updatedAt": format_timestamp(self.updated_at),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "urlPattern": self.url_pattern,
            "prompt": self.prompt,
            "enabled": self.enabled,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ContentPattern":
        created = data.get("createdAt")
        updated = data.get("updatedAt")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            url_pattern=data["urlPattern"],
            prompt=data.get("prompt", ""),
            enabled=bool(data.get("enabled", True)),
            created_at=parse_timestamp(created) if created else utc_now(),
            updated_at=parse_timestamp(updated) if updated else utc_now(),
        )


@dataclass(frozen=True)
class CaptureRequest:
    """One outbound capture. Built fresh for every dispatch.

    metadata carries page facts found during extraction (author,
    publishDate, description); it is recorded on the entry, never prompted.
    """

    url: str
    title: str
    content: str
    pattern_id: str
    metadata: dict = field(default_factory=dict)

    @classmethod
    def build(
        cls, url: str, extracted: ExtractedContent, pattern: ContentPattern
    ) -> "CaptureRequest":
        return cls(
            url=url,
            title=extracted.title,
            content=extracted.main_content,
            pattern_id=pattern.id,
            metadata=dict(extracted.metadata),
        )

    def to_dict(self) -> dict:
        data = {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "patternId": self.pattern_id,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CaptureRequest":
        """Parse a wire payload. Raises ValueError on missing or mistyped fields."""
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        values = {}
        for key in ("url", "title", "content", "patternId"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"Missing or invalid field: {key}")
            values[key] = value
        if not values["url"] or not values["patternId"]:
            raise ValueError("url and patternId must not be empty")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in metadata.items()
        ):
            raise ValueError("metadata must map strings to strings")
        return cls(
            url=values["url"],
            title=values["title"],
            content=values["content"],
            pattern_id=values["patternId"],
            metadata=metadata,
        )


@dataclass(frozen=True)
class BrowserVisit:
    """A page the user spent time on, logged without LLM processing."""

    url: str
    title: str
    visited_at: datetime
    duration: float
    ogp: Optional[dict] = None

    @property
    def display_title(self) -> str:
        if self.ogp and isinstance(self.ogp.get("title"), str) and self.ogp["title"]:
            return self.ogp["title"]
        return self.title

    @classmethod
    def from_dict(cls, data: dict) -> "BrowserVisit":
        """Parse a wire payload. Raises ValueError on missing or mistyped fields."""
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        url, title, visited_at = data.get("url"), data.get("title"), data.get("visitedAt")
        duration = data.get("duration")
        if not all(isinstance(v, str) and v for v in (url, title, visited_at)):
            raise ValueError("Missing required fields")
        # bool is an int subclass
        if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration < 0:
            raise ValueError("duration must be a non-negative number of seconds")
        ogp = data.get("ogp")
        if ogp is not None and not isinstance(ogp, dict):
            raise ValueError("ogp must be an object")
        try:
            visited = parse_timestamp(visited_at)
        except ValueError as e:
            raise ValueError(f"Invalid visitedAt: {visited_at!r}") from e
        return cls(url=url, title=title, visited_at=visited, duration=duration, ogp=ogp or None)


class CaptureResult:
    """Terminal outcome of one CaptureRequest.

    Either a CaptureSuccess or a CaptureFailure; only a success carries an
    entry id.
    """

    success: ClassVar[bool]

    def to_dict(self) -> dict:
        raise NotImplementedError

    @staticmethod
    def from_dict(data: dict) -> "CaptureResult":
        if not isinstance(data, dict) or "success" not in data:
            raise ValueError("Malformed capture result")
        if data["success"]:
            entry_id = data.get("entryId")
            if not entry_id:
                raise ValueError("Successful capture result without entryId")
            return CaptureSuccess(
                entry_id=entry_id,
                processed_content=data.get("processedContent") or "",
            )
        try:
            kind = ErrorKind(data.get("errorKind", ErrorKind.INVALID_REQUEST.value))
        except ValueError:
            kind = ErrorKind.INVALID_REQUEST
        return CaptureFailure(error=data.get("error") or "Unknown error", kind=kind)


@dataclass(frozen=True)
class CaptureSuccess(CaptureResult):
    entry_id: str
    processed_content: str = ""

    success: ClassVar[bool] = True

    def to_dict(self) -> dict:
        return {
            "success": True,
            "entryId": self.entry_id,
            "processedContent": self.processed_content,
        }


@dataclass(frozen=True)
class CaptureFailure(CaptureResult):
    error: str
    kind: ErrorKind = ErrorKind.INVALID_REQUEST

    success: ClassVar[bool] = False

    @classmethod
    def from_exception(cls, exc: Exception) -> "CaptureFailure":
        kind = getattr(exc, "kind", ErrorKind.INVALID_REQUEST)
        return cls(error=str(exc), kind=kind)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.kind.value,
        }


@dataclass
class JournalEntry:
    """A single journal entry."""

    id: str
    content: str
    category: str
    timestamp: datetime = field(default_factory=utc_now)
    entry_type: str = "entry"
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "timestamp": format_timestamp(self.timestamp),
            "type": self.entry_type,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            category=data.get("category", ""),
            timestamp=parse_timestamp(data["timestamp"]),
            entry_type=data.get("type") or "entry",
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class CaptureStatus:
    """User-visible progress signal for one page view."""

    url: str
    phase: str  # processing, completed, failed, skipped
    message: str = ""
    entry_id: Optional[str] = None
    kind: Optional[ErrorKind] = None

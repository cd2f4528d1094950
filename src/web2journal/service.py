"""Backend side of a capture: authenticate, resolve pattern, transform, append."""

import hmac
import logging
from typing import Callable, Optional

from .exceptions import (
    AuthenticationError,
    ErrorKind,
    ExtractionEmptyError,
    PatternDisabledError,
    PatternNotFoundError,
    StorageError,
    TransformationError,
    Web2JournalError,
)
from .formatter import BROWSING_CATEGORY, CAPTURE_CATEGORY
from .journal import JournalStore
from .models import (
    BrowserVisit,
    CaptureFailure,
    CaptureRequest,
    CaptureResult,
    CaptureSuccess,
    ContentPattern,
    JournalEntry,
    format_timestamp,
    utc_now,
)
from .patterns import PatternStore
from .transform import Transformer

logger = logging.getLogger(__name__)


class CaptureService:
    """Runs one CaptureRequest to at most one journal entry.

    Args:
        token: The live auth token every request must present.
        patterns: The shared pattern set.
        transformer: The LLM transformation capability.
        journal: Where successful captures are appended.
        refresh_patterns: Called before each lookup so edits made elsewhere
            (e.g. by the CLI on the patterns file) are seen.
    """

    def __init__(
        self,
        token: str,
        patterns: PatternStore,
        transformer: Transformer,
        journal: JournalStore,
        refresh_patterns: Optional[Callable[[], object]] = None,
    ):
        if not token:
            raise ValueError("CaptureService requires a non-empty token")
        self._token = token
        self._patterns = patterns
        self._transformer = transformer
        self._journal = journal
        self._refresh_patterns = refresh_patterns

    def authenticate(self, token: Optional[str]) -> None:
        if not token or not hmac.compare_digest(
            token.encode("utf-8"), self._token.encode("utf-8")
        ):
            raise AuthenticationError("Invalid or missing auth token")

    def resolve_pattern(self, pattern_id: str) -> ContentPattern:
        if self._refresh_patterns is not None:
            self._refresh_patterns()
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            raise PatternNotFoundError(f"Pattern not found: {pattern_id}")
        if not pattern.enabled:
            raise PatternDisabledError(f"Pattern is disabled: {pattern_id}")
        return pattern

    def capture(self, request: CaptureRequest, token: Optional[str]) -> CaptureResult:
        try:
            self.authenticate(token)
        except AuthenticationError as e:
            logger.warning("Rejected capture for %s: %s", request.url, e)
            return CaptureFailure.from_exception(e)

        logger.info(
            "Processing capture url=%s pattern=%s content_length=%d",
            request.url, request.pattern_id, len(request.content),
        )
        try:
            pattern = self.resolve_pattern(request.pattern_id)
            if not request.content.strip():
                raise ExtractionEmptyError("Capture request has no content")
            processed = self._transformer.transform(
                pattern.prompt, request.content, url=request.url, title=request.title
            )
        except (PatternNotFoundError, PatternDisabledError, ExtractionEmptyError,
                TransformationError, StorageError) as e:
            logger.error("Capture failed url=%s pattern=%s: %s",
                         request.url, request.pattern_id, e)
            return CaptureFailure.from_exception(e)

        try:
            entry = self._journal.append(
                content=processed,
                category=CAPTURE_CATEGORY,
                metadata={
                    "source": "capture",
                    "url": request.url,
                    "title": request.title,
                    "pattern_id": pattern.id,
                    "pattern": pattern.snapshot(),
                    "page": dict(request.metadata),
                    "captured_at": format_timestamp(utc_now()),
                },
            )
        except (OSError, Web2JournalError) as e:
            logger.error("Could not append journal entry for %s: %s", request.url, e)
            return CaptureFailure(error=f"Could not save journal entry: {e}",
                                  kind=ErrorKind.STORAGE_FAILED)

        logger.info("Captured %s as entry %s (pattern %s)", request.url, entry.id, pattern.name)
        return CaptureSuccess(entry_id=entry.id, processed_content=processed)

    def record_visit(self, visit: BrowserVisit) -> JournalEntry:
        """Append a plain "visited" entry; no pattern or LLM is involved.

        Raises StorageError when the entry cannot be written.
        """
        metadata = {
            "source": "browser-history",
            "url": visit.url,
            "title": visit.title,
            "visited_at": format_timestamp(visit.visited_at),
            "duration": visit.duration,
        }
        if visit.ogp:
            metadata["ogp"] = visit.ogp
        content = f"Visited: {visit.display_title} (URL: {visit.url}, Duration: {visit.duration:g}s)"
        try:
            entry = self._journal.append(content, BROWSING_CATEGORY, metadata)
        except OSError as e:
            raise StorageError(f"Could not save journal entry: {e}") from e
        logger.info("Recorded visit to %s as entry %s", visit.url, entry.id)
        return entry

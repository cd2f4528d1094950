"""In-memory, order-preserving store of content patterns."""

import re
import threading
from typing import Iterable, Optional

from .exceptions import InvalidPatternError, PatternNotFoundError
from .models import ContentPattern, generate_pattern_id, utc_now

_UPDATABLE_FIELDS = ("name", "url_pattern", "prompt", "enabled")


def validate_url_pattern(url_pattern: str) -> None:
    """Raise InvalidPatternError unless url_pattern compiles."""
    if not isinstance(url_pattern, str) or not url_pattern:
        raise InvalidPatternError("URL pattern must be a non-empty string")
    try:
        re.compile(url_pattern)
    except re.error as e:
        raise InvalidPatternError(
            f"Invalid URL pattern {url_pattern!r}: {e}"
        ) from e


class PatternStore:
    """Ordered collection of ContentPattern values keyed by id.

    Definition order is significant: the matcher breaks ties by it, so it is
    preserved across every operation, including updates.
    """

    def __init__(self, patterns: Optional[Iterable[ContentPattern]] = None):
        self._lock = threading.RLock()
        self._patterns: list[ContentPattern] = list(patterns or [])

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def all(self) -> list[ContentPattern]:
        with self._lock:
            return list(self._patterns)

    def get(self, pattern_id: str) -> Optional[ContentPattern]:
        with self._lock:
            for pattern in self._patterns:
                if pattern.id == pattern_id:
                    return pattern
        return None

    def create(
        self, name: str, url_pattern: str, prompt: str, enabled: bool = True
    ) -> ContentPattern:
        validate_url_pattern(url_pattern)
        now = utc_now()
        pattern = ContentPattern(
            id=generate_pattern_id(),
            name=name,
            url_pattern=url_pattern,
            prompt=prompt,
            enabled=enabled,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._patterns.append(pattern)
        return pattern

    def update(self, pattern_id: str, **changes) -> ContentPattern:
        """Apply changes to the pattern in place, keeping its position.

        Only name, url_pattern, prompt and enabled may change.
        """
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "url_pattern" in changes:
            validate_url_pattern(changes["url_pattern"])
        with self._lock:
            index = self._index_of(pattern_id)
            updated = self._patterns[index].with_updates(**changes)
            self._patterns[index] = updated
        return updated

    def delete(self, pattern_id: str) -> ContentPattern:
        with self._lock:
            index = self._index_of(pattern_id)
            return self._patterns.pop(index)

    def replace_all(self, patterns: Iterable[ContentPattern]) -> None:
        with self._lock:
            self._patterns = list(patterns)

    def _index_of(self, pattern_id: str) -> int:
        for i, pattern in enumerate(self._patterns):
            if pattern.id == pattern_id:
                return i
        raise PatternNotFoundError(f"Pattern not found: {pattern_id}")

"""URL pattern matching.

Selection is deterministic: only enabled patterns are candidates, each
pattern's expression is searched (not implicitly anchored) against the full
URL, and the earliest matching pattern in the given order wins.
"""

import logging
import re
from typing import Iterable, Optional, Sequence

from .models import ContentPattern

logger = logging.getLogger(__name__)


def _matches(pattern: ContentPattern, url: str) -> bool:
    try:
        return re.search(pattern.url_pattern, url) is not None
    except re.error as e:
        logger.warning(
            "Invalid URL pattern %r on %s (%s); treating as non-matching",
            pattern.url_pattern, pattern.id, e,
        )
        return False


def _candidates(url: str, patterns: Iterable[ContentPattern]):
    for pattern in patterns:
        if pattern.enabled and _matches(pattern, url):
            yield pattern


def match_pattern(
    url: str, patterns: Sequence[ContentPattern]
) -> Optional[ContentPattern]:
    """Return the first enabled pattern matching url, or None."""
    return next(_candidates(url, patterns), None)


def find_matching_patterns(
    url: str, patterns: Sequence[ContentPattern]
) -> list[ContentPattern]:
    """Return every enabled pattern matching url, in order."""
    return list(_candidates(url, patterns))

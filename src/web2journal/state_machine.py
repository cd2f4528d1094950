"""Per-tab page processing state.

The transitions here are pure: no I/O, no threads, no clocks. An event
adapter (see session.py) feeds navigation signals in and carries out the
extraction and dispatch this module asks for.

    IDLE -> NAVIGATED_NEW -> MATCHING -> DISPATCHING -> IDLE

A page view is eligible for capture exactly once. ``processed`` flips to True
in the same step that enters MATCHING, before any extraction or network work,
so repeated navigation signals for the same page cannot dispatch twice.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .exceptions import DispatchInProgressError
from .matcher import match_pattern
from .models import CaptureRequest, CaptureResult, ContentPattern

logger = logging.getLogger(__name__)


class PageState(Enum):
    IDLE = "idle"
    NAVIGATED_NEW = "navigated_new"
    MATCHING = "matching"
    DISPATCHING = "dispatching"


@dataclass(frozen=True)
class PlannedCapture:
    """A page view that won eligibility, with the pattern snapshot it matched."""

    url: str
    pattern: ContentPattern


class PageProcessingContext:
    """State for one tab/document lifetime."""

    def __init__(self, url: Optional[str] = None):
        self.current_url: Optional[str] = None
        self.processed = False
        self.in_flight: Optional[str] = None
        self.state = PageState.IDLE
        if url is not None:
            self.navigate(url)

    def __repr__(self) -> str:
        return (
            f"PageProcessingContext(state={self.state.value}, url={self.current_url!r}, "
            f"processed={self.processed}, in_flight={self.in_flight!r})"
        )

    def navigate(self, url: str) -> bool:
        """Apply a navigation signal. Returns True if this is a new page view.

        A signal for the current URL changes nothing. Any other URL starts a
        new page view, even while a capture for the old URL is in flight.
        """
        if url == self.current_url:
            return False
        logger.debug("Navigation %r -> %r", self.current_url, url)
        self.current_url = url
        self.processed = False
        self.state = PageState.NAVIGATED_NEW
        return True

    def evaluate(
        self, auto_processing: bool, patterns: Sequence[ContentPattern]
    ) -> Optional[PlannedCapture]:
        """Decide whether the new page view should be captured.

        Only acts in NAVIGATED_NEW. On a match, commits ``processed`` and moves
        to MATCHING before returning the plan.
        """
        if self.state is not PageState.NAVIGATED_NEW:
            return None
        if not auto_processing or self.processed:
            self.state = PageState.IDLE
            return None

        pattern = match_pattern(self.current_url, patterns)
        if pattern is None:
            self.state = PageState.IDLE
            return None

        self.processed = True
        self.state = PageState.MATCHING
        return PlannedCapture(url=self.current_url, pattern=pattern)

    def request_reprocess(self) -> bool:
        """Make the current page view eligible again (explicit user action)."""
        if self.current_url is None or self.state in (PageState.MATCHING, PageState.DISPATCHING):
            return False
        self.processed = False
        self.state = PageState.NAVIGATED_NEW
        return True

    def begin_dispatch(self, request: CaptureRequest) -> None:
        if self.in_flight is not None:
            raise DispatchInProgressError(
                f"Capture for {self.in_flight} is still in flight"
            )
        self.in_flight = request.url
        if self.current_url == request.url and self.state is PageState.MATCHING:
            self.state = PageState.DISPATCHING

    def abandon(self, url: str) -> bool:
        """Give up on a planned capture before dispatch (e.g. empty extraction).

        ``processed`` stays True. Returns True if url is still the current page.
        """
        if url != self.current_url:
            return False
        if self.state is PageState.MATCHING:
            self.state = PageState.IDLE
        return True

    def complete(self, url: str, result: CaptureResult) -> bool:
        """Settle the in-flight capture for url.

        Returns True if the result belongs to the current page view and should
        be surfaced; False if the tab has navigated away (stale result).
        """
        if self.in_flight == url:
            self.in_flight = None
        if url != self.current_url:
            logger.info("Discarding stale capture result for %s", url)
            return False
        if self.state is PageState.DISPATCHING:
            self.state = PageState.IDLE
        return True

"""Event adapter driving one tab's PageProcessingContext.

Navigation signals are applied one at a time under a lock. Extraction and
dispatch run on a single worker thread, so a slow capture never blocks the
next navigation and captures of one tab never overlap.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from .dispatcher import CaptureDispatcher
from .exceptions import (
    CrawlError,
    DispatchInProgressError,
    ErrorKind,
    ExtractionEmptyError,
    Web2JournalError,
)
from .extractor import extract_content
from .models import (
    CaptureFailure,
    CaptureRequest,
    CaptureResult,
    CaptureStatus,
    ContentPattern,
    ScrapedContent,
)
from .state_machine import PageProcessingContext, PlannedCapture

logger = logging.getLogger(__name__)

PageSource = Callable[[str], ScrapedContent]
PatternSource = Callable[[], Sequence[ContentPattern]]
StatusCallback = Callable[[CaptureStatus], None]


class TabSession:
    """One tab: its processing context plus the machinery to act on it.

    Args:
        dispatcher: Sends captures to the server; one per tab.
        patterns: Returns the current ordered pattern set.
        page_source: Fetches page content for a URL when the navigation
            signal does not carry it.
        auto_processing: Initial state of the auto-processing toggle.
        on_status: Receives user-visible status for the current page view.
    """

    def __init__(
        self,
        dispatcher: CaptureDispatcher,
        patterns: PatternSource,
        page_source: Optional[PageSource] = None,
        auto_processing: bool = True,
        on_status: Optional[StatusCallback] = None,
    ):
        self.context = PageProcessingContext()
        self.auto_processing = auto_processing
        self._dispatcher = dispatcher
        self._patterns = patterns
        self._page_source = page_source
        self._on_status = on_status
        self._lock = threading.Lock()
        self._pages: dict[str, ScrapedContent] = {}
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture")

    # --- navigation events ---

    def on_navigation(
        self, url: str, page: Optional[ScrapedContent] = None
    ) -> Optional[Future]:
        """Apply a navigation signal.

        Returns a Future resolving to the CaptureResult when this signal
        started a capture, otherwise None.
        """
        with self._lock:
            if self._closed:
                return None
            if not self.context.navigate(url):
                return None
            if page is not None:
                self._pages[url] = page
            plan = self._evaluate_locked()
        return self._start(plan)

    def reprocess(self) -> Optional[Future]:
        """Explicitly capture the current page again."""
        with self._lock:
            if self._closed or not self.context.request_reprocess():
                return None
            logger.info("Reprocessing requested for %s", self.context.current_url)
            plan = self._evaluate_locked()
        return self._start(plan)

    def close(self, wait: bool = False) -> None:
        """Discard the tab.

        With wait=True, queued captures finish and are surfaced first.
        Otherwise captures not yet started are cancelled, and one already
        running finishes but is not surfaced.
        """
        if wait:
            self._executor.shutdown(wait=True)
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    # --- internals ---

    def _evaluate_locked(self) -> Optional[PlannedCapture]:
        patterns: Sequence[ContentPattern] = ()
        if self.auto_processing and not self.context.processed:
            try:
                patterns = self._patterns()
            except Web2JournalError as e:
                logger.error("Could not load patterns for %s: %s", self.context.current_url, e)
                self._emit(CaptureStatus(
                    url=self.context.current_url, phase="failed",
                    message=f"Could not load patterns: {e}", kind=e.kind,
                ))
        plan = self.context.evaluate(self.auto_processing, patterns)
        if plan is None:
            self._pages.pop(self.context.current_url, None)
        return plan

    def _start(self, plan: Optional[PlannedCapture]) -> Optional[Future]:
        if plan is None:
            return None
        logger.info("Matched %s with pattern %s (%s)", plan.url, plan.pattern.id, plan.pattern.name)
        self._emit(CaptureStatus(
            url=plan.url, phase="processing", message=f"Capturing with '{plan.pattern.name}'",
        ))
        return self._executor.submit(self._run_capture, plan)

    def _run_capture(self, plan: PlannedCapture) -> CaptureResult:
        try:
            extracted = extract_content(self._load_page(plan.url))
        except (CrawlError, ExtractionEmptyError) as e:
            logger.warning("Nothing to capture on %s: %s", plan.url, e)
            with self._lock:
                current = self.context.abandon(plan.url) and not self._closed
            if current:
                self._emit(CaptureStatus(url=plan.url, phase="skipped", message=str(e), kind=e.kind))
            return CaptureFailure.from_exception(e)

        request = CaptureRequest.build(plan.url, extracted, plan.pattern)
        with self._lock:
            try:
                self.context.begin_dispatch(request)
            except DispatchInProgressError as e:
                logger.error("%s", e)
                return CaptureFailure.from_exception(e)

        result = self._dispatcher.dispatch(request)

        with self._lock:
            current = self.context.complete(plan.url, result) and not self._closed
        if current:
            self._emit(self._status_for(plan.url, result))
        return result

    def _load_page(self, url: str) -> ScrapedContent:
        with self._lock:
            page = self._pages.pop(url, None)
        if page is not None:
            return page
        if self._page_source is None:
            raise ExtractionEmptyError(f"No page content available for {url}")
        return self._page_source(url)

    @staticmethod
    def _status_for(url: str, result: CaptureResult) -> CaptureStatus:
        if result.success:
            return CaptureStatus(
                url=url, phase="completed", message="Saved to journal", entry_id=result.entry_id,
            )
        kind = result.kind
        message = result.error
        if kind is ErrorKind.DISPATCH_TIMEOUT:
            message = f"Timed out: {result.error}"
        return CaptureStatus(url=url, phase="failed", message=message, kind=kind)

    def _emit(self, status: CaptureStatus) -> None:
        if self._on_status is not None:
            self._on_status(status)

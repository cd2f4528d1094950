"""Single outbound capture call with a bounded wait and no retry."""

import logging
import threading

from .client import JournalServerClient
from .exceptions import DispatchInProgressError, DispatchTimeoutError, NetworkError
from .models import CaptureFailure, CaptureRequest, CaptureResult

logger = logging.getLogger(__name__)


class CaptureDispatcher:
    """Sends CaptureRequests for one tab, one at a time.

    dispatch() always returns a CaptureResult. Failures are never retried:
    a retry against the LLM-backed endpoint could create a duplicate entry.
    """

    def __init__(self, client: JournalServerClient):
        self._client = client
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def dispatch(self, request: CaptureRequest) -> CaptureResult:
        if not self._in_flight.acquire(blocking=False):
            logger.error("Rejected capture for %s: another capture is in flight", request.url)
            return CaptureFailure.from_exception(
                DispatchInProgressError("A capture is already in flight for this tab")
            )
        try:
            return self._send(request)
        finally:
            self._in_flight.release()

    def _send(self, request: CaptureRequest) -> CaptureResult:
        logger.info("Dispatching capture for %s (pattern %s)", request.url, request.pattern_id)
        try:
            body = self._client.capture(request)
        except (DispatchTimeoutError, NetworkError) as e:
            logger.error("Capture for %s failed: %s", request.url, e)
            return CaptureFailure.from_exception(e)

        try:
            result = CaptureResult.from_dict(body)
        except ValueError as e:
            logger.error("Malformed capture response for %s: %s", request.url, e)
            return CaptureFailure.from_exception(NetworkError(str(e)))

        if result.success:
            logger.info("Capture for %s stored as entry %s", request.url, result.entry_id)
        else:
            logger.warning("Capture for %s rejected: %s", request.url, result.error)
        return result

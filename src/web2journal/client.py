"""HTTP client for the local capture server."""

import logging
from typing import Optional

import requests

from .exceptions import DispatchTimeoutError, NetworkError
from .models import CaptureRequest, ContentPattern

logger = logging.getLogger(__name__)


class JournalServerClient:
    """Talks to the capture server with the shared bearer token.

    Raises DispatchTimeoutError when the server does not answer within the
    timeout and NetworkError for every other transport problem. Never retries.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._session = session or requests.Session()

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._token}"}

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self._session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.Timeout as e:
            raise DispatchTimeoutError(
                f"No response from {url} within {self.timeout:g}s"
            ) from e
        except requests.RequestException as e:
            raise NetworkError(f"Could not reach {url}: {e}") from e

    @staticmethod
    def _json(response: requests.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(
                f"Unexpected response from server (HTTP {response.status_code})"
            ) from e
        if not isinstance(data, dict):
            raise NetworkError(
                f"Unexpected response from server (HTTP {response.status_code})"
            )
        return data

    def capture(self, capture_request: CaptureRequest) -> dict:
        """POST a capture and return the decoded JSON body, whatever the status."""
        response = self._request(
            "POST", "/api/content-processing", json=capture_request.to_dict()
        )
        logger.debug("Capture response HTTP %s for %s", response.status_code, capture_request.url)
        return self._json(response)

    def list_patterns(self) -> list[ContentPattern]:
        response = self._request("GET", "/api/content-patterns")
        data = self._json(response)
        if response.status_code != 200:
            raise NetworkError(
                f"Listing patterns failed (HTTP {response.status_code}): {data.get('error', '')}"
            )
        return [ContentPattern.from_dict(item) for item in data.get("patterns", [])]

    def health(self) -> bool:
        try:
            response = self._session.get(f"{self.base_url}/health", timeout=self.timeout)
        except requests.RequestException:
            return False
        return response.status_code == 200

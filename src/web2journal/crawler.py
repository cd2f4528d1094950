"""Firecrawl SDK wrapper used as the page source outside a browser."""

import logging
import time

from firecrawl import FirecrawlApp

from .config import Config
from .exceptions import CrawlError
from .models import ScrapedContent

logger = logging.getLogger(__name__)


def _retry(func, max_attempts: int = 2, base_delay: float = 2.0):
    """Execute func with exponential backoff retry."""
    last_error = None
    for attempt in range(max_attempts):
        try:
            return func()
        except Exception as e:
            last_error = e
            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning("Scrape attempt %d failed (%s), retrying in %ss",
                               attempt + 1, e, delay)
                time.sleep(delay)
    raise last_error


def _as_dict(metadata_obj) -> dict:
    # Firecrawl v2 returns Pydantic models; older versions return dicts
    if hasattr(metadata_obj, "model_dump"):
        return metadata_obj.model_dump()
    if isinstance(metadata_obj, dict):
        return metadata_obj
    return {}


class FirecrawlPageSource:
    """Fetches a URL as markdown, the way a tab would see it."""

    def __init__(self, config: Config):
        config.require_firecrawl()
        self._app = FirecrawlApp(api_key=config.firecrawl_api_key)

    def __call__(self, url: str) -> ScrapedContent:
        return self.scrape(url)

    def scrape(self, url: str) -> ScrapedContent:
        try:
            result = _retry(lambda: self._app.scrape(
                url,
                formats=["markdown"],
                only_main_content=True,
            ))
        except Exception as e:
            raise CrawlError(f"Failed to scrape {url}: {e}") from e

        if not result:
            raise CrawlError(f"Empty response from Firecrawl for {url}")

        if isinstance(result, dict):
            markdown = result.get("markdown") or ""
            metadata = _as_dict(result.get("metadata"))
        else:
            markdown = getattr(result, "markdown", None) or ""
            metadata = _as_dict(getattr(result, "metadata", None))

        title = metadata.get("title") or metadata.get("og_title") or ""
        return ScrapedContent(url=url, title=title, markdown=markdown, metadata=metadata)

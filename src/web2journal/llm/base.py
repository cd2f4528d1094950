"""Abstract base class for LLM providers."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..exceptions import LLMError

logger = logging.getLogger(__name__)

RATE_LIMIT_ATTEMPTS = 3


def with_rate_limit_backoff(send: Callable[[], str], rate_limit_error: type, label: str) -> str:
    """Call send, backing off 2s then 4s while the provider reports a rate limit.

    A rate-limited request produced no output, so sending it again cannot
    duplicate work. Every other error propagates from the first attempt.
    """
    last_error = None
    for attempt in range(1, RATE_LIMIT_ATTEMPTS + 1):
        try:
            return send()
        except rate_limit_error as e:
            last_error = e
            if attempt < RATE_LIMIT_ATTEMPTS:
                delay = 2 ** attempt
                logger.warning("%s rate limited (attempt %d), retrying in %ss", label, attempt, delay)
                time.sleep(delay)
    raise LLMError(f"{label} rate limited after {RATE_LIMIT_ATTEMPTS} attempts: {last_error}")


class LLMProvider(ABC):
    """One-shot text generation used to turn page content into an entry."""

    @abstractmethod
    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """Return the model's text for one system/user prompt pair.

        Raises LLMError on any provider failure.
        """

    @property
    @abstractmethod
    def max_input_tokens(self) -> int:
        """Context budget used to truncate page content."""

    @property
    def default_max_output_tokens(self) -> int:
        # Journal entries are short
        return 4_096

"""Claude/Anthropic LLM provider."""

from typing import Optional

import anthropic

from ..exceptions import LLMError
from .base import LLMProvider, with_rate_limit_backoff

# Seconds before a single request is abandoned
REQUEST_TIMEOUT = 120.0


def _response_text(response) -> str:
    return "".join(
        block.text for block in response.content
        if getattr(block, "type", "text") == "text"
    )


class AnthropicProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = REQUEST_TIMEOUT,
    ):
        # SDK retries off; with_rate_limit_backoff covers rate limits only
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model

    @property
    def max_input_tokens(self) -> int:
        return 180_000

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        def send() -> str:
            return _response_text(self._client.messages.create(
                model=self._model,
                max_tokens=max_output_tokens or self.default_max_output_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            ))

        try:
            return with_rate_limit_backoff(send, anthropic.RateLimitError, "Anthropic")
        except anthropic.APITimeoutError as e:
            raise LLMError(f"Anthropic request timed out: {e}") from e
        except anthropic.APIError as e:
            raise LLMError(f"Anthropic API error: {e}") from e

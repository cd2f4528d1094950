"""OpenAI LLM provider."""

from typing import Optional

import openai

from ..exceptions import LLMError
from .base import LLMProvider, with_rate_limit_backoff

REQUEST_TIMEOUT = 120.0

_LEGACY_PREFIXES = ("gpt-3.5", "gpt-4o", "gpt-4-turbo", "gpt-4-")


def token_limit_param(model: str) -> str:
    """Older chat models take max_tokens; o-series, gpt-4.1 and gpt-5 take max_completion_tokens."""
    if model.startswith(_LEGACY_PREFIXES):
        return "max_tokens"
    return "max_completion_tokens"


class OpenAIProvider(LLMProvider):
    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = REQUEST_TIMEOUT):
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model
        self._token_param = token_limit_param(model)

    @property
    def max_input_tokens(self) -> int:
        return 14_000 if "gpt-3.5" in self._model else 120_000

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        limit = {self._token_param: max_output_tokens or self.default_max_output_tokens}

        def send() -> str:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **limit,
            )
            return response.choices[0].message.content or ""

        try:
            return with_rate_limit_backoff(send, openai.RateLimitError, "OpenAI")
        except openai.APITimeoutError as e:
            raise LLMError(f"OpenAI request timed out: {e}") from e
        except openai.APIError as e:
            raise LLMError(f"OpenAI API error: {e}") from e

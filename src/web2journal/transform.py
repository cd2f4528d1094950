"""Turn captured page content into journal text with an LLM."""

import re

from .exceptions import LLMError, TransformationError
from .llm.base import LLMProvider
from .utils import estimate_tokens

SYSTEM_PROMPT = (
    "You are writing an entry for the user's personal journal from a web page "
    "they just read. Follow the user's instructions for what to extract or how "
    "to summarize. Write concise, plain markdown suitable for a daily journal. "
    "Output ONLY the entry body (no YAML frontmatter, no top-level # title heading)."
)

# Reserved for the system prompt and generation
_OVERHEAD_TOKENS = 10_000


def render_prompt(template: str, url: str, title: str, content: str) -> str:
    """Substitute {url}, {title} and {content} in a pattern prompt.

    Plain replacement, so other braces in user prompts are left alone. When
    the template has no {content} placeholder the page content is appended.
    """
    prompt = template.replace("{url}", url).replace("{title}", title)
    if "{content}" in prompt:
        return prompt.replace("{content}", content)
    return f"{prompt}\n\nPAGE: {title} ({url})\n\nPAGE CONTENT:\n\n{content}"


class Transformer:
    """The transform(prompt, content) capability used by the capture service."""

    def __init__(self, llm: LLMProvider):
        self._llm = llm

    def transform(self, prompt: str, content: str, url: str = "", title: str = "") -> str:
        """Run one LLM call. Raises TransformationError; never retries."""
        content = self._fit_content_to_context(content, prompt)
        user_prompt = render_prompt(prompt, url, title, content)
        try:
            raw = self._llm.generate(SYSTEM_PROMPT, user_prompt)
        except LLMError as e:
            raise TransformationError(str(e)) from e
        text = clean_output(raw)
        if not text:
            raise TransformationError("LLM returned empty output")
        return text

    def _fit_content_to_context(self, content: str, *other_parts: str) -> str:
        """Truncate content so content + other_parts fit in the context window."""
        other_tokens = sum(estimate_tokens(p) for p in other_parts)
        available = max(
            self._llm.max_input_tokens - _OVERHEAD_TOKENS - other_tokens, 1_000
        )
        if estimate_tokens(content) <= available:
            return content

        max_chars = available * 4
        truncated = content[:max_chars]
        last_para = truncated.rfind("\n\n")
        if last_para > max_chars // 2:
            truncated = truncated[:last_para]
        return truncated + "\n\n[Content truncated to fit context window]"


def clean_output(text: str) -> str:
    """Strip accidental frontmatter, code fences and extra blank lines."""
    if not text:
        return ""
    text = text.strip()
    text = re.sub(r"^---\s*\n.*?\n---\s*\n?", "", text, count=1, flags=re.DOTALL)
    fenced = re.fullmatch(r"```(?:markdown|md)?\s*\n(.*?)\n```", text.strip(), flags=re.DOTALL)
    if fenced:
        text = fenced.group(1)
    text = re.sub(r"\n{4,}", "\n\n\n", text)
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    return text.strip()

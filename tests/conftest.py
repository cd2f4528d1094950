"""Shared pytest fixtures for web2journal tests."""

from typing import Optional

import pytest

from web2journal.exceptions import LLMError
from web2journal.journal import JournalStore
from web2journal.llm.base import LLMProvider
from web2journal.models import ScrapedContent
from web2journal.patterns import PatternStore
from web2journal.server import create_app
from web2journal.service import CaptureService
from web2journal.storage import PatternStorage
from web2journal.transform import Transformer

TOKEN = "test-token-123"

ARTICLE = (
    "# Release notes\n\n"
    "Version 2.0 ships a rewritten scheduler, faster startup and a new plugin API. "
    "Existing configuration files keep working without changes."
)


class FakeLLM(LLMProvider):
    """Records prompts and returns a canned reply (or raises)."""

    def __init__(self, reply: str = "Summary of the page.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    @property
    def max_input_tokens(self) -> int:
        return 50_000

    def generate(self, system_prompt, user_prompt, max_output_tokens=None):
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def failing_llm():
    return FakeLLM(error=LLMError("Anthropic API error: overloaded"))


@pytest.fixture
def store():
    return PatternStore()


@pytest.fixture
def journal(data_path):
    return JournalStore(data_path)


@pytest.fixture
def pattern_storage(data_path):
    return PatternStorage(data_path)


@pytest.fixture
def service(store, llm, journal, pattern_storage):
    return CaptureService(TOKEN, store, Transformer(llm), journal,
                          refresh_patterns=lambda: pattern_storage.refresh(store))


@pytest.fixture
def app(service, store, pattern_storage):
    application = create_app(service, store, pattern_storage)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def article_page():
    def _make(url: str, title: str = "Release notes") -> ScrapedContent:
        return ScrapedContent(url=url, title=title, markdown=ARTICLE)
    return _make


@pytest.fixture
def make_llm():
    return FakeLLM

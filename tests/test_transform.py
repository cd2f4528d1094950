import pytest

from web2journal.exceptions import LLMError, TransformationError
from web2journal.transform import SYSTEM_PROMPT, Transformer, clean_output, render_prompt


class TestRenderPrompt:
    def test_placeholders_substituted(self):
        prompt = render_prompt("Summarize {title} from {url}:\n{content}", "https://a.io", "T", "BODY")
        assert prompt == "Summarize T from https://a.io:\nBODY"

    def test_content_appended_without_placeholder(self):
        prompt = render_prompt("List the action items", "https://a.io", "T", "BODY")
        assert prompt.startswith("List the action items")
        assert prompt.endswith("PAGE CONTENT:\n\nBODY")

    def test_other_braces_left_alone(self):
        prompt = render_prompt("Return JSON like {\"k\": 1}", "u", "t", "c")
        assert "{\"k\": 1}" in prompt


class TestCleanOutput:
    def test_strips_frontmatter(self):
        assert clean_output("---\ntitle: x\n---\nBody text") == "Body text"

    def test_strips_fence(self):
        assert clean_output("```markdown\n- one\n- two\n```") == "- one\n- two"

    def test_collapses_blank_lines(self):
        assert clean_output("a\n\n\n\n\n\nb") == "a\n\n\nb"

    def test_empty(self):
        assert clean_output("") == ""
        assert clean_output("   \n ") == ""


class TestTransformer:
    def test_single_call_with_system_prompt(self, llm):
        out = Transformer(llm).transform("Summarize", "content", url="u", title="t")
        assert out == "Summary of the page."
        assert len(llm.calls) == 1
        assert llm.calls[0][0] == SYSTEM_PROMPT

    def test_llm_error_becomes_transformation_error(self, failing_llm):
        with pytest.raises(TransformationError, match="overloaded"):
            Transformer(failing_llm).transform("Summarize", "content")
        assert len(failing_llm.calls) == 1

    def test_empty_output(self, make_llm):
        with pytest.raises(TransformationError):
            Transformer(make_llm(reply="---\ntitle: x\n---\n")).transform("Summarize", "content")

    def test_long_content_truncated(self, make_llm):
        llm = make_llm()
        paragraph = "word " * 200 + "\n\n"
        Transformer(llm).transform("Summarize", paragraph * 1000)
        _, user_prompt = llm.calls[0]
        assert "[Content truncated to fit context window]" in user_prompt
        assert len(user_prompt) < len(paragraph * 1000)

    def test_short_content_untouched(self, llm):
        Transformer(llm).transform("Summarize", "short body")
        assert "truncated" not in llm.calls[0][1]

    def test_non_llm_errors_propagate(self, make_llm):
        with pytest.raises(RuntimeError):
            Transformer(make_llm(error=RuntimeError("bug"))).transform("p", "c")


def test_llm_error_is_not_retried(make_llm):
    llm = make_llm(error=LLMError("rate limited"))
    with pytest.raises(TransformationError):
        Transformer(llm).transform("p", "c")
    assert len(llm.calls) == 1

import logging

from web2journal.matcher import find_matching_patterns, match_pattern
from web2journal.models import ContentPattern


def make(pid, url_pattern, enabled=True):
    return ContentPattern(id=pid, name=pid, url_pattern=url_pattern, prompt="p", enabled=enabled)


class TestMatchPattern:
    def test_earliest_pattern_wins(self):
        a = make("A", r"foo")
        b = make("B", r".*\.com")
        assert match_pattern("https://foo.com", [a, b]) is a
        assert match_pattern("https://foo.com", [b, a]) is b

    def test_no_match_returns_none(self):
        assert match_pattern("https://example.org", [make("A", r"github\.com")]) is None

    def test_empty_pattern_list(self):
        assert match_pattern("https://example.org", []) is None

    def test_disabled_pattern_never_matches(self):
        disabled = make("A", r".*", enabled=False)
        assert match_pattern("https://anything.example", [disabled]) is None

    def test_disabled_pattern_skipped_in_favour_of_later(self):
        disabled = make("A", r"foo", enabled=False)
        b = make("B", r"foo")
        assert match_pattern("https://foo.com", [disabled, b]) is b

    def test_search_is_not_anchored(self):
        p = make("A", r"issues/\d+")
        assert match_pattern("https://github.com/org/repo/issues/42", [p]) is p

    def test_author_controls_anchoring(self):
        p = make("A", r"^https://example\.com/$")
        assert match_pattern("https://example.com/", [p]) is p
        assert match_pattern("https://example.com/page", [p]) is None

    def test_invalid_pattern_does_not_block_others(self, caplog):
        broken = make("broken", r"([unclosed")
        good = make("good", r"example")
        with caplog.at_level(logging.WARNING, logger="web2journal.matcher"):
            assert match_pattern("https://example.com", [broken, good]) is good
        assert "broken" in caplog.text

    def test_invalid_pattern_never_matches(self):
        assert match_pattern("([unclosed", [make("broken", r"([unclosed")]) is None


class TestFindMatchingPatterns:
    def test_returns_all_matches_in_order(self):
        a = make("A", r"foo")
        b = make("B", r"nomatch")
        c = make("C", r"\.com")
        assert find_matching_patterns("https://foo.com", [a, b, c]) == [a, c]

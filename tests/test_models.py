import pytest

from web2journal.exceptions import ErrorKind, PatternDisabledError
from web2journal.models import (
    BrowserVisit,
    CaptureFailure,
    CaptureRequest,
    CaptureResult,
    CaptureSuccess,
    ContentPattern,
    ExtractedContent,
    parse_timestamp,
)


class TestCaptureRequest:
    def test_build_from_extraction(self):
        pattern = ContentPattern(id="p1", name="n", url_pattern="x", prompt="y")
        extracted = ExtractedContent(title="T", main_content="Body", metadata={"author": "Dana"})
        request = CaptureRequest.build("https://a.io", extracted, pattern)
        assert request.to_dict() == {
            "url": "https://a.io", "title": "T", "content": "Body", "patternId": "p1",
            "metadata": {"author": "Dana"},
        }

    def test_from_dict(self):
        request = CaptureRequest.from_dict(
            {"url": "u", "title": "", "content": "c", "patternId": "p"})
        assert request.pattern_id == "p"
        assert request.title == ""

    @pytest.mark.parametrize("body", [
        None,
        [],
        {"url": "u", "title": "t", "content": "c"},
        {"url": "u", "title": "t", "content": 3, "patternId": "p"},
        {"url": "", "title": "t", "content": "c", "patternId": "p"},
        {"url": "u", "title": "t", "content": "c", "patternId": ""},
        {"url": "u", "title": "t", "content": "c", "patternId": "p", "metadata": ["x"]},
        {"url": "u", "title": "t", "content": "c", "patternId": "p", "metadata": {"n": 1}},
    ])
    def test_from_dict_rejects(self, body):
        with pytest.raises(ValueError):
            CaptureRequest.from_dict(body)


class TestCaptureResult:
    def test_success_wire_shape(self):
        assert CaptureSuccess(entry_id="e1", processed_content="x").to_dict() == {
            "success": True, "entryId": "e1", "processedContent": "x",
        }

    def test_failure_from_exception(self):
        failure = CaptureFailure.from_exception(PatternDisabledError("off"))
        assert failure.to_dict() == {
            "success": False, "error": "off", "errorKind": "pattern_disabled",
        }

    def test_plain_exception_is_invalid_request(self):
        assert CaptureFailure.from_exception(ValueError("x")).kind is ErrorKind.INVALID_REQUEST

    def test_parse_success(self):
        result = CaptureResult.from_dict({"success": True, "entryId": "e1"})
        assert result.success
        assert result.processed_content == ""

    def test_parse_failure_with_unknown_kind(self):
        result = CaptureResult.from_dict({"success": False, "error": "x", "errorKind": "new_kind"})
        assert not result.success
        assert result.kind is ErrorKind.INVALID_REQUEST

    @pytest.mark.parametrize("body", [{}, {"success": True}, "ok", None])
    def test_parse_rejects_malformed(self, body):
        with pytest.raises(ValueError):
            CaptureResult.from_dict(body)

    def test_failure_has_no_entry_id(self):
        assert not hasattr(CaptureFailure(error="x"), "entry_id")


class TestContentPattern:
    def test_with_updates_keeps_identity(self):
        p = ContentPattern(id="p1", name="a", url_pattern="x", prompt="y")
        updated = p.with_updates(name="b", id="other")
        assert updated.id == "p1"
        assert updated.created_at == p.created_at
        assert updated.name == "b"

    def test_snapshot(self):
        p = ContentPattern(id="p1", name="a", url_pattern="x", prompt="y")
        assert set(p.snapshot()) == {"name", "urlPattern", "prompt", "updatedAt"}


def test_parse_timestamp_naive_is_utc():
    assert parse_timestamp("2024-01-01T00:00:00").utcoffset().total_seconds() == 0


class TestBrowserVisit:
    BODY = {"url": "https://a.io", "title": "A", "visitedAt": "2024-06-03T09:00:00.000Z",
            "duration": 12.5}

    def test_from_dict(self):
        visit = BrowserVisit.from_dict(dict(self.BODY, ogp={"title": "OG"}))
        assert visit.visited_at.year == 2024
        assert visit.duration == 12.5
        assert visit.display_title == "OG"

    def test_display_title_falls_back(self):
        assert BrowserVisit.from_dict(self.BODY).display_title == "A"

    @pytest.mark.parametrize("changes", [
        {"duration": True},
        {"duration": -1},
        {"visitedAt": "yesterday"},
        {"ogp": "x"},
        {"title": ""},
    ])
    def test_rejects(self, changes):
        with pytest.raises(ValueError):
            BrowserVisit.from_dict(dict(self.BODY, **changes))

import pytest

from web2journal.exceptions import DispatchInProgressError
from web2journal.models import CaptureFailure, CaptureRequest, CaptureSuccess, ContentPattern
from web2journal.state_machine import PageProcessingContext, PageState

ISSUES = ContentPattern(id="p-issues", name="Issues", url_pattern=r"github\.com/.+/issues/\d+",
                        prompt="Summarize the issue")
PATTERNS = [ISSUES]

PAGE1 = "https://github.com/org/repo/issues/1"
PAGE2 = "https://github.com/org/repo/issues/2"


def request_for(url):
    return CaptureRequest(url=url, title="t", content="body", pattern_id=ISSUES.id)


def dispatching(url=PAGE1):
    ctx = PageProcessingContext()
    ctx.navigate(url)
    plan = ctx.evaluate(True, PATTERNS)
    ctx.begin_dispatch(request_for(plan.url))
    return ctx


class TestNavigate:
    def test_starts_idle(self):
        ctx = PageProcessingContext()
        assert ctx.state is PageState.IDLE
        assert ctx.current_url is None
        assert ctx.processed is False

    def test_new_url_resets_processed(self):
        ctx = PageProcessingContext()
        ctx.navigate(PAGE1)
        ctx.evaluate(True, PATTERNS)
        assert ctx.processed is True
        assert ctx.navigate(PAGE2) is True
        assert ctx.processed is False
        assert ctx.state is PageState.NAVIGATED_NEW

    def test_same_url_is_noop(self):
        ctx = PageProcessingContext()
        ctx.navigate(PAGE1)
        ctx.evaluate(True, PATTERNS)
        state = ctx.state
        assert ctx.navigate(PAGE1) is False
        assert ctx.processed is True
        assert ctx.state is state


class TestEvaluate:
    def test_match_commits_processed_before_dispatch(self):
        ctx = PageProcessingContext(PAGE1)
        plan = ctx.evaluate(True, PATTERNS)
        assert plan.url == PAGE1
        assert plan.pattern is ISSUES
        assert ctx.processed is True
        assert ctx.state is PageState.MATCHING

    def test_no_match_returns_to_idle_unprocessed(self):
        ctx = PageProcessingContext("https://example.com/")
        assert ctx.evaluate(True, PATTERNS) is None
        assert ctx.state is PageState.IDLE
        assert ctx.processed is False

    def test_auto_processing_off_never_plans(self):
        ctx = PageProcessingContext(PAGE1)
        assert ctx.evaluate(False, PATTERNS) is None
        assert ctx.state is PageState.IDLE
        assert ctx.processed is False

    def test_disabled_pattern_never_matches(self):
        ctx = PageProcessingContext(PAGE1)
        disabled = ISSUES.with_updates(enabled=False)
        assert ctx.evaluate(True, [disabled]) is None

    def test_only_acts_after_navigation(self):
        ctx = PageProcessingContext(PAGE1)
        ctx.evaluate(True, PATTERNS)
        assert ctx.evaluate(True, PATTERNS) is None
        assert ctx.state is PageState.MATCHING

    def test_at_most_one_plan_per_page_view(self):
        ctx = PageProcessingContext()
        plans = []
        for _ in range(5):
            ctx.navigate(PAGE1)
            plans.append(ctx.evaluate(True, PATTERNS))
        assert len([p for p in plans if p is not None]) == 1


class TestDispatch:
    def test_begin_dispatch_sets_in_flight(self):
        ctx = dispatching()
        assert ctx.in_flight == PAGE1
        assert ctx.state is PageState.DISPATCHING

    def test_second_dispatch_rejected_while_in_flight(self):
        ctx = dispatching()
        with pytest.raises(DispatchInProgressError):
            ctx.begin_dispatch(request_for(PAGE1))

    def test_complete_returns_to_idle(self):
        ctx = dispatching()
        assert ctx.complete(PAGE1, CaptureSuccess(entry_id="e1")) is True
        assert ctx.in_flight is None
        assert ctx.state is PageState.IDLE
        assert ctx.processed is True

    def test_failure_keeps_processed(self):
        ctx = dispatching()
        ctx.complete(PAGE1, CaptureFailure(error="timeout"))
        assert ctx.processed is True
        ctx.navigate(PAGE1)
        assert ctx.evaluate(True, PATTERNS) is None

    def test_navigation_during_dispatch_starts_new_view(self):
        ctx = dispatching()
        assert ctx.navigate(PAGE2) is True
        assert ctx.in_flight == PAGE1
        assert ctx.state is PageState.NAVIGATED_NEW

    def test_stale_result_not_surfaced(self):
        ctx = dispatching()
        ctx.navigate(PAGE2)
        plan = ctx.evaluate(True, PATTERNS)
        assert plan.url == PAGE2

        assert ctx.complete(PAGE1, CaptureSuccess(entry_id="e1")) is False
        assert ctx.in_flight is None
        assert ctx.current_url == PAGE2
        assert ctx.state is PageState.MATCHING
        assert ctx.processed is True

    def test_abandon_keeps_processed(self):
        ctx = PageProcessingContext(PAGE1)
        ctx.evaluate(True, PATTERNS)
        assert ctx.abandon(PAGE1) is True
        assert ctx.state is PageState.IDLE
        assert ctx.processed is True

    def test_abandon_stale(self):
        ctx = PageProcessingContext(PAGE1)
        ctx.evaluate(True, PATTERNS)
        ctx.navigate(PAGE2)
        assert ctx.abandon(PAGE1) is False
        assert ctx.state is PageState.NAVIGATED_NEW


class TestReprocess:
    def test_reprocess_makes_page_eligible_again(self):
        ctx = dispatching()
        ctx.complete(PAGE1, CaptureFailure(error="boom"))
        assert ctx.request_reprocess() is True
        assert ctx.processed is False
        assert ctx.evaluate(True, PATTERNS) is not None

    def test_reprocess_refused_while_dispatching(self):
        ctx = dispatching()
        assert ctx.request_reprocess() is False
        assert ctx.state is PageState.DISPATCHING

    def test_reprocess_without_page(self):
        assert PageProcessingContext().request_reprocess() is False

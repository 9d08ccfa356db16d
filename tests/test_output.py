"""Tests for magi/output.py."""

from magi.client import ReviewOutcome
from magi.models import Decision, ReviewerState
from magi.output import _decision_label, _preview, console, print_result, print_review_summary
from magi.session import ReviewSession
from tests.conftest import BALTHASAR, MELCHIOR, PANEL


def test_preview_truncates_long_content():
    assert _preview("one two three", words=2) == "one two..."
    assert _preview("one two", words=2) == "one two"


def test_decision_label():
    assert _decision_label(ReviewerState()).plain == "PENDING"
    assert _decision_label(ReviewerState(decision=Decision.POSITIVE)).plain == "POSITIVE"


def test_print_review_summary_lists_every_reviewer():
    session = ReviewSession("req-1", PANEL)
    session.record(MELCHIOR.agent_id, "POSITIVE, clean code", "completed")
    session.record(BALTHASAR.agent_id, "NEGATIVE, no tests", "completed")
    outcome = ReviewOutcome(passed=False, result=None, session=session, code="x = 1")

    with console.capture() as capture:
        print_review_summary(1, outcome)
    text = capture.get()

    assert "Melchior" in text
    assert "Balthasar" in text
    assert "Casper" in text
    assert "continuing improvements" in text


def test_print_result_shows_code():
    with console.capture() as capture:
        print_result("print('hi')")
    assert "print('hi')" in capture.get()


def test_no_retry_notice_after_last_attempt():
    outcome = ReviewOutcome(passed=False, result=Decision.NEGATIVE, session=ReviewSession("req-1", PANEL), code="x = 1")

    with console.capture() as capture:
        print_review_summary(3, outcome, max_attempts=3)
    assert "continuing improvements" not in capture.get()

    with console.capture() as capture:
        print_review_summary(2, outcome, max_attempts=3)
    assert "continuing improvements" in capture.get()

"""Tests for magi/tool.py."""

import json

import pytest

from magi.client import ReviewOutcome
from magi.errors import ToolCallError
from magi.models import Decision
from magi.session import ReviewSession
from magi.tool import CODE_REVIEW_TOOL, outcome_json, outcome_payload, parse_arguments
from tests.conftest import MELCHIOR, PANEL


def test_tool_schema_requires_code():
    assert CODE_REVIEW_TOOL.name == "code_review"
    assert CODE_REVIEW_TOOL.parameters["required"] == ["code"]
    assert set(CODE_REVIEW_TOOL.parameters["properties"]) == {"user_input", "code"}


def test_parse_arguments():
    assert parse_arguments("code_review", {"user_input": "hello", "code": "x = 1"}) == ("hello", "x = 1")


@pytest.mark.parametrize("name, arguments", [
    ("other_tool", {"code": "x"}),
    ("code_review", {"user_input": "hello"}),
    ("code_review", {"code": 42}),
    ("code_review", {"code": "x", "user_input": ["a"]}),
    ("code_review", None),
    ("code_review", ["x = 1"]),
    ("code_review", "x = 1"),
])
def test_parse_arguments_rejects_bad_calls(name, arguments):
    with pytest.raises(ToolCallError):
        parse_arguments(name, arguments)


def test_outcome_payload_shape():
    session = ReviewSession("req-1", PANEL)
    session.record(MELCHIOR.agent_id, "NEGATIVE", "completed")
    outcome = ReviewOutcome(
        passed=False,
        result=None,
        session=session,
        code="x = 1",
        reviews=["Melchior: NEGATIVE"],
    )
    payload = outcome_payload(outcome)
    assert payload["result"] == ""
    assert payload["passed"] is False
    assert payload["code"] == "x = 1"
    assert payload["reviews"] == ["Melchior: NEGATIVE"]
    assert payload["magi_state"]["melchior"]["decision"] == "NEGATIVE"


def test_outcome_json_is_parseable():
    outcome = ReviewOutcome(True, Decision.POSITIVE, ReviewSession("r", PANEL), "print('hi')", [])
    assert json.loads(outcome_json(outcome))["result"] == "POSITIVE"

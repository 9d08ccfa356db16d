"""The code_review tool as exposed to completion providers."""

import json
from typing import Any

from magi.client import ReviewOutcome
from magi.errors import ToolCallError
from magi.models import ToolSpec

TOOL_NAME = "code_review"

CODE_REVIEW_TOOL = ToolSpec(
    name=TOOL_NAME,
    description="Review generated code through a panel of expert reviewers",
    parameters={
        "type": "object",
        "properties": {
            "user_input": {
                "type": "string",
                "description": "The user input to the code review tool",
            },
            "code": {
                "type": "string",
                "description": "The code to be reviewed",
            },
        },
        "required": ["code"],
    },
)


def parse_arguments(name: str, arguments: Any) -> tuple[str, str]:
    """Validate a code_review call. Returns (user_input, code)."""
    if name != TOOL_NAME:
        raise ToolCallError(f"Unknown tool: {name}")
    if not isinstance(arguments, dict):
        raise ToolCallError(f"code_review arguments must be an object, got {type(arguments).__name__}")
    code = arguments.get("code")
    if not isinstance(code, str):
        raise ToolCallError("code_review call is missing the 'code' argument")
    user_input = arguments.get("user_input") or ""
    if not isinstance(user_input, str):
        raise ToolCallError("code_review 'user_input' must be a string")
    return user_input, code


def outcome_payload(outcome: ReviewOutcome) -> dict[str, Any]:
    return {
        "reviews": list(outcome.reviews),
        "result": outcome.result.value if outcome.result else "",
        "passed": outcome.passed,
        "magi_state": outcome.session.to_dict(),
        "code": outcome.code,
    }


def outcome_json(outcome: ReviewOutcome) -> str:
    return json.dumps(outcome_payload(outcome), ensure_ascii=False)

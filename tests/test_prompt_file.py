"""Unit tests for magi/prompt_file.py."""

import textwrap
from pathlib import Path

from magi.prompt_file import parse_prompt_file


def test_parse_prompt_file_no_frontmatter(tmp_path: Path) -> None:
    """File without frontmatter returns full content and empty metadata."""
    f = tmp_path / "task.md"
    f.write_text("Write a function that reverses a string.", encoding="utf-8")
    prompt, metadata = parse_prompt_file(f)
    assert prompt == "Write a function that reverses a string."
    assert metadata == {}


def test_parse_prompt_file_with_frontmatter(tmp_path: Path) -> None:
    """File with frontmatter returns metadata keys and body content."""
    f = tmp_path / "task.md"
    f.write_text(
        textwrap.dedent("""\
            ---
            provider: claude
            max_attempts: 2
            ---
            Write a CLI that counts words in a file.
        """),
        encoding="utf-8",
    )
    prompt, metadata = parse_prompt_file(f)
    assert prompt == "Write a CLI that counts words in a file."
    assert metadata["provider"] == "claude"
    assert metadata["max_attempts"] == 2

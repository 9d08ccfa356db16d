"""Markdown prompt files with optional YAML frontmatter."""

from pathlib import Path

import frontmatter


def parse_prompt_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown prompt file.

    Returns:
        (prompt, metadata) where prompt is the body text and metadata may
        carry `provider` (str) and `max_attempts` (int).
        If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)

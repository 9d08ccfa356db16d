"""Rich console output for review outcomes and accepted code."""

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.syntax import Syntax
from rich.text import Text

from magi.client import ReviewOutcome
from magi.models import Decision, ReviewerState

console = Console(legacy_windows=False)

_DECISION_STYLES = {
    Decision.POSITIVE: "green",
    Decision.NEGATIVE: "red",
}


def _preview(content: str, words: int = 50) -> str:
    """Return first N words of reviewer content."""
    all_words = content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _decision_label(state: ReviewerState) -> Text:
    if state.decision is None:
        return Text("PENDING", style="yellow")
    return Text(state.decision.value, style=_DECISION_STYLES[state.decision])


def print_review_summary(attempt: int, outcome: ReviewOutcome, max_attempts: int | None = None) -> None:
    """Print one panel per reviewer plus the session verdict.

    The retry notice is left out after the last allowed attempt.
    """
    verdict = outcome.result.value if outcome.result else "UNDECIDED"
    style = "green" if outcome.passed else "red"
    console.print(Rule(f"[bold cyan]Review {attempt}[/bold cyan] [{style}]{verdict}[/{style}]"))
    for slot in outcome.session.panel:
        state = outcome.session.states[slot.name]
        console.print(
            Panel(
                _preview(state.content) or "[dim]no content[/dim]",
                title=f"[bold]{slot.name.title()}[/bold]",
                subtitle=_decision_label(state),
                border_style="dim",
            )
        )
    if not outcome.passed and (max_attempts is None or attempt < max_attempts):
        console.print("[yellow]Code review failed, continuing improvements...[/yellow]")


def print_result(code: str, language: str = "python") -> None:
    """Print the accepted code."""
    console.print(Rule("[bold green]Result[/bold green]"))
    console.print(Syntax(code, language, word_wrap=True))

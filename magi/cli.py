"""Click CLI: loads config, builds provider and review client, runs the loop."""

import asyncio
import dataclasses
import functools
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, GatewayConfig, load_config
from magi.client import ReviewClient
from magi.errors import ReviewError
from magi.orchestrator import CodeAgent
from magi.output import print_result, print_review_summary
from magi.prompt_file import parse_prompt_file
from magi.providers.anthropic import AnthropicProvider
from magi.providers.base import CompletionProvider, ProviderError
from magi.providers.gemini import GeminiProvider
from magi.providers.openai_provider import OpenAIProvider
from magi.transport import WebSocketConnector

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[CompletionProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}

_EXIT_WORDS = {"exit", "quit"}
_SEPARATOR = "-" * 19


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, name: str) -> CompletionProvider:
    """Instantiate the named provider. Raises ProviderError if unusable."""
    if name not in config.models:
        raise ProviderError(name, f"Unknown provider; configured: {', '.join(sorted(config.models))}")
    if name not in config.available_providers:
        raise ProviderError(name, f"No API key set ({config.models[name].api_key_env})")
    model_cfg = config.models[name]
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise ProviderError(name, f"Unsupported sdk '{model_cfg.sdk}'")
    return PROVIDER_CLASSES[model_cfg.sdk](model_cfg, config.prompts.system)


def _effective_gateway(gateway: GatewayConfig, review_url: str | None) -> GatewayConfig:
    return dataclasses.replace(gateway, url=review_url) if review_url else gateway


def _resolve_attempts(cli_value: int | None, meta: dict, default: int) -> int:
    """CLI flag > frontmatter > config default. Raises ValueError on a bad frontmatter value."""
    if cli_value is not None:
        return cli_value
    if "max_attempts" not in meta:
        return default
    try:
        return int(meta["max_attempts"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid max_attempts in prompt file: {meta['max_attempts']!r}") from exc


def _build_agent(config: AppConfig, provider: CompletionProvider, gateway: GatewayConfig, max_attempts: int) -> CodeAgent:
    reviewer = ReviewClient(WebSocketConnector(gateway), gateway)
    return CodeAgent(
        provider=provider,
        reviewer=reviewer,
        prompts=config.prompts,
        max_attempts=max_attempts,
        on_review=functools.partial(print_review_summary, max_attempts=max_attempts),
    )


async def _run_once(agent: CodeAgent, prompt: str) -> bool:
    """Run one request and print the result. Returns False on a fatal error."""
    try:
        code = await agent.run(prompt)
    except (ProviderError, ReviewError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return False
    print_result(code)
    agent.reset()
    return True


async def _interactive(agent: CodeAgent) -> None:
    console.print("[bold cyan]MAGI System Interactive Mode[/bold cyan]")
    console.print("Type 'exit' to quit")
    console.print(_SEPARATOR)
    while True:
        try:
            prompt = console.input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if prompt.lower() in _EXIT_WORDS:
            break
        if not prompt:
            continue
        await _run_once(agent, prompt)
        console.print(_SEPARATOR)


@click.command()
@click.argument("prompt", required=False)
@click.option("--file", "prompt_file", type=click.Path(exists=True), help="Read the prompt from a .md file")
@click.option("--provider", default=None, help="Completion provider (default: from config)")
@click.option("--max-attempts", default=None, type=int, help="Maximum generate/review attempts")
@click.option("--review-url", default=None, help="Review gateway WebSocket URL (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    prompt: str | None,
    prompt_file: str | None,
    provider: str | None,
    max_attempts: int | None,
    review_url: str | None,
    verbose: bool,
) -> None:
    """MAGI -- generate code and have it approved by a three-reviewer panel.

    \b
    Examples:
      python -m magi.cli "hello world program in python"
      python -m magi.cli --file task.md --max-attempts 3
      python -m magi.cli --provider claude
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    meta: dict = {}
    if prompt_file:
        prompt, meta = parse_prompt_file(Path(prompt_file))

    # CLI flag > frontmatter > config default
    provider_name = provider or meta.get("provider") or config.defaults.provider

    try:
        effective_attempts = _resolve_attempts(max_attempts, meta, config.defaults.max_attempts)
        completion_provider = _build_provider(config, str(provider_name))
        agent = _build_agent(
            config,
            completion_provider,
            _effective_gateway(config.gateway, review_url),
            effective_attempts,
        )
    except (ProviderError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    logger.info("Using provider %s (%s)", completion_provider.name(), completion_provider.model_string())

    if prompt:
        ok = asyncio.run(_run_once(agent, prompt))
        sys.exit(0 if ok else 1)

    asyncio.run(_interactive(agent))


if __name__ == "__main__":
    main()

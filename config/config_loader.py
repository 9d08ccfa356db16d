"""Load settings.yaml into typed dataclasses. Validates the reviewer panel at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from magi.models import ReviewerSlot

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_PANEL_SIZE = 3


@dataclass(frozen=True)
class GatewayConfig:
    url: str
    app_id: str
    app_secret: str
    reviewers: tuple[ReviewerSlot, ...]
    token_length: int = 10
    open_timeout_sec: float = 10.0
    read_timeout_sec: float = 120.0
    max_session_sec: float = 600.0


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    system: str
    retry: str


@dataclass
class DefaultsConfig:
    provider: str
    max_attempts: int


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    gateway: GatewayConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def _env_or(env_name: str | None, fallback: str | None) -> str | None:
    if env_name:
        value = os.environ.get(env_name, "").strip()
        if value:
            return value
    return fallback


def _load_panel(reviewers_raw: dict) -> tuple[ReviewerSlot, ...]:
    panel = tuple(ReviewerSlot(name=str(name), agent_id=str(agent_id)) for name, agent_id in reviewers_raw.items())
    if len(panel) != _PANEL_SIZE:
        raise ValueError(f"Reviewer panel must have exactly {_PANEL_SIZE} reviewers, got {len(panel)}")
    if len({slot.agent_id for slot in panel}) != _PANEL_SIZE:
        raise ValueError("Reviewer agent ids must be distinct")
    return panel


def _load_gateway(raw: dict, reviewers_raw: dict) -> GatewayConfig:
    url = _env_or(raw.get("url_env"), raw["url"])
    app_secret = _env_or(raw.get("app_secret_env"), raw.get("app_secret", ""))
    if not app_secret:
        logger.warning("No gateway secret configured; set %s in .env", raw.get("app_secret_env"))
    return GatewayConfig(
        url=str(url),
        app_id=str(raw["app_id"]),
        app_secret=str(app_secret),
        reviewers=_load_panel(reviewers_raw),
        token_length=int(raw.get("token_length", 10)),
        open_timeout_sec=float(raw.get("open_timeout_sec", 10)),
        read_timeout_sec=float(raw.get("read_timeout_sec", 120)),
        max_session_sec=float(raw.get("max_session_sec", 600)),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if the
    reviewer panel is not exactly three distinct reviewers.
    Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        max_attempts=int(defaults_raw["max_attempts"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        system=str(prompts_raw["system"]).strip(),
        retry=str(prompts_raw["retry"]).strip(),
    )

    gateway = _load_gateway(raw["gateway"], raw["reviewers"])

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=_env_or(model_raw.get("base_url_env"), model_raw.get("base_url")),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        gateway=gateway,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )

"""Runtime configuration: defaults, YAML config file, environment, CLI overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .summaries.errors import ConfigurationError

DEFAULT_MODEL = "deepseek/deepseek-chat-v3-0324:free"
DEFAULT_BACKEND_URL = "http://localhost:5000/api"
DEFAULT_AI_BASE_URL = "https://openrouter.ai/api/v1"

_ENV_VARS = {
    "backend_url": "AI_SUMMARIZER_BACKEND_URL",
    "model": "AI_SUMMARIZER_MODEL",
    "ai_base_url": "OPENROUTER_API_BASE",
    "referer": "OPENROUTER_REFERER",
    "title": "OPENROUTER_TITLE",
    "session_cookie": "AI_SUMMARIZER_SESSION",
    "login_url": "AI_SUMMARIZER_LOGIN_URL",
    "dry_run": "AI_SUMMARIZER_DRY_RUN",
}
_TRUTHY = {"1", "true", "yes", "on"}


def get_default_config_path() -> Path:
    return Path("~/.config/ai-summarizer/config.yaml").expanduser()


def get_openrouter_key_path() -> Path:
    return Path("~/.config/openrouter/key").expanduser()


def load_openrouter_api_key(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if env is None else env
    env_key = env.get("OPENROUTER_API_KEY")
    if env_key and env_key.strip():
        return env_key.strip()

    try:
        contents = get_openrouter_key_path().read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return contents or None


@dataclass(frozen=True)
class SummarizerConfig:
    backend_url: str = DEFAULT_BACKEND_URL
    model: str = DEFAULT_MODEL
    ai_base_url: str = DEFAULT_AI_BASE_URL
    api_key: Optional[str] = None
    referer: Optional[str] = "https://github.com/ai-summarizer/ai-summarizer"
    title: Optional[str] = "ai-summarizer"
    session_cookie: Optional[str] = None
    login_url: str = "/login"
    dry_run: bool = False
    ai_timeout: float = 60.0
    backend_timeout: float = 30.0
    max_length: int = 100


def read_config_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    known = {f.name for f in fields(SummarizerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown settings in {path}: {', '.join(unknown)}")
    return data


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> SummarizerConfig:
    """Merge defaults, the YAML file, the environment and explicit overrides, in that order."""

    env = os.environ if env is None else env
    config = SummarizerConfig()

    values: Dict[str, Any] = dict(read_config_file(path or get_default_config_path()))
    for name, var in _ENV_VARS.items():
        raw = env.get(var)
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    env_key = load_openrouter_api_key(env)
    if env_key:
        values["api_key"] = env_key
    for name, value in (overrides or {}).items():
        if value is not None:
            values[name] = value

    if isinstance(values.get("dry_run"), str):
        values["dry_run"] = values["dry_run"].lower() in _TRUTHY
    try:
        for name in ("ai_timeout", "backend_timeout"):
            if name in values:
                values[name] = float(values[name])
        if "max_length" in values:
            values["max_length"] = int(values["max_length"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
    if values.get("max_length", config.max_length) < 1:
        raise ConfigurationError("max_length must be a positive integer")

    return replace(config, **values)

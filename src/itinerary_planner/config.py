"""Configuration loading and validation."""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

DEFAULT_CONFIG_PATH = "~/.itinerary-planner/config.yaml"


class OpenAIConfig(BaseModel):
    """Default commercial provider (OpenAI chat completions)."""

    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    base_url: str = ""  # Empty = api.openai.com
    temperature: float = 0.6
    max_tokens: int = 1500
    timeout_seconds: float = 15.0
    timeout_step_seconds: float = 0.0  # Added to the deadline on each retry
    max_retries: int = 2
    backoff_base_seconds: float = 0.5

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class AlternateProviderConfig(BaseModel):
    """Any OpenAI-compatible HTTP endpoint (DashScope, self-hosted, ...)."""

    api_url: str = ""
    api_key: str = ""
    api_key_header: str = "Authorization"  # Non-Authorization headers carry the raw key
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.6
    max_tokens: int = 1500
    timeout_seconds: float = 60.0
    timeout_step_seconds: float = 5.0
    max_retries: int = 2
    backoff_base_seconds: float = 0.7

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key)


class GenerationConfig(BaseModel):
    recovery_max_retries: int = 2  # Retry budget for the single recovery hop
    debug_preview_chars: int = 20000
    log_preview_chars: int = 2000
    error_detail_chars: int = 300


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    auth_token: str = ""  # Bearer token for API access (empty = no auth)


class StorageConfig(BaseModel):
    enabled: bool = True
    data_file: str = "~/.itinerary-planner/data.yaml"


class PlannerConfig(BaseModel):
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    alternate: AlternateProviderConfig = Field(default_factory=AlternateProviderConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR_NAME} with environment variable values."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, "")

    return re.sub(r"\$\{(\w+)\}", replacer, text)


def _env_int(name: str, default: int) -> int:
    """Integer env var; unset, unparseable or zero falls back to ``default``."""
    try:
        return int(os.environ.get(name, "")) or default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    """Float env var; unset, unparseable or zero falls back to ``default``."""
    try:
        return float(os.environ.get(name, "")) or default
    except ValueError:
        return default


def _config_from_env() -> PlannerConfig:
    """Build config from environment variables (for Docker/cloud deployment).

    Falls back to sane defaults when env vars are not set.
    """
    openai_defaults = OpenAIConfig()
    alt_defaults = AlternateProviderConfig()

    data_dir = os.environ.get("PLANNER_DATA_DIR", "")
    storage = StorageConfig()
    if data_dir:
        storage.data_file = str(Path(data_dir) / "data.yaml")

    return PlannerConfig(
        openai=OpenAIConfig(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            model=os.environ.get("OPENAI_MODEL", "") or openai_defaults.model,
            base_url=os.environ.get("OPENAI_BASE_URL", ""),
            timeout_seconds=_env_float(
                "OPENAI_TIMEOUT_SECONDS", openai_defaults.timeout_seconds
            ),
            max_retries=_env_int("OPENAI_MAX_RETRIES", openai_defaults.max_retries),
            backoff_base_seconds=_env_float(
                "OPENAI_BACKOFF_SECONDS", openai_defaults.backoff_base_seconds
            ),
        ),
        alternate=AlternateProviderConfig(
            api_url=os.environ.get("ALT_LLM_API_URL", ""),
            api_key=os.environ.get("ALT_LLM_API_KEY", ""),
            api_key_header=os.environ.get("ALT_LLM_API_KEY_HEADER", "")
            or alt_defaults.api_key_header,
            model=os.environ.get("ALT_LLM_MODEL", "") or alt_defaults.model,
            max_tokens=_env_int("ALT_LLM_MAX_TOKENS", alt_defaults.max_tokens),
            timeout_seconds=_env_float(
                "ALT_LLM_TIMEOUT_SECONDS", alt_defaults.timeout_seconds
            ),
            timeout_step_seconds=_env_float(
                "ALT_LLM_TIMEOUT_STEP_SECONDS", alt_defaults.timeout_step_seconds
            ),
            max_retries=_env_int("ALT_LLM_MAX_RETRIES", alt_defaults.max_retries),
            backoff_base_seconds=_env_float(
                "ALT_LLM_BACKOFF_SECONDS", alt_defaults.backoff_base_seconds
            ),
        ),
        server=ServerConfig(
            host=os.environ.get("PLANNER_HOST", "127.0.0.1"),
            port=_env_int("PLANNER_PORT", 3000),
            auth_token=os.environ.get("PLANNER_AUTH_TOKEN", ""),
        ),
        storage=storage,
    )


def load_config(path: str | Path | None = None) -> PlannerConfig:
    """Load config from YAML file, env vars, or defaults.

    Priority: config.yaml (with ${ENV} interpolation) > env vars > defaults.
    Raises ConfigError when the file is not valid YAML or does not match
    the config schema.
    """
    if path is None:
        path = Path(DEFAULT_CONFIG_PATH).expanduser()
    else:
        path = Path(path).expanduser()

    if not path.exists():
        return _config_from_env()

    raw_text = path.read_text()
    interpolated = _interpolate_env_vars(raw_text)
    try:
        data = yaml.safe_load(interpolated)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return PlannerConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {path}: expected a mapping at the top level")
    try:
        return PlannerConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def save_config(config: PlannerConfig, path: str | Path | None = None) -> Path:
    """Save config to YAML file."""
    if path is None:
        path = Path(DEFAULT_CONFIG_PATH).expanduser()
    else:
        path = Path(path).expanduser()

    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump()
    path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
    return path

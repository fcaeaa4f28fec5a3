"""Configuration loader — reads config.yaml, validates with Pydantic.

Secrets never live in the file: the LLM credential is read from the
environment variable named by ``llm.api_key_env`` when the file is loaded.
The resulting ``EngineConfig`` is handed to ``create_app`` and lives on
``app.state``; there is no module-level cache.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator

from testgen.prompt import DEFAULT_SYSTEM_PROMPT, DEFAULT_USER_TEMPLATE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

# Environment variables that override values from config.yaml
_ENV_OVERRIDES = {
    "TESTGEN_LLM_BASE_URL": ("llm", "base_url"),
    "TESTGEN_LLM_MODEL": ("llm", "model"),
    "TESTGEN_FORMATTER_URL": ("formatting", "remote_url"),
}


class LLMConfig(BaseModel):
    """The OpenAI-compatible chat completions provider."""

    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.3
    timeout: float | None = None  # None = transport default
    api_key_env: str = "GROQ_API_KEY"
    api_key: SecretStr | None = None

    @field_validator("base_url")
    @classmethod
    def must_have_base_url(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("llm.base_url must not be empty")
        return v.rstrip("/")


class FormattingConfig(BaseModel):
    """Order of the real formatters; the heuristic always runs last."""

    chain: list[Literal["local", "remote"]] = ["local", "remote"]
    remote_url: str | None = None
    timeout: float = 15.0

    @field_validator("chain")
    @classmethod
    def no_duplicates(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError(f"formatting.chain has duplicate entries: {v}")
        return v


class PromptConfig(BaseModel):
    system: str = DEFAULT_SYSTEM_PROMPT
    user: str = DEFAULT_USER_TEMPLATE

    @field_validator("user")
    @classmethod
    def must_render(cls, v: str) -> str:
        if "{description}" not in v:
            raise ValueError("prompt.user must contain a {description} placeholder")
        try:
            v.format(description="")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"prompt.user does not render: {e!r} (double literal braces as {{{{ }}}})"
            ) from e
        return v


class EngineConfig(BaseModel):
    """Top-level configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    formatting: FormattingConfig = Field(default_factory=FormattingConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    allowed_origins: list[str] = ["*"]


def _apply_env_overrides(raw: dict) -> dict:
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            raw[section] = {**(raw.get(section) or {}), key: value}
    return raw


def load_config(path: str | None = None) -> EngineConfig:
    """Read config.yaml from disk, apply environment overrides, resolve the
    credential, and validate."""
    path = path or os.environ.get("TESTGEN_CONFIG", DEFAULT_CONFIG_PATH)

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    raw = _apply_env_overrides(raw)

    llm = raw["llm"] = dict(raw.get("llm") or {})
    key_env = llm.get("api_key_env", LLMConfig.model_fields["api_key_env"].default)
    api_key = os.environ.get(key_env, "").strip()
    llm["api_key"] = api_key or None

    config = EngineConfig(**raw)
    logger.info(
        f"Loaded config from {config_file}: model={config.llm.model}, "
        f"chain={config.formatting.chain}"
    )
    return config

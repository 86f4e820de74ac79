"""Runtime configuration for attribute generation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from category_attributes.prompts import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT_TEMPLATE,
    SUBCATEGORY_PLACEHOLDER,
)

DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
API_KEY_FALLBACK_ENV = "OPENAI_API_KEY"


@dataclass(slots=True)
class OpenAiSettings:
    """Completion endpoint settings."""

    api_key: str | None = field(default=None, repr=False)
    model: str = DEFAULT_MODEL
    api_url: str = DEFAULT_API_URL
    temperature: float = 0.2
    request_timeout_seconds: float = 30.0


@dataclass(slots=True)
class PromptSettings:
    """Prompt text sent for each subcategory."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt_template: str = DEFAULT_USER_PROMPT_TEMPLATE


@dataclass(slots=True)
class GenerationSettings:
    """Fan-out and caching settings."""

    max_concurrency: int = 5
    cache_duration_minutes: int = 60

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_duration_minutes * 60.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    openai: OpenAiSettings = field(default_factory=OpenAiSettings)
    prompts: PromptSettings = field(default_factory=PromptSettings)
    generation: GenerationSettings = field(default_factory=GenerationSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for every value."""

        return cls(
            openai=OpenAiSettings(
                api_key=_env_str("CATEGORY_ATTRS_OPENAI_API_KEY"),
                model=_env_str("CATEGORY_ATTRS_OPENAI_MODEL") or DEFAULT_MODEL,
                api_url=_env_str("CATEGORY_ATTRS_OPENAI_API_URL") or DEFAULT_API_URL,
                temperature=_env_float("CATEGORY_ATTRS_OPENAI_TEMPERATURE", 0.2),
                request_timeout_seconds=_env_float(
                    "CATEGORY_ATTRS_OPENAI_TIMEOUT_SECONDS",
                    30.0,
                ),
            ),
            prompts=PromptSettings(
                system_prompt=(
                    _env_str("CATEGORY_ATTRS_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT
                ),
                user_prompt_template=(
                    _env_str("CATEGORY_ATTRS_USER_PROMPT_TEMPLATE")
                    or DEFAULT_USER_PROMPT_TEMPLATE
                ),
            ),
            generation=GenerationSettings(
                max_concurrency=_env_int("CATEGORY_ATTRS_MAX_CONCURRENCY", 5),
                cache_duration_minutes=_env_int("CATEGORY_ATTRS_CACHE_DURATION_MINUTES", 60),
            ),
        )

    def validate(self) -> None:
        """Raise ValueError when a configured value cannot be used."""

        if self.generation.max_concurrency <= 0:
            raise ValueError("CATEGORY_ATTRS_MAX_CONCURRENCY must be > 0.")
        if self.generation.cache_duration_minutes < 0:
            raise ValueError("CATEGORY_ATTRS_CACHE_DURATION_MINUTES must be >= 0.")
        if not 0.0 <= self.openai.temperature <= 2.0:
            raise ValueError("CATEGORY_ATTRS_OPENAI_TEMPERATURE must be between 0 and 2.")
        if self.openai.request_timeout_seconds <= 0:
            raise ValueError("CATEGORY_ATTRS_OPENAI_TIMEOUT_SECONDS must be > 0.")
        _validate_api_url(self.openai.api_url)
        if SUBCATEGORY_PLACEHOLDER not in self.prompts.user_prompt_template:
            raise ValueError(
                "CATEGORY_ATTRS_USER_PROMPT_TEMPLATE must contain the "
                f"{SUBCATEGORY_PLACEHOLDER} placeholder.",
            )


def _validate_api_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid CATEGORY_ATTRS_OPENAI_API_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {raw!r}") from error

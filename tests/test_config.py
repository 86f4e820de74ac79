from __future__ import annotations

import allure
import pytest

from category_attributes.config import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    GenerationSettings,
    OpenAiSettings,
    PromptSettings,
    Settings,
)
from category_attributes.prompts import DEFAULT_USER_PROMPT_TEMPLATE, render_user_prompt

pytestmark = [
    allure.epic("Attribute Generation"),
    allure.feature("Configuration"),
]


def test_from_env_uses_defaults_when_nothing_is_set() -> None:
    settings = Settings.from_env()

    assert settings.openai.api_key is None
    assert settings.openai.model == DEFAULT_MODEL
    assert settings.openai.api_url == DEFAULT_API_URL
    assert settings.openai.temperature == 0.2
    assert settings.generation.max_concurrency == 5
    assert settings.generation.cache_ttl_seconds == 3_600.0
    assert settings.prompts.user_prompt_template == DEFAULT_USER_PROMPT_TEMPLATE
    settings.validate()


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("CATEGORY_ATTRS_OPENAI_API_KEY", "sk-config")
    monkeypatch.setenv("CATEGORY_ATTRS_OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("CATEGORY_ATTRS_OPENAI_TEMPERATURE", "0.7")
    monkeypatch.setenv("CATEGORY_ATTRS_MAX_CONCURRENCY", "2")
    monkeypatch.setenv("CATEGORY_ATTRS_CACHE_DURATION_MINUTES", "5")
    monkeypatch.setenv("CATEGORY_ATTRS_USER_PROMPT_TEMPLATE", "Name: {SubcategoryName}")

    settings = Settings.from_env()

    assert settings.openai.api_key == "sk-config"
    assert settings.openai.model == "gpt-4o-mini"
    assert settings.openai.temperature == 0.7
    assert settings.generation.max_concurrency == 2
    assert settings.generation.cache_ttl_seconds == 300.0
    assert settings.prompts.user_prompt_template == "Name: {SubcategoryName}"


def test_blank_model_and_url_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CATEGORY_ATTRS_OPENAI_MODEL", "   ")
    monkeypatch.setenv("CATEGORY_ATTRS_OPENAI_API_URL", "")

    settings = Settings.from_env()

    assert settings.openai.model == DEFAULT_MODEL
    assert settings.openai.api_url == DEFAULT_API_URL


def test_from_env_rejects_malformed_numbers(monkeypatch) -> None:
    monkeypatch.setenv("CATEGORY_ATTRS_MAX_CONCURRENCY", "many")

    with pytest.raises(ValueError, match="CATEGORY_ATTRS_MAX_CONCURRENCY"):
        Settings.from_env()


def test_api_key_is_hidden_from_repr() -> None:
    assert "sk-secret" not in repr(OpenAiSettings(api_key="sk-secret"))


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(generation=GenerationSettings(max_concurrency=0)), "MAX_CONCURRENCY"),
        (Settings(generation=GenerationSettings(cache_duration_minutes=-1)), "CACHE_DURATION"),
        (Settings(openai=OpenAiSettings(temperature=3.0)), "TEMPERATURE"),
        (Settings(openai=OpenAiSettings(request_timeout_seconds=0)), "TIMEOUT_SECONDS"),
        (Settings(openai=OpenAiSettings(api_url="ftp://example.com")), "API_URL"),
        (Settings(prompts=PromptSettings(user_prompt_template="no placeholder")), "placeholder"),
    ],
)
def test_validate_rejects_unusable_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_render_user_prompt_keeps_json_braces() -> None:
    prompt = render_user_prompt(DEFAULT_USER_PROMPT_TEMPLATE, "Laptops")

    assert prompt.startswith('Subcategory name: "Laptops"')
    assert '"attributes": [' in prompt
    assert "{SubcategoryName}" not in prompt

"""Completion gateways for the attribute generator."""

from category_attributes.completion.base import CompletionGateway, ConfigurableGateway
from category_attributes.completion.openai_client import OpenAiCompletionGateway

__all__ = ["CompletionGateway", "ConfigurableGateway", "OpenAiCompletionGateway"]

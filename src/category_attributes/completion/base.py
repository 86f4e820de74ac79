"""Completion gateway interface consumed by the orchestrator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from category_attributes.cancellation import CancellationToken


@runtime_checkable
class CompletionGateway(Protocol):
    """Protocol implemented by text-completion backends."""

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        cancellation: CancellationToken,
    ) -> str:
        """Return the raw text of the first completion message."""


@runtime_checkable
class ConfigurableGateway(Protocol):
    """Gateway that can verify its configuration without a network call."""

    def check_configuration(self) -> None:
        """Raise ConfigurationError when the gateway cannot issue requests."""

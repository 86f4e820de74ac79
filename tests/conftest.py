"""Shared test fixtures."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable, Iterable

import pytest

from category_attributes.cancellation import CancellationToken
from category_attributes.models import Entity, EntityGroup

_ENV_VARS = (
    "OPENAI_API_KEY",
    "CATEGORY_ATTRS_OPENAI_API_KEY",
    "CATEGORY_ATTRS_OPENAI_MODEL",
    "CATEGORY_ATTRS_OPENAI_API_URL",
    "CATEGORY_ATTRS_OPENAI_TEMPERATURE",
    "CATEGORY_ATTRS_OPENAI_TIMEOUT_SECONDS",
    "CATEGORY_ATTRS_SYSTEM_PROMPT",
    "CATEGORY_ATTRS_USER_PROMPT_TEMPLATE",
    "CATEGORY_ATTRS_MAX_CONCURRENCY",
    "CATEGORY_ATTRS_CACHE_DURATION_MINUTES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer credentials and overrides out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def attributes_json(*attributes: str) -> str:
    return json.dumps({"attributes": list(attributes)})


def subcategory_of(user_prompt: str) -> str:
    """Extract the subcategory name from the default user prompt."""
    first_line = user_prompt.splitlines()[0]
    return first_line.split('"')[1]


class StubGateway:
    """Thread-safe gateway double that records calls and concurrency."""

    def __init__(
        self,
        responder: Callable[[str, CancellationToken], str] | None = None,
        *,
        delay_seconds: float | Callable[[str], float] = 0.0,
    ) -> None:
        self._responder = responder or (
            lambda name, _token: attributes_json(f"{name} A", f"{name} B", f"{name} C")
        )
        self._delay = delay_seconds
        self._lock = threading.Lock()
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        cancellation: CancellationToken,
    ) -> str:
        name = subcategory_of(user_prompt)
        with self._lock:
            self.calls.append(name)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self._delay(name) if callable(self._delay) else self._delay
            if delay:
                time.sleep(delay)
            return self._responder(name, cancellation)
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_groups(*groups: tuple[str, Iterable[tuple[int, str]]]) -> list[EntityGroup]:
    return [
        EntityGroup(
            group_name=group_name,
            entities=tuple(Entity(id=entity_id, name=name) for entity_id, name in entities),
        )
        for group_name, entities in groups
    ]


@pytest.fixture()
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()

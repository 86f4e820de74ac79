"""Controller for the attribute generation CLI command."""

from __future__ import annotations

import json
import logging
import signal
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any
from uuid import uuid4

from category_attributes.cache import ResultCache
from category_attributes.cancellation import CancellationToken
from category_attributes.completion import CompletionGateway, OpenAiCompletionGateway
from category_attributes.config import OpenAiSettings, Settings
from category_attributes.errors import (
    AttributeGenerationError,
    ConfigurationError,
    GenerationCancelledError,
    InvalidInputError,
    UnexpectedGenerationError,
)
from category_attributes.models import parse_category_groups
from category_attributes.orchestrator import AttributeOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_INVALID_INPUT = 2
EXIT_UPSTREAM_FAILURE = 3
EXIT_CONFIGURATION = 4
EXIT_CANCELLED = 130

INVALID_INPUT_MESSAGE = "Input must be a non-empty JSON array of category groups."
UPSTREAM_FAILURE_MESSAGE = "Failed to generate attributes using OpenAI API."
CONFIGURATION_MESSAGE = "Attribute generator is not configured."
CANCELLED_MESSAGE = "Request was cancelled."
UNEXPECTED_MESSAGE = "Unexpected error while generating attributes."

GatewayFactory = Callable[[OpenAiSettings], CompletionGateway]


@dataclass(slots=True)
class GenerateCommand:
    """CLI input for attribute generation."""

    input_text: str
    max_concurrency: int | None = None
    model: str | None = None
    trace_id: str | None = None


@dataclass(slots=True)
class ErrorResponse:
    """Error payload rendered instead of results."""

    message: str
    details: list[str] | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "details": self.details, "traceId": self.trace_id}


@dataclass(slots=True)
class GenerateResult:
    """Rendered command output and process exit code."""

    lines: list[str]
    exit_code: int
    trace_id: str

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_OK


class _TraceLoggerAdapter(logging.LoggerAdapter):
    def process(
        self,
        msg: Any,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[trace={self.extra['trace_id']}] {msg}", kwargs


class AttributesCliController:
    """Parses input, runs the orchestrator, and maps failures to exit codes.

    The result cache lives as long as the controller, so repeated commands
    in one process reuse earlier results.
    """

    def __init__(
        self,
        *,
        gateway_factory: GatewayFactory | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self._gateway_factory = gateway_factory or OpenAiCompletionGateway
        self._cache = cache or ResultCache()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    def generate(
        self,
        command: GenerateCommand,
        cancellation: CancellationToken | None = None,
    ) -> GenerateResult:
        trace_id = command.trace_id or uuid4().hex[:16]
        log = _TraceLoggerAdapter(logger, {"trace_id": trace_id})

        try:
            payload = json.loads(command.input_text)
        except json.JSONDecodeError as error:
            log.warning("Rejected input that is not valid JSON: %s", error)
            return _error_result(
                EXIT_INVALID_INPUT,
                ErrorResponse(INVALID_INPUT_MESSAGE, [f"Invalid JSON: {error}"], trace_id),
            )
        if not isinstance(payload, list) or not payload:
            log.warning("Rejected input that is not a non-empty JSON array")
            return _error_result(
                EXIT_INVALID_INPUT,
                ErrorResponse(INVALID_INPUT_MESSAGE, None, trace_id),
            )

        try:
            groups = parse_category_groups(payload)
        except InvalidInputError as error:
            log.warning("Rejected category payload: %s", error.message)
            return _error_result(
                EXIT_INVALID_INPUT,
                ErrorResponse(INVALID_INPUT_MESSAGE, error.details(), trace_id),
            )

        try:
            settings = _settings_for(command)
        except ValueError as error:
            log.error("Invalid configuration: %s", error)
            return _error_result(
                EXIT_CONFIGURATION,
                ErrorResponse(CONFIGURATION_MESSAGE, [str(error)], trace_id),
            )

        token = cancellation or CancellationToken()
        log.info(
            "Generating attributes: groups=%s max_concurrency=%s model=%s",
            len(groups),
            settings.generation.max_concurrency,
            settings.openai.model,
        )
        try:
            with _gateway(self._gateway_factory, settings.openai) as gateway:
                orchestrator = AttributeOrchestrator.from_settings(
                    settings,
                    gateway=gateway,
                    cache=self._cache,
                )
                with _cancel_on_signals(token):
                    results = orchestrator.generate(groups, token)
        except GenerationCancelledError:
            log.warning("Request was cancelled by the caller.")
            return _error_result(
                EXIT_CANCELLED,
                ErrorResponse(CANCELLED_MESSAGE, None, trace_id),
            )
        except ConfigurationError as error:
            log.error("Attribute generator is not configured: %s", error.message)
            return _error_result(
                EXIT_CONFIGURATION,
                ErrorResponse(CONFIGURATION_MESSAGE, error.details(), trace_id),
            )
        except UnexpectedGenerationError as error:
            log.error("Unexpected worker error: %s", error.message)
            return _error_result(
                EXIT_UNEXPECTED,
                ErrorResponse(UNEXPECTED_MESSAGE, error.details(), trace_id),
            )
        except AttributeGenerationError as error:
            log.error("OpenAI API call failed (%s): %s", error.kind.value, error.message)
            return _error_result(
                EXIT_UPSTREAM_FAILURE,
                ErrorResponse(UPSTREAM_FAILURE_MESSAGE, error.details(), trace_id),
            )
        except Exception as error:
            log.exception("Unexpected error while generating category attributes.")
            return _error_result(
                EXIT_UNEXPECTED,
                ErrorResponse(UNEXPECTED_MESSAGE, [str(error)], trace_id),
            )

        log.info("Generated attributes for %s subcategories", len(results))
        rendered = json.dumps(
            [attribute_set.to_dict() for attribute_set in results],
            ensure_ascii=False,
            indent=2,
        )
        return GenerateResult(lines=[rendered], exit_code=EXIT_OK, trace_id=trace_id)


def _settings_for(command: GenerateCommand) -> Settings:
    settings = Settings.from_env()
    if command.max_concurrency is not None:
        settings = replace(
            settings,
            generation=replace(settings.generation, max_concurrency=command.max_concurrency),
        )
    if command.model:
        settings = replace(settings, openai=replace(settings.openai, model=command.model))
    settings.validate()
    return settings


def _error_result(exit_code: int, response: ErrorResponse) -> GenerateResult:
    return GenerateResult(
        lines=[json.dumps(response.to_dict(), ensure_ascii=False, indent=2)],
        exit_code=exit_code,
        trace_id=response.trace_id or "",
    )


@contextmanager
def _gateway(factory: GatewayFactory, settings: OpenAiSettings) -> Iterator[CompletionGateway]:
    gateway = factory(settings)
    try:
        yield gateway
    finally:
        close = getattr(gateway, "close", None)
        if callable(close):
            close()


@contextmanager
def _cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    if not hasattr(signal, "SIGINT"):
        yield
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        token.cancel(reason=name)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)

"""Typed failures raised while generating category attributes."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from category_attributes.completion.failure_classifier import FailureClass
    from category_attributes.models import Entity


class ErrorKind(str, Enum):
    """Stable error identifiers surfaced to callers."""

    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    UNAUTHORIZED = "unauthorized"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    COUNT_MISMATCH = "count_mismatch"
    INVALID_ATTRIBUTE = "invalid_attribute"
    CANCELLED = "cancelled"
    INVALID_INPUT = "invalid_input"
    UNEXPECTED = "unexpected"


class AttributeGenerationError(RuntimeError):
    """Base class for every failure the generator reports."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        *,
        entity_id: int | None = None,
        entity_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id
        self.entity_name = entity_name

    def with_entity(self, entity: Entity) -> AttributeGenerationError:
        """Attach entity context unless it is already known."""

        if self.entity_id is None:
            self.entity_id = entity.id
        if self.entity_name is None:
            self.entity_name = entity.name
        return self

    def details(self) -> list[str]:
        """Diagnostic lines safe to show to the caller."""

        lines = [self.message]
        if self.entity_id is not None:
            lines.append(f"categoryId={self.entity_id} categoryName={self.entity_name!r}")
        return lines


class ConfigurationError(AttributeGenerationError):
    """Required configuration (the API key) is missing."""

    kind = ErrorKind.CONFIGURATION


class UpstreamError(AttributeGenerationError):
    """Completion endpoint answered with a non-success status or failed in transport."""

    kind = ErrorKind.UPSTREAM

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        snippet: str,
        failure_class: FailureClass | None = None,
        entity_id: int | None = None,
        entity_name: str | None = None,
    ) -> None:
        super().__init__(message, entity_id=entity_id, entity_name=entity_name)
        self.status_code = status_code
        self.snippet = snippet
        self.failure_class = failure_class

    def details(self) -> list[str]:
        lines = super().details()
        lines.append(f"status={self.status_code}")
        if self.failure_class is not None:
            lines.append(f"failure_class={self.failure_class.value}")
        if self.snippet:
            lines.append(f"upstream: {self.snippet}")
        return lines


class UnauthorizedError(UpstreamError):
    """Completion endpoint rejected the credential (401/403)."""

    kind = ErrorKind.UNAUTHORIZED


class EmptyResponseError(AttributeGenerationError):
    """The first returned message had no text content."""

    kind = ErrorKind.EMPTY_RESPONSE


class MalformedResponseError(AttributeGenerationError):
    """Model output could not be parsed into the expected JSON object."""

    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, message: str, *, raw_text: str, **context: Any) -> None:
        super().__init__(message, **context)
        self.raw_text = raw_text

    def details(self) -> list[str]:
        return [*super().details(), f"raw: {self.raw_text[:500]}"]


class CountMismatchError(AttributeGenerationError):
    """Model output did not contain exactly the expected number of attributes."""

    kind = ErrorKind.COUNT_MISMATCH

    def __init__(self, message: str, *, expected: int, actual: int, **context: Any) -> None:
        super().__init__(message, **context)
        self.expected = expected
        self.actual = actual


class InvalidAttributeError(AttributeGenerationError):
    """One attribute string broke a content rule."""

    kind = ErrorKind.INVALID_ATTRIBUTE

    def __init__(self, message: str, *, index: int, reason: str, **context: Any) -> None:
        super().__init__(message, **context)
        self.index = index
        self.reason = reason


class GenerationCancelledError(AttributeGenerationError):
    """The caller's cancellation token fired."""

    kind = ErrorKind.CANCELLED


class InvalidInputError(AttributeGenerationError):
    """The category payload does not match the input contract."""

    kind = ErrorKind.INVALID_INPUT


class UnexpectedGenerationError(AttributeGenerationError):
    """Wraps an unclassified exception raised inside a worker."""

    kind = ErrorKind.UNEXPECTED

    @classmethod
    def wrap(cls, error: BaseException) -> UnexpectedGenerationError:
        wrapped = cls(f"{type(error).__name__}: {error}")
        wrapped.__cause__ = error
        return wrapped

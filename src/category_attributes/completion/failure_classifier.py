"""Deterministic classification of completion endpoint failures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UPSTREAM_FAILURE_CLASSIFIER_VERSION = 1

TRANSPORT_FAILURE_STATUS = 0

_AUTH_STATUS_CODES = frozenset({401, 403})
_RATE_LIMIT_STATUS_CODE = 429

_BILLING_OR_QUOTA_PATTERNS: tuple[str, ...] = (
    "insufficient_quota",
    "quota",
    "billing",
    "payment",
    "credits",
    "usage limit",
)
_ACCESS_OR_AUTH_PATTERNS: tuple[str, ...] = (
    "invalid_api_key",
    "invalid api key",
    "incorrect api key",
    "unauthorized",
    "forbidden",
    "permission denied",
    "authentication",
)
_MODEL_NOT_AVAILABLE_PATTERNS: tuple[str, ...] = (
    "model_not_found",
    "model not found",
    "does not exist",
    "unknown model",
    "unsupported model",
    "invalid model",
)
_RATE_LIMIT_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "rate_limit_exceeded",
    "rate limit",
    "too many requests",
    "please retry",
    "try again later",
)
_GENERIC_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "temporarily unavailable",
    "overloaded",
    "connection reset",
    "connection refused",
    "network error",
    "name resolution",
)


class FailureClass(str, Enum):
    """Normalized classes for upstream failures."""

    BILLING_OR_QUOTA = "billing_or_quota"
    ACCESS_OR_AUTH = "access_or_auth"
    MODEL_NOT_AVAILABLE = "model_not_available"
    BACKEND_TRANSIENT = "backend_transient"
    BACKEND_NON_RETRYABLE = "backend_non_retryable"


@dataclass(slots=True)
class UpstreamFailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    reason_code: str
    matched_rule: str
    matched_pattern: str | None

    def to_log_details(self, *, model: str) -> dict[str, object]:
        """Serialize classifier diagnostics for log records."""

        return {
            "classifier_version": UPSTREAM_FAILURE_CLASSIFIER_VERSION,
            "model": model,
            "failure_class": self.failure_class.value,
            "reason_code": self.reason_code,
            "matched_rule": self.matched_rule,
            "matched_pattern": self.matched_pattern,
        }


def classify_upstream_failure(
    *,
    status_code: int,
    snippet: str,
) -> UpstreamFailureClassification:
    """Classify a non-success completion call into a deterministic failure class.

    Body patterns win over status codes, so a 429 that reports an exhausted quota
    is classified as billing rather than a transient rate limit.
    """

    haystack = snippet.lower()

    pattern = _first_match(haystack, _BILLING_OR_QUOTA_PATTERNS)
    if pattern is not None:
        return _classification(FailureClass.BILLING_OR_QUOTA, "billing_or_quota", pattern)

    pattern = _first_match(haystack, _ACCESS_OR_AUTH_PATTERNS)
    if pattern is not None or status_code in _AUTH_STATUS_CODES:
        return _classification(
            FailureClass.ACCESS_OR_AUTH,
            "access_or_auth" if pattern is not None else "auth_status_code",
            pattern,
        )

    pattern = _first_match(haystack, _MODEL_NOT_AVAILABLE_PATTERNS)
    if pattern is not None:
        return _classification(FailureClass.MODEL_NOT_AVAILABLE, "model_not_available", pattern)

    pattern = _first_match(haystack, _RATE_LIMIT_TRANSIENT_PATTERNS)
    if pattern is not None or status_code == _RATE_LIMIT_STATUS_CODE:
        return _classification(
            FailureClass.BACKEND_TRANSIENT,
            "rate_limit_transient" if pattern is not None else "rate_limit_status_code",
            pattern,
        )

    pattern = _first_match(haystack, _GENERIC_TRANSIENT_PATTERNS)
    if pattern is not None or _is_transient_status(status_code):
        return _classification(
            FailureClass.BACKEND_TRANSIENT,
            "generic_transient" if pattern is not None else "transient_status_code",
            pattern,
        )

    return _classification(FailureClass.BACKEND_NON_RETRYABLE, "fallback_non_retryable", None)


def _classification(
    failure_class: FailureClass,
    matched_rule: str,
    matched_pattern: str | None,
) -> UpstreamFailureClassification:
    return UpstreamFailureClassification(
        failure_class=failure_class,
        reason_code=f"openai_{failure_class.value}",
        matched_rule=matched_rule,
        matched_pattern=matched_pattern,
    )


def _is_transient_status(status_code: int) -> bool:
    return status_code == TRANSPORT_FAILURE_STATUS or status_code >= 500


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None

"""Validation of model output into exactly three attribute names.

Pure functions only: no I/O and no shared state, so workers call them
concurrently without locking.
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass

from category_attributes.errors import (
    AttributeGenerationError,
    CountMismatchError,
    InvalidAttributeError,
    MalformedResponseError,
)
from category_attributes.models import ATTRIBUTES_PER_ENTITY

MAX_ATTRIBUTE_CHARS = 50
ATTRIBUTES_FIELD = "attributes"

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(slots=True)
class NormalizationResult:
    """Result of normalizing one model response."""

    is_valid: bool
    attributes: tuple[str, ...] | None
    error: AttributeGenerationError | None

    def unwrap(self) -> tuple[str, ...]:
        if self.error is not None:
            raise self.error
        if self.attributes is None:  # pragma: no cover - guarded by constructors
            raise RuntimeError("NormalizationResult carries neither attributes nor error.")
        return self.attributes


def normalize_attributes(raw_text: str, entity_name: str) -> NormalizationResult:
    """Parse ``raw_text`` and validate it as exactly three attribute names."""

    payload = _parse_json_object(raw_text)
    if payload is None:
        return _invalid(
            MalformedResponseError(
                f"Failed to parse attributes JSON for subcategory {entity_name!r}.",
                raw_text=raw_text,
                entity_name=entity_name,
            ),
        )

    items = _attribute_array(payload)
    if items is None:
        return _invalid(
            MalformedResponseError(
                f"Attributes JSON for subcategory {entity_name!r} "
                f"has no {ATTRIBUTES_FIELD!r} array.",
                raw_text=raw_text,
                entity_name=entity_name,
            ),
        )

    if len(items) != ATTRIBUTES_PER_ENTITY:
        return _invalid(
            CountMismatchError(
                f"OpenAI response did not contain exactly {ATTRIBUTES_PER_ENTITY} attributes "
                f"for subcategory {entity_name!r} (got {len(items)}).",
                expected=ATTRIBUTES_PER_ENTITY,
                actual=len(items),
                entity_name=entity_name,
            ),
        )

    attributes: list[str] = []
    for index, item in enumerate(items):
        reason = _attribute_violation(item)
        if reason is not None:
            return _invalid(
                InvalidAttributeError(
                    f"attributes[{index}] for subcategory {entity_name!r} {reason}.",
                    index=index,
                    reason=reason,
                    entity_name=entity_name,
                ),
            )
        attributes.append(str(item).strip())

    return NormalizationResult(is_valid=True, attributes=tuple(attributes), error=None)


def _invalid(error: AttributeGenerationError) -> NormalizationResult:
    return NormalizationResult(is_valid=False, attributes=None, error=error)


def _parse_json_object(text: str) -> dict[str, object] | None:
    stripped = text.strip()
    if not stripped:
        return None

    direct = _try_load_dict(stripped)
    if direct is not None:
        return direct

    fenced = _FENCED_JSON.search(stripped)
    if fenced is not None:
        payload = _try_load_dict(fenced.group(1))
        if payload is not None:
            return payload

    start = stripped.find("{")
    end = stripped.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return _try_load_dict(stripped[start : end + 1])


def _try_load_dict(raw: str) -> dict[str, object] | None:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _attribute_array(payload: dict[str, object]) -> list[object] | None:
    for key, value in payload.items():
        if key.lower() == ATTRIBUTES_FIELD:
            return value if isinstance(value, list) else None

    list_fields = [value for value in payload.values() if isinstance(value, list)]
    if len(payload) == 1 and len(list_fields) == 1:
        return list_fields[0]
    return None


def _attribute_violation(item: object) -> str | None:
    if not isinstance(item, str):
        return "must be a string"
    if any(unicodedata.category(char) == "Cc" for char in item):
        return "must not contain control characters"
    value = item.strip()
    if not value:
        return "must not be empty"
    if len(value) > MAX_ATTRIBUTE_CHARS:
        return f"must be at most {MAX_ATTRIBUTE_CHARS} characters"
    return None

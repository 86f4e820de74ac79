"""Domain models for category groups, entities, and generated attribute sets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from category_attributes.errors import AttributeGenerationError, InvalidInputError

ATTRIBUTES_PER_ENTITY = 3


@dataclass(frozen=True, slots=True)
class Entity:
    """A subcategory for which attributes are generated."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class EntityGroup:
    """Top-level category group with its ordered subcategories."""

    group_name: str
    entities: tuple[Entity, ...] = ()


@dataclass(frozen=True, slots=True)
class AttributeSet:
    """Exactly three attribute names generated for one entity."""

    entity_id: int
    attributes: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.attributes) != ATTRIBUTES_PER_ENTITY:
            raise ValueError(
                f"AttributeSet for entity {self.entity_id} must hold "
                f"{ATTRIBUTES_PER_ENTITY} attributes, got {len(self.attributes)}.",
            )

    def to_dict(self) -> dict[str, Any]:
        return {"categoryId": self.entity_id, "attributes": list(self.attributes)}


@dataclass(frozen=True, slots=True)
class WorkOutcome:
    """Per-entity result consumed by batch aggregation."""

    entity: Entity
    attribute_set: AttributeSet | None = None
    error: AttributeGenerationError | None = None
    from_cache: bool = False

    @property
    def is_success(self) -> bool:
        return self.attribute_set is not None

    @classmethod
    def success(
        cls,
        entity: Entity,
        attributes: Iterable[str],
        *,
        from_cache: bool = False,
    ) -> WorkOutcome:
        return cls(
            entity=entity,
            attribute_set=AttributeSet(entity_id=entity.id, attributes=tuple(attributes)),
            from_cache=from_cache,
        )

    @classmethod
    def failure(cls, entity: Entity, error: AttributeGenerationError) -> WorkOutcome:
        return cls(entity=entity, error=error.with_entity(entity))


def parse_category_groups(payload: object) -> list[EntityGroup]:
    """Convert the JSON request payload into entity groups.

    Accepts the camelCase shape used by the HTTP API::

        [{"categoryName": "...", "subCategories": [{"categoryId": 1, "categoryName": "..."}]}]
    """

    if not isinstance(payload, list):
        raise InvalidInputError("Input must be a JSON array of category groups.")

    groups: list[EntityGroup] = []
    seen_ids: set[int] = set()
    for group_index, raw_group in enumerate(payload):
        if not isinstance(raw_group, dict):
            raise InvalidInputError(f"Category group [{group_index}] must be an object.")
        group_name = raw_group.get("categoryName", "")
        if not isinstance(group_name, str):
            raise InvalidInputError(
                f"Category group [{group_index}].categoryName must be a string.",
            )
        raw_entities = raw_group.get("subCategories")
        if raw_entities is None:
            raw_entities = []
        if not isinstance(raw_entities, list):
            raise InvalidInputError(
                f"Category group [{group_index}].subCategories must be an array.",
            )

        entities: list[Entity] = []
        for entity_index, raw_entity in enumerate(raw_entities):
            location = f"[{group_index}].subCategories[{entity_index}]"
            entity = _parse_entity(raw_entity, location=location)
            if entity.id in seen_ids:
                raise InvalidInputError(f"Duplicate categoryId {entity.id} at {location}.")
            seen_ids.add(entity.id)
            entities.append(entity)
        groups.append(EntityGroup(group_name=group_name, entities=tuple(entities)))
    return groups


def _parse_entity(raw_entity: object, *, location: str) -> Entity:
    if not isinstance(raw_entity, dict):
        raise InvalidInputError(f"Subcategory {location} must be an object.")
    entity_id = raw_entity.get("categoryId")
    # bool is an int subclass
    if not isinstance(entity_id, int) or isinstance(entity_id, bool):
        raise InvalidInputError(f"Subcategory {location}.categoryId must be an integer.")
    name = raw_entity.get("categoryName", "")
    if not isinstance(name, str):
        raise InvalidInputError(f"Subcategory {location}.categoryName must be a string.")
    return Entity(id=entity_id, name=name)

"""Generate product attributes for category hierarchies with a bounded LLM fan-out."""

from category_attributes.cache import ResultCache
from category_attributes.cancellation import CancellationToken
from category_attributes.models import AttributeSet, Entity, EntityGroup
from category_attributes.orchestrator import AttributeOrchestrator

__version__ = "0.1.0"

__all__ = [
    "AttributeOrchestrator",
    "AttributeSet",
    "CancellationToken",
    "Entity",
    "EntityGroup",
    "ResultCache",
    "__version__",
]

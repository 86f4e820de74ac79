"""Bounded fan-out of attribute generation across subcategories."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from category_attributes.cache import ResultCache, build_cache_key, sanitize_name
from category_attributes.cancellation import CancellationToken
from category_attributes.completion.base import CompletionGateway, ConfigurableGateway
from category_attributes.config import PromptSettings, Settings
from category_attributes.errors import (
    AttributeGenerationError,
    GenerationCancelledError,
    UnexpectedGenerationError,
)
from category_attributes.models import AttributeSet, Entity, EntityGroup, WorkOutcome
from category_attributes.normalizer import normalize_attributes
from category_attributes.prompts import render_user_prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_CACHE_TTL_SECONDS = 3_600.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.05


@dataclass(slots=True)
class BatchSummary:
    """Counters for one ``generate`` call."""

    entities: int = 0
    cache_hits: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    elapsed_ms: int = 0


def flatten_groups(groups: Iterable[EntityGroup]) -> list[Entity]:
    """Flatten groups in order, skipping groups without entities."""

    entities: list[Entity] = []
    for group in groups:
        if not group.entities:
            logger.info("Category group %r has no subcategories; skipping.", group.group_name)
            continue
        entities.extend(group.entities)
    return entities


class AttributeOrchestrator:
    """Generates attribute sets for every subcategory of a batch.

    Cache hits resolve synchronously. Misses run on a thread pool of
    ``max_concurrency`` workers, so at most that many gateway calls are in
    flight. The batch is all-or-nothing: any failure or cancellation raises,
    otherwise results come back sorted by entity id.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        gateway: CompletionGateway,
        cache: ResultCache,
        prompts: PromptSettings | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0.")
        self._gateway = gateway
        self._cache = cache
        self._prompts = prompts or PromptSettings()
        self._max_concurrency = max_concurrency
        self._cache_ttl_seconds = cache_ttl_seconds
        self._poll_interval = poll_interval_seconds
        self.last_summary: BatchSummary | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        gateway: CompletionGateway,
        cache: ResultCache,
    ) -> AttributeOrchestrator:
        return cls(
            gateway=gateway,
            cache=cache,
            prompts=settings.prompts,
            max_concurrency=settings.generation.max_concurrency,
            cache_ttl_seconds=settings.generation.cache_ttl_seconds,
        )

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    def generate(
        self,
        groups: Sequence[EntityGroup],
        cancellation: CancellationToken | None = None,
    ) -> list[AttributeSet]:
        """Return one attribute set per subcategory, ascending by entity id."""

        token = cancellation or CancellationToken()
        started = time.monotonic()
        summary = BatchSummary()
        self.last_summary = summary

        entities = flatten_groups(groups)
        summary.entities = len(entities)
        if not entities:
            logger.info("No subcategories to process; returning an empty result.")
            return []
        token.raise_if_cancelled()

        outcomes: list[WorkOutcome] = []
        misses: list[Entity] = []
        for entity in entities:
            cached = self._cache.get(build_cache_key(entity.id, entity.name))
            if cached is None:
                misses.append(entity)
                continue
            logger.debug("Cache hit for subcategory %s (%r)", entity.id, entity.name)
            outcomes.append(WorkOutcome.success(entity, cached, from_cache=True))
        summary.cache_hits = len(outcomes)

        if misses:
            if isinstance(self._gateway, ConfigurableGateway):
                self._gateway.check_configuration()
            outcomes.extend(self._run_workers(misses, token, summary))

        summary.succeeded = sum(1 for outcome in outcomes if outcome.is_success)
        summary.failed = len(outcomes) - summary.succeeded
        summary.cancelled = token.is_cancelled
        summary.elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Attribute batch finished: entities=%s cache_hits=%s dispatched=%s "
            "succeeded=%s failed=%s skipped=%s cancelled=%s elapsed_ms=%s",
            summary.entities,
            summary.cache_hits,
            summary.dispatched,
            summary.succeeded,
            summary.failed,
            summary.skipped,
            summary.cancelled,
            summary.elapsed_ms,
        )

        if token.is_cancelled:
            raise GenerationCancelledError(f"Generation was cancelled ({token.reason}).")

        failures = sorted(
            (outcome for outcome in outcomes if outcome.error is not None),
            key=lambda outcome: outcome.entity.id,
        )
        if failures:
            raise failures[0].error

        return sorted(
            (outcome.attribute_set for outcome in outcomes if outcome.attribute_set is not None),
            key=lambda attribute_set: attribute_set.entity_id,
        )

    def _run_workers(
        self,
        entities: list[Entity],
        token: CancellationToken,
        summary: BatchSummary,
    ) -> list[WorkOutcome]:
        outcomes: list[WorkOutcome] = []
        stop_dispatch = False
        workers = min(self._max_concurrency, len(entities))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="attributes") as executor:
            pending: set[Future[WorkOutcome]] = {
                executor.submit(self._process_entity, entity, token) for entity in entities
            }
            summary.dispatched = len(pending)
            while pending:
                done, pending = wait(
                    pending,
                    timeout=self._poll_interval,
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    if future.cancelled():
                        continue
                    outcome = future.result()
                    outcomes.append(outcome)
                    if outcome.error is not None and not stop_dispatch:
                        stop_dispatch = True
                        _cancel_unstarted(pending)
                if token.is_cancelled and not stop_dispatch:
                    stop_dispatch = True
                    logger.info("Cancellation requested; waiting for in-flight workers")
                    _cancel_unstarted(pending)
        summary.skipped = len(entities) - len(outcomes)
        return outcomes

    def _process_entity(self, entity: Entity, token: CancellationToken) -> WorkOutcome:
        try:
            token.raise_if_cancelled()
            logger.debug("Dispatching subcategory %s (%r)", entity.id, entity.name)
            user_prompt = render_user_prompt(
                self._prompts.user_prompt_template,
                sanitize_name(entity.name),
            )
            raw_text = self._gateway.complete(self._prompts.system_prompt, user_prompt, token)
            token.raise_if_cancelled()
            attributes = normalize_attributes(raw_text, entity.name).unwrap()
        except AttributeGenerationError as error:
            if not isinstance(error, GenerationCancelledError):
                logger.warning(
                    "Attribute generation failed for subcategory %s (%r): %s",
                    entity.id,
                    entity.name,
                    error.message,
                )
            return WorkOutcome.failure(entity, error)
        except Exception as error:
            logger.exception("Unexpected error for subcategory %s (%r)", entity.id, entity.name)
            return WorkOutcome.failure(entity, UnexpectedGenerationError.wrap(error))

        self._cache.set(
            build_cache_key(entity.id, entity.name),
            attributes,
            self._cache_ttl_seconds,
        )
        return WorkOutcome.success(entity, attributes)


def _cancel_unstarted(pending: set[Future[WorkOutcome]]) -> None:
    cancelled = sum(1 for future in pending if future.cancel())
    if cancelled:
        logger.info("Skipped dispatch of %s queued subcategories", cancelled)

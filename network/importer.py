"""
Import pipeline - resolver, review queue and cascade controller wired together.

The orchestration layer hands in a batch of events; each one is resolved,
ambiguous ones are parked in the review queue, and the batch's cascade
state says how far to enrich the rest.
"""

import uuid
from typing import Any, Iterable, Optional, Union

from config import get_logger, load_settings, Settings
from models import (
    EntityType,
    ImportEvent,
    Ambiguous,
    Matched,
    Created,
    Resolution,
    ReviewItem,
    ReviewReason,
    ReviewPriority,
    ReviewStatus,
    ReviewResolution,
    EnrichmentLevel,
    ImportOutcome,
    ImportBatchResult,
)
from models.review import TARGETED_RESOLUTIONS
from .cascade import CascadeController, EnrichmentBatch
from .errors import (
    NetworkError,
    PersistenceError,
    InvalidTransitionError,
    MalformedPayloadError,
)
from .locks import ShardedLock
from .resolver import EntityResolver, parse_event
from .review_queue import ReviewQueue
from .store import TemporalStore

LOGGER = get_logger(__name__)

PLAN_COUNTERS = {
    EnrichmentLevel.FULL: "enrich_full",
    EnrichmentLevel.LIGHT: "enrich_light",
    EnrichmentLevel.STUB: "stubs",
    EnrichmentLevel.SKIP: "skipped",
}


class ImportPipeline:
    """
    Runs import batches against one store.

    Several pipelines may share a store; identity races are handled by the
    resolver's locks, not here.
    """

    def __init__(
        self,
        store: TemporalStore,
        resolver: EntityResolver = None,
        review_queue: ReviewQueue = None,
        cascade: CascadeController = None,
        settings: Settings = None,
    ):
        settings = settings or load_settings()
        self.store = store
        self.resolver = resolver or EntityResolver(store, settings.resolver)
        self.review_queue = review_queue or ReviewQueue(store.repo)
        self.cascade = cascade or CascadeController()
        self._adjudication_locks = ShardedLock(settings.resolver.lock_shards)

    def run_batch(
        self,
        events: Iterable[Union[ImportEvent, dict[str, Any]]],
        batch_id: Optional[str] = None,
        import_source: Optional[str] = None,
    ) -> ImportBatchResult:
        """
        Process every event in one batch.

        A bad event is recorded as an error on its outcome and the batch goes
        on. A persistence failure stops the batch and propagates.
        """
        batch_id = batch_id or uuid.uuid4().hex
        result = ImportBatchResult(batch_id=batch_id, import_source=import_source)
        stats = result.stats
        stats.record_start()

        LOGGER.info(f"Starting batch {batch_id}" + (f" from {import_source}" if import_source else ""))

        with self.cascade.open_batch(batch_id) as batch:
            for index, raw in enumerate(events):
                stats.events += 1
                try:
                    event = raw if isinstance(raw, ImportEvent) else parse_event(raw)
                    outcome = self.process(event, batch, import_source=import_source)
                except PersistenceError:
                    stats.record_error("persistence failure")
                    LOGGER.error(f"Batch {batch_id} aborted at event {index}")
                    raise
                except NetworkError as e:
                    stats.record_error(str(e))
                    LOGGER.warning(f"Batch {batch_id} event {index} failed: {e}")
                    outcome = ImportOutcome(
                        index=index,
                        entity_type=_peek(raw, "entity_type"),
                        name=_peek(raw, "name"),
                        error=str(e),
                    )
                    result.outcomes.append(outcome)
                    continue

                outcome.index = index
                result.outcomes.append(outcome)
                self._count(stats, outcome)

        stats.record_finish()
        LOGGER.info(
            f"Finished batch {batch_id}: {stats.events} events, {stats.matched} matched, "
            f"{stats.created} created, {stats.ambiguous} for review, {stats.errors} errors"
        )
        return result

    def process(
        self,
        event: ImportEvent,
        batch: EnrichmentBatch,
        import_source: Optional[str] = None,
    ) -> ImportOutcome:
        """Resolve one event and plan its enrichment within the batch."""
        if event.batch_id != batch.batch_id:
            event = event.model_copy(update={"batch_id": batch.batch_id})

        resolution = self.resolver.resolve(event)
        plan = None

        if isinstance(resolution, Ambiguous):
            item = self._enqueue(event, resolution, import_source)
            resolution.review_item_id = item.id
        else:
            plan = batch.should_enrich(event.entity_type, event.depth, resolution.entity_id)

        return ImportOutcome(
            index=0,
            entity_type=event.entity_type,
            name=event.name,
            resolution=resolution,
            plan=plan,
        )

    def adjudicate(
        self,
        item_id: str,
        resolution: ReviewResolution,
        resolved_entity_id: Optional[str] = None,
        resolved_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReviewItem:
        """
        Apply a reviewer's decision to the store and resolve the item.

        CREATED_NEW creates the incoming record as a new entity, MERGED and
        LINKED_TO_EXISTING fold it into resolved_entity_id, REJECTED leaves
        the store alone. A PENDING item is claimed (IN_REVIEW) first.
        """
        resolution = ReviewResolution(resolution)

        with self._adjudication_locks.hold_one(item_id):
            item = self.review_queue.get(item_id)
            if item.is_terminal:
                raise InvalidTransitionError(item_id, item.status.value, ReviewStatus.RESOLVED.value,
                                             "item is closed")
            if resolution in TARGETED_RESOLUTIONS:
                if not resolved_entity_id:
                    raise InvalidTransitionError(item_id, item.status.value, ReviewStatus.RESOLVED.value,
                                                 f"{resolution.value} needs a target entity")
                target = self.store.get_entity(resolved_entity_id)
                if target.entity_type != item.entity_type.value:
                    raise MalformedPayloadError(
                        f"Can't link a {item.entity_type.value} to {target.entity_type} {target.id}"
                    )

            event = parse_event(item.incoming_data)

            if item.status == ReviewStatus.PENDING:
                self.review_queue.transition(item_id, ReviewStatus.IN_REVIEW, resolved_by=resolved_by)

            applied = self._apply_decision(event, resolution, resolved_entity_id)
            entity_id = getattr(applied, "entity_id", None)

            item = self.review_queue.transition(
                item_id,
                ReviewStatus.RESOLVED,
                resolution=resolution,
                resolved_entity_id=entity_id,
                resolved_by=resolved_by,
                notes=notes,
            )

        LOGGER.info(f"Adjudicated {item_id} as {resolution.value}" + (f" -> {entity_id}" if entity_id else ""))
        return item

    def _apply_decision(
        self,
        event: ImportEvent,
        resolution: ReviewResolution,
        resolved_entity_id: Optional[str],
    ) -> Optional[Resolution]:
        if resolution == ReviewResolution.CREATED_NEW:
            return self.resolver.resolve_as_new(event)
        if resolution in TARGETED_RESOLUTIONS:
            return self.resolver.link(event, resolved_entity_id)
        return None

    def _enqueue(self, event: ImportEvent, resolution: Ambiguous, import_source: Optional[str]) -> ReviewItem:
        priority = ReviewPriority.HIGH if resolution.reason == ReviewReason.DATA_CONFLICT else ReviewPriority.NORMAL
        item = ReviewItem(
            entity_type=event.entity_type,
            reason=resolution.reason,
            incoming_data=event.model_dump(mode="json"),
            candidates=resolution.candidates,
            import_source=import_source,
            import_batch_id=event.batch_id,
            priority=priority,
        )
        return self.review_queue.enqueue(item)

    @staticmethod
    def _count(stats, outcome: ImportOutcome) -> None:
        resolution = outcome.resolution
        if isinstance(resolution, Matched):
            stats.matched += 1
        elif isinstance(resolution, Created):
            stats.created += 1
        elif isinstance(resolution, Ambiguous):
            stats.ambiguous += 1
        if outcome.plan is not None:
            counter = PLAN_COUNTERS[outcome.plan.level]
            setattr(stats, counter, getattr(stats, counter) + 1)


def _peek(raw: Any, field: str) -> Optional[Any]:
    """Best-effort field read from an event that failed validation."""
    value = raw.get(field) if isinstance(raw, dict) else getattr(raw, field, None)
    if field == "entity_type" and value is not None:
        try:
            return EntityType(value)
        except ValueError:
            return None
    return value if isinstance(value, str) or value is None else str(value)

"""
Cascade controller - how far enrichment may spread from one import.

    depth 0   FULL   enrich and discover the entity's own network
    depth 1   LIGHT  enrich, record, no further discovery
    depth 2+  STUB   record only

Depth only grows along a chain. Within one batch an entity is planned once;
seeing it again yields SKIP. That is what stops
PE firm -> portfolio company -> its other owners -> their portfolios -> ...
"""

import threading
import uuid
from typing import Any, Optional

from config import get_logger
from models import (
    EntityType,
    EnrichmentPlan,
    EnrichmentLevel,
    DiscoveryTarget,
    ImportEvent,
)
from .errors import MalformedPayloadError

LOGGER = get_logger(__name__)

FULL_DEPTH = 0
LIGHT_DEPTH = 1

DISCOVERY_BY_TYPE: dict[EntityType, list[DiscoveryTarget]] = {
    EntityType.COMPANY: [DiscoveryTarget.EMPLOYEES, DiscoveryTarget.OWNERS, DiscoveryTarget.BOARD],
    EntityType.PERSON: [DiscoveryTarget.EMPLOYMENT_HISTORY, DiscoveryTarget.BOARD_SEATS],
    EntityType.PE_FIRM: [DiscoveryTarget.PORTFOLIO, DiscoveryTarget.TEAM],
}


def plan_enrichment(entity_type: EntityType, depth: int) -> EnrichmentPlan:
    """Pure function of type and depth."""
    entity_type = EntityType(entity_type)
    if depth < 0:
        raise MalformedPayloadError(f"Cascade depth can't be negative: {depth}")

    if depth == FULL_DEPTH:
        return EnrichmentPlan(
            entity_type=entity_type,
            depth=depth,
            level=EnrichmentLevel.FULL,
            discover=list(DISCOVERY_BY_TYPE[entity_type]),
        )
    if depth == LIGHT_DEPTH:
        return EnrichmentPlan(entity_type=entity_type, depth=depth, level=EnrichmentLevel.LIGHT)
    return EnrichmentPlan(
        entity_type=entity_type,
        depth=depth,
        level=EnrichmentLevel.STUB,
        reason="cascade depth exhausted",
    )


class EnrichmentBatch:
    """
    One import batch's visited set.

    Use as a context manager; leaving the block (finished or abandoned)
    drops the visited set.
    """

    def __init__(self, batch_id: str, controller: "CascadeController"):
        self.batch_id = batch_id
        self._controller = controller
        self._visited: set[str] = set()
        self._lock = threading.Lock()
        self.closed = False

    def __enter__(self) -> "EnrichmentBatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._visited.clear()
            self.closed = True
        self._controller._forget(self.batch_id)

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def should_enrich(self, entity_type: EntityType, depth: int, entity_key: str) -> EnrichmentPlan:
        """Plan for an entity, or SKIP if this batch already planned it."""
        plan = plan_enrichment(entity_type, depth)
        with self._lock:
            if self.closed:
                raise RuntimeError(f"Batch {self.batch_id} is closed")
            if entity_key in self._visited:
                LOGGER.debug(f"[{self.batch_id}] {entity_key} already processed, skipping")
                return EnrichmentPlan(
                    entity_type=plan.entity_type,
                    depth=depth,
                    level=EnrichmentLevel.SKIP,
                    reason="already processed in this batch",
                )
            self._visited.add(entity_key)
        return plan

    def derive(
        self,
        parent: ImportEvent,
        entity_type: EntityType,
        name: str,
        identifiers: dict[str, str] = None,
        source_tag: Optional[str] = None,
        **fields: Any,
    ) -> ImportEvent:
        """
        A child import event discovered from `parent`.

        Depth is always parent + 1. Classification flags are never inherited.
        """
        return ImportEvent(
            entity_type=entity_type,
            name=name,
            identifiers=identifiers or {},
            source_tag=source_tag or parent.source_tag,
            depth=parent.depth + 1,
            batch_id=self.batch_id,
            **fields,
        )


class CascadeController:
    """Hands out plans and per-batch visited sets."""

    def __init__(self):
        self._batches: dict[str, EnrichmentBatch] = {}
        self._lock = threading.Lock()

    def should_enrich(self, entity_type: EntityType, depth: int) -> EnrichmentPlan:
        return plan_enrichment(entity_type, depth)

    def open_batch(self, batch_id: Optional[str] = None) -> EnrichmentBatch:
        batch_id = batch_id or uuid.uuid4().hex
        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None or batch.closed:
                batch = EnrichmentBatch(batch_id, self)
                self._batches[batch_id] = batch
        return batch

    def active_batches(self) -> list[str]:
        with self._lock:
            return sorted(self._batches)

    def _forget(self, batch_id: str) -> None:
        with self._lock:
            self._batches.pop(batch_id, None)

"""
Import statistics - counters for one import batch.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .entity import EntityType
from .enrichment import EnrichmentPlan
from .resolution import Ambiguous, Resolution


class ImportStats(BaseModel):
    """
    Counters for an import batch.

    One definition shared by the pipeline, the API and the CLI.
    """
    events: int = 0
    matched: int = 0
    created: int = 0
    ambiguous: int = 0
    errors: int = 0

    # Cascade advice
    enrich_full: int = 0
    enrich_light: int = 0
    stubs: int = 0
    skipped: int = 0

    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_error_message: Optional[str] = None

    def record_start(self) -> None:
        self.started_at = datetime.now()

    def record_finish(self) -> None:
        self.finished_at = datetime.now()

    def record_error(self, message: str = None) -> None:
        self.errors += 1
        self.last_error_message = message

    @property
    def review_rate(self) -> float:
        """Share of events that needed review."""
        if self.events == 0:
            return 0.0
        return self.ambiguous / self.events

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "events": self.events,
            "matched": self.matched,
            "created": self.created,
            "ambiguous": self.ambiguous,
            "errors": self.errors,
            "enrich_full": self.enrich_full,
            "enrich_light": self.enrich_light,
            "stubs": self.stubs,
            "skipped": self.skipped,
            "review_rate": self.review_rate,
            "last_error": self.last_error_message,
        }


class ImportOutcome(BaseModel):
    """What happened to one event of a batch."""
    index: int
    entity_type: Optional[EntityType] = None
    name: Optional[str] = None
    resolution: Optional[Resolution] = None
    plan: Optional[EnrichmentPlan] = None
    error: Optional[str] = None

    @property
    def entity_id(self) -> Optional[str]:
        return getattr(self.resolution, "entity_id", None)


class ImportBatchResult(BaseModel):
    batch_id: str
    import_source: Optional[str] = None
    outcomes: list[ImportOutcome] = Field(default_factory=list)
    stats: ImportStats = Field(default_factory=ImportStats)

    @property
    def review_item_ids(self) -> list[str]:
        return [
            o.resolution.review_item_id
            for o in self.outcomes
            if isinstance(o.resolution, Ambiguous) and o.resolution.review_item_id
        ]

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "batch_id": self.batch_id,
            "import_source": self.import_source,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "review_item_ids": self.review_item_ids,
            "stats": self.stats.to_dict(),
        }

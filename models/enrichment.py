"""
Enrichment plans - the cascade controller's advice to the orchestration layer.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .entity import EntityType


class EnrichmentLevel(str, Enum):
    FULL = "FULL"    # enrich and discover the entity's own network
    LIGHT = "LIGHT"  # enrich, but don't discover further connections
    STUB = "STUB"    # record only
    SKIP = "SKIP"    # already processed in this batch


class DiscoveryTarget(str, Enum):
    EMPLOYEES = "EMPLOYEES"
    OWNERS = "OWNERS"
    BOARD = "BOARD"
    EMPLOYMENT_HISTORY = "EMPLOYMENT_HISTORY"
    BOARD_SEATS = "BOARD_SEATS"
    PORTFOLIO = "PORTFOLIO"
    TEAM = "TEAM"


class EnrichmentPlan(BaseModel):
    entity_type: EntityType
    depth: int = Field(ge=0)
    level: EnrichmentLevel
    discover: list[DiscoveryTarget] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def next_depth(self) -> int:
        """Depth to stamp on events derived from this entity."""
        return self.depth + 1

    @property
    def should_enrich(self) -> bool:
        return self.level in (EnrichmentLevel.FULL, EnrichmentLevel.LIGHT)

    @property
    def should_discover(self) -> bool:
        return self.level == EnrichmentLevel.FULL and bool(self.discover)

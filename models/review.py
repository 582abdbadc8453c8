"""
Review queue records - ambiguous resolutions waiting for adjudication.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from .base import BaseRecord
from .entity import EntityType, new_id


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    RESOLVED = "RESOLVED"
    SKIPPED = "SKIPPED"


class ReviewResolution(str, Enum):
    MERGED = "MERGED"
    CREATED_NEW = "CREATED_NEW"
    LINKED_TO_EXISTING = "LINKED_TO_EXISTING"
    REJECTED = "REJECTED"


class ReviewReason(str, Enum):
    FUZZY_MATCH_CANDIDATE = "FUZZY_MATCH_CANDIDATE"
    DUPLICATE_SUSPECTED = "DUPLICATE_SUSPECTED"
    DATA_CONFLICT = "DATA_CONFLICT"
    MANUAL_VERIFICATION = "MANUAL_VERIFICATION"


class ReviewPriority(str, Enum):
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


PRIORITY_ORDER = {ReviewPriority.HIGH: 0, ReviewPriority.NORMAL: 1, ReviewPriority.LOW: 2}

TERMINAL_STATUSES = frozenset({ReviewStatus.RESOLVED, ReviewStatus.SKIPPED})

# Legal moves. Terminal states have none.
ALLOWED_TRANSITIONS: dict[ReviewStatus, frozenset] = {
    ReviewStatus.PENDING: frozenset({ReviewStatus.IN_REVIEW}),
    ReviewStatus.IN_REVIEW: frozenset({
        ReviewStatus.PENDING,
        ReviewStatus.RESOLVED,
        ReviewStatus.SKIPPED,
    }),
    ReviewStatus.RESOLVED: frozenset(),
    ReviewStatus.SKIPPED: frozenset(),
}

# Resolutions that point at an existing entity
TARGETED_RESOLUTIONS = frozenset({ReviewResolution.MERGED, ReviewResolution.LINKED_TO_EXISTING})


class MatchCandidate(BaseModel):
    """A possible existing match for an incoming record."""
    entity_id: str
    name: str
    similarity: float = Field(ge=0.0, le=1.0)
    updated_at: Optional[datetime] = None


class ReviewItem(BaseRecord):
    """
    One ambiguous import waiting for a decision.

    Once RESOLVED, resolution and resolved_entity_id never change. Later
    corrections are new linkage actions against the store.
    """
    id: str = Field(default_factory=new_id)
    entity_type: EntityType
    reason: ReviewReason
    incoming_data: dict[str, Any]
    candidates: list[MatchCandidate] = Field(default_factory=list)

    import_source: Optional[str] = None
    import_batch_id: Optional[str] = None
    priority: ReviewPriority = ReviewPriority.NORMAL

    status: ReviewStatus = ReviewStatus.PENDING
    resolution: Optional[ReviewResolution] = None
    resolved_entity_id: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def best_candidate(self) -> Optional[MatchCandidate]:
        return self.candidates[0] if self.candidates else None

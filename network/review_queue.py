"""
Review queue - ambiguous resolutions waiting for a human or automated decision.

    PENDING -> IN_REVIEW -> RESOLVED | SKIPPED
    IN_REVIEW -> PENDING  (adjudicator stepped away)

RESOLVED and SKIPPED are terminal.
"""

import threading
from datetime import datetime
from typing import Optional

from config import get_logger
from models import (
    EntityType,
    ReviewItem,
    ReviewStatus,
    ReviewResolution,
    ReviewPriority,
)
from models.review import ALLOWED_TRANSITIONS, PRIORITY_ORDER, TARGETED_RESOLUTIONS
from repositories.base import Repository
from .errors import NotFoundError, InvalidTransitionError

LOGGER = get_logger(__name__)


class ReviewQueue:

    def __init__(self, repository: Repository = None):
        if repository is None:
            from repositories import get_repository
            repository = get_repository()
        self.repo = repository
        self._lock = threading.Lock()

    def enqueue(self, item: ReviewItem) -> ReviewItem:
        """Add an item. It always starts PENDING with no resolution."""
        if item.status != ReviewStatus.PENDING or item.resolution is not None:
            raise InvalidTransitionError(item.id, item.status.value, ReviewStatus.PENDING.value,
                                         "new items must be PENDING and unresolved")
        self.repo.reviews.save(item)
        LOGGER.info(
            f"Queued review {item.id}: {item.entity_type.value} {item.reason.value} "
            f"({len(item.candidates)} candidates, {item.priority.value})"
        )
        return item

    def get(self, item_id: str) -> ReviewItem:
        item = self.repo.reviews.get(item_id)
        if item is None:
            raise NotFoundError("review item", item_id)
        return item

    def list_by_status(
        self,
        status: ReviewStatus,
        priority: Optional[ReviewPriority] = None,
        entity_type: Optional[EntityType] = None,
    ) -> list[ReviewItem]:
        """Items in a status, highest priority first, then oldest first."""
        items = self.repo.reviews.list_by_status(ReviewStatus(status))
        if priority is not None:
            items = [i for i in items if i.priority == ReviewPriority(priority)]
        if entity_type is not None:
            items = [i for i in items if i.entity_type == EntityType(entity_type)]
        return sorted(items, key=lambda i: (PRIORITY_ORDER[i.priority], i.created_at, i.id))

    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in ReviewStatus}
        for item in self.repo.reviews.list():
            counts[item.status.value] += 1
        return counts

    def transition(
        self,
        item_id: str,
        new_status: ReviewStatus,
        resolution: Optional[ReviewResolution] = None,
        resolved_entity_id: Optional[str] = None,
        resolved_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReviewItem:
        """
        Move an item to a new status.

        Everything is checked before anything is written, so a rejected
        transition leaves the stored item exactly as it was.
        """
        new_status = ReviewStatus(new_status)
        resolution = ReviewResolution(resolution) if resolution is not None else None

        with self._lock:
            item = self.get(item_id)
            current = item.status

            if new_status not in ALLOWED_TRANSITIONS[current]:
                reason = "item is closed" if item.is_terminal else "not an allowed move"
                raise InvalidTransitionError(item_id, current.value, new_status.value, reason)

            if new_status == ReviewStatus.RESOLVED:
                if resolution is None:
                    raise InvalidTransitionError(item_id, current.value, new_status.value,
                                                 "RESOLVED needs a resolution")
                if resolution in TARGETED_RESOLUTIONS and not resolved_entity_id:
                    raise InvalidTransitionError(item_id, current.value, new_status.value,
                                                 f"{resolution.value} needs a target entity")
                item.resolution = resolution
                item.resolved_entity_id = resolved_entity_id
                item.resolved_by = resolved_by
                item.resolved_at = datetime.now()
                item.resolution_notes = notes
            elif notes:
                item.resolution_notes = notes

            item.status = new_status
            item.touch()
            self.repo.reviews.save(item)

        LOGGER.info(
            f"Review {item_id}: {current.value} -> {new_status.value}"
            + (f" ({resolution.value})" if resolution else "")
        )
        return item

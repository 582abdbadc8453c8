"""Unit tests for ReviewQueue state machine."""

import pytest
from datetime import datetime, timedelta

from models import (
    ReviewItem,
    ReviewStatus,
    ReviewResolution,
    ReviewReason,
    ReviewPriority,
)
from network.errors import InvalidTransitionError, NotFoundError


def make_item(priority=ReviewPriority.NORMAL, entity_type="COMPANY", created_at=None):
    item = ReviewItem(
        entity_type=entity_type,
        reason=ReviewReason.FUZZY_MATCH_CANDIDATE,
        incoming_data={"entity_type": entity_type, "name": "Acme"},
        priority=priority,
    )
    if created_at is not None:
        item.created_at = created_at
    return item


class TestEnqueue:
    """Items start PENDING."""

    def test_enqueue_and_get(self, review_queue):
        item = review_queue.enqueue(make_item())
        assert review_queue.get(item.id).status == ReviewStatus.PENDING

    def test_enqueue_rejects_non_pending(self, review_queue):
        item = make_item()
        item.status = ReviewStatus.RESOLVED
        with pytest.raises(InvalidTransitionError):
            review_queue.enqueue(item)

    def test_get_missing(self, review_queue):
        with pytest.raises(NotFoundError):
            review_queue.get("nope")


class TestListing:
    """Highest priority first, then oldest."""

    def test_priority_then_age(self, review_queue, fixed_time):
        old_normal = review_queue.enqueue(make_item(created_at=fixed_time))
        new_high = review_queue.enqueue(make_item(ReviewPriority.HIGH, created_at=fixed_time + timedelta(hours=2)))
        new_normal = review_queue.enqueue(make_item(created_at=fixed_time + timedelta(hours=1)))
        low = review_queue.enqueue(make_item(ReviewPriority.LOW, created_at=fixed_time - timedelta(days=1)))

        items = review_queue.list_by_status(ReviewStatus.PENDING)

        assert [i.id for i in items] == [new_high.id, old_normal.id, new_normal.id, low.id]

    def test_filters(self, review_queue):
        review_queue.enqueue(make_item(entity_type="PERSON"))
        company = review_queue.enqueue(make_item(ReviewPriority.HIGH))

        assert [i.id for i in review_queue.list_by_status("PENDING", entity_type="COMPANY")] == [company.id]
        assert [i.id for i in review_queue.list_by_status("PENDING", priority="HIGH")] == [company.id]

    def test_counts(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)

        counts = review_queue.counts()

        assert counts["PENDING"] == 1
        assert counts["IN_REVIEW"] == 1
        assert counts["RESOLVED"] == 0


class TestTransitions:
    """PENDING -> IN_REVIEW -> RESOLVED | SKIPPED, IN_REVIEW -> PENDING."""

    def test_happy_path(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        resolved = review_queue.transition(
            item.id,
            ReviewStatus.RESOLVED,
            resolution=ReviewResolution.MERGED,
            resolved_entity_id="entity-1",
            resolved_by="analyst",
            notes="same company",
        )

        assert resolved.status == ReviewStatus.RESOLVED
        assert resolved.resolution == ReviewResolution.MERGED
        assert resolved.resolved_entity_id == "entity-1"
        assert resolved.resolved_by == "analyst"
        assert isinstance(resolved.resolved_at, datetime)
        assert resolved.is_terminal

    def test_release_back_to_pending(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        assert review_queue.transition(item.id, ReviewStatus.PENDING).status == ReviewStatus.PENDING

    def test_skip(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        skipped = review_queue.transition(item.id, ReviewStatus.SKIPPED)
        assert skipped.is_terminal
        assert skipped.resolution is None

    def test_pending_cannot_resolve_directly(self, review_queue):
        item = review_queue.enqueue(make_item())
        with pytest.raises(InvalidTransitionError):
            review_queue.transition(item.id, ReviewStatus.RESOLVED, resolution=ReviewResolution.REJECTED)

    def test_resolved_to_pending_rejected_and_unchanged(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        review_queue.transition(item.id, ReviewStatus.RESOLVED, resolution=ReviewResolution.CREATED_NEW,
                                resolved_entity_id="entity-1")
        before = review_queue.get(item.id)

        with pytest.raises(InvalidTransitionError):
            review_queue.transition(item.id, ReviewStatus.PENDING)

        after = review_queue.get(item.id)
        assert after.status == ReviewStatus.RESOLVED
        assert after.resolution == ReviewResolution.CREATED_NEW
        assert after.resolved_entity_id == "entity-1"
        assert after.updated_at == before.updated_at

    def test_skipped_is_terminal(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        review_queue.transition(item.id, ReviewStatus.SKIPPED)
        with pytest.raises(InvalidTransitionError):
            review_queue.transition(item.id, ReviewStatus.IN_REVIEW)

    def test_resolved_needs_resolution(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        with pytest.raises(InvalidTransitionError):
            review_queue.transition(item.id, ReviewStatus.RESOLVED)
        assert review_queue.get(item.id).status == ReviewStatus.IN_REVIEW

    def test_merge_needs_target(self, review_queue):
        item = review_queue.enqueue(make_item())
        review_queue.transition(item.id, ReviewStatus.IN_REVIEW)
        with pytest.raises(InvalidTransitionError):
            review_queue.transition(item.id, ReviewStatus.RESOLVED, resolution=ReviewResolution.MERGED)

    def test_missing_item(self, review_queue):
        with pytest.raises(NotFoundError):
            review_queue.transition("nope", ReviewStatus.IN_REVIEW)

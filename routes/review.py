"""
Review queue routes - list, park, claim and resolve ambiguous imports.
"""

from flask import jsonify, request
from pydantic import ValidationError

from models import (
    EntityType,
    ReviewItem,
    ReviewReason,
    ReviewStatus,
    ReviewPriority,
    ReviewResolution,
)
from network.errors import MalformedPayloadError

from . import review_bp
from .services import get_services, json_body, parse_enum, require


@review_bp.route("/api/review", methods=["GET"])
def list_review_items():
    """
    Items in one status, highest priority and oldest first.

    Query: status (default PENDING), priority, entity_type
    """
    queue = get_services().review_queue
    status = parse_enum(ReviewStatus, request.args.get("status", "PENDING"), "status")
    priority = parse_enum(ReviewPriority, request.args.get("priority"), "priority")
    entity_type = parse_enum(EntityType, request.args.get("entity_type"), "entity_type")

    items = queue.list_by_status(status, priority=priority, entity_type=entity_type)
    return jsonify({
        "status": status.value,
        "count": len(items),
        "counts": queue.counts(),
        "items": [i.model_dump(mode="json") for i in items],
    })


@review_bp.route("/api/review", methods=["POST"])
def enqueue_review_item():
    """
    Park a record for manual review.

    Body: {"entity_type": "...", "incoming_data": {...}, "reason"?, "priority"?,
           "candidates"?, "import_source"?}
    """
    data = json_body()
    require(data, "entity_type", "incoming_data")
    data.setdefault("reason", ReviewReason.MANUAL_VERIFICATION.value)

    try:
        item = ReviewItem.model_validate(data)
    except ValidationError as e:
        raise MalformedPayloadError(f"Invalid review item: {e}") from e

    item = get_services().review_queue.enqueue(item)
    return jsonify(item.model_dump(mode="json")), 201


@review_bp.route("/api/review/<item_id>", methods=["GET"])
def get_review_item(item_id: str):
    item = get_services().review_queue.get(item_id)
    return jsonify(item.model_dump(mode="json"))


@review_bp.route("/api/review/<item_id>/transition", methods=["POST"])
def transition_review_item(item_id: str):
    """
    Move an item through the state machine without touching the store.

    Body: {"status": "...", "resolution"?, "resolved_entity_id"?, "resolved_by"?, "notes"?}
    """
    data = json_body()
    require(data, "status")

    item = get_services().review_queue.transition(
        item_id,
        parse_enum(ReviewStatus, data["status"], "status"),
        resolution=parse_enum(ReviewResolution, data.get("resolution"), "resolution"),
        resolved_entity_id=data.get("resolved_entity_id"),
        resolved_by=data.get("resolved_by"),
        notes=data.get("notes"),
    )
    return jsonify(item.model_dump(mode="json"))


@review_bp.route("/api/review/<item_id>/adjudicate", methods=["POST"])
def adjudicate_review_item(item_id: str):
    """
    Apply a decision to the store and resolve the item.

    Body: {"resolution": "MERGED" | "CREATED_NEW" | "LINKED_TO_EXISTING" | "REJECTED",
           "resolved_entity_id"?, "resolved_by"?, "notes"?}
    """
    data = json_body()
    require(data, "resolution")

    item = get_services().pipeline.adjudicate(
        item_id,
        parse_enum(ReviewResolution, data["resolution"], "resolution"),
        resolved_entity_id=data.get("resolved_entity_id"),
        resolved_by=data.get("resolved_by"),
        notes=data.get("notes"),
    )
    return jsonify(item.model_dump(mode="json"))

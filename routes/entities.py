"""
Entity and relationship routes.
"""

from datetime import date
from flask import jsonify, request

from models import EntityType, RelationshipKind

from . import network_bp
from .services import get_services, json_body, parse_date, parse_enum, require


@network_bp.route("/api/entities", methods=["GET"])
def list_entities():
    """List entities of one type, optionally filtered by exact name."""
    store = get_services().store
    entity_type = parse_enum(EntityType, request.args.get("type", "COMPANY"), "type")
    name = request.args.get("name")

    entities = store.find_by_name(entity_type, name) if name else store.entities_of_type(entity_type)
    entities = sorted(entities, key=lambda e: (e.normalized_name, e.id))

    return jsonify({
        "count": len(entities),
        "entities": [e.model_dump(mode="json") for e in entities],
    })


@network_bp.route("/api/entities/<entity_id>", methods=["GET"])
def get_entity(entity_id: str):
    """
    One entity with its relationships.

    ?as_of=YYYY-MM-DD limits relationships to those holding on that date.
    """
    store = get_services().store
    entity = store.get_entity(entity_id)
    kind = parse_enum(RelationshipKind, request.args.get("kind"), "kind")
    as_of = parse_date(request.args.get("as_of"), "as_of")

    if as_of:
        relationships = store.as_of(entity_id, kind, as_of)
    else:
        relationships = store.relationships_for(entity_id, kind)

    return jsonify({
        "entity": entity.model_dump(mode="json"),
        "relationships": [r.model_dump(mode="json") for r in relationships],
    })


@network_bp.route("/api/entities/<entity_id>/classification", methods=["POST"])
def classify_entity(entity_id: str):
    """
    Caller-initiated classification change.

    Body: {"flags": {"is_client": true}, "attributes": {"client_start_date": "2024-01-01"}}
    """
    data = json_body()
    entity = get_services().store.apply_classification(
        entity_id,
        data.get("flags") or {},
        data.get("attributes") or {},
    )
    return jsonify(entity.model_dump(mode="json"))


@network_bp.route("/api/home-network", methods=["GET"])
def home_network():
    """Active client companies and client PE firms on a date (default today)."""
    store = get_services().store
    on_date = parse_date(request.args.get("as_of"), "as_of") or date.today()
    ids = store.home_network(on_date)
    return jsonify({
        "as_of": on_date.isoformat(),
        "count": len(ids),
        "entities": [store.get_entity(i).summary() for i in ids],
    })


@network_bp.route("/api/relationships", methods=["POST"])
def record_relationship():
    """
    Record one relationship interval.

    Body: {
        "kind": "EMPLOYMENT" | "OWNERSHIP" | "BOARD_SEAT" | "PE_FIRM_EMPLOYMENT",
        "party_a_id": "...", "party_b_id": "...",
        "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD" (optional),
        "title": "..." (optional), "source_tag": "..." (optional)
    }
    """
    data = json_body()
    require(data, "kind", "party_a_id", "party_b_id", "start_date")

    relationship = get_services().store.record_relationship(
        parse_enum(RelationshipKind, data["kind"], "kind"),
        data["party_a_id"],
        data["party_b_id"],
        parse_date(data["start_date"], "start_date"),
        parse_date(data.get("end_date"), "end_date"),
        title=data.get("title"),
        source_tag=data.get("source_tag"),
    )
    return jsonify(relationship.model_dump(mode="json")), 201


@network_bp.route("/api/relationships/<relationship_id>", methods=["GET"])
def get_relationship(relationship_id: str):
    relationship = get_services().store.get_relationship(relationship_id)
    return jsonify(relationship.model_dump(mode="json"))


@network_bp.route("/api/relationships/<relationship_id>/close", methods=["POST"])
def close_relationship(relationship_id: str):
    """Body: {"end_date": "YYYY-MM-DD"}"""
    data = json_body()
    require(data, "end_date")
    relationship = get_services().store.close_relationship(
        relationship_id,
        parse_date(data["end_date"], "end_date"),
    )
    return jsonify(relationship.model_dump(mode="json"))

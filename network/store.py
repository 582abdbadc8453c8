"""
Temporal store - entities plus interval-scoped relationships.

All writes go through this class. Derived values (is_active_client,
is_current) are computed from the stored dates on read, so a write can't
leave them stale.
"""

from datetime import date
from typing import Any, Optional

from config import get_logger, CLASSIFICATION_FLAGS
from models import (
    Entity,
    EntityType,
    Company,
    Person,
    PEFirm,
    ProspectStatus,
    Relationship,
    RelationshipKind,
    ENTITY_CLASSES,
    PARTY_TYPES,
    casefold_name,
)
from repositories.base import Repository
from .errors import (
    NotFoundError,
    InvalidIntervalError,
    InvalidRelationshipError,
    MalformedPayloadError,
)
from .locks import ShardedLock
from .matching import normalize_identifiers

LOGGER = get_logger(__name__)

_UNSET = object()

# Attribute names accepted per entity type, beyond name/source_tag
ENTITY_ATTRIBUTES = {
    "COMPANY": {
        "is_client", "client_start_date", "client_end_date",
        "is_prospect", "prospect_added_date", "prospect_status",
    },
    "PERSON": {"is_known_contact", "contact_source"},
    "PE_FIRM": {"is_client"},
}


def as_date(value: Any) -> Optional[date]:
    """Accept a date or an ISO string."""
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise MalformedPayloadError(f"Not an ISO date: {value!r}") from e


def as_flag(name: str, value: Any) -> bool:
    """Flags are real booleans; "false" or 0 is a malformed payload, not a value."""
    if not isinstance(value, bool):
        raise MalformedPayloadError(f"{name} must be true or false, got {value!r}")
    return value


def check_interval(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date is not None and end_date is not None and end_date < start_date:
        raise InvalidIntervalError(start_date, end_date)


class TemporalStore:
    """
    Entities and relationships over a repository backend.

    Entity writes are serialized per entity through a sharded lock.
    Relationship writes lock on (kind, party_a, party_b).
    """

    def __init__(self, repository: Repository = None, lock_shards: int = 64):
        if repository is None:
            from repositories import get_repository
            repository = get_repository()
        self.repo = repository
        self._entity_locks = ShardedLock(lock_shards)
        self._relationship_locks = ShardedLock(lock_shards)

    # === Entities ===

    def get_entity(self, entity_id: str) -> Entity:
        entity = self.repo.entities.get(entity_id)
        if entity is None:
            raise NotFoundError("entity", entity_id)
        return entity

    def entity_exists(self, entity_id: str) -> bool:
        return self.repo.entities.exists(entity_id)

    def find_by_identifier(self, entity_type: str, key: str, value: str) -> Optional[Entity]:
        normalized = normalize_identifiers({key: value})
        if not normalized:
            return None
        norm_key, norm_value = next(iter(normalized.items()))
        return self.repo.entities.find_by_identifier(EntityType(entity_type).value, norm_key, norm_value)

    def find_by_name(self, entity_type: str, name: str) -> list[Entity]:
        """Case-insensitive exact name lookup."""
        return self.repo.entities.find_by_name(EntityType(entity_type).value, casefold_name(name))

    def entities_of_type(self, entity_type: str) -> list[Entity]:
        return self.repo.entities.list_by_type(EntityType(entity_type).value)

    def upsert_entity(
        self,
        entity_type: str,
        identifiers: dict[str, str],
        attributes: dict[str, Any] = None,
    ) -> Entity:
        """
        Update the entity owning any of the identifiers, or insert a new one.

        attributes must carry "name" for an insert. Classification flags not
        given stay at their defaults (false) on insert and untouched on update.
        Raises DuplicateIdentifierError if a concurrent insert took an identifier.
        """
        entity_type = EntityType(entity_type).value
        identifiers = normalize_identifiers(identifiers or {})
        attributes = dict(attributes or {})

        for key, value in identifiers.items():
            existing = self.repo.entities.find_by_identifier(entity_type, key, value)
            if existing is not None:
                return self.update_entity(existing.id, identifiers=identifiers, attributes=attributes)

        return self.insert_entity(entity_type, identifiers, attributes)

    def insert_entity(
        self,
        entity_type: str,
        identifiers: dict[str, str],
        attributes: dict[str, Any] = None,
    ) -> Entity:
        """
        Insert a new entity, never touching an existing one.

        Raises DuplicateIdentifierError if any identifier already has an owner.
        """
        entity_type = EntityType(entity_type).value
        identifiers = normalize_identifiers(identifiers or {})
        attributes = dict(attributes or {})

        name = attributes.pop("name", None)
        if not name or not str(name).strip():
            raise MalformedPayloadError("A new entity needs a name")
        source_tag = attributes.pop("source_tag", None)

        entity = ENTITY_CLASSES[entity_type](name=name, identifiers=identifiers, source_tag=source_tag)
        self._apply_attributes(entity, attributes)
        self.repo.entities.insert(entity)

        LOGGER.info(f"Created {entity_type} {entity.id} ({entity.name})")
        return entity

    def update_entity(
        self,
        entity_id: str,
        identifiers: dict[str, str] = None,
        attributes: dict[str, Any] = None,
    ) -> Entity:
        """
        Merge identifiers and apply attributes in place.

        Identifier keys the entity already has keep their value; a differing
        incoming value is logged and ignored.
        """
        with self._entity_locks.hold_one(entity_id):
            entity = self.get_entity(entity_id)
            attributes = dict(attributes or {})

            merged = dict(entity.identifiers)
            for key, value in normalize_identifiers(identifiers or {}).items():
                if key in merged and merged[key] != value:
                    LOGGER.warning(
                        f"Ignoring conflicting {key} for {entity_id}: have {merged[key]}, got {value}"
                    )
                    continue
                merged[key] = value
            entity.identifiers = merged

            if "name" in attributes:
                entity.name = attributes.pop("name")
            if "source_tag" in attributes:
                entity.source_tag = attributes.pop("source_tag")

            self._apply_attributes(entity, attributes)
            entity.touch()
            self.repo.entities.save(entity)

        LOGGER.debug(f"Updated {entity.entity_type} {entity_id}")
        return entity

    def apply_classification(
        self,
        entity_id: str,
        flags: dict[str, bool],
        attributes: dict[str, Any] = None,
    ) -> Entity:
        """Caller-initiated flag change. Only flags present in `flags` are touched."""
        entity = self.get_entity(entity_id)
        allowed = CLASSIFICATION_FLAGS[entity.entity_type]
        unknown = set(flags) - set(allowed)
        if unknown:
            raise MalformedPayloadError(
                f"Unknown flags for {entity.entity_type}: {', '.join(sorted(unknown))}"
            )
        return self.update_entity(entity_id, attributes={**(attributes or {}), **flags})

    def set_client_status(
        self,
        company_id: str,
        is_client=_UNSET,
        start_date=_UNSET,
        end_date=_UNSET,
    ) -> Company:
        """Change client fields. Omitted arguments keep their current value."""
        attributes = {}
        if is_client is not _UNSET:
            attributes["is_client"] = is_client
        if start_date is not _UNSET:
            attributes["client_start_date"] = start_date
        if end_date is not _UNSET:
            attributes["client_end_date"] = end_date
        self._require_type(company_id, EntityType.COMPANY)
        return self.update_entity(company_id, attributes=attributes)

    def set_prospect_status(
        self,
        company_id: str,
        is_prospect: bool,
        status: Optional[ProspectStatus] = None,
        added_date: Optional[date] = None,
    ) -> Company:
        self._require_type(company_id, EntityType.COMPANY)
        attributes = {"is_prospect": is_prospect, "prospect_status": status}
        if added_date is not None:
            attributes["prospect_added_date"] = added_date
        return self.update_entity(company_id, attributes=attributes)

    def set_known_contact(
        self,
        person_id: str,
        is_known_contact: bool,
        contact_source: Optional[str] = None,
    ) -> Person:
        self._require_type(person_id, EntityType.PERSON)
        attributes = {"is_known_contact": is_known_contact}
        if contact_source is not None:
            attributes["contact_source"] = contact_source
        return self.update_entity(person_id, attributes=attributes)

    def home_network(self, on_date: Optional[date] = None) -> list[str]:
        """Active client companies plus client PE firms, as of the date."""
        on_date = on_date or date.today()
        home = []
        for entity in self.repo.entities.list():
            if isinstance(entity, Company):
                if entity.is_active_client_on(on_date) and entity.client_start_date <= on_date:
                    home.append(entity.id)
            elif isinstance(entity, PEFirm) and entity.is_client:
                home.append(entity.id)
        return sorted(home)

    def _require_type(self, entity_id: str, entity_type: EntityType) -> Entity:
        entity = self.get_entity(entity_id)
        if entity.entity_type != entity_type.value:
            raise MalformedPayloadError(f"{entity_id} is a {entity.entity_type}, not a {entity_type.value}")
        return entity

    def _apply_attributes(self, entity: Entity, attributes: dict[str, Any]) -> None:
        """Apply type-specific attributes through the records' own setters."""
        unknown = set(attributes) - ENTITY_ATTRIBUTES[entity.entity_type]
        if unknown:
            raise MalformedPayloadError(
                f"Unknown attributes for {entity.entity_type}: {', '.join(sorted(unknown))}"
            )

        if isinstance(entity, Company):
            if {"is_client", "client_start_date", "client_end_date"} & set(attributes):
                entity.set_client_status(
                    as_flag("is_client", attributes.get("is_client", entity.is_client)),
                    as_date(attributes.get("client_start_date", entity.client_start_date)),
                    as_date(attributes.get("client_end_date", entity.client_end_date)),
                )
            if {"is_prospect", "prospect_status", "prospect_added_date"} & set(attributes):
                status = attributes.get("prospect_status", entity.prospect_status)
                entity.set_prospect_status(
                    as_flag("is_prospect", attributes.get("is_prospect", entity.is_prospect)),
                    ProspectStatus(status) if status is not None else None,
                    as_date(attributes.get("prospect_added_date")),
                )
        elif isinstance(entity, Person):
            if "is_known_contact" in attributes:
                entity.is_known_contact = as_flag("is_known_contact", attributes["is_known_contact"])
            if "contact_source" in attributes:
                entity.contact_source = attributes["contact_source"]
        elif isinstance(entity, PEFirm):
            if "is_client" in attributes:
                entity.is_client = as_flag("is_client", attributes["is_client"])

    # === Relationships ===

    def get_relationship(self, relationship_id: str) -> Relationship:
        relationship = self.repo.relationships.get(relationship_id)
        if relationship is None:
            raise NotFoundError("relationship", relationship_id)
        return relationship

    def record_relationship(
        self,
        kind: RelationshipKind,
        party_a: str,
        party_b: str,
        start_date: date,
        end_date: Optional[date] = None,
        title: Optional[str] = None,
        source_tag: Optional[str] = None,
    ) -> Relationship:
        """
        Record one interval of a relationship.

        Re-recording an identical interval returns the existing row. A second
        open relationship of the same kind between the same parties is rejected.
        """
        kind = RelationshipKind(kind)
        start_date = as_date(start_date)
        end_date = as_date(end_date)
        if start_date is None:
            raise MalformedPayloadError("A relationship needs a start_date")
        check_interval(start_date, end_date)
        if party_a == party_b:
            raise InvalidRelationshipError(f"{kind.value} can't link {party_a} to itself")

        entity_a = self.get_entity(party_a)
        entity_b = self.get_entity(party_b)
        types_a, types_b = PARTY_TYPES[kind]
        if entity_a.entity_type not in types_a or entity_b.entity_type not in types_b:
            raise InvalidRelationshipError(
                f"{kind.value} needs ({'/'.join(types_a)}, {'/'.join(types_b)}), "
                f"got ({entity_a.entity_type}, {entity_b.entity_type})"
            )

        with self._relationship_locks.hold_one(f"{kind.value}:{party_a}:{party_b}"):
            for existing in self.repo.relationships.for_entity(party_a, kind):
                if existing.party_b_id != party_b or existing.party_a_id != party_a:
                    continue
                if existing.start_date == start_date and existing.end_date == end_date:
                    return existing
                if end_date is None and existing.end_date is None:
                    raise InvalidRelationshipError(
                        f"Open {kind.value} {existing.id} already links {party_a} and {party_b}; "
                        f"close it before recording a new current one"
                    )

            relationship = Relationship(
                kind=kind,
                party_a_id=party_a,
                party_b_id=party_b,
                start_date=start_date,
                end_date=end_date,
                title=title,
                source_tag=source_tag,
            )
            self.repo.relationships.save(relationship)

        LOGGER.info(
            f"Recorded {kind.value} {relationship.id}: {entity_a.name} -> {entity_b.name} "
            f"from {start_date}" + (f" to {end_date}" if end_date else "")
        )
        return relationship

    def close_relationship(self, relationship_id: str, end_date: date) -> Relationship:
        """Set the end date. The only mutation a historical row ever gets."""
        end_date = as_date(end_date)
        if end_date is None:
            raise MalformedPayloadError("close_relationship needs an end_date")

        relationship = self.get_relationship(relationship_id)
        key = f"{relationship.kind.value}:{relationship.party_a_id}:{relationship.party_b_id}"
        with self._relationship_locks.hold_one(key):
            relationship = self.get_relationship(relationship_id)
            check_interval(relationship.start_date, end_date)
            if relationship.end_date is not None:
                if relationship.end_date == end_date:
                    return relationship
                raise InvalidRelationshipError(
                    f"Relationship {relationship_id} already closed on {relationship.end_date}"
                )
            relationship.end_date = end_date
            relationship.touch()
            self.repo.relationships.save(relationship)

        LOGGER.info(f"Closed {relationship.kind.value} {relationship_id} on {end_date}")
        return relationship

    def relationships_for(self, entity_id: str, kind: Optional[RelationshipKind] = None) -> list[Relationship]:
        self.get_entity(entity_id)
        rels = self.repo.relationships.for_entity(entity_id, RelationshipKind(kind) if kind else None)
        return sorted(rels, key=lambda r: (r.start_date, r.id), reverse=True)

    def current_relationships(self, entity_id: str, kind: Optional[RelationshipKind] = None) -> list[Relationship]:
        """Relationships with no end date."""
        return [r for r in self.relationships_for(entity_id, kind) if r.is_current]

    def as_of(
        self,
        entity_id: str,
        kind: Optional[RelationshipKind],
        on_date: date,
    ) -> list[Relationship]:
        """Relationships whose interval contains the date."""
        on_date = as_date(on_date)
        return [r for r in self.relationships_for(entity_id, kind) if r.contains(on_date)]

    # === Reads for traversal ===

    def snapshot(self) -> tuple[dict[str, Entity], list[Relationship]]:
        return self.repo.snapshot()

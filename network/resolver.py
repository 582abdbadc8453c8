"""
Entity resolver - decide whether an import event is a known entity.

Cascade, first hit wins:
1. exact identifier (strong keys domain / network_id / email first)
2. case-insensitive exact name
3. fuzzy name similarity above the configured threshold -> always review
4. nothing -> create

The create path runs under sharded identity locks and re-checks steps 1-2
inside the lock, so two concurrent imports of the same company end up with
one entity: the loser comes back Matched against the winner.
"""

from typing import Any, Optional

from pydantic import ValidationError

from config import (
    get_logger,
    ResolverSettings,
    STRONG_IDENTIFIERS,
    CLASSIFICATION_FLAGS,
)
from models import (
    Entity,
    ImportEvent,
    MatchCandidate,
    MatchMethod,
    Matched,
    Ambiguous,
    Created,
    Resolution,
    ReviewReason,
    casefold_name,
)
from .errors import DuplicateIdentifierError, MalformedPayloadError
from .locks import ShardedLock
from .matching import normalize_identifiers, name_similarity
from .store import TemporalStore, ENTITY_ATTRIBUTES

LOGGER = get_logger(__name__)

# Attempts at the create path before giving up on a flapping identifier
MAX_CREATE_ATTEMPTS = 3


def parse_event(data: dict[str, Any]) -> ImportEvent:
    """Build an ImportEvent from a raw payload, or raise MalformedPayloadError."""
    try:
        event = ImportEvent.model_validate(data)
    except ValidationError as e:
        raise MalformedPayloadError(f"Invalid import event: {e}") from e
    validate_event(event)
    return event


def validate_event(event: ImportEvent) -> None:
    if not event.name or not event.name.strip():
        raise MalformedPayloadError("Import event has no name")
    if event.depth < 0:
        raise MalformedPayloadError(f"Import event depth can't be negative: {event.depth}")
    allowed = CLASSIFICATION_FLAGS[event.entity_type.value]
    unknown = set(event.classification_flags) - set(allowed)
    if unknown:
        raise MalformedPayloadError(
            f"Unknown flags for {event.entity_type.value}: {', '.join(sorted(unknown))}"
        )
    unknown = set(event.attributes) - ENTITY_ATTRIBUTES[event.entity_type.value]
    if unknown:
        raise MalformedPayloadError(
            f"Unknown attributes for {event.entity_type.value}: {', '.join(sorted(unknown))}"
        )


def identifier_keys(entity_type: str, identifiers: dict[str, str]) -> list[str]:
    """
    Keys present on the record, strong ones first in their configured order.

    Every identifier is unique per type in the repository, so any of them
    is an exact hit; strong keys only decide which one is reported first.
    """
    strong = [k for k in STRONG_IDENTIFIERS[entity_type] if k in identifiers]
    return strong + sorted(k for k in identifiers if k not in strong)


class EntityResolver:
    """
    Resolves import events against the temporal store.

    Never sets classification flags on its own. Flags only change when the
    event explicitly carries them.
    """

    def __init__(self, store: TemporalStore, settings: ResolverSettings = None):
        self.store = store
        self.settings = settings or ResolverSettings()
        self._identity_locks = ShardedLock(self.settings.lock_shards)

    def resolve(self, event: ImportEvent) -> Resolution:
        validate_event(event)
        identifiers = normalize_identifiers(event.identifiers)

        resolution = self._match_exact(event, identifiers)
        if resolution is None:
            resolution = self._match_fuzzy(event)
        if resolution is None:
            resolution = self._create(event, identifiers)

        if isinstance(resolution, Matched):
            self._apply_to_match(resolution.entity_id, event, identifiers)

        self._log(event, resolution)
        return resolution

    # === Cascade steps ===

    def _match_exact(self, event: ImportEvent, identifiers: dict[str, str]) -> Optional[Resolution]:
        """Steps 1 and 2. None means no exact hit at all."""
        entity_type = event.entity_type.value

        hits: dict[str, Entity] = {}
        matched_on = None
        for key in identifier_keys(entity_type, identifiers):
            entity = self.store.repo.entities.find_by_identifier(entity_type, key, identifiers[key])
            if entity is not None:
                hits.setdefault(entity.id, entity)
                matched_on = matched_on or key

        if len(hits) == 1:
            entity = next(iter(hits.values()))
            return Matched(entity_id=entity.id, method=MatchMethod.EXACT_IDENTIFIER, matched_on=matched_on)
        if len(hits) > 1:
            return Ambiguous(
                reason=ReviewReason.DATA_CONFLICT,
                candidates=self._exact_candidates(hits.values()),
                method=MatchMethod.EXACT_IDENTIFIER,
            )

        by_name = self.store.repo.entities.find_by_name(entity_type, casefold_name(event.name))
        if len(by_name) == 1:
            entity = by_name[0]
            if self._conflicts(entity, identifiers):
                return Ambiguous(
                    reason=ReviewReason.DATA_CONFLICT,
                    candidates=self._exact_candidates(by_name),
                    method=MatchMethod.EXACT_NAME,
                )
            return Matched(entity_id=entity.id, method=MatchMethod.EXACT_NAME, matched_on="name")
        if len(by_name) > 1:
            return Ambiguous(
                reason=ReviewReason.DUPLICATE_SUSPECTED,
                candidates=self._exact_candidates(by_name),
                method=MatchMethod.EXACT_NAME,
            )
        return None

    def _match_fuzzy(self, event: ImportEvent) -> Optional[Ambiguous]:
        """Step 3. Any candidate at all means review."""
        candidates = self.fuzzy_candidates(event.entity_type.value, event.name)
        if not candidates:
            return None
        return Ambiguous(
            reason=ReviewReason.FUZZY_MATCH_CANDIDATE,
            candidates=candidates,
            method=MatchMethod.FUZZY_NAME,
        )

    def fuzzy_candidates(self, entity_type: str, name: str) -> list[MatchCandidate]:
        """
        Existing entities whose names score at or above the threshold.

        Sorted by similarity, then most recently updated first.
        """
        threshold = self.settings.fuzzy_threshold
        scored = []
        for entity in self.store.entities_of_type(entity_type):
            score = name_similarity(name, entity.name)
            if score >= threshold:
                scored.append((score, entity))

        scored.sort(key=lambda pair: (-pair[0], -pair[1].updated_at.timestamp(), pair[1].id))
        return [
            MatchCandidate(
                entity_id=entity.id,
                name=entity.name,
                similarity=round(score, 4),
                updated_at=entity.updated_at,
            )
            for score, entity in scored[: self.settings.max_candidates]
        ]

    def _create(self, event: ImportEvent, identifiers: dict[str, str]) -> Resolution:
        """
        Step 4, under identity locks.

        Inside the lock the exact steps run again: if another pipeline created
        the entity while we were matching, we match it instead.
        """
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            with self._identity_locks.hold(self.identity_keys(event, identifiers)):
                recheck = self._match_exact(event, identifiers)
                if recheck is not None:
                    LOGGER.debug(f"Lost create race for {event.name!r}; resolved against winner")
                    return recheck
                try:
                    entity = self.store.insert_entity(
                        event.entity_type.value,
                        identifiers,
                        self._new_entity_attributes(event),
                    )
                except DuplicateIdentifierError as e:
                    # Someone else took an identifier through a different lock
                    LOGGER.info(f"Identifier conflict on create (attempt {attempt}): {e}")
                    continue
            return Created(entity_id=entity.id)

        # Last word: whatever now owns the identifiers
        recheck = self._match_exact(event, identifiers)
        if recheck is not None:
            return recheck
        raise DuplicateIdentifierError(event.entity_type.value, "*", event.name, "unknown")

    # === Adjudication helpers ===

    def resolve_as_new(self, event: ImportEvent) -> Created:
        """Create without matching. Used when an adjudicator says CREATED_NEW."""
        validate_event(event)
        identifiers = normalize_identifiers(event.identifiers)
        with self._identity_locks.hold(self.identity_keys(event, identifiers)):
            identifiers = self._unowned(event.entity_type.value, identifiers)
            entity = self.store.insert_entity(
                event.entity_type.value,
                identifiers,
                self._new_entity_attributes(event),
            )
        LOGGER.info(f"Created {event.entity_type.value} {entity.id} by adjudication")
        return Created(entity_id=entity.id, method=MatchMethod.MANUAL)

    def link(self, event: ImportEvent, entity_id: str) -> Matched:
        """Fold an event into a chosen entity. Used for MERGED / LINKED_TO_EXISTING."""
        validate_event(event)
        identifiers = normalize_identifiers(event.identifiers)
        with self._identity_locks.hold(self.identity_keys(event, identifiers)):
            identifiers = self._unowned(event.entity_type.value, identifiers, owner_id=entity_id)
            self._apply_to_match(entity_id, event, identifiers)
        LOGGER.info(f"Linked {event.name!r} to {entity_id} by adjudication")
        return Matched(entity_id=entity_id, method=MatchMethod.MANUAL)

    # === Internals ===

    def identity_keys(self, event: ImportEvent, identifiers: dict[str, str]) -> list[str]:
        """Every key this record could be found under. Locks cover all of them."""
        entity_type = event.entity_type.value
        keys = [f"{entity_type}:name:{casefold_name(event.name)}"]
        for key in identifier_keys(entity_type, identifiers):
            keys.append(f"{entity_type}:{key}:{identifiers[key]}")
        return keys

    def _new_entity_attributes(self, event: ImportEvent) -> dict[str, Any]:
        attributes = dict(event.attributes)
        attributes.update(event.classification_flags)
        attributes["name"] = event.name
        if event.source_tag:
            attributes["source_tag"] = event.source_tag
        return attributes

    def _apply_to_match(self, entity_id: str, event: ImportEvent, identifiers: dict[str, str]) -> None:
        """New identifiers plus explicitly supplied flags/attributes. Nothing inferred."""
        self.store.update_entity(entity_id, identifiers=identifiers)
        if event.classification_flags or event.attributes:
            self.store.apply_classification(entity_id, event.classification_flags, event.attributes)

    def _unowned(self, entity_type: str, identifiers: dict[str, str], owner_id: str = None) -> dict[str, str]:
        """Identifiers owned by some other entity stay with their owner."""
        kept = {}
        for key, value in identifiers.items():
            owner = self.store.repo.entities.find_by_identifier(entity_type, key, value)
            if owner is not None and owner.id != owner_id:
                LOGGER.warning(f"Dropping {key}={value}; it belongs to {owner.id}")
                continue
            kept[key] = value
        return kept

    def _conflicts(self, entity: Entity, identifiers: dict[str, str]) -> bool:
        """True if a strong identifier on both sides disagrees."""
        for key in STRONG_IDENTIFIERS[entity.entity_type]:
            if key in identifiers and key in entity.identifiers and identifiers[key] != entity.identifiers[key]:
                return True
        return False

    def _exact_candidates(self, entities) -> list[MatchCandidate]:
        ordered = sorted(entities, key=lambda e: (-e.updated_at.timestamp(), e.id))
        return [
            MatchCandidate(entity_id=e.id, name=e.name, similarity=1.0, updated_at=e.updated_at)
            for e in ordered
        ]

    def _log(self, event: ImportEvent, resolution: Resolution) -> None:
        if isinstance(resolution, Ambiguous):
            LOGGER.info(
                f"{event.entity_type.value} {event.name!r}: AMBIGUOUS ({resolution.reason.value}, "
                f"{len(resolution.candidates)} candidates)"
            )
        else:
            LOGGER.info(
                f"{event.entity_type.value} {event.name!r}: {resolution.kind} "
                f"{resolution.entity_id} via {resolution.method.value}"
            )

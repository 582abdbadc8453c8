"""
In-memory backend - dicts plus indexes, guarded by one short-held lock.

The lock only covers dict and index updates. Identity coordination across
concurrent imports happens in the resolver's sharded locks, not here.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Callable, Optional

from models import Entity, Relationship, RelationshipKind, ReviewItem, ReviewStatus
from network.errors import DuplicateIdentifierError
from .base import (
    Repository,
    EntityRepository,
    RelationshipRepository,
    ReviewRepository,
)


class MemoryState:
    """Everything the backend holds. Shared by the sub-repositories."""

    def __init__(self):
        self.lock = threading.RLock()
        self.entities: dict[str, Entity] = {}
        self.identifier_index: dict[tuple[str, str, str], str] = {}
        self.name_index: dict[tuple[str, str], set[str]] = defaultdict(set)
        self.relationships: dict[str, Relationship] = {}
        self.entity_relationships: dict[str, list[str]] = defaultdict(list)
        self.reviews: dict[str, ReviewItem] = {}


def _copy(record):
    return record.model_copy(deep=True) if record is not None else None


class MemoryEntityRepository(EntityRepository):

    def __init__(self, state: MemoryState, on_write: Callable[[], None] = None):
        self._state = state
        self._on_write = on_write or (lambda: None)

    def get(self, id: str) -> Optional[Entity]:
        with self._state.lock:
            return _copy(self._state.entities.get(id))

    def exists(self, id: str) -> bool:
        with self._state.lock:
            return id in self._state.entities

    def list(self) -> list[Entity]:
        with self._state.lock:
            return [_copy(e) for e in self._state.entities.values()]

    def list_by_type(self, entity_type: str) -> list[Entity]:
        with self._state.lock:
            return [_copy(e) for e in self._state.entities.values() if e.entity_type == entity_type]

    def insert(self, entity: Entity) -> None:
        with self._state.lock:
            if entity.id in self._state.entities:
                raise ValueError(f"Entity {entity.id} already exists")
            self._put(entity)
        self._on_write()

    def save(self, record: Entity) -> None:
        with self._state.lock:
            self._put(record)
        self._on_write()

    def find_by_identifier(self, entity_type: str, key: str, value: str) -> Optional[Entity]:
        with self._state.lock:
            entity_id = self._state.identifier_index.get((entity_type, key, value))
            return _copy(self._state.entities.get(entity_id)) if entity_id else None

    def find_by_name(self, entity_type: str, normalized_name: str) -> list[Entity]:
        with self._state.lock:
            ids = self._state.name_index.get((entity_type, normalized_name), set())
            return [_copy(self._state.entities[i]) for i in sorted(ids)]

    def _put(self, entity: Entity) -> None:
        """Store and reindex. Caller holds the lock."""
        state = self._state

        # Check every identifier before changing anything
        for key, value in entity.identifiers.items():
            owner = state.identifier_index.get((entity.entity_type, key, value))
            if owner is not None and owner != entity.id:
                raise DuplicateIdentifierError(entity.entity_type, key, value, owner)

        previous = state.entities.get(entity.id)
        if previous is not None:
            for key, value in previous.identifiers.items():
                state.identifier_index.pop((previous.entity_type, key, value), None)
            state.name_index[(previous.entity_type, previous.normalized_name)].discard(previous.id)

        stored = _copy(entity)
        state.entities[stored.id] = stored
        for key, value in stored.identifiers.items():
            state.identifier_index[(stored.entity_type, key, value)] = stored.id
        state.name_index[(stored.entity_type, stored.normalized_name)].add(stored.id)


class MemoryRelationshipRepository(RelationshipRepository):

    def __init__(self, state: MemoryState, on_write: Callable[[], None] = None):
        self._state = state
        self._on_write = on_write or (lambda: None)

    def get(self, id: str) -> Optional[Relationship]:
        with self._state.lock:
            return _copy(self._state.relationships.get(id))

    def exists(self, id: str) -> bool:
        with self._state.lock:
            return id in self._state.relationships

    def list(self) -> list[Relationship]:
        with self._state.lock:
            return [_copy(r) for r in self._state.relationships.values()]

    def save(self, record: Relationship) -> None:
        with self._state.lock:
            is_new = record.id not in self._state.relationships
            self._state.relationships[record.id] = _copy(record)
            if is_new:
                self._state.entity_relationships[record.party_a_id].append(record.id)
                self._state.entity_relationships[record.party_b_id].append(record.id)
        self._on_write()

    def for_entity(self, entity_id: str, kind: Optional[RelationshipKind] = None) -> list[Relationship]:
        with self._state.lock:
            rels = [self._state.relationships[i] for i in self._state.entity_relationships.get(entity_id, [])]
            if kind is not None:
                rels = [r for r in rels if r.kind == kind]
            return [_copy(r) for r in rels]


class MemoryReviewRepository(ReviewRepository):

    def __init__(self, state: MemoryState, on_write: Callable[[], None] = None):
        self._state = state
        self._on_write = on_write or (lambda: None)

    def get(self, id: str) -> Optional[ReviewItem]:
        with self._state.lock:
            return _copy(self._state.reviews.get(id))

    def exists(self, id: str) -> bool:
        with self._state.lock:
            return id in self._state.reviews

    def list(self) -> list[ReviewItem]:
        with self._state.lock:
            return [_copy(r) for r in self._state.reviews.values()]

    def save(self, record: ReviewItem) -> None:
        with self._state.lock:
            self._state.reviews[record.id] = _copy(record)
        self._on_write()

    def list_by_status(self, status: ReviewStatus) -> list[ReviewItem]:
        with self._state.lock:
            return [_copy(r) for r in self._state.reviews.values() if r.status == status]


class MemoryRepository(Repository):
    """In-memory backend. Default for tests and single-process runs."""

    def __init__(self):
        self._state = MemoryState()
        self._entities = MemoryEntityRepository(self._state)
        self._relationships = MemoryRelationshipRepository(self._state)
        self._reviews = MemoryReviewRepository(self._state)

    @property
    def entities(self) -> EntityRepository:
        return self._entities

    @property
    def relationships(self) -> RelationshipRepository:
        return self._relationships

    @property
    def reviews(self) -> ReviewRepository:
        return self._reviews

    def snapshot(self) -> tuple[dict[str, Entity], list[Relationship]]:
        with self._state.lock:
            entities = {eid: _copy(e) for eid, e in self._state.entities.items()}
            relationships = [_copy(r) for r in self._state.relationships.values()]
        return entities, relationships

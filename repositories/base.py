"""
Repository base classes - define the interface.

History is additive: nothing here deletes. Closing a relationship is a save
of the same record with an end date.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional

from models import Entity, Relationship, RelationshipKind, ReviewItem, ReviewStatus

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Abstract base for record repositories."""

    @abstractmethod
    def get(self, id: str) -> Optional[T]:
        """Get record by ID. Returns a copy."""
        pass

    @abstractmethod
    def save(self, record: T) -> None:
        """Insert or replace a record."""
        pass

    @abstractmethod
    def list(self) -> list[T]:
        """List all records."""
        pass

    @abstractmethod
    def exists(self, id: str) -> bool:
        """Check if record exists."""
        pass

    def delete(self, id: str) -> bool:
        raise NotImplementedError("History is additive - records are never deleted")


class EntityRepository(BaseRepository[Entity]):
    """Repository for companies, people and PE firms."""

    @abstractmethod
    def insert(self, entity: Entity) -> None:
        """
        Insert a new entity.

        Raises DuplicateIdentifierError if any identifier value already
        belongs to another entity of the same type.
        """
        pass

    @abstractmethod
    def find_by_identifier(self, entity_type: str, key: str, value: str) -> Optional[Entity]:
        """Exact identifier lookup within one entity type."""
        pass

    @abstractmethod
    def find_by_name(self, entity_type: str, normalized_name: str) -> list[Entity]:
        """All entities of the type whose casefolded name equals normalized_name."""
        pass

    @abstractmethod
    def list_by_type(self, entity_type: str) -> list[Entity]:
        """All entities of one type."""
        pass


class RelationshipRepository(BaseRepository[Relationship]):
    """Repository for interval relationships."""

    @abstractmethod
    def for_entity(self, entity_id: str, kind: Optional[RelationshipKind] = None) -> list[Relationship]:
        """Relationships where the entity is either party."""
        pass


class ReviewRepository(BaseRepository[ReviewItem]):
    """Repository for review queue items."""

    @abstractmethod
    def list_by_status(self, status: ReviewStatus) -> list[ReviewItem]:
        """Items currently in the given status."""
        pass


class Repository:
    """
    Aggregate repository - provides access to all record repositories.

    This is what consumers use. Backend implementations provide
    concrete versions of each sub-repository.
    """

    @property
    @abstractmethod
    def entities(self) -> EntityRepository:
        """Access entity repository."""
        pass

    @property
    @abstractmethod
    def relationships(self) -> RelationshipRepository:
        """Access relationship repository."""
        pass

    @property
    @abstractmethod
    def reviews(self) -> ReviewRepository:
        """Access review queue repository."""
        pass

    @abstractmethod
    def snapshot(self) -> tuple[dict[str, Entity], list[Relationship]]:
        """Consistent copy of all entities and relationships for read-only traversal."""
        pass

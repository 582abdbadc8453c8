"""
Domain models - single source of truth for all records.

Design principles:
- Every record defined once
- Derived values computed, never stored
- Validation at the boundary
- Backend-agnostic (repository handles persistence)
"""

from .base import BaseRecord, TimestampMixin
from .entity import (
    Entity,
    EntityType,
    Company,
    Person,
    PEFirm,
    ProspectStatus,
    AnyEntity,
    ENTITY_CLASSES,
    entity_from_dict,
    casefold_name,
)
from .relationship import Relationship, RelationshipKind, AFFILIATION_KINDS, PARTY_TYPES
from .review import (
    ReviewItem,
    ReviewStatus,
    ReviewResolution,
    ReviewReason,
    ReviewPriority,
    MatchCandidate,
)
from .resolution import ImportEvent, MatchMethod, Matched, Ambiguous, Created, Resolution
from .enrichment import EnrichmentPlan, EnrichmentLevel, DiscoveryTarget
from .paths import ConnectionPath, ConnectionQuery, PathEntity, PathTier
from .stats import ImportStats, ImportOutcome, ImportBatchResult

__all__ = [
    # Base
    "BaseRecord",
    "TimestampMixin",
    # Entity
    "Entity",
    "EntityType",
    "Company",
    "Person",
    "PEFirm",
    "ProspectStatus",
    "AnyEntity",
    "ENTITY_CLASSES",
    "entity_from_dict",
    "casefold_name",
    # Relationship
    "Relationship",
    "RelationshipKind",
    "AFFILIATION_KINDS",
    "PARTY_TYPES",
    # Review
    "ReviewItem",
    "ReviewStatus",
    "ReviewResolution",
    "ReviewReason",
    "ReviewPriority",
    "MatchCandidate",
    # Resolution
    "ImportEvent",
    "MatchMethod",
    "Matched",
    "Ambiguous",
    "Created",
    "Resolution",
    # Enrichment
    "EnrichmentPlan",
    "EnrichmentLevel",
    "DiscoveryTarget",
    # Paths
    "ConnectionPath",
    "ConnectionQuery",
    "PathEntity",
    "PathTier",
    # Stats
    "ImportStats",
    "ImportOutcome",
    "ImportBatchResult",
]

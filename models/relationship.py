"""
Relationship - an interval-scoped tie between two entities.

Current status is derived from the dates, never stored. The end date is
exclusive: a relationship that ends on day D no longer holds on D.
"""

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import Field, computed_field

from .base import BaseRecord
from .entity import new_id


class RelationshipKind(str, Enum):
    EMPLOYMENT = "EMPLOYMENT"                  # person -> company
    OWNERSHIP = "OWNERSHIP"                    # owner (PE firm or company) -> company
    BOARD_SEAT = "BOARD_SEAT"                  # person -> company
    PE_FIRM_EMPLOYMENT = "PE_FIRM_EMPLOYMENT"  # person -> PE firm


# Allowed entity types for (party_a, party_b) of each kind
PARTY_TYPES: dict[RelationshipKind, tuple[tuple[str, ...], tuple[str, ...]]] = {
    RelationshipKind.EMPLOYMENT: (("PERSON",), ("COMPANY",)),
    RelationshipKind.OWNERSHIP: (("PE_FIRM", "COMPANY"), ("COMPANY",)),
    RelationshipKind.BOARD_SEAT: (("PERSON",), ("COMPANY",)),
    RelationshipKind.PE_FIRM_EMPLOYMENT: (("PERSON",), ("PE_FIRM",)),
}

# Kinds that tie a person to an organization
AFFILIATION_KINDS = frozenset({
    RelationshipKind.EMPLOYMENT,
    RelationshipKind.BOARD_SEAT,
    RelationshipKind.PE_FIRM_EMPLOYMENT,
})


class Relationship(BaseRecord):
    """
    One interval of a relationship.

    For OWNERSHIP, party_a owns party_b. For the other kinds party_a is the
    person and party_b the organization.
    """
    id: str = Field(default_factory=new_id)
    kind: RelationshipKind
    party_a_id: str
    party_b_id: str
    start_date: date
    end_date: Optional[date] = None
    title: Optional[str] = None
    source_tag: Optional[str] = None

    @computed_field
    @property
    def is_current(self) -> bool:
        return self.end_date is None

    def exists_on(self, on_date: date) -> bool:
        """Started on or before the date."""
        return self.start_date <= on_date

    def is_current_on(self, on_date: date) -> bool:
        return self.exists_on(on_date) and (self.end_date is None or self.end_date > on_date)

    def is_former_on(self, on_date: date) -> bool:
        return self.end_date is not None and self.end_date <= on_date

    def contains(self, on_date: date) -> bool:
        """Interval covers the date."""
        return self.is_current_on(on_date)

    def involves(self, entity_id: str) -> bool:
        return entity_id in (self.party_a_id, self.party_b_id)

    def other_party(self, entity_id: str) -> str:
        if entity_id == self.party_a_id:
            return self.party_b_id
        if entity_id == self.party_b_id:
            return self.party_a_id
        raise ValueError(f"{entity_id} is not a party to relationship {self.id}")

    def same_parties(self, other: "Relationship") -> bool:
        return (
            self.kind == other.kind
            and self.party_a_id == other.party_a_id
            and self.party_b_id == other.party_b_id
        )

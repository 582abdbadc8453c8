"""
Connection paths between the home network and a target.
"""

from datetime import date
from enum import IntEnum
from typing import Optional
from pydantic import BaseModel, Field

from .relationship import Relationship


class PathTier(IntEnum):
    """Strength of a connection, 1 strongest."""
    FORMER_EMPLOYEE_NOW_AT_TARGET = 1
    CURRENT_OWNERSHIP = 2
    CURRENT_EMPLOYEE_FORMERLY_AT_TARGET = 3
    FORMER_OWNERSHIP = 4
    COMMON_PE_OWNER = 5
    MUTUAL_FORMER_EMPLOYEE = 6


class PathEntity(BaseModel):
    id: str
    entity_type: str
    name: str


class ConnectionPath(BaseModel):
    """
    A simple path home -> ... -> target with alternating entities and edges.

    entities[i] and entities[i + 1] are joined by edges[i].
    """
    tier: PathTier
    entities: list[PathEntity]
    edges: list[Relationship]
    explanation: str = ""

    @property
    def length(self) -> int:
        return len(self.edges)

    @property
    def home(self) -> PathEntity:
        return self.entities[0]

    @property
    def target(self) -> PathEntity:
        return self.entities[-1]

    @property
    def latest_start(self) -> date:
        return max(edge.start_date for edge in self.edges)

    def sort_key(self) -> tuple:
        # tier asc, length asc, most recent tie first, then ids for stable output
        return (
            int(self.tier),
            self.length,
            -self.latest_start.toordinal(),
            tuple(e.id for e in self.entities),
            tuple(edge.id for edge in self.edges),
        )

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "tier": int(self.tier),
            "length": self.length,
            "entities": [e.model_dump() for e in self.entities],
            "edges": [edge.model_dump(mode="json") for edge in self.edges],
            "explanation": self.explanation,
        }


class ConnectionQuery(BaseModel):
    target: str
    max_path_length: Optional[int] = Field(default=None, ge=1)
    as_of_date: Optional[date] = None
    home_set: Optional[list[str]] = None

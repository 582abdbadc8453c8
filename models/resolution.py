"""
Import events and resolution outcomes.

An ImportEvent is what the orchestration layer hands in. A Resolution is
what comes back: Matched, Ambiguous or Created.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field

from .entity import EntityType
from .review import MatchCandidate, ReviewReason


class ImportEvent(BaseModel):
    """
    One record about a company, person or PE firm.

    classification_flags carries only what the caller explicitly knows.
    Anything absent stays false on a new entity and untouched on an existing one.
    """
    entity_type: EntityType
    name: str
    identifiers: dict[str, str] = Field(default_factory=dict)
    classification_flags: dict[str, bool] = Field(default_factory=dict)
    attributes: dict[str, Any] = Field(default_factory=dict)
    source_tag: Optional[str] = None
    depth: int = 0
    batch_id: Optional[str] = None


class MatchMethod(str, Enum):
    EXACT_IDENTIFIER = "EXACT_IDENTIFIER"
    EXACT_NAME = "EXACT_NAME"
    FUZZY_NAME = "FUZZY_NAME"
    NEW_ENTITY = "NEW_ENTITY"
    MANUAL = "MANUAL"


class Matched(BaseModel):
    kind: Literal["MATCHED"] = "MATCHED"
    entity_id: str
    method: MatchMethod
    matched_on: Optional[str] = None  # identifier key, or "name"


class Ambiguous(BaseModel):
    kind: Literal["AMBIGUOUS"] = "AMBIGUOUS"
    reason: ReviewReason
    candidates: list[MatchCandidate]
    method: MatchMethod
    review_item_id: Optional[str] = None  # set once parked in the queue


class Created(BaseModel):
    kind: Literal["CREATED"] = "CREATED"
    entity_id: str
    method: MatchMethod = MatchMethod.NEW_ENTITY


Resolution = Annotated[Union[Matched, Ambiguous, Created], Field(discriminator="kind")]

"""
Entity - a company, person or PE firm tracked over time.

Classification flags are independent booleans on one plain record. A company
can be a client and a prospect at the same time, or neither.
"""

import uuid
from datetime import date
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import Field, TypeAdapter, computed_field

from .base import BaseRecord


class EntityType(str, Enum):
    """Kinds of tracked entity."""
    COMPANY = "COMPANY"
    PERSON = "PERSON"
    PE_FIRM = "PE_FIRM"


class ProspectStatus(str, Enum):
    """Sales stage of a prospect company."""
    RESEARCHING = "RESEARCHING"
    QUALIFIED = "QUALIFIED"
    PITCHED = "PITCHED"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"


def casefold_name(name: str) -> str:
    """Lowercase, whitespace-collapsed form used for exact name matching."""
    return " ".join(name.split()).casefold()


def new_id() -> str:
    return uuid.uuid4().hex


class Entity(BaseRecord):
    """
    Fields shared by every entity type.

    identifiers maps an external key (domain, network_id, email) to its
    normalized value. Values are unique per key within an entity type.
    """
    id: str = Field(default_factory=new_id)
    entity_type: str
    name: str = Field(min_length=1)
    identifiers: dict[str, str] = Field(default_factory=dict)
    source_tag: Optional[str] = None

    @computed_field
    @property
    def normalized_name(self) -> str:
        return casefold_name(self.name)

    def summary(self) -> dict:
        """Short form for path and API responses."""
        return {"id": self.id, "entity_type": self.entity_type, "name": self.name}


class Company(Entity):
    """A company: possibly a client, possibly a prospect, possibly both."""
    entity_type: Literal["COMPANY"] = "COMPANY"

    is_client: bool = False
    client_start_date: Optional[date] = None
    client_end_date: Optional[date] = None

    is_prospect: bool = False
    prospect_added_date: Optional[date] = None
    prospect_status: Optional[ProspectStatus] = None

    @computed_field
    @property
    def is_active_client(self) -> bool:
        """Derived from the client fields on every read, so it can't go stale."""
        return self.is_active_client_on(date.today())

    def is_active_client_on(self, on_date: date) -> bool:
        if not self.is_client or self.client_start_date is None:
            return False
        return self.client_end_date is None or self.client_end_date > on_date

    def set_client_status(
        self,
        is_client: bool,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> None:
        """
        The single write path for client fields.

        Validates the interval before touching anything, so a rejected
        update leaves the record as it was.
        """
        from network.errors import InvalidIntervalError

        if start_date and end_date and end_date < start_date:
            raise InvalidIntervalError(start_date, end_date)
        self.is_client = is_client
        self.client_start_date = start_date
        self.client_end_date = end_date
        self.touch()

    def set_prospect_status(
        self,
        is_prospect: bool,
        status: Optional[ProspectStatus] = None,
        added_date: Optional[date] = None,
    ) -> None:
        self.is_prospect = is_prospect
        self.prospect_status = status
        if is_prospect and added_date is None and self.prospect_added_date is None:
            added_date = date.today()
        if added_date is not None:
            self.prospect_added_date = added_date
        self.touch()


class Person(Entity):
    """A person. is_known_contact is only ever set by an explicit import flag."""
    entity_type: Literal["PERSON"] = "PERSON"

    is_known_contact: bool = False
    contact_source: Optional[str] = None


class PEFirm(Entity):
    """A private-equity firm, with a client flag unrelated to Company's."""
    entity_type: Literal["PE_FIRM"] = "PE_FIRM"

    is_client: bool = False


AnyEntity = Annotated[Union[Company, Person, PEFirm], Field(discriminator="entity_type")]

ENTITY_CLASSES: dict[str, type[Entity]] = {
    EntityType.COMPANY.value: Company,
    EntityType.PERSON.value: Person,
    EntityType.PE_FIRM.value: PEFirm,
}

_entity_adapter = TypeAdapter(AnyEntity)


def entity_from_dict(data: dict) -> Entity:
    """Rebuild the right entity subclass from stored data."""
    return _entity_adapter.validate_python(data)

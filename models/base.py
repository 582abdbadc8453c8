"""
Shared shape of everything the repositories persist.

Entities, relationships and review items all carry creation and last-write
timestamps, and all validate on assignment so an in-place edit can't leave
a record the backends would refuse to load again.
"""

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class TimestampMixin(BaseModel):
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class BaseRecord(TimestampMixin):
    """
    A stored network record.

    Each subclass declares its own uuid id field. Unknown keys in a
    loaded payload are dropped, so older JSON files still load.
    """
    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    def touch(self) -> None:
        """Mark a write. Resolver candidate ordering reads updated_at."""
        self.updated_at = datetime.now()

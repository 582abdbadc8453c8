"""
Unit test fixtures.

All unit tests should be:
- Fast (< 100ms)
- Isolated (in-memory backend only)
- Deterministic (fixed dates wherever "today" doesn't matter)
"""

import pytest
from datetime import date, datetime


@pytest.fixture
def fixed_time():
    """Fixed datetime for deterministic tests."""
    return datetime(2024, 1, 15, 12, 0, 0)


@pytest.fixture
def as_of():
    """Reference date for temporal tests."""
    return date(2024, 6, 1)


@pytest.fixture
def company_event():
    """Raw import event for a company with a domain."""
    return {
        "entity_type": "COMPANY",
        "name": "Acme Corp",
        "identifiers": {"domain": "https://www.acme.com/"},
        "source_tag": "crm",
    }


@pytest.fixture
def person_event():
    """Raw import event for a person with a profile URL."""
    return {
        "entity_type": "PERSON",
        "name": "Jane Doe",
        "identifiers": {"network_id": "https://www.linkedin.com/in/jane-doe/"},
        "classification_flags": {"is_known_contact": True},
        "attributes": {"contact_source": "conference"},
    }

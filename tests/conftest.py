"""
Root test configuration.

Test organization:
- unit/        Fast, isolated, in-memory backend only
- integration/ Component boundaries: JSON files in temp dirs, Flask app, threads

Run specific levels:
    pytest tests/unit -v           # Fast feedback loop
    pytest tests/integration -v    # Before commit
    pytest tests -v                # Everything
"""

import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from config import Settings, ResolverSettings, PathSettings
from models import RelationshipKind
from network.cascade import CascadeController
from network.importer import ImportPipeline
from network.paths import ConnectionPathFinder
from network.resolver import EntityResolver
from network.review_queue import ReviewQueue
from network.store import TemporalStore
from repositories import MemoryRepository


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "integration: Component boundary tests")
    config.addinivalue_line("markers", "slow: Tests that take > 1s")


# === Core components ===

@pytest.fixture
def settings():
    """Default settings, no file or environment involved."""
    return Settings(resolver=ResolverSettings(), paths=PathSettings())


@pytest.fixture
def repo():
    """Fresh in-memory repository."""
    return MemoryRepository()


@pytest.fixture
def store(repo):
    return TemporalStore(repo)


@pytest.fixture
def resolver(store, settings):
    return EntityResolver(store, settings.resolver)


@pytest.fixture
def review_queue(repo):
    return ReviewQueue(repo)


@pytest.fixture
def cascade():
    return CascadeController()


@pytest.fixture
def pipeline(store, resolver, review_queue, cascade, settings):
    return ImportPipeline(store, resolver, review_queue, cascade, settings=settings)


@pytest.fixture
def path_finder(store, settings):
    return ConnectionPathFinder(store, settings.paths)


# === Graph building ===

class NetworkBuilder:
    """Shorthand for seeding a store in tests."""

    def __init__(self, store: TemporalStore):
        self.store = store

    def company(self, name, domain=None, **attributes):
        identifiers = {"domain": domain} if domain else {}
        return self.store.upsert_entity("COMPANY", identifiers, {"name": name, **attributes})

    def client(self, name, start=date(2020, 1, 1), end=None, domain=None):
        return self.company(
            name,
            domain=domain,
            is_client=True,
            client_start_date=start,
            client_end_date=end,
        )

    def person(self, name, network_id=None, **attributes):
        identifiers = {"network_id": network_id} if network_id else {}
        return self.store.upsert_entity("PERSON", identifiers, {"name": name, **attributes})

    def pe_firm(self, name, domain=None, **attributes):
        identifiers = {"domain": domain} if domain else {}
        return self.store.upsert_entity("PE_FIRM", identifiers, {"name": name, **attributes})

    def employ(self, person, company, start, end=None, title=None):
        return self.store.record_relationship(
            RelationshipKind.EMPLOYMENT, person.id, company.id, start, end, title=title
        )

    def board(self, person, company, start, end=None):
        return self.store.record_relationship(RelationshipKind.BOARD_SEAT, person.id, company.id, start, end)

    def own(self, owner, company, start, end=None):
        return self.store.record_relationship(RelationshipKind.OWNERSHIP, owner.id, company.id, start, end)


@pytest.fixture
def build(store):
    """NetworkBuilder over the test store."""
    return NetworkBuilder(store)

"""
JSON file backend - in-memory indexes persisted as JSON files.

Directory structure:
    {data_dir}/
        entities.json       - Entities by id
        relationships.json  - Relationships by id (closing rewrites one row)
        review_queue.json   - Review items by id

Files are loaded once at startup and rewritten atomically after each write.
"""

import json
import threading
from pathlib import Path

from config import DATA_DIR, get_logger
from models import Relationship, ReviewItem, entity_from_dict
from network.errors import PersistenceError
from .memory_backend import (
    MemoryState,
    MemoryEntityRepository,
    MemoryRelationshipRepository,
    MemoryReviewRepository,
    MemoryRepository,
)

LOGGER = get_logger(__name__)


class WriteQueue:
    """Thread-safe write serialization."""

    def __init__(self):
        self._lock = threading.Lock()

    def write_json(self, path: Path, data: dict) -> None:
        """Atomic JSON write."""
        with self._lock:
            temp = path.with_suffix(".json.tmp")
            try:
                with open(temp, "w") as f:
                    json.dump(data, f, indent=2, default=str)
                temp.replace(path)
            except OSError as e:
                raise PersistenceError(f"Failed to write {path}", e) from e


_write_queue = WriteQueue()


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Corrupt or unreadable {path}", e) from e


class JsonRepository(MemoryRepository):
    """JSON file backend implementation."""

    ENTITIES_FILE = "entities.json"
    RELATIONSHIPS_FILE = "relationships.json"
    REVIEWS_FILE = "review_queue.json"

    def __init__(self, base_path: Path = None):
        self._base_path = Path(base_path or DATA_DIR)
        self._base_path.mkdir(parents=True, exist_ok=True)

        self._flush_lock = threading.Lock()
        self._state = MemoryState()
        self._entities = MemoryEntityRepository(self._state, self._flush_entities)
        self._relationships = MemoryRelationshipRepository(self._state, self._flush_relationships)
        self._reviews = MemoryReviewRepository(self._state, self._flush_reviews)
        self._load()

    def _load(self) -> None:
        entities = _read_json(self._base_path / self.ENTITIES_FILE)
        relationships = _read_json(self._base_path / self.RELATIONSHIPS_FILE)
        reviews = _read_json(self._base_path / self.REVIEWS_FILE)

        # Load straight into the indexes without triggering flushes
        loader_entities = MemoryEntityRepository(self._state)
        loader_relationships = MemoryRelationshipRepository(self._state)
        loader_reviews = MemoryReviewRepository(self._state)
        try:
            for data in entities.values():
                loader_entities.save(entity_from_dict(data))
            for data in relationships.values():
                loader_relationships.save(Relationship.model_validate(data))
            for data in reviews.values():
                loader_reviews.save(ReviewItem.model_validate(data))
        except ValueError as e:
            raise PersistenceError(f"Invalid record in {self._base_path}", e) from e

        LOGGER.info(
            f"Loaded {len(entities)} entities, {len(relationships)} relationships, "
            f"{len(reviews)} review items from {self._base_path}"
        )

    # Snapshot and write under one lock so an older snapshot can't land last
    def _flush_entities(self) -> None:
        with self._flush_lock:
            with self._state.lock:
                data = {eid: e.model_dump(mode="json") for eid, e in self._state.entities.items()}
            _write_queue.write_json(self._base_path / self.ENTITIES_FILE, data)

    def _flush_relationships(self) -> None:
        with self._flush_lock:
            with self._state.lock:
                data = {rid: r.model_dump(mode="json") for rid, r in self._state.relationships.items()}
            _write_queue.write_json(self._base_path / self.RELATIONSHIPS_FILE, data)

    def _flush_reviews(self) -> None:
        with self._flush_lock:
            with self._state.lock:
                data = {rid: r.model_dump(mode="json") for rid, r in self._state.reviews.items()}
            _write_queue.write_json(self._base_path / self.REVIEWS_FILE, data)

    @property
    def base_path(self) -> Path:
        return self._base_path

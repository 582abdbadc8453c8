"""
Service wiring shared by the blueprints.

One Services instance per app, kept in app.extensions. Route modules never
build their own store.
"""

from dataclasses import dataclass
from typing import Any, Optional

from flask import current_app, request

from config import Settings, load_settings
from network.cascade import CascadeController
from network.errors import MalformedPayloadError
from network.importer import ImportPipeline
from network.paths import ConnectionPathFinder
from network.resolver import EntityResolver
from network.review_queue import ReviewQueue
from network.store import TemporalStore, as_date
from repositories import Repository, configure_backend, get_repository

EXTENSION_KEY = "pe_network"


@dataclass
class Services:
    settings: Settings
    store: TemporalStore
    resolver: EntityResolver
    review_queue: ReviewQueue
    cascade: CascadeController
    pipeline: ImportPipeline
    path_finder: ConnectionPathFinder


def build_services(settings: Settings = None, repository: Repository = None) -> Services:
    """Wire the core components over one repository."""
    settings = settings or load_settings()
    if repository is None:
        configure_backend(settings.backend, settings.data_dir)
        repository = get_repository()

    store = TemporalStore(repository, lock_shards=settings.resolver.lock_shards)
    resolver = EntityResolver(store, settings.resolver)
    review_queue = ReviewQueue(repository)
    cascade = CascadeController()
    pipeline = ImportPipeline(store, resolver, review_queue, cascade, settings=settings)
    path_finder = ConnectionPathFinder(store, settings.paths)

    return Services(
        settings=settings,
        store=store,
        resolver=resolver,
        review_queue=review_queue,
        cascade=cascade,
        pipeline=pipeline,
        path_finder=path_finder,
    )


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def json_body() -> dict:
    """Request JSON as a dict. Anything else is a malformed payload."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedPayloadError("Request body must be a JSON object")
    return data


def parse_enum(enum_cls, value: Any, field: str) -> Optional[Any]:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise MalformedPayloadError(f"{field} must be one of {allowed}, got {value!r}") from e


def parse_date(value: Any, field: str):
    try:
        return as_date(value)
    except MalformedPayloadError as e:
        raise MalformedPayloadError(f"{field}: {e}") from e


def require(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise MalformedPayloadError(f"Missing required fields: {', '.join(missing)}")

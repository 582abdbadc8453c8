"""
Configuration and shared utilities for the PE network core.
"""

import os
import sys
import logging
import yaml
from pathlib import Path
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field
from dotenv import load_dotenv


# Load environment variables
load_dotenv()
home_config = Path.home() / ".pe-network" / "config.env"
if home_config.exists():
    load_dotenv(home_config, override=True)

# Paths
DATA_DIR = Path(os.environ.get("PE_NETWORK_DATA_DIR", "data"))
SETTINGS_FILE = Path(os.environ.get("PE_NETWORK_SETTINGS", "network.yaml"))

# Identifier keys trusted for exact matching, per entity type.
# Order matters: the first key present on a record names its identity lock.
STRONG_IDENTIFIERS: Dict[str, Tuple[str, ...]] = {
    "COMPANY": ("domain", "network_id"),
    "PERSON": ("network_id", "email"),
    "PE_FIRM": ("domain", "network_id"),
}

# Flags an import event may set, per entity type
CLASSIFICATION_FLAGS: Dict[str, Tuple[str, ...]] = {
    "COMPANY": ("is_client", "is_prospect"),
    "PERSON": ("is_known_contact",),
    "PE_FIRM": ("is_client",),
}


@dataclass
class ResolverSettings:
    """
    Knobs for entity resolution.

    fuzzy_threshold is a 0-1 similarity floor. Anything at or above it is a
    review candidate, never an automatic match.
    """
    fuzzy_threshold: float = 0.85
    max_candidates: int = 5
    lock_shards: int = 64


@dataclass
class PathSettings:
    """Connection path search limits."""
    max_path_length: int = 4


@dataclass
class Settings:
    resolver: ResolverSettings = field(default_factory=ResolverSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    backend: str = "memory"  # memory, json
    data_dir: Path = DATA_DIR
    log_level: str = "INFO"


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from YAML, then apply environment overrides.

    A missing settings file is fine - defaults apply.
    """
    path = Path(path) if path else SETTINGS_FILE
    raw: dict = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    resolver_cfg = raw.get("resolver", {})
    paths_cfg = raw.get("paths", {})

    settings = Settings(
        resolver=ResolverSettings(
            fuzzy_threshold=float(resolver_cfg.get("fuzzy_threshold", 0.85)),
            max_candidates=int(resolver_cfg.get("max_candidates", 5)),
            lock_shards=int(resolver_cfg.get("lock_shards", 64)),
        ),
        paths=PathSettings(
            max_path_length=int(paths_cfg.get("max_path_length", 4)),
        ),
        backend=raw.get("backend", "memory"),
        data_dir=Path(raw.get("data_dir", DATA_DIR)),
        log_level=raw.get("log_level", "INFO"),
    )

    # Environment wins over the file
    if "PE_NETWORK_FUZZY_THRESHOLD" in os.environ:
        settings.resolver.fuzzy_threshold = float(os.environ["PE_NETWORK_FUZZY_THRESHOLD"])
    if "PE_NETWORK_MAX_CANDIDATES" in os.environ:
        settings.resolver.max_candidates = int(os.environ["PE_NETWORK_MAX_CANDIDATES"])
    if "PE_NETWORK_MAX_PATH_LENGTH" in os.environ:
        settings.paths.max_path_length = int(os.environ["PE_NETWORK_MAX_PATH_LENGTH"])
    if "PE_NETWORK_BACKEND" in os.environ:
        settings.backend = os.environ["PE_NETWORK_BACKEND"]
    if "PE_NETWORK_DATA_DIR" in os.environ:
        settings.data_dir = Path(os.environ["PE_NETWORK_DATA_DIR"])
    if "PE_NETWORK_LOG_LEVEL" in os.environ:
        settings.log_level = os.environ["PE_NETWORK_LOG_LEVEL"]

    if not 0.0 < settings.resolver.fuzzy_threshold <= 1.0:
        raise ValueError(f"fuzzy_threshold must be in (0, 1], got {settings.resolver.fuzzy_threshold}")
    if settings.paths.max_path_length < 1:
        raise ValueError("max_path_length must be at least 1")

    return settings


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger.

    Level comes from the argument, then PE_NETWORK_LOG_LEVEL, then INFO.
    """
    logger = logging.getLogger(name)

    log_level = (level or os.environ.get("PE_NETWORK_LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)

    return logger

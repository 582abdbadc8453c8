"""
Identifier normalization and name similarity.

Exact matching runs on normalized identifiers and casefolded names. Fuzzy
matching compares names with legal suffixes and punctuation removed.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from rapidfuzz import fuzz

from models import casefold_name

LEGAL_SUFFIXES = {
    "inc", "incorporated", "llc", "llp", "lp", "ltd", "limited", "corp",
    "corporation", "co", "company", "plc", "gmbh", "ag", "sa", "bv", "nv",
    "holdings", "group",
}

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_domain(value: str) -> str:
    """
    Reduce a URL or host to its bare domain.

    "https://www.Acme.com/about" -> "acme.com"
    """
    value = value.strip().lower()
    if "://" not in value:
        value = "//" + value
    host = urlparse(value).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host.rstrip(".")


def normalize_network_id(value: str) -> str:
    """
    Reduce a professional-network profile URL to its slug.

    "https://www.linkedin.com/in/Jane-Doe/" -> "jane-doe"
    A bare id passes through lowercased.
    """
    value = value.strip()
    if "/" in value:
        parts = [p for p in urlparse(value if "://" in value else "//" + value).path.split("/") if p]
        if parts:
            value = parts[-1]
    return value.lower()


def normalize_email(value: str) -> str:
    return value.strip().lower()


_NORMALIZERS = {
    "domain": normalize_domain,
    "website": normalize_domain,
    "network_id": normalize_network_id,
    "email": normalize_email,
}


def normalize_identifier(key: str, value: str) -> Optional[str]:
    """Normalize one identifier. Returns None for values that normalize to nothing."""
    key = key.strip().lower()
    normalizer = _NORMALIZERS.get(key, lambda v: v.strip())
    normalized = normalizer(str(value))
    return normalized or None


def normalize_identifiers(identifiers: dict[str, str]) -> dict[str, str]:
    """Normalize keys and values, dropping empties. "website" folds into "domain"."""
    result = {}
    for key, value in identifiers.items():
        if value is None:
            continue
        norm_key = key.strip().lower()
        if norm_key == "website":
            norm_key = "domain"
        normalized = normalize_identifier(norm_key, value)
        if normalized:
            result.setdefault(norm_key, normalized)
    return result


def comparable_name(name: str) -> str:
    """Casefolded name without punctuation or trailing legal suffixes."""
    tokens = _PUNCTUATION.sub(" ", casefold_name(name)).split()
    while len(tokens) > 1 and tokens[-1] in LEGAL_SUFFIXES:
        tokens.pop()
    return " ".join(tokens)


def name_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1]. Word order doesn't matter."""
    left, right = comparable_name(a), comparable_name(b)
    if not left or not right:
        return 0.0
    return fuzz.token_sort_ratio(left, right) / 100.0

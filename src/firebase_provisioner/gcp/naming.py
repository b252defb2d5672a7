"""Google Cloud project identifier conventions."""

from __future__ import annotations

import re
import uuid

# Platform constraint: 6-30 chars, lowercase letters, digits and hyphens,
# starting with a letter and not ending with a hyphen.
PROJECT_ID_MAX_LENGTH = 30
PROJECT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")

_SUFFIX_LENGTH = 8
_INVALID_CHARS = re.compile(r"[^a-z0-9]+")


def sanitize_fragment(value: str, max_length: int) -> str:
    """Reduce *value* to lowercase alphanumerics joined by single hyphens."""
    fragment = _INVALID_CHARS.sub("-", value.lower()).strip("-")
    return fragment[:max_length].rstrip("-")


def random_suffix() -> str:
    return uuid.uuid4().hex[:_SUFFIX_LENGTH]


def generate_project_id(prefix: str, owner_id: str, suffix: str | None = None) -> str:
    """Build ``<prefix>-<owner fragment>-<random>`` within the length limit.

    Uniqueness is probabilistic; a collision surfaces as a create failure.
    """
    suffix = suffix or random_suffix()
    budget = PROJECT_ID_MAX_LENGTH - len(prefix) - len(suffix) - 2
    fragment = sanitize_fragment(owner_id, max(budget, 0))
    parts = [prefix, fragment, suffix] if fragment else [prefix, suffix]
    return "-".join(parts)


def is_valid_project_id(project_id: str) -> bool:
    return bool(PROJECT_ID_PATTERN.match(project_id))

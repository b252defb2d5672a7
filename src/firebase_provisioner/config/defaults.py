"""Built-in service defaults and section-wise merging of override files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

SERVICE_DEFAULTS = Path(__file__).parent / "defaults" / "service.yaml"


def service_defaults(path: Path = SERVICE_DEFAULTS) -> dict[str, Any]:
    """Return the raw (placeholder-bearing) default service settings."""
    if not path.is_file():
        msg = f"Service defaults missing at {path}"
        raise FileNotFoundError(msg)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return dict(data or {})


def overlay(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Apply *overrides* on top of *base* without mutating either.

    Nested sections such as ``gcp`` or ``poller`` are merged key by key, so an
    override file only has to name the settings it changes.
    """
    result = dict(base)
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = overlay(current, value)
        else:
            result[key] = value
    return result

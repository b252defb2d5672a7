"""Service config loading: built-in defaults, an optional YAML override file
and ``${VAR}`` / ``${VAR:-default}`` placeholders read from the environment.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from firebase_provisioner.config.defaults import overlay, service_defaults
from firebase_provisioner.config.models import ServiceConfig

logger = structlog.get_logger()

_PLACEHOLDER = re.compile(
    r"\$\{(?P<name>[^}:]+)(?::-(?P<default>(?:[^}\\]|\\.)*))?\}"
)


def expand_env(data: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Substitute placeholders in every string of a parsed YAML tree.

    A set variable wins over the inline default, including when it is set to
    the empty string.  A placeholder with no default whose variable is unset
    is an error.
    """
    env = os.environ if environ is None else environ

    def _substitute(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in env:
            return env[name]
        default = match.group("default")
        if default is None:
            msg = f"Environment variable '{name}' is not set and has no default"
            raise ValueError(msg)
        return default.replace("\\}", "}")

    def _walk(node: Any) -> Any:
        if isinstance(node, str):
            return _PLACEHOLDER.sub(_substitute, node)
        if isinstance(node, dict):
            return {key: _walk(value) for key, value in node.items()}
        if isinstance(node, list):
            return [_walk(item) for item in node]
        return node

    return _walk(data)


def read_overrides(path: str | Path) -> dict[str, Any]:
    """Parse a user override file; an empty file means no overrides."""
    source = Path(path)
    if not source.is_file():
        msg = f"Config file not found: {source}"
        raise FileNotFoundError(msg)
    try:
        data = yaml.safe_load(source.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Cannot parse {source}{where}: {exc}"
        raise ValueError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{source} must contain a YAML mapping, not {type(data).__name__}"
        raise TypeError(msg)
    return data


def load_service_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ServiceConfig:
    """Build the validated service config.

    Placeholders are expanded on every call, after the override file has been
    laid over the defaults, so credentials and placement hints always reflect
    the current environment.
    """
    raw = service_defaults()
    if path is not None:
        raw = overlay(raw, read_overrides(path))
    try:
        config = ServiceConfig.model_validate(expand_env(raw, environ))
    except ValidationError as exc:
        origin = path or "built-in defaults"
        msg = f"Invalid service config ({origin}):\n{exc}"
        raise ValueError(msg) from exc

    logger.debug(
        "config.loaded",
        source=str(path) if path is not None else "defaults",
        environment=config.environment.value,
        credential_configured=config.gcp.credential_configured,
    )
    return config

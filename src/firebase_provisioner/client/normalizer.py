"""Pasted-text → AppConfig normalizer.

Accepts the shapes people copy out of the Firebase console or a source file::

    // For Firebase JS SDK v7.20.0 and later
    export const firebaseConfig = {
      apiKey: "AIza...",
      authDomain: "demo.firebaseapp.com",
      ...
    };

and reduces them to strict JSON before validating.  Each stage is a plain
function so it can be tested on its own.  The brace matching and key quoting
are regex approximations for this format family, not a JavaScript parser:
single-quoted values, nested template strings or computed keys are not
supported.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from firebase_provisioner.models import REQUIRED_CONFIG_FIELDS, AppConfig


class ParseError(ValueError):
    """Raised when pasted text cannot be reduced to a valid AppConfig.

    ``kind`` is one of ``empty``, ``syntax``, ``not-an-object`` or
    ``missing-fields``; for the latter ``fields`` names every missing field.
    """

    EMPTY = "empty"
    SYNTAX = "syntax"
    NOT_AN_OBJECT = "not-an-object"
    MISSING_FIELDS = "missing-fields"

    def __init__(self, kind: str, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.kind = kind
        self.fields = list(fields)


# Comment, key and comma rewrites match string literals first (group 1) and
# put them back unchanged, so "//", ",key:" or ",}" inside a value survive.
_STRING = r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')"""
_COMMENT_PATTERN = re.compile(_STRING + r"|//[^\n]*|/\*.*?\*/", re.DOTALL)
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
_DECLARATION_PATTERN = re.compile(r"^(?:export\s+)?(?:const|var|let)\s+\w+\s*=\s*")
_TERMINATOR_PATTERN = re.compile(r";+\s*$")
_BARE_KEY_PATTERN = re.compile(_STRING + r"|([{,]\s*)(\w+)(\s*):")
_TRAILING_COMMA_PATTERN = re.compile(_STRING + r"|,(\s*[}\]])")


def _quote_key(match: re.Match[str]) -> str:
    if match.group(1):
        return match.group(1)
    return f'{match.group(2)}"{match.group(3)}"{match.group(4)}:'


def _drop_comma(match: re.Match[str]) -> str:
    return match.group(1) or match.group(2)


def strip_comments(text: str) -> str:
    """Remove ``// ...`` and ``/* ... */`` comments outside string literals."""
    return _COMMENT_PATTERN.sub(lambda m: m.group(1) or "", text)


def extract_object_literal(text: str) -> str:
    """Return the span from the first ``{`` to the last ``}``, or *text* itself."""
    match = _OBJECT_PATTERN.search(text)
    return match.group(0) if match else text


def strip_declaration(text: str) -> str:
    """Drop a leading ``[export] const|var|let name =`` prefix."""
    return _DECLARATION_PATTERN.sub("", text.strip(), count=1)


def strip_terminator(text: str) -> str:
    return _TERMINATOR_PATTERN.sub("", text).strip()


def quote_keys(text: str) -> str:
    """Quote bare identifiers used as object keys."""
    return _BARE_KEY_PATTERN.sub(_quote_key, text)


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_PATTERN.sub(_drop_comma, text)


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(
            ParseError.SYNTAX,
            f"Invalid JSON format at line {exc.lineno}, column {exc.colno}: {exc.msg}",
        ) from exc


def require_object(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(
            ParseError.NOT_AN_OBJECT,
            "Invalid configuration format; expected a Firebase config object",
        )
    return value


def require_fields(data: dict[str, Any]) -> dict[str, Any]:
    missing = [name for name in REQUIRED_CONFIG_FIELDS if not data.get(name)]
    if missing:
        raise ParseError(
            ParseError.MISSING_FIELDS,
            f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )
    return data


def build_config(data: dict[str, Any]) -> AppConfig:
    """Keep the known fields; ``messagingSenderId`` defaults to ``""``."""
    return AppConfig.from_mapping(data)


def to_strict_json(raw_text: str) -> str:
    """Run the textual stages and return the strict-JSON candidate."""
    text = strip_comments(raw_text.strip())
    text = extract_object_literal(text)
    text = strip_declaration(text)
    text = strip_terminator(text)
    text = quote_keys(text)
    return remove_trailing_commas(text)


def normalize(raw_text: str) -> AppConfig:
    if not raw_text or not raw_text.strip():
        raise ParseError(ParseError.EMPTY, "Please paste your Firebase configuration")
    data = require_object(parse_json(to_strict_json(raw_text)))
    return build_config(require_fields(data))

"""Decode registry index lines into version records.

Each crate has one file in the index, holding one JSON object per line and one
line per published version, e.g.::

    {"name":"foo","vers":"1.0.0","deps":[],"cksum":"…","features":{},"yanked":false}

Only the fields needed for change classification and link rendering are kept.
"""

from __future__ import annotations

import json
from pathlib import Path

from jsonschema import Draft202012Validator

from ..models import VersionRecord

RECORD_SCHEMA: dict[str, object] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name", "vers", "yanked"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "vers": {"type": "string", "minLength": 1},
        "yanked": {"type": "boolean"},
        "cksum": {"type": "string"},
    },
}

_VALIDATOR = Draft202012Validator(RECORD_SCHEMA)


class RecordDecodeError(ValueError):
    """Raised when an index line is not a well-formed version record."""


def _format_errors(errors) -> str:
    messages = []
    for error in errors:
        pointer = "/".join(str(p) for p in error.path)
        messages.append(f"{pointer or '<root>'}: {error.message}")
    return "; ".join(messages)


def decode(line: str | bytes) -> VersionRecord:
    """Decode a single index line.

    A ``str`` line may carry undecodable bytes as lone surrogates (read with
    ``errors="surrogateescape"``); those are rejected like invalid ``bytes``.
    """

    try:
        if isinstance(line, str):
            line = line.encode("utf-8", "surrogateescape")
        line = line.decode("utf-8")
    except UnicodeError as exc:
        raise RecordDecodeError(f"non-utf8 index line: {exc}") from exc

    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(f"invalid JSON ({exc.msg}): {line.strip()[:200]}") from exc

    errors = sorted(_VALIDATOR.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        raise RecordDecodeError(f"invalid version record: {_format_errors(errors)}")

    return VersionRecord(
        name=data["name"],
        version=data["vers"],
        yanked=data["yanked"],
        checksum=data.get("cksum"),
    )


def crate_path(name: str) -> str:
    """Return the index-relative path of a crate's file."""

    lowered = name.lower()
    if not lowered:
        raise ValueError("Crate name must be non-empty")
    if len(lowered) == 1:
        return f"1/{lowered}"
    if len(lowered) == 2:
        return f"2/{lowered}"
    if len(lowered) == 3:
        return f"3/{lowered[0]}/{lowered}"
    return f"{lowered[:2]}/{lowered[2:4]}/{lowered}"


def crate_exists(index_root: Path, name: str) -> bool:
    if not name or "/" in name or "\\" in name or name.startswith("."):
        return False
    return (index_root / crate_path(name)).is_file()


def read_last(index_root: Path, name: str) -> VersionRecord:
    """Decode the most recently published version of ``name`` from a checkout."""

    path = index_root / crate_path(name)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RecordDecodeError(f"cannot read index file for '{name}': {exc}") from exc

    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        raise RecordDecodeError(f"index file for '{name}' is empty")
    return decode(lines[-1])

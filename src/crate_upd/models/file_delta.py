"""File level changes of a tree diff."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DeltaKind(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


@dataclass(frozen=True)
class FileDelta:
    """Changed lines of one file between two trees."""

    path: str
    kind: DeltaKind
    added_lines: tuple[str, ...] = field(default_factory=tuple)
    deleted_lines: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Delta path must be non-empty")

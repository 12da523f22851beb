"""Classify a single index commit as a new, yanked or unyanked crate version.

A registry index commit touches exactly one version line of exactly one crate:

- publishing appends a line (one addition, no deletion),
- (un)yanking replaces a line (one deletion and one addition of the same
  version with the ``yanked`` flag flipped).

Anything else means the index broke an assumption this module relies on, so it
raises instead of guessing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .models import ActionKind, DeltaKind, FileDelta, VersionRecord
from .parsers.index_record import RecordDecodeError, decode

logger = logging.getLogger(__name__)

SCANNED_KINDS = {DeltaKind.ADDED, DeltaKind.MODIFIED}

# (previously yanked, now yanked) -> action; None means there was no deleted line.
_TRANSITIONS: dict[tuple[bool | None, bool], ActionKind] = {
    (None, False): ActionKind.NEW_VERSION,
    (False, True): ActionKind.YANKED,
    (True, False): ActionKind.UNYANKED,
}


class ClassificationError(RuntimeError):
    """Base error for commits that cannot be turned into a notification."""


class AmbiguousDiffError(ClassificationError):
    """Raised when a commit deletes or adds more than one line."""


class MissingAdditionError(ClassificationError):
    """Raised when a commit adds no version line."""


class InvalidRecordError(ClassificationError):
    """Raised when a changed line is not a valid version record."""


class UnexpectedTransitionError(ClassificationError):
    """Raised when the ``yanked`` flag transition matches no known action."""


@dataclass(frozen=True)
class Classification:
    record: VersionRecord
    action: ActionKind


def derive_action(previous: VersionRecord | None, current: VersionRecord) -> ActionKind:
    """Map the ``yanked`` transition between two records to an action."""

    was_yanked = None if previous is None else previous.yanked
    action = _TRANSITIONS.get((was_yanked, current.yanked))
    if action is None:
        logger.error("Unexpected diff input: %r, %r", current, previous)
        raise UnexpectedTransitionError(
            f"unexpected yanked transition {was_yanked!r} -> {current.yanked!r} "
            f"for {current.name}#{current.version}"
        )
    return action


def _decode(line: str, path: str) -> VersionRecord:
    try:
        return decode(line)
    except RecordDecodeError as exc:
        raise InvalidRecordError(f"{path}: {exc}") from exc


def classify(deltas: Iterable[FileDelta]) -> Classification:
    """Extract the single changed version record and classify the change."""

    deleted: list[tuple[str, str]] = []
    added: list[tuple[str, str]] = []

    for delta in deltas:
        if delta.kind not in SCANNED_KINDS:
            logger.warning("Unexpected delta %s on %s, skipping", delta.kind.value, delta.path)
            continue
        deleted.extend((delta.path, line) for line in delta.deleted_lines)
        added.extend((delta.path, line) for line in delta.added_lines)

    if len(deleted) > 1:
        logger.error("Expected at most one deletion per commit, got %d: %r", len(deleted), deleted)
        raise AmbiguousDiffError(f"expected at most one deleted line, got {len(deleted)}")
    if len(added) > 1:
        logger.error("Expected exactly one addition per commit, got %d: %r", len(added), added)
        raise AmbiguousDiffError(f"expected exactly one added line, got {len(added)}")
    if not added:
        logger.error("Expected exactly one addition per commit, got none (deleted: %r)", deleted)
        raise MissingAdditionError("expected exactly one added line, got 0")

    previous = _decode(deleted[0][1], deleted[0][0]) if deleted else None
    current = _decode(added[0][1], added[0][0])

    return Classification(record=current, action=derive_action(previous, current))

"""Enumerate unprocessed commits as adjacent windows and diff them."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from ..models import CommitWindow, DeltaKind, FileDelta
from .git import GitError, run_git

logger = logging.getLogger(__name__)

DIFF_ARGS = [
    "diff",
    "--no-color",
    "--no-ext-diff",
    "--unified=0",
    "--minimal",
    "--find-renames",
]

_HEADER_KINDS = {
    "new file mode": DeltaKind.ADDED,
    "deleted file mode": DeltaKind.DELETED,
    "rename from": DeltaKind.RENAMED,
    "copy from": DeltaKind.COPIED,
}


class WalkError(RuntimeError):
    """Raised when the commit range or a tree diff cannot be read."""


class CommitWindowWalker:
    """Produce ancestor-first commit windows for a local index checkout."""

    def __init__(self, index_path: Path) -> None:
        self.index_path = Path(index_path)

    def commits(self, start: str, end: str) -> list[str]:
        """Return commits after ``start`` up to and including ``end``, oldest first."""

        try:
            output = run_git(
                ["rev-list", "--topo-order", "--reverse", f"{start}..{end}"],
                cwd=self.index_path,
            )
        except GitError as exc:
            raise WalkError(f"Failed to list commits {start}..{end}: {exc}") from exc
        return [line.strip() for line in output.splitlines() if line.strip()]

    def windows(self, start: str, end: str) -> Iterator[CommitWindow]:
        """Yield ``(previous, next)`` pairs, starting with ``(start, first_new)``."""

        previous = start
        for commit in self.commits(start, end):
            yield CommitWindow(previous=previous, next=commit)
            previous = commit

    def diff(self, window: CommitWindow) -> list[FileDelta]:
        """Return the zero-context tree diff between the two commits of ``window``."""

        try:
            output = run_git(
                [*DIFF_ARGS, window.previous, window.next, "--"],
                cwd=self.index_path,
                errors="surrogateescape",
            )
        except GitError as exc:
            raise WalkError(f"Failed to diff {window}: {exc}") from exc
        return parse_diff(output)


def _path_from_header(line: str) -> str:
    # "diff --git a/<path> b/<path>"
    rest = line[len("diff --git ") :]
    if " b/" in rest:
        return rest.rsplit(" b/", 1)[1]
    return rest


def parse_diff(text: str) -> list[FileDelta]:
    """Parse unified diff output into per-file deltas.

    Only the fields the classifier needs are kept: the resulting path, the kind
    of change and the added/deleted line contents without their origin marker.
    """

    deltas: list[FileDelta] = []
    path: str | None = None
    kind = DeltaKind.MODIFIED
    added: list[str] = []
    deleted: list[str] = []
    in_hunk = False

    def flush() -> None:
        if path is not None:
            deltas.append(
                FileDelta(
                    path=path,
                    kind=kind,
                    added_lines=tuple(added),
                    deleted_lines=tuple(deleted),
                )
            )

    for line in text.splitlines():
        if line.startswith("diff --git "):
            flush()
            path = _path_from_header(line)
            kind = DeltaKind.MODIFIED
            added, deleted = [], []
            in_hunk = False
            continue

        if path is None:
            continue

        if not in_hunk:
            if line.startswith("@@"):
                in_hunk = True
                continue
            for prefix, header_kind in _HEADER_KINDS.items():
                if line.startswith(prefix):
                    kind = header_kind
            if line.startswith("rename to "):
                path = line[len("rename to ") :]
            elif line.startswith("copy to "):
                path = line[len("copy to ") :]
            continue

        if line.startswith("@@"):
            continue
        if line.startswith("+"):
            added.append(line[1:])
        elif line.startswith("-"):
            deleted.append(line[1:])
        elif line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        else:
            logger.debug("ignoring diff line outside of a change: %r", line)

    flush()
    return deltas

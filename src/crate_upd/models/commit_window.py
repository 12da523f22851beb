"""Commit window model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommitWindow:
    """Adjacent pair of commits; ``next`` immediately follows ``previous``."""

    previous: str
    next: str

    def __post_init__(self) -> None:
        if not self.previous or not self.next:
            raise ValueError("Commit ids must be non-empty")
        if self.previous == self.next:
            raise ValueError("A commit window must span two distinct commits")

    def __str__(self) -> str:
        return f"{self.previous[:12]}..{self.next[:12]}"

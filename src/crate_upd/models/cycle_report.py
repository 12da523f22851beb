"""Outcome of a single poll cycle."""

from __future__ import annotations

from dataclasses import dataclass

_VALID_STATUSES = {
    "up-to-date",
    "completed",
    "sync-failed",
    "walk-failed",
    "classification-failed",
}
_SUCCESS_STATUSES = {"up-to-date", "completed"}


@dataclass(frozen=True)
class CycleReport:
    """Describe how far a poll cycle got before it finished or aborted."""

    status: str
    processed: int = 0
    error: str | None = None

    def __post_init__(self) -> None:
        if self.processed < 0:
            raise ValueError("Processed count must be non-negative")
        if self.status not in _VALID_STATUSES:
            raise ValueError(f"Invalid status: {self.status}")

    @property
    def ok(self) -> bool:
        return self.status in _SUCCESS_STATUSES

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"status": self.status, "processed": self.processed}
        if self.error is not None:
            data["error"] = self.error
        return data

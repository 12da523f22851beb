"""Data models for index change detection and notification."""

from __future__ import annotations

from .action import ActionKind
from .commit_window import CommitWindow
from .cycle_report import CycleReport
from .file_delta import DeltaKind, FileDelta
from .version_record import VersionRecord

__all__ = [
    "ActionKind",
    "CommitWindow",
    "CycleReport",
    "DeltaKind",
    "FileDelta",
    "VersionRecord",
]

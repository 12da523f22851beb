"""Kinds of change a single index commit can represent."""

from __future__ import annotations

from enum import Enum


class ActionKind(Enum):
    NEW_VERSION = "new-version"
    YANKED = "yanked"
    UNYANKED = "unyanked"

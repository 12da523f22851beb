"""Notification text templates."""

from __future__ import annotations

from ..models import ActionKind, VersionRecord

_TEMPLATES = {
    ActionKind.NEW_VERSION: "Crate was updated: <code>{name}#{version}</code> {links}",
    ActionKind.YANKED: "Crate was yanked: <code>{name}#{version}</code> {links}",
    ActionKind.UNYANKED: "Crate was unyanked: <code>{name}#{version}</code> {links}",
}


def render_message(record: VersionRecord, action: ActionKind) -> str:
    """Return the HTML notification text for ``record``."""
    return _TEMPLATES[action].format(
        name=record.name,
        version=record.version,
        links=record.html_links(),
    )

"""crate-upd core package.

Watches the crates.io registry index and notifies subscribers about new,
yanked and unyanked crate versions.
"""

__all__ = [
    "core",
]

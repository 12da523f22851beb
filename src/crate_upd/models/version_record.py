"""Version record model."""

from __future__ import annotations

from dataclasses import dataclass

CRATES_IO_URL = "https://crates.io/crates"
DOCS_RS_URL = "https://docs.rs"


@dataclass(frozen=True)
class VersionRecord:
    """One published crate version as stored in a registry index line."""

    name: str
    version: str
    yanked: bool
    checksum: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Crate name must be non-empty")
        if not self.version:
            raise ValueError("Crate version must be non-empty")

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.version)

    @property
    def crates_io_url(self) -> str:
        return f"{CRATES_IO_URL}/{self.name}/{self.version}"

    @property
    def docs_rs_url(self) -> str:
        return f"{DOCS_RS_URL}/{self.name}/{self.version}"

    def html_links(self) -> str:
        return (
            f"<a href='{self.crates_io_url}'>[crates.io]</a> "
            f"<a href='{self.docs_rs_url}'>[docs.rs]</a>"
        )

from __future__ import annotations

import json
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from crate_upd.parsers.index_record import crate_path

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Index Bot",
    "GIT_AUTHOR_EMAIL": "bot@example.invalid",
    "GIT_COMMITTER_NAME": "Index Bot",
    "GIT_COMMITTER_EMAIL": "bot@example.invalid",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def record_line(name: str, version: str, yanked: bool = False) -> str:
    return json.dumps(
        {
            "name": name,
            "vers": version,
            "deps": [],
            "cksum": "0" * 64,
            "features": {},
            "yanked": yanked,
        },
        separators=(",", ":"),
    )


class IndexRepo:
    """Scratch git repository laid out like the registry index."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "--quiet")
        self.git("symbolic-ref", "HEAD", "refs/heads/master")

    def git(self, *args: str) -> str:
        env = {**os.environ, **GIT_ENV, "HOME": str(self.path)}
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            env=env,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    def write_lines(self, name: str, lines: list[str]) -> Path:
        target = self.path / crate_path(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return target

    def read_lines(self, name: str) -> list[str]:
        target = self.path / crate_path(name)
        if not target.exists():
            return []
        return target.read_text(encoding="utf-8").splitlines()

    def commit(self, message: str) -> str:
        self.git("add", "--all")
        self.git("commit", "--quiet", "--allow-empty", "-m", message)
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")

    def publish(self, name: str, version: str) -> str:
        lines = self.read_lines(name) + [record_line(name, version)]
        self.write_lines(name, lines)
        return self.commit(f"Updating crate `{name}#{version}`")

    def set_yanked(self, name: str, version: str, yanked: bool) -> str:
        lines = [
            record_line(name, version, yanked) if json.loads(line)["vers"] == version else line
            for line in self.read_lines(name)
        ]
        self.write_lines(name, lines)
        return self.commit(f"{'Yanking' if yanked else 'Unyanking'} crate `{name}#{version}`")


def pytest_collection_modifyitems(config, items):
    if shutil.which("git") is not None:
        return
    skip = pytest.mark.skip(reason="git is not installed")
    for item in items:
        if "integration" in item.nodeid.split("/"):
            item.add_marker(skip)


@pytest.fixture
def upstream(tmp_path: Path) -> IndexRepo:
    repo = IndexRepo(tmp_path / "upstream")
    (repo.path / "config.json").write_text('{"dl": "https://example.invalid"}\n', encoding="utf-8")
    repo.commit("Initial commit")
    return repo


@pytest.fixture
def make_line():
    return record_line

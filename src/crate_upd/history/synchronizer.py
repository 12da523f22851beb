"""Keep the local index checkout in step with the remote registry index.

The local branch head is the checkpoint: the last commit whose notifications
have been handled. It only ever moves forward, one processed commit at a time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tenacity import retry, stop_after_attempt, wait_fixed

from .git import GitError, is_ancestor, run_git

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 600
CLONE_TIMEOUT = 3600


class SyncError(RuntimeError):
    """Raised when the remote history cannot be fetched."""


class NotFastForward(RuntimeError):
    """Raised when the checkpoint would move to a commit that does not descend from it."""


class HistorySynchronizer:
    """Fetch remote history and fast-forward the local checkpoint."""

    def __init__(
        self,
        index_path: Path,
        index_url: str,
        branch: str = "master",
        remote: str = "origin",
    ) -> None:
        self.index_path = Path(index_path)
        self.index_url = index_url
        self.branch = branch
        self.remote = remote

    def ensure_cloned(self) -> None:
        """Clone the index unless a repository already exists at ``index_path``."""

        if (self.index_path / ".git").exists():
            return

        logger.info("cloning %s into %s", self.index_url, self.index_path)
        try:
            run_git(
                ["clone", "--branch", self.branch, self.index_url, str(self.index_path)],
                timeout=CLONE_TIMEOUT,
            )
        except GitError as exc:
            raise SyncError(f"Failed to clone index: {exc}") from exc
        logger.info("cloning finished")

    @retry(reraise=True, stop=stop_after_attempt(3), wait=wait_fixed(2))
    def _fetch(self) -> None:
        run_git(
            ["fetch", "--quiet", self.remote, self.branch],
            cwd=self.index_path,
            timeout=FETCH_TIMEOUT,
        )

    def fetch(self) -> str:
        """Fetch the remote branch and return the fetched head commit."""

        try:
            self._fetch()
            return run_git(["rev-parse", "FETCH_HEAD"], cwd=self.index_path).strip()
        except GitError as exc:
            raise SyncError(f"Failed to fetch index: {exc}") from exc

    def checkpoint(self) -> str:
        """Return the last fully processed commit."""

        try:
            return run_git(["rev-parse", "HEAD"], cwd=self.index_path).strip()
        except GitError as exc:
            raise SyncError(f"Failed to read checkpoint: {exc}") from exc

    def advance(self, commit: str) -> None:
        """Fast-forward the local branch and working tree to ``commit``."""

        current = self.checkpoint()
        if current == commit:
            return
        try:
            descends = is_ancestor(self.index_path, current, commit)
        except GitError as exc:
            raise SyncError(f"Failed to check ancestry of {commit}: {exc}") from exc
        if not descends:
            raise NotFastForward(f"{commit} does not descend from checkpoint {current}")

        try:
            run_git(["merge", "--ff-only", "--quiet", commit], cwd=self.index_path)
        except GitError as exc:
            raise SyncError(f"Failed to fast-forward to {commit}: {exc}") from exc
        logger.debug("checkpoint advanced %s -> %s", current[:12], commit[:12])

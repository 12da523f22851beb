"""Thin wrapper over the git command line."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


class GitError(RuntimeError):
    """Raised when a git command cannot be run or exits non-zero."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str) -> None:
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
        command = " ".join(args)
        super().__init__(f"`{command}` failed ({returncode}): {stderr.strip()}")


def run_git(
    args: list[str],
    cwd: Path | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    errors: str = "replace",
) -> str:
    """Run ``git <args>`` and return its stdout.

    ``errors`` is the codec error handler for the output; ``"surrogateescape"``
    keeps bytes that are not UTF-8 recoverable for the caller.
    """

    command = ["git", *args]
    logger.debug("running %s in %s", " ".join(command), cwd)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors=errors,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitError(command, None, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise GitError(command, None, str(exc)) from exc

    if result.returncode != 0:
        raise GitError(command, result.returncode, result.stderr or "")
    return result.stdout


def is_ancestor(repo: Path, ancestor: str, descendant: str) -> bool:
    """Return whether ``ancestor`` is reachable from ``descendant``."""

    try:
        run_git(["merge-base", "--is-ancestor", ancestor, descendant], cwd=repo)
    except GitError as exc:
        if exc.returncode == 1:
            return False
        raise
    return True

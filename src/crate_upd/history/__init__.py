"""Access to the local registry index checkout through the git CLI."""

from .git import GitError, run_git
from .synchronizer import HistorySynchronizer, NotFastForward, SyncError
from .walker import CommitWindowWalker, WalkError, parse_diff

__all__ = [
    "CommitWindowWalker",
    "GitError",
    "HistorySynchronizer",
    "NotFastForward",
    "SyncError",
    "WalkError",
    "parse_diff",
    "run_git",
]

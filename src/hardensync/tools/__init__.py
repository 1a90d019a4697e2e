"""Tool integrations used by the synchronization engine."""

from .vcs import GitError, GitRepository, run_command

__all__ = [
    "GitError",
    "GitRepository",
    "run_command",
]

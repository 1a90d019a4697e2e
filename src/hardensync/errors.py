"""Error taxonomy shared by the synchronization engine and the CLI."""

from __future__ import annotations


class HardenSyncError(RuntimeError):
    """Base class for every fatal synchronization failure."""


class ConfigError(HardenSyncError):
    """Raised when the configuration file cannot be read or validated."""


class BootstrapError(HardenSyncError):
    """Raised when cloning, registering remotes or fetching fails."""


class TagError(HardenSyncError, ValueError):
    """Raised when an upstream tag cannot be turned into a branch name."""


class MalformedTagError(TagError):
    """The tag does not contain a ``v<major>.<minor>.<patch>`` version."""


class NonNumericMinorError(TagError):
    """The minor component of the tag is not an integer."""


class NoPreviousMinorError(TagError):
    """The minor component is ``0`` so no previous minor line exists."""


class BranchNotFoundError(HardenSyncError):
    """Raised when a hardened branch is absent from every fork remote."""

    def __init__(self, branch: str, remotes: tuple[str, ...]) -> None:
        self.branch = branch
        self.remotes = remotes
        searched = ", ".join(remotes) or "<none>"
        super().__init__(f"branch {branch} not found on remotes: {searched}")


class InsufficientHistoryError(HardenSyncError):
    """Raised when a branch holds fewer commits than the patch series."""


class ConflictError(HardenSyncError):
    """Raised for a rebase or cherry-pick conflict no patch entry remediates.

    ``stderr`` keeps the text reported by git unaltered so the conflict can be
    resolved by hand.
    """

    def __init__(self, operation: str, stderr: str, *, commit: str | None = None) -> None:
        self.operation = operation
        self.stderr = stderr
        self.commit = commit
        where = f" at {commit}" if commit else ""
        super().__init__(f"{operation} stopped{where}: {stderr}")


class RemediationFailure(HardenSyncError):
    """Raised when the file action of a known remediation itself fails."""


class PublishError(HardenSyncError):
    """Raised when the hardened branch cannot be pushed."""


__all__ = [
    "BootstrapError",
    "BranchNotFoundError",
    "ConfigError",
    "ConflictError",
    "HardenSyncError",
    "InsufficientHistoryError",
    "MalformedTagError",
    "NoPreviousMinorError",
    "NonNumericMinorError",
    "PublishError",
    "RemediationFailure",
    "TagError",
]

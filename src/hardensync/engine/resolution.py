"""Decide whether the hardened branch already exists or must be created."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..errors import BranchNotFoundError, HardenSyncError
from ..naming import VersionTag, hardened_branch_name, previous_hardened_branch_name
from ..tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    """States of the branch resolution state machine."""

    NO_TARGET_BRANCH = "no-target-branch"
    BRANCH_EXISTS_REMOTELY = "branch-exists-remotely"
    BRANCH_MISSING_REMOTELY = "branch-missing-remotely"
    CHECKED_OUT = "checked-out"
    NEEDS_CREATION = "needs-creation"


@dataclass(frozen=True, slots=True)
class BranchResolution:
    """Outcome of :func:`resolve_branch`.

    ``CHECKED_OUT`` means ``target`` is checked out and should be rebased.
    ``NEEDS_CREATION`` means ``base`` (the previous hardened branch) is checked
    out and ``target`` must be cut from the tag and cherry-picked onto.
    """

    state: ResolutionState
    target: str
    base: str
    remote: str

    @property
    def needs_creation(self) -> bool:
        return self.state is ResolutionState.NEEDS_CREATION


def _find_remote(repo: GitRepository, remotes: Sequence[str], branch: str) -> str | None:
    for remote in remotes:
        if repo.remote_branch_exists(remote, branch):
            return remote
    return None


def _checkout(repo: GitRepository, remote: str, branch: str) -> None:
    LOGGER.info("Checking out remote branch %s/%s", remote, branch)
    if repo.delete_local_branch(branch):
        LOGGER.debug("Removed stale local branch %s", branch)
    repo.checkout_tracking(remote, branch)


def resolve_branch(
    repo: GitRepository,
    *,
    tag: str,
    remotes: Sequence[str],
    product: str,
    previous: str | None = None,
) -> BranchResolution:
    """Check out the hardened branch for ``tag`` or the branch to build it from.

    ``remotes`` are searched in order.  When the target branch is missing the
    fallback is ``previous`` or, when not given, the hardened branch of the
    previous minor version.
    """

    version = VersionTag.parse(tag)
    target = hardened_branch_name(version, product)
    state = ResolutionState.NO_TARGET_BRANCH

    try:
        repo.clean()
        repo.detach()
        if repo.delete_local_branch(target):
            LOGGER.debug("Removed stale local branch %s", target)

        remote = _find_remote(repo, remotes, target)
        if remote is not None:
            state = ResolutionState.BRANCH_EXISTS_REMOTELY
            _checkout(repo, remote, target)
            LOGGER.info("Switched to branch %s", target)
            return BranchResolution(ResolutionState.CHECKED_OUT, target, target, remote)

        state = ResolutionState.BRANCH_MISSING_REMOTELY
        fallback = previous or previous_hardened_branch_name(version, product)
        LOGGER.info("No remote branch %s found, falling back to %s", target, fallback)
        remote = _find_remote(repo, remotes, fallback)
        if remote is None:
            raise BranchNotFoundError(fallback, tuple(remotes))
        _checkout(repo, remote, fallback)
        return BranchResolution(ResolutionState.NEEDS_CREATION, target, fallback, remote)
    except GitError as error:
        raise HardenSyncError(f"branch resolution failed in state {state.value}: {error}") from error


__all__ = ["BranchResolution", "ResolutionState", "resolve_branch"]

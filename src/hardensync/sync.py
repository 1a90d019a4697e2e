"""Run one synchronization: bootstrap, resolve the branch, replay the series."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .config import SyncSettings
from .engine import (
    RemediationRecord,
    bootstrap_repository,
    cherry_pick_series,
    rebase_series,
    resolve_branch,
)
from .errors import HardenSyncError
from .tools.vcs import GitError

LOGGER = logging.getLogger(__name__)


class SyncPath(str, Enum):
    """Which replay strategy a run took."""

    REBASE = "rebase"
    CHERRY_PICK = "cherry-pick"


@dataclass(frozen=True, slots=True)
class SyncRequest:
    user: str
    tag: str | None = None
    previous: str | None = None


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """Result of a successful run; ``branch`` is left checked out."""

    tag: str
    branch: str
    path: SyncPath
    base_branch: str
    replayed: int
    remediations: Tuple[RemediationRecord, ...] = ()


def run_sync(settings: SyncSettings, request: SyncRequest) -> SyncOutcome:
    series = settings.series
    repo = bootstrap_repository(settings, request.user)

    tag = request.tag
    if not tag:
        tag = repo.latest_tag(settings.tag_filter)
        if tag is None:
            raise HardenSyncError(f"no tag matching {settings.tag_filter!r} found")
        LOGGER.info("Found latest %s tag: %s", settings.tag_filter, tag)

    resolution = resolve_branch(
        repo,
        tag=tag,
        remotes=tuple(dict.fromkeys((request.user, settings.repository.organization))),
        product=settings.product,
        previous=request.previous,
    )

    if not resolution.needs_creation:
        report = rebase_series(repo, series, tag)
        return SyncOutcome(
            tag=tag,
            branch=resolution.target,
            path=SyncPath.REBASE,
            base_branch=resolution.base,
            replayed=report.replayed,
            remediations=report.remediations,
        )

    LOGGER.info("No remote branch %s found, creating new branch based on tag %s", resolution.target, tag)
    try:
        repo.create_branch(resolution.target, tag)
    except GitError as error:
        raise HardenSyncError(f"unable to create {resolution.target} from {tag}: {error}") from error
    report = cherry_pick_series(repo, series, resolution.base)
    return SyncOutcome(
        tag=tag,
        branch=resolution.target,
        path=SyncPath.CHERRY_PICK,
        base_branch=resolution.base,
        replayed=len(report.picked),
        remediations=report.remediations,
    )


__all__ = ["SyncOutcome", "SyncPath", "SyncRequest", "run_sync"]

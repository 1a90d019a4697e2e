"""Replay the patch series onto a new upstream tag with a single rebase."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Set, Tuple

from ..errors import ConflictError, HardenSyncError, InsufficientHistoryError
from ..patches import PatchSeries
from ..tools.vcs import GitError, GitRepository
from .cherry_pick import series_commits
from .remediation import RemediationRecord, apply_remediation, match_stop

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RebaseReport:
    tag: str
    replayed: int
    remediations: Tuple[RemediationRecord, ...] = ()


def rebase_series(repo: GitRepository, series: PatchSeries, tag: str) -> RebaseReport:
    """Rebase the last ``len(series)`` commits of ``HEAD`` onto ``tag``.

    Whenever the rebase stops, the stopped commit is matched against the
    series and the matching entry's remediation is applied before continuing.
    A stop no entry explains, or a second stop on an already remediated
    commit, raises :class:`ConflictError` and leaves the rebase in place.
    The last N commits must carry the series messages in order.
    """

    count = len(series)
    upstream = f"HEAD~{count}"
    if repo.resolve(upstream) is None:
        raise InsufficientHistoryError(f"HEAD has fewer than {count} commits to rebase")
    series_commits(repo, series, "HEAD")
    if repo.resolve(tag) is None:
        raise HardenSyncError(f"unknown tag {tag}")

    LOGGER.info("Rebasing %d hardened commit(s) onto %s", count, tag)
    result = repo.git("rebase", "--onto", tag, "-Xtheirs", upstream, check=False)

    remediations: list[RemediationRecord] = []
    attempted: Set[str] = set()
    while result.returncode != 0:
        if repo.operation_in_progress() != "rebase":
            raise ConflictError("rebase", result.stderr or result.stdout)

        commit = repo.resolve("REBASE_HEAD")
        message = repo.commit_message(commit) if commit else ""
        # stdout of --continue names the commit just finished, not the stopped one.
        entry = match_stop(series, message, result.stderr)
        # Each commit is remediated at most once; without REBASE_HEAD cap at the series size.
        repeated = commit in attempted if commit is not None else len(remediations) >= count
        if entry is None or repeated:
            LOGGER.error("Unresolved paths: %s", ", ".join(repo.unmerged_paths()) or "none")
            raise ConflictError("rebase", result.stderr or result.stdout, commit=commit)
        if commit is not None:
            attempted.add(commit)

        index = series.index_of(entry)
        LOGGER.info("Remediating conflict in %r (series entry %d)", entry.message, index)
        apply_remediation(repo, entry)
        remediations.append(RemediationRecord(index=index, commit=commit, entry=entry))
        result = repo.git("rebase", "--continue", check=False)

    try:
        replayed = repo.count_commits(f"{tag}..HEAD")
    except GitError as error:
        raise ConflictError("rebase", error.stderr or str(error)) from error
    if replayed != count:
        LOGGER.warning("Rebase kept %d of %d hardened commit(s)", replayed, count)
    LOGGER.info("Successfully rebased %s onto %s", repo.current_branch() or "HEAD", tag)
    return RebaseReport(tag=tag, replayed=replayed, remediations=tuple(remediations))


__all__ = ["RebaseReport", "rebase_series"]

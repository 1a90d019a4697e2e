"""Replay the patch series commit by commit onto a freshly cut branch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import ConflictError, InsufficientHistoryError
from ..patches import PatchSeries
from ..tools.vcs import GitRepository
from .remediation import RemediationRecord, apply_remediation, match_stop

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CherryPickReport:
    source: str
    picked: Tuple[str, ...]
    remediations: Tuple[RemediationRecord, ...] = ()


def series_commits(repo: GitRepository, series: PatchSeries, source: str) -> List[str]:
    """Return the SHAs of the last ``len(series)`` commits of ``source``, oldest first.

    Commit ``<source>~<N-1-i>`` must carry entry ``i``'s message, so a branch
    with fewer hardening commits than the series fails here instead of
    yielding upstream commits.
    """

    count = len(series)
    commits: List[str] = []
    for position, offset in enumerate(range(count - 1, -1, -1)):
        rev = f"{source}~{offset}"
        sha = repo.resolve(rev)
        if sha is None:
            raise InsufficientHistoryError(
                f"{source} has fewer than {count} commits; {rev} does not exist"
            )
        message = repo.commit_message(sha)
        expected = series[position].message
        if expected not in message:
            subject = message.splitlines()[0] if message else ""
            raise InsufficientHistoryError(
                f"{rev} is {subject!r}, expected series entry {position} {expected!r}; "
                f"{source} does not end with the {count} hardening commits"
            )
        commits.append(sha)
    return commits


def cherry_pick_series(repo: GitRepository, series: PatchSeries, source: str) -> CherryPickReport:
    """Cherry-pick the series from ``source`` onto the checked-out branch.

    Entry ``i`` of the series is ``<source>~<N-1-i>``.  When a pick stops, the
    commit message and git's report are matched against the series (first
    match wins) and the entry's remediation is applied before continuing.
    """

    commits = series_commits(repo, series, source)
    remediations: List[RemediationRecord] = []

    for position, commit in enumerate(commits):
        LOGGER.debug("Cherry-picking %s (series entry %d)", commit, position)
        result = repo.git("cherry-pick", "-Xtheirs", commit, check=False)
        if result.returncode == 0:
            continue

        entry = match_stop(series, repo.commit_message(commit), result.stderr)
        if entry is None:
            LOGGER.error("Unresolved paths: %s", ", ".join(repo.unmerged_paths()) or "none")
            raise ConflictError("cherry-pick", result.stderr, commit=commit)

        index = series.index_of(entry)
        LOGGER.info("Remediating conflict in %r (series entry %d)", entry.message, index)
        apply_remediation(repo, entry)
        remediations.append(RemediationRecord(index=index, commit=commit, entry=entry))

        continued = repo.git("cherry-pick", "--continue", check=False)
        if continued.returncode != 0:
            raise ConflictError(
                "cherry-pick --continue",
                continued.stderr or continued.stdout,
                commit=commit,
            )

    LOGGER.info("Successfully cherry-picked %d hardened commit(s) from %s", len(commits), source)
    return CherryPickReport(source=source, picked=tuple(commits), remediations=tuple(remediations))


__all__ = ["CherryPickReport", "cherry_pick_series", "series_commits"]

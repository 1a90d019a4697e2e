"""File-level remediation of known patch series conflicts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from ..errors import RemediationFailure
from ..patches import PatchAction, PatchEntry, PatchSeries
from ..tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RemediationRecord:
    """A remediation applied while replaying the series."""

    index: int
    commit: str | None
    entry: PatchEntry


def match_stop(series: PatchSeries, message: str, output: str) -> PatchEntry | None:
    """Entry explaining a stopped commit: its own message first, then git's report."""

    entry = series.match(message)
    if entry is None:
        entry = series.match(output)
    return entry


def apply_remediation(repo: GitRepository, entry: PatchEntry) -> None:
    """Apply ``entry``'s file action to the stopped rebase or cherry-pick.

    Both actions tolerate being repeated: removing an absent path and adding
    an already staged one leave the index unchanged.
    """

    if entry.action is PatchAction.NONE:
        LOGGER.info("No file action recorded for %r", entry.message)
        return

    try:
        if entry.action is PatchAction.REMOVE:
            _remove(repo, entry)
        else:
            _add(repo, entry)
    except GitError as error:
        raise RemediationFailure(f"{entry.action.value} failed for {entry.message!r}: {error}") from error


def _remove(repo: GitRepository, entry: PatchEntry) -> None:
    present = [path for path in entry.files if repo.index_stages(path) or (repo.root / path).exists()]
    for path in entry.files:
        if path not in present:
            LOGGER.info("%s already absent", path)
    repo.remove_paths(present)
    LOGGER.info("Removed %s for %r", ", ".join(present) or "nothing", entry.message)


def _add(repo: GitRepository, entry: PatchEntry) -> None:
    to_stage: List[str] = []
    for path in entry.files:
        if (repo.root / path).exists():
            to_stage.append(path)
        elif repo.index_stages(path) == [0]:
            LOGGER.info("%s already staged", path)
        else:
            raise RemediationFailure(f"cannot add {path} for {entry.message!r}: file is missing")
    repo.add_paths(to_stage)
    LOGGER.info("Staged %s for %r", ", ".join(to_stage) or "nothing", entry.message)


__all__ = ["RemediationRecord", "apply_remediation", "match_stop"]

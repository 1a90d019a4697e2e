"""Fork-synchronization engine: bootstrap, branch resolution and replay."""

from .bootstrap import UPSTREAM_REMOTE, bootstrap_repository
from .cherry_pick import CherryPickReport, cherry_pick_series, series_commits
from .rebase import RebaseReport, rebase_series
from .remediation import RemediationRecord, apply_remediation
from .resolution import BranchResolution, ResolutionState, resolve_branch

__all__ = [
    "BranchResolution",
    "CherryPickReport",
    "RebaseReport",
    "RemediationRecord",
    "ResolutionState",
    "UPSTREAM_REMOTE",
    "apply_remediation",
    "bootstrap_repository",
    "cherry_pick_series",
    "rebase_series",
    "resolve_branch",
    "series_commits",
]

"""Git command runner and repository helpers.

Every operation shells out to the ``git`` executable and waits for it to
finish.  Failures surface as :class:`GitError`, which keeps the captured
output so callers can inspect what git reported.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

LOGGER = logging.getLogger(__name__)


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""

    def __init__(self, message: str, result: subprocess.CompletedProcess[str] | None = None) -> None:
        super().__init__(message)
        self.result = result

    @property
    def stderr(self) -> str:
        return self.result.stderr if self.result is not None else ""

    @property
    def returncode(self) -> int | None:
        return self.result.returncode if self.result is not None else None


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | str,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run ``args`` in ``cwd`` and capture stdout and stderr separately.

    ``GIT_EDITOR`` is forced to ``true`` so ``--continue`` steps accept the
    prepared commit message instead of waiting on an editor.  ``env`` adds
    variables on top of the inherited environment.
    """

    merged = dict(os.environ)
    merged.update(env or {})
    merged["GIT_EDITOR"] = "true"
    process = subprocess.run(
        list(args),
        cwd=cwd,
        env=merged,
        capture_output=True,
        text=False,
        check=False,
    )
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)


def _failure(args: Sequence[str], result: subprocess.CompletedProcess[str]) -> GitError:
    # stderr is embedded untouched; conflict matching relies on its text.
    message = result.stderr or result.stdout or "unknown git error"
    return GitError(f"git {' '.join(args)} failed: {message}", result)


def _config_env(config: Mapping[str, str] | None) -> Dict[str, str]:
    # Values travel in GIT_CONFIG_* variables and never appear in the argument list.
    env: Dict[str, str] = {}
    if not config:
        return env
    env["GIT_CONFIG_COUNT"] = str(len(config))
    for index, (key, value) in enumerate(config.items()):
        env[f"GIT_CONFIG_KEY_{index}"] = key
        env[f"GIT_CONFIG_VALUE_{index}"] = value
    return env


class GitRepository:
    """Lightweight wrapper around ``git`` commands run inside one working copy."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def clone(cls, url: str, root: Path | str) -> "GitRepository":
        """Clone ``url`` into ``root`` (which may exist but must be empty)."""

        path = Path(root).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        args = ["clone", url, str(path)]
        result = run_command(["git", *args], cwd=path.parent)
        if result.returncode != 0:
            raise _failure(args, result)
        return cls(path)

    # ------------------------------------------------------------------ git IO
    def _run_git(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        config: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        result = run_command(["git", *args], cwd=self.root, env=_config_env(config))
        LOGGER.debug("git %s -> %d", " ".join(args), result.returncode)
        if result.stderr.strip():
            LOGGER.debug("%s", result.stderr.strip())
        if check and result.returncode != 0:
            raise _failure(args, result)
        return result

    def git(
        self,
        *args: str,
        check: bool = True,
        config: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Execute ``git`` with ``args`` relative to the repository root."""

        return self._run_git(list(args), check=check, config=config)

    def _git_path(self, name: str) -> Path:
        result = self._run_git(["rev-parse", "--git-path", name])
        path = Path(result.stdout.strip())
        return path if path.is_absolute() else self.root / path

    # ------------------------------------------------------------------ config
    def get_config(self, key: str, *, global_scope: bool = False) -> str | None:
        """Return a config value, or ``None`` when it is unset."""

        args = ["config"]
        if global_scope:
            args.append("--global")
        args.extend(["--get", key])
        result = self._run_git(args, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def set_config(self, key: str, value: str) -> None:
        self._run_git(["config", key, value])

    # ----------------------------------------------------------------- remotes
    def remotes(self) -> List[str]:
        result = self._run_git(["remote"])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def remote_url(self, name: str) -> str | None:
        result = self._run_git(["remote", "get-url", name], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def add_remote(self, name: str, url: str) -> bool:
        """Register ``name`` unless it exists; return ``True`` when added."""

        if name in self.remotes():
            return False
        self._run_git(["remote", "add", name, url])
        return True

    def fetch(self, remote: str, *, tags: bool = True) -> None:
        """Fetch branches from ``remote``, plus its tags (forced) when ``tags``."""

        if tags:
            self._run_git(["fetch", "--tags", "--force", remote])
        else:
            self._run_git(["fetch", "--no-tags", remote])

    def push(
        self,
        remote: str,
        refspec: str,
        *,
        force: bool = False,
        config: Mapping[str, str] | None = None,
    ) -> None:
        args: List[str] = ["push"]
        if force:
            args.append("--force")
        args.extend([remote, refspec])
        self._run_git(args, config=config)

    # -------------------------------------------------------------------- refs
    def resolve(self, rev: str) -> str | None:
        """Return the commit SHA ``rev`` points at, or ``None``."""

        result = self._run_git(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def has_ref(self, ref: str) -> bool:
        result = self._run_git(["show-ref", "--verify", "--quiet", ref], check=False)
        return result.returncode == 0

    def commit_message(self, rev: str) -> str:
        result = self._run_git(["log", "-1", "--format=%B", rev])
        return result.stdout.strip()

    def count_commits(self, revision_range: str) -> int:
        result = self._run_git(["rev-list", "--count", revision_range])
        return int(result.stdout.strip() or 0)

    def latest_tag(self, name_filter: str) -> str | None:
        """Return the tag containing ``name_filter`` whose commit is the newest."""

        # Annotated tags report the peeled commit date, lightweight tags their own.
        result = self._run_git(
            [
                "for-each-ref",
                "--format=%(refname:short)\t%(*committerdate:unix)%(committerdate:unix)",
                "refs/tags",
            ]
        )
        latest: str | None = None
        latest_when = -1
        for line in result.stdout.splitlines():
            name, _, when = line.partition("\t")
            if name_filter not in name or not when.strip():
                continue
            timestamp = int(when.strip())
            if timestamp > latest_when:
                latest, latest_when = name, timestamp
        return latest

    # ---------------------------------------------------------------- branches
    def current_branch(self) -> str | None:
        """Return the current branch name or ``None`` when detached."""

        result = self._run_git(["rev-parse", "--abbrev-ref", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    def detach(self) -> None:
        self._run_git(["checkout", "--detach"])

    def delete_local_branch(self, name: str) -> bool:
        """Delete ``refs/heads/<name>``; return ``False`` when it did not exist."""

        if not self.has_ref(f"refs/heads/{name}"):
            return False
        self._run_git(["branch", "-D", name])
        return True

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        return self.has_ref(f"refs/remotes/{remote}/{branch}")

    def checkout_tracking(self, remote: str, branch: str) -> None:
        """Equivalent of ``git checkout --track <remote>/<branch>``."""

        self._run_git(["checkout", "--track", f"{remote}/{branch}"])

    def create_branch(self, name: str, start_point: str) -> None:
        self._run_git(["checkout", "-b", name, start_point])

    # ---------------------------------------------------------- working state
    def operation_in_progress(self) -> str | None:
        """Return ``"rebase"`` or ``"cherry-pick"`` when one is stopped."""

        if self._git_path("rebase-merge").exists() or self._git_path("rebase-apply").exists():
            return "rebase"
        if self._git_path("CHERRY_PICK_HEAD").exists():
            return "cherry-pick"
        return None

    def clean(self) -> None:
        """Abort stopped operations, drop untracked files, reset tracked ones."""

        operation = self.operation_in_progress()
        if operation is not None:
            LOGGER.info("Aborting %s left over from a previous run", operation)
            self._run_git([operation, "--abort"])
        self._run_git(["clean", "-xfd"])
        self._run_git(["checkout", "--", "."])

    def unmerged_paths(self) -> List[str]:
        result = self._run_git(["diff", "--name-only", "--diff-filter=U"])
        return [line for line in result.stdout.splitlines() if line]

    def index_stages(self, path: str) -> List[int]:
        """Return the index stages recorded for ``path`` (``[0]`` when cleanly staged)."""

        result = self._run_git(["ls-files", "--stage", "--", path])
        stages: List[int] = []
        for line in result.stdout.splitlines():
            meta, _, _ = line.partition("\t")
            parts = meta.split()
            if len(parts) == 3:
                stages.append(int(parts[2]))
        return stages

    def add_paths(self, paths: Sequence[str]) -> None:
        if paths:
            self._run_git(["add", "--", *paths])

    def remove_paths(self, paths: Sequence[str]) -> None:
        if paths:
            self._run_git(["rm", "-q", "--force", "--ignore-unmatch", "--", *paths])


__all__ = ["GitError", "GitRepository", "run_command"]

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from hardensync.config import IdentitySettings, RepositorySettings, SyncSettings  # noqa: E402
from hardensync.patches import DEFAULT_SERIES  # noqa: E402

BASE_TIMESTAMP = 1_700_000_000


def run_git(cwd: Path, *args: str, env: Dict[str, str] | None = None) -> str:
    merged = os.environ.copy()
    if env:
        merged.update(env)
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=merged,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def git_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate git from the developer's configuration."""

    home = tmp_path / "home"
    home.mkdir()
    (home / ".gitconfig").write_text(
        textwrap.dedent(
            """
            [user]
                name = Test Runner
                email = runner@example.com
            [init]
                defaultBranch = main
            [advice]
                detachedHead = false
            """
        ).lstrip(),
        encoding="utf-8",
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_CONFIG_GLOBAL", raising=False)
    for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        monkeypatch.delenv(name, raising=False)
    return home


@dataclass
class WorkTree:
    """Scratch repository that records commits with increasing dates."""

    root: Path
    clock: list[int] = field(default_factory=lambda: [0])

    def git(self, *args: str) -> str:
        return run_git(self.root, *args)

    def write(self, relative: str, content: str) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def append(self, relative: str, content: str) -> None:
        path = self.root / relative
        path.write_text(path.read_text(encoding="utf-8") + content, encoding="utf-8")

    def commit(self, message: str) -> str:
        self.clock[0] += 1
        stamp = f"{BASE_TIMESTAMP + self.clock[0] * 3600} +0000"
        run_git(self.root, "add", "--all")
        run_git(
            self.root,
            "commit",
            "-q",
            "-m",
            message,
            env={"GIT_AUTHOR_DATE": stamp, "GIT_COMMITTER_DATE": stamp},
        )
        return self.git("rev-parse", "HEAD")


@pytest.fixture()
def worktree(tmp_path: Path) -> WorkTree:
    root = tmp_path / "local"
    root.mkdir()
    run_git(root, "init", "-q")
    return WorkTree(root)


# Changes made by each commit of the default hardening series, oldest first.
def _hardening_changes(tree: WorkTree) -> Sequence[Callable[[], None]]:
    return [
        lambda: (
            tree.append(".github/workflows/ci.yaml", "  drone: true\n"),
            tree.append(".github/workflows/depreview.yaml", "  drone: true\n"),
            tree.write(".drone.yml", "kind: pipeline\n"),
        ),
        lambda: tree.write("test/e2e/settings/opentelemetry.go", "package settings\n"),
        lambda: (
            tree.append("images/nginx/rootfs/Dockerfile", "RUN harden\n"),
            tree.write("images/nginx/rootfs/build-s390x.sh", "#!/bin/sh\n"),
        ),
        lambda: tree.write("Dockerfile.dapper", "FROM registry.suse.com/bci/golang\n"),
        lambda: tree.write("hack/arm64.sh", "#!/bin/sh\n"),
        lambda: tree.append(".drone.yml", "trigger: {arch: [amd64]}\n"),
        lambda: tree.write("NGINX_VERSION", "1.21.4\n"),
        lambda: tree.write("BROTLI_VERSION", "1.0.9\n"),
        lambda: tree.write("go.work.sum", "golang.org/x/net v0.17.0\n"),
        lambda: tree.append("go.work.sum", "golang.org/x/sys v0.13.0\n"),
    ]


@dataclass
class Forge:
    """Bare repositories standing in for the upstream project and its forks."""

    root: Path
    seed: WorkTree
    workdir: Path
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def url_template(self) -> str:
        return f"{self.root.as_posix()}/{{owner}}/ingress-nginx.git"

    def bare(self, owner: str) -> Path:
        return self.root / owner / "ingress-nginx.git"

    def settings(self, **overrides) -> SyncSettings:
        repository = RepositorySettings(url_template=self.url_template, workdir=self.workdir)
        values = {"repository": repository, "identity": IdentitySettings()}
        values.update(overrides)
        return SyncSettings(**values)

    def harden(self, base_tag: str, branch: str, owner: str = "alice") -> str:
        """Push ``branch`` = ``base_tag`` + the default hardening series to ``owner``."""

        self.seed.git("checkout", "-q", "-b", branch, base_tag)
        for entry, change in zip(DEFAULT_SERIES, _hardening_changes(self.seed)):
            change()
            self.seed.commit(entry.message)
        self.seed.git("push", "-q", owner, branch)
        head = self.seed.git("rev-parse", "HEAD")
        self.seed.git("checkout", "-q", "main")
        return head

    def upstream_tag_commit(self, tag: str) -> str:
        return run_git(self.bare("kubernetes"), "rev-parse", f"{tag}^{{commit}}")

    def branch_head(self, owner: str, branch: str) -> str:
        return run_git(self.bare(owner), "rev-parse", f"refs/heads/{branch}")



@pytest.fixture()
def forge(tmp_path: Path) -> Forge:
    """Upstream with controller-v1.8.0, v1.9.0 and v1.9.3; forks for rancher and alice.

    controller-v1.9.3 deletes the CI workflows and the nginx rootfs Dockerfile
    that the first and third hardening commits modify.
    """

    root = tmp_path / "forge"
    for owner in ("kubernetes", "rancher", "alice"):
        bare = root / owner / "ingress-nginx.git"
        bare.mkdir(parents=True)
        run_git(bare, "init", "-q", "--bare")

    seed_root = tmp_path / "seed"
    seed_root.mkdir()
    run_git(seed_root, "init", "-q")
    seed = WorkTree(seed_root)
    for owner in ("kubernetes", "rancher", "alice"):
        seed.git("remote", "add", owner, str(root / owner / "ingress-nginx.git"))

    seed.write("README.md", "ingress-nginx\n")
    seed.write(".github/workflows/ci.yaml", "name: ci\n")
    seed.write(".github/workflows/depreview.yaml", "name: depreview\n")
    seed.write("images/nginx/rootfs/Dockerfile", "FROM alpine\n")
    seed.write("Makefile", "all:\n")
    seed.commit("Initial import")
    seed.git("tag", "-a", "controller-v1.8.0", "-m", "controller v1.8.0")

    seed.append("README.md", "1.9 release line\n")
    seed.commit("Start 1.9 development")
    seed.git("tag", "controller-v1.9.0")

    seed.git("rm", "-q", ".github/workflows/ci.yaml", ".github/workflows/depreview.yaml")
    seed.git("rm", "-q", "images/nginx/rootfs/Dockerfile")
    seed.append("README.md", "moved CI and images\n")
    seed.commit("Move CI workflows and nginx image")
    seed.git("tag", "-a", "controller-v1.9.3", "-m", "controller v1.9.3")

    seed.write("charts/ingress-nginx/Chart.yaml", "version: 4.9.1\n")
    seed.commit("Release chart 4.9.1")
    seed.git("tag", "helm-chart-4.9.1")

    seed.git("push", "-q", "kubernetes", "main")
    seed.git("push", "-q", "kubernetes", "--tags")

    forge = Forge(root=root, seed=seed, workdir=tmp_path / "work" / "ingress-nginx")
    forge.harden("controller-v1.8.0", "hardened-nginx-1.8.x-fix")
    return forge

from __future__ import annotations

import textwrap

import pytest

from hardensync.config import IdentitySettings
from hardensync.engine.bootstrap import bootstrap_repository
from hardensync.errors import BootstrapError
from hardensync.tools.vcs import GitRepository


def test_bootstrap_clones_and_fetches_every_remote(forge) -> None:
    repo = bootstrap_repository(forge.settings(), "alice")

    assert repo.root == forge.workdir.resolve()
    assert sorted(repo.remotes()) == ["alice", "origin", "rancher"]
    assert repo.remote_url("rancher") == str(forge.bare("rancher"))
    assert repo.remote_branch_exists("alice", "hardened-nginx-1.8.x-fix")
    assert repo.resolve("controller-v1.9.3") == forge.upstream_tag_commit("controller-v1.9.3")
    assert repo.get_config("user.name") == "alice"
    assert repo.get_config("user.email") == "runner@example.com"


def test_bootstrap_is_idempotent(forge) -> None:
    bootstrap_repository(forge.settings(), "alice")
    forge.harden("controller-v1.9.0", "hardened-nginx-1.9.x-fix")

    repo = bootstrap_repository(forge.settings(), "alice")

    assert sorted(repo.remotes()) == ["alice", "origin", "rancher"]
    assert repo.remote_branch_exists("alice", "hardened-nginx-1.9.x-fix")


def test_configured_email_wins(forge) -> None:
    settings = forge.settings(identity=IdentitySettings(email="release@example.com"))
    repo = bootstrap_repository(settings, "alice")
    assert repo.get_config("user.email") == "release@example.com"


def test_missing_email_is_fatal(forge, git_home) -> None:
    (git_home / ".gitconfig").write_text(
        textwrap.dedent(
            """
            [user]
                name = Test Runner
            """
        ).lstrip(),
        encoding="utf-8",
    )
    with pytest.raises(BootstrapError, match="email"):
        bootstrap_repository(forge.settings(), "alice")


def test_unreachable_user_remote_is_fatal(forge) -> None:
    with pytest.raises(BootstrapError, match="unable to fetch ghost remote"):
        bootstrap_repository(forge.settings(), "ghost")


def test_non_empty_workdir_without_repository(forge) -> None:
    forge.workdir.mkdir(parents=True)
    (forge.workdir / "notes.txt").write_text("not a clone\n", encoding="utf-8")
    with pytest.raises(BootstrapError, match="not empty"):
        bootstrap_repository(forge.settings(), "alice")


def test_user_is_required(forge) -> None:
    with pytest.raises(BootstrapError):
        bootstrap_repository(forge.settings(), "")


def test_fork_tags_do_not_replace_upstream_tags(forge) -> None:
    forge.seed.git("push", "-q", "alice", "controller-v1.8.0^{commit}:refs/tags/controller-v1.9.3")
    forge.seed.git("push", "-q", "rancher", "controller-v1.8.0^{commit}:refs/tags/controller-v1.9.3")

    repo = bootstrap_repository(forge.settings(), "alice")

    assert repo.resolve("controller-v1.9.3") == forge.upstream_tag_commit("controller-v1.9.3")
    assert repo.remote_branch_exists("alice", "hardened-nginx-1.8.x-fix")


def test_unreachable_organization_stops_before_user_remote(forge) -> None:
    settings = forge.settings()
    settings = settings.model_copy(
        update={"repository": settings.repository.model_copy(update={"organization": "nowhere"})}
    )

    with pytest.raises(BootstrapError, match="unable to fetch nowhere remote"):
        bootstrap_repository(settings, "alice")

    repo = GitRepository(forge.workdir)
    assert repo.remote_branch_exists("origin", "main")
    assert repo.git("for-each-ref", "refs/remotes/alice").stdout == ""

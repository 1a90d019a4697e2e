"""Clone-or-open the upstream repository and fetch every remote."""

from __future__ import annotations

import logging

from ..config import SyncSettings
from ..errors import BootstrapError
from ..tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)

UPSTREAM_REMOTE = "origin"


def _open_or_clone(settings: SyncSettings) -> GitRepository:
    workdir = settings.repository.workdir
    try:
        workdir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise BootstrapError(f"unable to create {workdir}: {error}") from error

    if (workdir / ".git").exists():
        LOGGER.info("Using existing clone at %s", workdir)
        try:
            return GitRepository(workdir)
        except GitError as error:
            raise BootstrapError(str(error)) from error

    if any(workdir.iterdir()):
        raise BootstrapError(f"{workdir} is not empty and holds no git repository")

    url = settings.repository.url_for(settings.repository.upstream_owner)
    LOGGER.info("Cloning %s into %s", url, workdir)
    try:
        return GitRepository.clone(url, workdir)
    except GitError as error:
        raise BootstrapError(f"unable to clone upstream: {error}") from error


def _register_remote(repo: GitRepository, name: str, url: str) -> None:
    try:
        added = repo.add_remote(name, url)
    except GitError as error:
        raise BootstrapError(f"unable to add {name} remote: {error}") from error
    if added:
        LOGGER.info("Added remote %s -> %s", name, url)
        return
    existing = repo.remote_url(name)
    if existing != url:
        LOGGER.warning("Remote %s already points at %s, not %s", name, existing, url)


def bootstrap_repository(settings: SyncSettings, user: str) -> GitRepository:
    """Prepare the working copy: clone, remotes, fetches and commit identity."""

    if not user:
        raise BootstrapError("a user name is required to register the user remote")

    repo = _open_or_clone(settings)
    organization = settings.repository.organization
    _register_remote(repo, organization, settings.repository.url_for(organization))
    _register_remote(repo, user, settings.repository.url_for(user))

    for remote in (UPSTREAM_REMOTE, organization, user):
        # Only upstream tags are authoritative; fork tags never replace them.
        LOGGER.info("Fetching from %s", remote)
        try:
            repo.fetch(remote, tags=remote == UPSTREAM_REMOTE)
        except GitError as error:
            raise BootstrapError(f"unable to fetch {remote} remote: {error}") from error

    email = settings.identity.email or repo.get_config("user.email", global_scope=True)
    if not email:
        raise BootstrapError("no commit email configured; set identity.email or git's global user.email")
    try:
        repo.set_config("user.name", user)
        repo.set_config("user.email", email)
    except GitError as error:
        raise BootstrapError(f"unable to configure commit identity: {error}") from error

    return repo


__all__ = ["UPSTREAM_REMOTE", "bootstrap_repository"]

"""Push the hardened branch to a fork remote."""

from __future__ import annotations

import base64
import logging

from .config import SyncSettings
from .errors import PublishError
from .tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)

# GitHub ignores the user name of token basic auth, but it cannot be blank.
_AUTH_USER = "placeholder"


def auth_header(token: str) -> str:
    credentials = base64.b64encode(f"{_AUTH_USER}:{token}".encode("utf-8")).decode("ascii")
    return f"Authorization: Basic {credentials}"


def push_hardened_branch(settings: SyncSettings, remote: str, token: str, *, force: bool) -> str:
    """Push the checked-out branch to ``remote`` and return its name."""

    if not token:
        raise PublishError("a GitHub token is required to push")
    try:
        repo = GitRepository(settings.repository.workdir)
    except GitError as error:
        raise PublishError(f"no working copy to publish: {error}") from error

    branch = repo.current_branch()
    if branch is None:
        raise PublishError("HEAD is detached; run the rebase command first")

    try:
        repo.push(
            remote,
            f"HEAD:refs/heads/{branch}",
            force=force,
            config={"http.extraHeader": auth_header(token)},
        )
    except GitError as error:
        raise PublishError(f"unable to push {branch} to {remote}: {error}") from error

    location = settings.repository.url_for(remote)
    LOGGER.info("New branch pushed to %s/tree/%s", location, branch)
    return branch


__all__ = ["auth_header", "push_hardened_branch"]

"""Derive hardened branch names from upstream release tags."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern

from .errors import MalformedTagError, NoPreviousMinorError, NonNumericMinorError

DEFAULT_PRODUCT = "nginx"

# Searched, not anchored: upstream tags look like ``controller-v1.9.3``.
_TAG_PATTERN: Pattern[str] = re.compile(r"v(\d+)\.(\d+)\.(\d+)", re.ASCII)
_BRANCH_TEMPLATE = "hardened-{product}-{major}.{minor}.x-fix"


@dataclass(frozen=True, slots=True)
class VersionTag:
    """Upstream tag split into the version components used for branch names."""

    raw: str
    major: str
    minor: str
    patch: str

    @classmethod
    def parse(cls, tag: str) -> "VersionTag":
        match = _TAG_PATTERN.search(tag or "")
        if match is None:
            raise MalformedTagError(f"tag {tag!r} does not contain a v<major>.<minor>.<patch> version")
        major, minor, patch = match.groups()
        return cls(raw=tag, major=major, minor=minor, patch=patch)

    def previous_minor(self) -> int:
        """Return ``minor - 1``; minor ``0`` has no previous line."""

        if not (self.minor.isascii() and self.minor.isdigit()):
            raise NonNumericMinorError(f"minor version {self.minor!r} of tag {self.raw!r} is not an integer")
        minor = int(self.minor)
        if minor == 0:
            raise NoPreviousMinorError(
                f"tag {self.raw!r} starts minor line {self.major}.0; pass the previous branch explicitly"
            )
        return minor - 1


def branch_name(product: str, major: str, minor: str | int) -> str:
    return _BRANCH_TEMPLATE.format(product=product, major=major, minor=minor)


def hardened_branch_name(tag: str | VersionTag, product: str = DEFAULT_PRODUCT) -> str:
    """``controller-v1.9.3`` -> ``hardened-nginx-1.9.x-fix``."""

    version = tag if isinstance(tag, VersionTag) else VersionTag.parse(tag)
    return branch_name(product, version.major, version.minor)


def previous_hardened_branch_name(tag: str | VersionTag, product: str = DEFAULT_PRODUCT) -> str:
    """``controller-v1.9.3`` -> ``hardened-nginx-1.8.x-fix``."""

    version = tag if isinstance(tag, VersionTag) else VersionTag.parse(tag)
    return branch_name(product, version.major, version.previous_minor())


__all__ = [
    "DEFAULT_PRODUCT",
    "VersionTag",
    "branch_name",
    "hardened_branch_name",
    "previous_hardened_branch_name",
]

"""The hardening patch series and the remediation each entry carries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PatchAction(str, Enum):
    """File action applied when a commit of the series conflicts."""

    NONE = "none"
    ADD = "add"
    REMOVE = "remove"


class PatchEntry(BaseModel):
    """One commit of the hardening series.

    ``message`` identifies the commit: it is looked up in the commit message
    of a conflicting commit (and in git's conflict report).  ``files`` are the
    paths ``action`` is applied to when that commit conflicts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    message: str = Field(min_length=1)
    action: PatchAction = PatchAction.NONE
    files: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_files(self) -> "PatchEntry":
        if self.action is PatchAction.NONE and self.files:
            raise ValueError(f"entry {self.message!r} lists files but has no action")
        if self.action is not PatchAction.NONE and not self.files:
            raise ValueError(f"entry {self.message!r} needs files for action {self.action.value!r}")
        return self


@dataclass(frozen=True, slots=True)
class PatchSeries:
    """Ordered, immutable patch series; index 0 is the oldest commit."""

    entries: Tuple[PatchEntry, ...]

    @classmethod
    def of(cls, entries: Iterable[PatchEntry]) -> "PatchSeries":
        return cls(tuple(entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PatchEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> PatchEntry:
        return self.entries[index]

    def match(self, *texts: str) -> PatchEntry | None:
        """Return the first entry, in series order, whose message occurs in ``texts``."""

        haystack = [text for text in texts if text]
        for entry in self.entries:
            if any(entry.message in text for text in haystack):
                return entry
        return None

    def index_of(self, entry: PatchEntry) -> int:
        for index, candidate in enumerate(self.entries):
            if candidate is entry:
                return index
        return self.entries.index(entry)


def _entry(message: str, action: str = "none", files: Sequence[str] = ()) -> PatchEntry:
    return PatchEntry(message=message, action=PatchAction(action), files=tuple(files))


# Hardened ingress-nginx commits, oldest first.
DEFAULT_SERIES = PatchSeries.of(
    [
        _entry(
            "Adding drone and build artifacts",
            "remove",
            [".github/workflows/ci.yaml", ".github/workflows/depreview.yaml"],
        ),
        _entry("Skip or Fix Flaky Unint and E2E Tests", "add", ["test/e2e/settings/opentelemetry.go"]),
        _entry("Hardened Nginx and S390x changes", "remove", ["images/nginx/rootfs/Dockerfile"]),
        _entry("Use BCI base image", "add", ["Dockerfile.dapper"]),
        _entry("add arm64 support", "remove", ["cmd/plugin/commands/ingresses/ingresses_test.go"]),
        _entry("Disable s390x Drone pipeline"),
        _entry("Downgrade nginx to 1.21.4 for pcre compatability"),
        _entry("Drop back to older brotli version"),
        _entry("Rancher go.work.sum changes"),
        _entry("Rancher go.work.sum changes"),
    ]
)


__all__ = ["DEFAULT_SERIES", "PatchAction", "PatchEntry", "PatchSeries"]

"""Configuration loading for hardened-sync runs."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .naming import DEFAULT_PRODUCT
from .patches import DEFAULT_SERIES, PatchEntry, PatchSeries

DEFAULT_CONFIG_NAME = "hardened-sync.yaml"


class SettingsModel(BaseModel):
    """Base model rejecting unknown keys."""

    model_config = ConfigDict(extra="forbid")


class RepositorySettings(SettingsModel):
    """Where the upstream clone lives and how remote URLs are built."""

    url_template: str = "https://github.com/{owner}/ingress-nginx"
    upstream_owner: str = "kubernetes"
    organization: str = "rancher"
    workdir: Path = Path("ingress-nginx")

    @field_validator("url_template")
    @classmethod
    def _require_owner(cls, value: str) -> str:
        if "{owner}" not in value:
            raise ValueError("url_template must contain an {owner} placeholder")
        return value

    def url_for(self, owner: str) -> str:
        return self.url_template.format(owner=owner)


class IdentitySettings(SettingsModel):
    """Commit identity; the email falls back to the global git config."""

    email: Optional[str] = None


class SyncSettings(SettingsModel):
    """Static configuration for one synchronization run."""

    product: str = DEFAULT_PRODUCT
    tag_filter: str = "controller"
    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    patches: Optional[List[PatchEntry]] = None

    @property
    def series(self) -> PatchSeries:
        if self.patches is None:
            return DEFAULT_SERIES
        return PatchSeries.of(self.patches)


def _resolve_workdir(settings: SyncSettings, base_dir: Path) -> SyncSettings:
    workdir = settings.repository.workdir
    if not workdir.is_absolute():
        workdir = (base_dir / workdir).resolve()
    repository = settings.repository.model_copy(update={"workdir": workdir})
    return settings.model_copy(update={"repository": repository})


def load_settings(config_path: Path | str | None = None) -> SyncSettings:
    """Load settings from YAML, or defaults when ``config_path`` is ``None``.

    A relative ``repository.workdir`` is resolved against the directory holding
    the configuration file (the current directory for defaults).
    """

    if config_path is None:
        return _resolve_workdir(SyncSettings(), Path.cwd())

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data: Any = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    try:
        settings = SyncSettings.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid config {path}: {error}") from error
    if settings.patches is not None and not settings.patches:
        raise ConfigError(f"Invalid config {path}: patches must not be empty")

    return _resolve_workdir(settings, path.parent.resolve())


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "IdentitySettings",
    "RepositorySettings",
    "SyncSettings",
    "load_settings",
]

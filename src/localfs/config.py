"""
Configuration for the local filesystem adapter.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from localfs.exceptions import ConfigurationError
from localfs.models import LinkHandling, LockMode, Visibility
from localfs.paths import strip_file_scheme

DEFAULT_PERMISSIONS: dict[str, dict[str, int]] = {
    "file": {"public": 0o644, "private": 0o600},
    "dir": {"public": 0o755, "private": 0o700},
}


def _parse_mode(value: Any) -> Any:
    """Accept octal strings such as ``"0644"`` or ``"0o644"``."""
    if isinstance(value, str):
        try:
            return int(value, 8)
        except ValueError:
            raise ValueError(f"Invalid octal permission value: {value!r}")
    return value


class VisibilityPermissions(BaseModel):
    """Permission bits for the two visibilities of one entry kind."""

    model_config = {"extra": "forbid"}

    public: int = Field(ge=0, le=0o7777, description="Bits applied for 'public'")
    private: int = Field(ge=0, le=0o7777, description="Bits applied for 'private'")

    @field_validator("public", "private", mode="before")
    @classmethod
    def parse_octal(cls, v):
        return _parse_mode(v)

    def for_visibility(self, visibility: Visibility) -> int:
        return self.public if visibility == Visibility.PUBLIC else self.private

    def __repr__(self) -> str:
        return f"VisibilityPermissions(public={self.public:04o}, private={self.private:04o})"


class PermissionMap(BaseModel):
    """
    Visibility to permission bit table.

    Partial overrides are merged over the defaults, so
    ``PermissionMap(file={"private": 0o640})`` keeps every other entry.
    """

    model_config = {"extra": "forbid"}

    file: VisibilityPermissions = Field(description="Permissions for files")
    dir: VisibilityPermissions = Field(description="Permissions for directories")

    @model_validator(mode="before")
    @classmethod
    def merge_with_defaults(cls, data):
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            return data
        merged: dict[str, Any] = {}
        for kind, defaults in DEFAULT_PERMISSIONS.items():
            override = data.get(kind) or {}
            if isinstance(override, VisibilityPermissions):
                override = override.model_dump()
            merged[kind] = {**defaults, **override}
        for key in data:
            if key not in merged:
                merged[key] = data[key]
        return merged


class WriteOptions(BaseModel):
    """
    Per-call options for write-like operations.

    Unknown keys are ignored so callers can pass a shared options map.
    """

    model_config = {"extra": "ignore"}

    visibility: Optional[Visibility] = Field(
        default=None, description="Visibility applied after the write"
    )

    @classmethod
    def coerce(
        cls, options: Union["WriteOptions", Mapping[str, Any], None]
    ) -> "WriteOptions":
        """Build options from a mapping, an instance or ``None``."""
        if options is None:
            return cls()
        if isinstance(options, WriteOptions):
            return options
        return cls.model_validate(dict(options))


class LocalAdapterConfig(BaseModel):
    """
    Construction settings for a ``LocalAdapter``.

    Example:
        ```python
        config = LocalAdapterConfig(
            root="/srv/uploads",
            link_handling="skip",
            permissions={"file": {"public": "0640"}},
        )
        adapter = LocalAdapter.from_config(config)
        ```
    """

    model_config = {"extra": "forbid"}

    root: Path = Field(description="Directory every relative path is confined to")
    lock_mode: LockMode = Field(
        default=LockMode.EXCLUSIVE,
        description="Lock applied to write handles",
    )
    link_handling: LinkHandling = Field(
        default=LinkHandling.DISALLOW,
        description="Whether listings fail on or skip symbolic links",
    )
    permissions: PermissionMap = Field(
        default_factory=PermissionMap,
        description="Visibility to permission bit table",
    )
    default_visibility: Visibility = Field(
        default=Visibility.PUBLIC,
        description="Visibility for created directories when none is given",
    )
    unknown_visibility: Visibility = Field(
        default=Visibility.PUBLIC,
        description="Visibility reported for permission bits missing from the table",
    )
    create_root: bool = Field(
        default=True,
        description="Create the root directory if it does not exist",
    )

    @field_validator("root", mode="before")
    @classmethod
    def normalize_root(cls, v):
        """Accept ``file://`` URLs as roots."""
        return strip_file_scheme(v) if isinstance(v, str) else v

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LocalAdapterConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            root: /srv/uploads
            lock_mode: exclusive
            link_handling: skip
            permissions:
              file:
                public: "0644"
            ```

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "LocalAdapterConfig":
        return cls(**data)

    @classmethod
    def from_env(cls) -> "LocalAdapterConfig":
        """Load configuration from ``LOCALFS_*`` environment variables."""
        return LocalFSSettings().to_config()

    def __str__(self) -> str:
        return (
            f"LocalAdapterConfig(root={self.root}, lock={self.lock_mode.value}, "
            f"links={self.link_handling.value})"
        )


class LocalFSSettings(BaseSettings):
    """
    Environment driven settings.

    Environment variables:
        LOCALFS_ROOT - Root directory
        LOCALFS_LOCK_MODE - none | exclusive
        LOCALFS_LINK_HANDLING - disallow | skip
        LOCALFS_DEFAULT_VISIBILITY - public | private
        LOCALFS_PERMISSIONS__FILE__PUBLIC - e.g. 0644 (any table entry)
    """

    model_config = SettingsConfigDict(
        env_prefix="LOCALFS_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    root: Optional[Path] = None
    lock_mode: LockMode = LockMode.EXCLUSIVE
    link_handling: LinkHandling = LinkHandling.DISALLOW
    default_visibility: Visibility = Visibility.PUBLIC
    permissions: PermissionMap = Field(default_factory=PermissionMap)

    @field_validator("root", mode="before")
    @classmethod
    def normalize_root(cls, v):
        return strip_file_scheme(v) if isinstance(v, str) else v

    def to_config(self) -> LocalAdapterConfig:
        """
        Convert to an adapter configuration.

        Raises:
            ConfigurationError: If no root is configured
        """
        if self.root is None:
            raise ConfigurationError("Missing required environment variable: LOCALFS_ROOT")
        return LocalAdapterConfig(
            root=self.root,
            lock_mode=self.lock_mode,
            link_handling=self.link_handling,
            default_visibility=self.default_visibility,
            permissions=self.permissions,
        )

"""Scrape profiles: named lists of NRPE commands loaded from YAML.

Example file::

    profiles:
      - profile: linux
        commands:
          - command: check_load
            metric_name: [load1, load5, load15]
            label_name: NONE
          - command: check_disk
            params: "-w!20%!-c!10%"
            type: gauge
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nrpe_bridge.logging_abstraction import get_logger
from nrpe_bridge.metrics.types import MetricKind
from nrpe_bridge.protocol.packet_types import COMMAND_ARG_SEPARATOR, NrpeCommand

logger = get_logger(__name__)

__all__ = [
    "CommandSpec",
    "Profile",
    "ProfileError",
    "Profiles",
    "load_profiles",
]


class ProfileError(Exception):
    """Raised when a profile file or an ad-hoc command definition is invalid."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class CommandSpec(BaseModel):
    """One command to run on the agent, with its metric naming options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: str = Field(min_length=1)
    params: list[str] = Field(default_factory=list)
    type: str = ""
    help: str = ""
    metric_name: list[str] = Field(default_factory=list)
    metric_prefix: str = ""
    label_name: str = ""
    performance: bool = True

    @field_validator("params", mode="before")
    @classmethod
    def _split_params(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return value.split(COMMAND_ARG_SEPARATOR) if value else []
        return value

    @field_validator("metric_name", mode="before")
    @classmethod
    def _split_metric_names(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [name.strip() for name in value.split(",")] if value else []
        return value

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        try:
            MetricKind.parse(value)
        except ValueError as e:
            raise ValueError(f"unsupported metric type: {value}") from e
        return value.strip().lower()

    @property
    def kind(self) -> MetricKind:
        """Prometheus value type for the perfdata samples of this command."""
        return MetricKind.parse(self.type)

    def to_command(self) -> NrpeCommand:
        """The wire command (name plus ordered arguments)."""
        return NrpeCommand(name=self.command, args=tuple(self.params))


class Profile(BaseModel):
    """A named, ordered list of commands."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(alias="profile", min_length=1)
    commands: list[CommandSpec]

    @field_validator("commands")
    @classmethod
    def _require_commands(cls, value: list[CommandSpec]) -> list[CommandSpec]:
        if not value:
            raise ValueError("no commands defined for profile")
        return value


class Profiles(BaseModel):
    """Top-level profile file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    profiles: list[Profile]

    @field_validator("profiles")
    @classmethod
    def _require_profiles(cls, value: list[Profile]) -> list[Profile]:
        if not value:
            raise ValueError("at least one profile must be defined")
        return value

    def find(self, name: str) -> Profile:
        """Look up a profile by name.

        Raises:
            ProfileError: If the name is empty or unknown
        """
        if not name:
            raise ProfileError("undefined name specified")
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ProfileError(f"profile not found '{name}'")

    def dump(self) -> str:
        """Render the profiles back to YAML."""
        data = self.model_dump(by_alias=True, exclude_defaults=True)
        return yaml.safe_dump(data, sort_keys=False)


def parse_profiles(data: Any, source: str | None = None) -> Profiles:
    """Validate already-parsed YAML data.

    Raises:
        ProfileError: If the data does not describe valid profiles
    """
    if not isinstance(data, dict):
        raise ProfileError("profile file must contain a mapping", source)
    try:
        return Profiles.model_validate(data)
    except ValidationError as e:
        raise ProfileError(str(e), source) from e


def load_profiles(path: str | Path) -> Profiles:
    """Load and validate a YAML profile file.

    Raises:
        ProfileError: If the file cannot be read or is invalid
    """
    profile_path = Path(path).expanduser()
    try:
        with profile_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ProfileError(f"cannot read profile file: {e}", str(profile_path)) from e
    except yaml.YAMLError as e:
        raise ProfileError(f"invalid YAML: {e}", str(profile_path)) from e

    profiles = parse_profiles(data, str(profile_path))
    logger.info(
        "Profiles loaded",
        extra={
            "path": str(profile_path),
            "profile_count": len(profiles.profiles),
        },
    )
    return profiles

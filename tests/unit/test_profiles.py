"""Unit tests for profile loading and command specs."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from nrpe_bridge.metrics.types import MetricKind
from nrpe_bridge.profiles import CommandSpec, ProfileError, Profiles, load_profiles, parse_profiles
from nrpe_bridge.protocol.packet_types import NrpeCommand

PROFILES_YAML = """
profiles:
  - profile: linux
    commands:
      - command: check_load
        metric_name: [load1, load5, load15]
        label_name: NONE
      - command: check_disk
        params: "-w!20%!-c!10%"
        type: Gauge
        help: disk usage
  - profile: web
    commands:
      - command: check_http
        performance: false
"""


@pytest.fixture
def profiles_file(tmp_path: Path) -> Path:
    """Write a valid profile file."""
    path = tmp_path / "profiles.yml"
    path.write_text(PROFILES_YAML, encoding="utf-8")
    return path


def test_load_profiles(profiles_file: Path) -> None:
    """Test a profile file is parsed into ordered commands."""
    profiles = load_profiles(profiles_file)

    linux = profiles.find("linux")
    assert [c.command for c in linux.commands] == ["check_load", "check_disk"]
    assert linux.commands[0].metric_name == ["load1", "load5", "load15"]
    assert linux.commands[1].params == ["-w", "20%", "-c", "10%"]
    assert linux.commands[1].type == "gauge"
    assert profiles.find("web").commands[0].performance is False


def test_find_unknown_profile(profiles_file: Path) -> None:
    """Test unknown and empty profile names raise ProfileError."""
    profiles = load_profiles(profiles_file)

    with pytest.raises(ProfileError, match="profile not found 'db'"):
        profiles.find("db")
    with pytest.raises(ProfileError, match="undefined name"):
        profiles.find("")


def test_dump_round_trips(profiles_file: Path) -> None:
    """Test dump() produces YAML that loads back to the same profiles."""
    profiles = load_profiles(profiles_file)

    reloaded = parse_profiles(yaml.safe_load(profiles.dump()))

    assert reloaded == profiles
    assert "profile: linux" in profiles.dump()


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ("profiles: []", "at least one profile"),
        ("profiles:\n  - profile: empty\n    commands: []", "no commands defined"),
        ("profiles:\n  - profile: p\n    commands:\n      - command: c\n        colour: red", "colour"),
        ("profiles:\n  - profile: p\n    commands:\n      - command: c\n        type: summary", "unsupported metric type"),
        ("unexpected: true", "profiles"),
        ("- just\n- a list", "mapping"),
    ],
)
def test_invalid_profiles_rejected(tmp_path: Path, document: str, message: str) -> None:
    """Test schema violations surface as ProfileError naming the problem."""
    path = tmp_path / "bad.yml"
    path.write_text(document, encoding="utf-8")

    with pytest.raises(ProfileError, match=message) as exc_info:
        load_profiles(path)

    assert exc_info.value.source == str(path)


def test_invalid_yaml(tmp_path: Path) -> None:
    """Test YAML syntax errors are wrapped."""
    path = tmp_path / "broken.yml"
    path.write_text("profiles: [", encoding="utf-8")

    with pytest.raises(ProfileError, match="invalid YAML"):
        load_profiles(path)


def test_missing_file(tmp_path: Path) -> None:
    """Test an unreadable file is a ProfileError."""
    with pytest.raises(ProfileError, match="cannot read"):
        load_profiles(tmp_path / "missing.yml")


def test_command_spec_defaults() -> None:
    """Test a bare command spec uses gauge, perfdata on, no naming overrides."""
    spec = CommandSpec(command="check_users")

    assert spec.kind is MetricKind.GAUGE
    assert spec.performance is True
    assert spec.params == []
    assert spec.metric_name == []
    assert spec.to_command() == NrpeCommand("check_users")


def test_command_spec_string_forms() -> None:
    """Test '!' params and comma-separated metric names are accepted as strings."""
    spec = CommandSpec(command="check_load", params="-r!-w!1,2,3", metric_name="m1, m2,m3", type="COUNTER")

    assert spec.to_command() == NrpeCommand("check_load", ("-r", "-w", "1,2,3"))
    assert spec.metric_name == ["m1", "m2", "m3"]
    assert spec.kind is MetricKind.COUNTER


def test_command_spec_requires_command() -> None:
    """Test an empty command name is rejected."""
    with pytest.raises(ValidationError):
        CommandSpec(command="")


def test_profiles_model_uses_profile_alias() -> None:
    """Test profiles can be built from the YAML key names."""
    profiles = Profiles.model_validate({"profiles": [{"profile": "p", "commands": [{"command": "c"}]}]})

    assert profiles.profiles[0].name == "p"

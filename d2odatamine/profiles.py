"""Named data directories kept in the user's d2odm config file.

A profile maps a short name (``live``, ``beta``) to the directory holding a
client's ``.d2o`` files, so commands can take a bare file name like
``Monsters`` instead of a full path. The file looks like::

    default_profile = "live"

    [profiles.live]
    data_dir = "/games/dofus/data/common"
"""
from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

import click

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

# Profile names become bare TOML table keys
_PROFILE_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


@dataclass
class Profile:
    name: str
    data_dir: Path


@dataclass
class Config:
    default_profile: str | None = None
    profiles: dict[str, Profile] = field(default_factory=dict)

    def add(self, profile: Profile, make_default: bool = False) -> None:
        """Store `profile`, becoming the default if it is the first one."""
        self.profiles[profile.name] = profile
        if make_default or self.default_profile is None:
            self.default_profile = profile.name

    def describe(self) -> list[str]:
        """One ``name: directory`` line per profile, default marked."""
        return [
            f"{name}: {p.data_dir}" + (" (default)" if name == self.default_profile else "")
            for name, p in self.profiles.items()
        ]


def get_config_path() -> Path:
    return Path(click.get_app_dir("d2odm")) / "config.toml"


def load_config() -> Config:
    """Read the config file, or return an empty Config when there is none.

    Profile tables without a ``data_dir`` key are skipped with a warning.
    """
    path = get_config_path()
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = Config(default_profile=data.get("default_profile"))
    for name, table in data.get("profiles", {}).items():
        data_dir = table.get("data_dir")
        if data_dir is None:
            logger.warning("profile %r in %s has no data_dir; ignoring it", name, path)
            continue
        config.profiles[name] = Profile(name=name, data_dir=Path(data_dir))
    return config


def _toml_string(value: str) -> str:
    # Basic string; backslashes in Windows paths must be escaped
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def save_config(config: Config) -> Path:
    """Write `config` to the config file, creating its directory, and return the path."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    if config.default_profile:
        lines.append(f"default_profile = {_toml_string(config.default_profile)}")
    for name, profile in config.profiles.items():
        lines += ["", f"[profiles.{name}]", f"data_dir = {_toml_string(str(profile.data_dir))}"]
    lines.append("")

    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def validate_profile_name(name: str) -> bool:
    return bool(_PROFILE_NAME_RE.match(name))


def resolve_data_dir(data_dir: Path | None, profile_name: str | None) -> Path:
    """Pick the directory that bare D2O file names are looked up in.

    An explicit `data_dir` wins, then the named profile, then the default
    profile. Every failure is a click.UsageError telling the user how to
    point d2odm at their game files.
    """
    if data_dir is not None:
        if not data_dir.is_dir():
            raise click.UsageError(f"--data-dir is not a directory: {data_dir}")
        return data_dir

    config = load_config()
    name = profile_name or config.default_profile
    if name is None:
        raise click.UsageError(
            "Don't know where the .d2o files are. Run 'd2odm init' once to save "
            "the game's data directory, pass --data-dir, or give a path to a "
            ".d2o file instead of a bare name."
        )

    profile = config.profiles.get(name)
    if profile is None:
        available = ", ".join(config.profiles) or "(none)"
        raise click.UsageError(f"No profile named '{name}'. Available profiles: {available}")

    if not profile.data_dir.is_dir():
        raise click.UsageError(
            f"Profile '{name}' points at {profile.data_dir}, which no longer exists. "
            "Run 'd2odm init' after moving or updating the game."
        )
    return profile.data_dir

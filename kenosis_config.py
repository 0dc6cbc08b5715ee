#!/usr/bin/env python3
"""
Configuration management for Kenosis

Builds one immutable CleanupConfig per invocation from the command line,
layered over optional defaults kept in a TOML file in the shared .kosmos
directory.
"""

import argparse
import pathlib
from dataclasses import dataclass, field
from typing import Any, Optional

import tomllib

from duration import format_minutes, parse_duration
from file_enumerator import ExclusionSet
from kenosis_errors import ConfigurationError

DEFAULT_CONFIG_FILE = pathlib.Path.home() / ".kosmos" / "kenosis.toml"

# key -> accepted types
_FILE_KEYS: dict[str, tuple[type, ...]] = {
    "age": (str,),
    "usage": (int,),
    "force": (bool,),
    "exclude": (list,),
    "log": (str,),
    "quiet": (bool,),
    "max_evictions": (int,),
    "state_dir": (str,),
}


@dataclass(frozen=True)
class CleanupConfig:
    """Settings for one cleanup run"""

    target: pathlib.Path
    age_minutes: int = 0
    usage_percent: int = 0
    force_remove_empty: bool = False
    exclusions: tuple[str, ...] = field(default_factory=tuple)
    log_destination: Optional[str] = None
    dry_run: bool = False
    quiet: bool = False
    max_evictions: int = 0
    state_dir: Optional[pathlib.Path] = None

    def __post_init__(self):
        if self.age_minutes < 0:
            raise ConfigurationError(f"Age threshold must not be negative: {self.age_minutes}")
        if isinstance(self.usage_percent, bool) or not 0 <= self.usage_percent <= 100:
            raise ConfigurationError(f"Usage threshold must be between 0 and 100: {self.usage_percent}")
        if self.max_evictions < 0:
            raise ConfigurationError(f"Eviction limit must not be negative: {self.max_evictions}")

    @property
    def has_work(self) -> bool:
        return self.age_minutes > 0 or self.usage_percent > 0 or self.force_remove_empty

    def exclusion_set(self) -> ExclusionSet:
        """Fresh ExclusionSet shared by all phases of a run"""
        return ExclusionSet(list(self.exclusions))

    def to_display_dict(self) -> dict[str, Any]:
        """Settings formatted for the configuration table"""
        return {
            "Target": str(self.target),
            "Age": format_minutes(self.age_minutes) if self.age_minutes else "disabled",
            "Usage threshold": f"{self.usage_percent}%" if self.usage_percent else "disabled",
            "Remove empty dirs": "yes" if self.force_remove_empty else "no",
            "Exclusions": list(self.exclusions) or "none",
            "Log": self.log_destination or "console only",
            "Mode": "dry run" if self.dry_run else "live",
        }


class ConfigLoader:
    """Loads TOML defaults and merges command-line arguments over them"""

    def __init__(self, config_file: Optional[pathlib.Path] = None):
        """Initialize loader

        Args:
            config_file: Explicit config file; must exist when given
        """
        self.explicit = config_file is not None
        self.config_file = pathlib.Path(config_file) if config_file else DEFAULT_CONFIG_FILE

    def load_file(self) -> dict[str, Any]:
        """Read and validate the TOML defaults file"""
        if not self.config_file.exists():
            if self.explicit:
                raise ConfigurationError(f"Config file not found: {self.config_file}")
            return {}

        try:
            with self.config_file.open("rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            raise ConfigurationError(f"Cannot read config file {self.config_file}: {e}") from e

        # Accept either top-level keys or a [kenosis] table
        data = data.get("kenosis", data)

        for key, value in data.items():
            if key not in _FILE_KEYS:
                raise ConfigurationError(f"Unknown key '{key}' in {self.config_file}")
            expected = _FILE_KEYS[key]
            if not isinstance(value, expected) or (bool not in expected and isinstance(value, bool)):
                raise ConfigurationError(f"Key '{key}' in {self.config_file} has the wrong type")
        if not all(isinstance(p, str) for p in data.get("exclude", [])):
            raise ConfigurationError(f"Key 'exclude' in {self.config_file} must be a list of strings")
        return data

    def build(self, args: argparse.Namespace) -> CleanupConfig:
        """Merge CLI arguments over file defaults into a validated CleanupConfig"""
        defaults = self.load_file()

        if not args.path:
            raise ConfigurationError("No target path given")
        target = pathlib.Path(args.path).expanduser()
        if not target.exists():
            raise ConfigurationError(f"Target does not exist: {args.path}")
        if not (target.is_dir() or target.is_file()):
            raise ConfigurationError(f"Target is neither a file nor a directory: {args.path}")
        target = target.resolve()

        age_expr = args.age if args.age is not None else defaults.get("age")
        age_minutes = parse_duration(age_expr) if age_expr is not None else 0

        usage = args.usage if args.usage is not None else defaults.get("usage", 0)

        max_evictions = args.max_evictions if args.max_evictions is not None else defaults.get("max_evictions", 0)

        state_dir = args.state_dir or defaults.get("state_dir")

        exclusions = tuple(defaults.get("exclude", [])) + tuple(args.exclude or [])

        config = CleanupConfig(
            target=target,
            age_minutes=age_minutes,
            usage_percent=usage,
            force_remove_empty=bool(args.force or defaults.get("force", False)),
            exclusions=exclusions,
            log_destination=args.log or defaults.get("log"),
            dry_run=bool(args.dry_run),
            quiet=bool(args.quiet or defaults.get("quiet", False)),
            max_evictions=max_evictions,
            state_dir=pathlib.Path(state_dir).expanduser() if state_dir else None,
        )

        if not config.has_work:
            raise ConfigurationError("Nothing to do: give --age, --usage or --force")
        return config

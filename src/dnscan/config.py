# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for dnscan."""

import copy
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Union

import yaml

from dnscan.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".dnscan.yml"
CATCH_ALL_REGEX = ".*"


class PackageGroup:
    """A named bucket for packages whose name matches `regex`."""

    def __init__(self, name: str, regex: str):
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Package group name must be a non-empty string, got {name!r}")
        try:
            self._compiled: Pattern[str] = re.compile(regex)
        except (re.error, TypeError) as e:
            raise ConfigurationError(f"Invalid regex for package group {name!r}: {e}") from e
        self.name = name
        self.regex = regex

    def matches(self, package_name: str) -> bool:
        return self._compiled.search(package_name) is not None

    def is_catch_all(self) -> bool:
        return self.regex == CATCH_ALL_REGEX

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "regex": self.regex}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageGroup):
            return NotImplemented
        return self.name == other.name and self.regex == other.regex

    def __repr__(self) -> str:
        return f"PackageGroup(name={self.name!r}, regex={self.regex!r})"


DEFAULT_PACKAGE_GROUPS = [
    {"name": "Third Party", "regex": r"^System\.IO\.Abstractions.*|^Owin.Metrics"},
    {
        "name": "Ours",
        "regex": (
            r"^Landmark\..*|^DataMaintenance.*|^ValuationHub\..*|^CaseService\..*"
            r"|^CaseActivities\..*|^NotificationService\..*|^WorkflowService\..*"
            r"|^WorkflowRunner\..*|^Unity.WF*"
        ),
    },
    {
        "name": "Microsoft",
        "regex": (
            r"^CommonServiceLocator|^NETStandard\..*|^EntityFramework*|^Microsoft\..*"
            r"|^MSTest.*|^Owin.*|^System\..*|^EnterpriseLibrary.*"
        ),
    },
    {"name": "Third Party", "regex": CATCH_ALL_REGEX},
]

DEFAULT_ABBREVIATIONS: Dict[str, List[str]] = {}


def default_package_groups() -> List[PackageGroup]:
    return [PackageGroup(g["name"], g["regex"]) for g in DEFAULT_PACKAGE_GROUPS]


def find_config_file(scan_directory: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Return the first config file that exists: scan dir, then home dir."""
    candidates = []
    if scan_directory is not None:
        candidates.append(Path(scan_directory) / CONFIG_FILE_NAME)
    candidates.append(Path.home() / CONFIG_FILE_NAME)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class Config:
    """Configuration for a dnscan run.

    Loads configuration from .dnscan.yml with validation and defaults.
    """

    DEFAULTS: Dict[str, Any] = {
        "package_groups": DEFAULT_PACKAGE_GROUPS,
        "abbreviations": DEFAULT_ABBREVIATIONS,
        "abbreviate_on_graphs": True,
        "input_directory": "",
        "output_directory": "dnscan_output",
        "max_workers": 8,
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        scan_directory: Optional[Union[str, Path]] = None,
    ):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, the scan directory
                and then the home directory are searched.
            scan_directory: Directory being scanned, used to locate the config file.
        """
        if config_path is None:
            config_path = find_config_file(scan_directory)

        self.config_path = config_path
        self._config: Dict[str, Any] = self._defaults()
        self._package_groups: List[PackageGroup] = default_package_groups()
        self._load_config()

    @classmethod
    def _defaults(cls) -> Dict[str, Any]:
        return copy.deepcopy(cls.DEFAULTS)

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if self.config_path is None or not Path(self.config_path).exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            return
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(
                f"Could not read configuration file {self.config_path}: {e}, using defaults"
            )
            return

        if loaded_config is None:
            logger.warning("Configuration file is empty, using defaults")
            return

        if not isinstance(loaded_config, dict):
            logger.warning(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(loaded_config)}, using defaults"
            )
            return

        self._validate_and_merge(loaded_config)

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if key == "package_groups":
                groups = self._parse_package_groups(value)
                if groups is None:
                    logger.warning(f"Invalid value for '{key}', using the default package groups")
                    continue
                self._package_groups = groups
                self._config[key] = [g.to_dict() for g in groups]
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _parse_package_groups(self, value: Any) -> Optional[List[PackageGroup]]:
        """Build the rule list, appending a catch-all if the file omits one."""
        if not isinstance(value, list) or not value:
            return None

        groups = []
        for item in value:
            if not isinstance(item, dict) or set(item) != {"name", "regex"}:
                return None
            try:
                groups.append(PackageGroup(item["name"], item["regex"]))
            except ConfigurationError as e:
                logger.warning(str(e))
                return None

        if not groups[-1].is_catch_all():
            groups.append(PackageGroup("Third Party", CATCH_ALL_REGEX))
        return groups

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        # bool is a subclass of int, which must not pass as a worker count
        if isinstance(value, bool) and expected_type is not bool:
            return False
        if not isinstance(value, expected_type):
            return False

        if key == "max_workers":
            return bool(value > 0)
        elif key == "output_directory":
            return bool(value.strip())
        elif key == "abbreviations":
            for replacement, terms in value.items():
                if not isinstance(replacement, str) or not isinstance(terms, list):
                    return False
                if not all(isinstance(t, str) and t for t in terms):
                    return False
            return True

        return True

    @property
    def package_groups(self) -> List[PackageGroup]:
        """Ordered package classification rules, always ending in a catch-all."""
        return list(self._package_groups)

    @property
    def abbreviations(self) -> Dict[str, List[str]]:
        """Replacement -> search terms applied to graph labels."""
        value = self._config["abbreviations"]
        assert isinstance(value, dict)
        return value

    @property
    def abbreviate_on_graphs(self) -> bool:
        value = self._config["abbreviate_on_graphs"]
        assert isinstance(value, bool)
        return value

    @property
    def input_directory(self) -> Optional[str]:
        """Default scan root, or None if not configured."""
        value = self._config["input_directory"]
        assert isinstance(value, str)
        return value or None

    @property
    def output_directory(self) -> str:
        value = self._config["output_directory"]
        assert isinstance(value, str)
        return value

    @property
    def max_workers(self) -> int:
        """Worker pool size for the parallel parsing and deletion stages."""
        value = self._config["max_workers"]
        assert isinstance(value, int)
        return value

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    @classmethod
    def dump_defaults(cls) -> str:
        """The built-in configuration as YAML, suitable as a starting .dnscan.yml."""
        return yaml.safe_dump(cls._defaults(), sort_keys=False, default_flow_style=False)

"""
Optional YAML configuration, read from ``plancost.yaml`` in the working
directory or from a path given on the command line.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)

DEFAULT_CONFIG_FILE = "plancost.yaml"
DEFAULT_REGION = "us-east-1"

# These show differently in the plan JSON depending on the terraform version
USAGE_PROVIDER_NAMES = [
    "infracost",
    "infracost.io/infracost/infracost",
    "registry.terraform.io/infracost/infracost",
]


class ConfigError(ValueError):
    """Raised when an explicitly requested config file is unusable."""


@dataclass
class Config:
    default_region: str = DEFAULT_REGION
    usage_provider_names: List[str] = field(default_factory=lambda: list(USAGE_PROVIDER_NAMES))
    hours_per_month: int = 730


def _from_mapping(data: dict) -> Config:
    cfg = Config()
    if data.get("default_region"):
        cfg.default_region = str(data["default_region"])
    names = data.get("usage_provider_names") or []
    if not isinstance(names, list):
        raise ConfigError(f"usage_provider_names must be a list, got {names!r}")
    for name in names:
        if name not in cfg.usage_provider_names:
            cfg.usage_provider_names.append(str(name))
    if data.get("hours_per_month") is not None:
        try:
            cfg.hours_per_month = int(data["hours_per_month"])
        except (TypeError, ValueError):
            raise ConfigError(f"hours_per_month must be an integer, got {data['hours_per_month']!r}")
    return cfg


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration.

    With an explicit ``path`` any problem raises ConfigError. Without one, a
    ``plancost.yaml`` in the working directory is used if present; if it cannot
    be parsed a warning is printed and defaults apply.
    """
    explicit = path is not None
    if path is None:
        path = DEFAULT_CONFIG_FILE
        if not os.path.exists(path):
            return Config()

    try:
        with open(path, "r") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
        return _from_mapping(data)
    except (OSError, yaml.YAMLError, ConfigError) as exc:
        if explicit:
            if isinstance(exc, ConfigError):
                raise
            raise ConfigError(f"failed to load {path}: {exc}") from exc
        console.print(f"[yellow]Warning:[/yellow] ignoring {path}: {exc}")
        return Config()

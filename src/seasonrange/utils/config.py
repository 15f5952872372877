"""
Configuration management for seasonRange.
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional
import yaml
from dataclasses import dataclass, asdict, fields

from .logging_config import python_level


DUPLICATE_POLICIES = ("last", "first")
PRECIPITATION_MODES = ("raw", "daily")


@dataclass
class Config:
    """Configuration settings for seasonRange."""

    # Intermediate datasets live under work_dir, one directory per stage
    work_dir: str = "work"
    join_dir: str = "output_join"
    monthly_dir: str = "output_monthly"
    consolidated_dir: str = "output_region_months"
    # Write-once unless explicitly allowed
    overwrite: bool = False

    # Spark settings
    spark_app_name: str = "seasonRange"
    spark_master: str = "local[*]"
    spark_shuffle_partitions: int = 200
    spark_log_level: str = "WARN"
    join_partitions: Optional[int] = None

    # Join settings
    duplicate_station_policy: str = "last"
    country_filter: Optional[str] = None

    # Reading settings
    precipitation_sentinel: float = 99.99
    temperature_missing: float = 9999.9
    precipitation_mode: str = "raw"

    # Output settings
    output_header: bool = False
    month_names: bool = False
    output_precision: Optional[int] = 3
    output_delimiter: str = ","

    def __post_init__(self):
        if self.duplicate_station_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"duplicate_station_policy must be one of {DUPLICATE_POLICIES}, "
                f"got '{self.duplicate_station_policy}'"
            )
        if self.precipitation_mode not in PRECIPITATION_MODES:
            raise ValueError(
                f"precipitation_mode must be one of {PRECIPITATION_MODES}, "
                f"got '{self.precipitation_mode}'"
            )
        python_level(self.spark_log_level)

    def stage_path(self, dir_name: str) -> str:
        """Join a stage directory name onto the work directory."""
        if "://" in self.work_dir:
            return f"{self.work_dir.rstrip('/')}/{dir_name}"
        return str(Path(self.work_dir) / dir_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Create config from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in known})

    def save(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_dict = self.to_dict()

        with open(config_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        return cls.from_dict(config_dict)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Path to configuration file

    Returns:
        Config object
    """
    if config_path is None:
        # Look for config in common locations
        possible_paths = [
            "seasonrange_config.yml",
            "seasonrange_config.yaml",
            "config.yml",
            "config.yaml",
            os.path.expanduser("~/.seasonrange/config.yml"),
            "/etc/seasonrange/config.yml"
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break

    if config_path and os.path.exists(config_path):
        return Config.load(config_path)
    else:
        return Config()

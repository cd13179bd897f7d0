"""Centralized configuration management for the migration simulator."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class DiskConfig(BaseModel):
    """Physical disk geometry of a destination SQL Server instance.

    Every data and log disk is provisioned at the same fixed size. A part of
    each disk is held in reserve and never counted as usable capacity.
    """
    total_gb: float = Field(500.0, gt=0, description="Provisioned size of every disk (GB)")
    reserved_gb: float = Field(50.0, ge=0, description="Space held in reserve on every disk (GB)")
    data_disk_letters: str = Field(
        "IJKLMNOPQRSTUVWXYZ",
        min_length=1,
        description="Ordered drive letters available for data disks"
    )
    log_disk_letter: str = Field("H", min_length=1, max_length=1, description="Drive letter of the log disk")

    @property
    def usable_gb(self) -> float:
        """Usable capacity per disk (total minus reserve)."""
        return self.total_gb - self.reserved_gb

    @property
    def max_data_disks(self) -> int:
        """Maximum number of physical data disks per instance."""
        return len(self.data_disk_letters)


class ThresholdConfig(BaseModel):
    """Thresholds for status classification."""
    warning_ratio: float = Field(
        0.85,
        gt=0,
        le=1,
        description="Fraction of usable capacity above which a disk is flagged as warning"
    )


# Values accepted for defaults.destination_strategy
DESTINATION_STRATEGIES = ("new_only", "existing_only", "both")


class DefaultsConfig(BaseModel):
    """Defaults for simulation parameters not given on the command line."""
    max_data_disks_per_new_instance: int = Field(
        4,
        ge=1,
        le=18,
        description="Data disks allowed per newly created instance"
    )
    destination_strategy: str = Field(
        "new_only",
        description="new_only, existing_only or both"
    )
    grow_existing_instances: bool = Field(
        True,
        description="Let existing instances add data disks (false: only fill their current disks)"
    )

    @field_validator("destination_strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        if normalized not in DESTINATION_STRATEGIES:
            raise ValueError(
                f"Unknown destination strategy '{value}', expected one of: {', '.join(DESTINATION_STRATEGIES)}"
            )
        return normalized


class SimulatorConfig(BaseModel):
    """Complete configuration for the migration simulator."""
    disks: DiskConfig = Field(default_factory=DiskConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)


# Global config instance
_config: Optional[SimulatorConfig] = None


def get_config() -> SimulatorConfig:
    """Get the current configuration.

    Returns the global config, initializing with defaults if not yet loaded.
    """
    global _config
    if _config is None:
        _config = SimulatorConfig()
    return _config


def load_config(path: Path) -> SimulatorConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded SimulatorConfig.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = SimulatorConfig.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = SimulatorConfig()


def find_config_file() -> Optional[Path]:
    """Find a simulator configuration file.

    Looks in (order of priority):
    1. MIGRATION_SIMULATOR_CONFIG environment variable
    2. ./simulator-config.yaml
    3. ./simulator-config.yml
    4. ~/.config/migration-simulator/config.yaml
    """
    # Environment variable
    env_path = os.environ.get("MIGRATION_SIMULATOR_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    # Current directory
    for name in ["simulator-config.yaml", "simulator-config.yml"]:
        path = Path(name)
        if path.exists():
            return path

    # User config directory
    user_config = Path.home() / ".config" / "migration-simulator" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    config = SimulatorConfig()

    data = config.model_dump()

    yaml_content = """# Migration Simulator Configuration
# ==================================
#
# This file configures the destination disk geometry, the status
# thresholds and the default simulation parameters.
#
# Copy this file to one of these locations:
#   - ./simulator-config.yaml (current directory)
#   - ~/.config/migration-simulator/config.yaml (user config)
#
# Or set the MIGRATION_SIMULATOR_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)

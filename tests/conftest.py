"""Shared builders for the migration simulator tests."""

import pytest

from migration_simulator.config import reset_config
from migration_simulator.schema import (
    CapacityConfig,
    DestinationStrategy,
    ExistingInstanceInfo,
    NamingSuggestion,
    SimulationInput,
    SourceDatabase,
)


def make_db(name: str, data_gb: float, log_gb: float = 0.0, instance: str = "SRVPR01") -> SourceDatabase:
    """Build a source database from sizes in GB."""
    return SourceDatabase(
        instance_name=instance,
        name=name,
        data_size_mb=data_gb * 1024,
        log_size_mb=log_gb * 1024,
        state="ONLINE",
        recovery_model="FULL",
        collation="SQL_Latin1_General_CP1_CI_AS",
    )


def make_existing(
    name: str,
    data_gb: float,
    log_gb: float = 0.0,
    connected: bool = True,
    disk_count: int = 0,
    db_names: list[str] = None,
) -> ExistingInstanceInfo:
    """Build an existing destination instance from sizes in GB."""
    db_names = db_names or []
    return ExistingInstanceInfo(
        name=name,
        connection_success=connected,
        current_data_size_mb=data_gb * 1024,
        current_log_size_mb=log_gb * 1024,
        current_database_count=len(db_names),
        current_database_names=db_names,
        current_data_disk_count=disk_count,
    )


def make_input(
    databases: list[SourceDatabase],
    max_disks: int = 4,
    strategy: DestinationStrategy = DestinationStrategy.NEW_ONLY,
    existing: list[ExistingInstanceInfo] = None,
    manual: dict[str, str] = None,
    custom_names: list[str] = None,
    next_number: int = 1,
    grow_existing: bool = True,
) -> SimulationInput:
    """Build a simulation input around the SSPR22 naming pattern."""
    return SimulationInput(
        databases=databases,
        capacity=CapacityConfig(
            max_data_disks_per_new_instance=max_disks,
            destination_strategy=strategy,
            custom_instance_names=custom_names or [],
            grow_existing_instances=grow_existing,
        ),
        naming=NamingSuggestion(
            base_name="SSPR22",
            next_available_number=next_number,
            environment="PR",
            target_version="22",
        ),
        existing_instances=existing or [],
        manual_assignments=manual or {},
    )


@pytest.fixture(autouse=True)
def _default_config():
    """Keep the global configuration at its defaults between tests."""
    reset_config()
    yield
    reset_config()

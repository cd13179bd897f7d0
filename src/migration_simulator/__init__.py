"""SQL Nova Migration Simulator.

Plans how the databases of a set of source SQL Server instances are
distributed over new or existing destination instances and their
fixed-size data disks.
"""

from .engine import ManualAssignments, simulate
from .schema import (
    CapacityConfig,
    DestinationStrategy,
    ExistingInstanceInfo,
    InstanceStatus,
    NamingSuggestion,
    SimulationInput,
    SimulationResult,
    SourceDatabase,
    SuggestedInstance,
)

__version__ = "1.0.0"

__all__ = [
    "CapacityConfig",
    "DestinationStrategy",
    "ExistingInstanceInfo",
    "InstanceStatus",
    "ManualAssignments",
    "NamingSuggestion",
    "SimulationInput",
    "SimulationResult",
    "SourceDatabase",
    "SuggestedInstance",
    "simulate",
]

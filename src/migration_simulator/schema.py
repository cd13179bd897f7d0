"""Pydantic models for the Migration Simulator.

Input schemas for the source inventory, the destination naming suggestion
and the simulation parameters, and output schemas for the suggested
distribution of databases across destination instances.

Input models accept the camelCase field names used by the SQL Nova REST
payloads as well as their snake_case Python names.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .config import DiskConfig


# Separator between instance and database name in a database key
KEY_SEPARATOR = "||"

# Manual assignment sentinels
AUTO_ASSIGNMENT = "__auto__"
NEW_INSTANCE = "__new__"


def database_key(instance_name: str, database_name: str) -> str:
    """Build the unique key of a database (``instance||db``)."""
    return f"{instance_name}{KEY_SEPARATOR}{database_name}"


# =============================================================================
# Enums
# =============================================================================


class DestinationStrategy(str, Enum):
    """Which destination instances may receive databases."""
    NEW_ONLY = "new_only"  # Only freshly created instances
    EXISTING_ONLY = "existing_only"  # Fill existing instances first
    BOTH = "both"

    @classmethod
    def from_string(cls, value: str) -> "DestinationStrategy":
        """Parse strategy from string (accepts dashes and spaces)."""
        if not value:
            return cls.NEW_ONLY
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown destination strategy: {value}")

    def uses_existing(self) -> bool:
        """Check if existing instances participate as destinations."""
        return self is not DestinationStrategy.NEW_ONLY


class InstanceStatus(str, Enum):
    """Traffic-light status of a suggested instance."""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertLevel(str, Enum):
    """Severity of a capacity alert."""
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# Source Inventory (from the source-database collection endpoint)
# =============================================================================


class SourceDatabase(BaseModel):
    """One user database found on a source instance."""
    instance_name: str = Field("", alias="instanceName", description="Source instance")
    name: str = Field(..., description="Database name, unique within an instance")
    data_size_mb: float = Field(0.0, ge=0, alias="dataSizeMB")
    log_size_mb: float = Field(0.0, ge=0, alias="logSizeMB")
    total_size_mb: Optional[float] = Field(None, ge=0, alias="totalSizeMB")
    state: Optional[str] = None
    recovery_model: Optional[str] = Field(None, alias="recoveryModel")
    compatibility_level: Optional[str] = Field(None, alias="compatibilityLevel")
    collation: Optional[str] = None
    data_file_count: int = Field(0, alias="dataFileCount")
    log_file_count: int = Field(0, alias="logFileCount")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="after")
    def _derive_total(self) -> "SourceDatabase":
        if self.total_size_mb is None:
            self.total_size_mb = self.data_size_mb + self.log_size_mb
        return self

    @property
    def key(self) -> str:
        return database_key(self.instance_name, self.name)

    @property
    def data_gb(self) -> float:
        return self.data_size_mb / 1024

    @property
    def log_gb(self) -> float:
        return self.log_size_mb / 1024


class SourceServer(BaseModel):
    """A source SQL Server instance and its user databases."""
    instance_name: str = Field(..., alias="instanceName")
    connection_success: bool = Field(False, alias="connectionSuccess")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    sql_version: Optional[str] = Field(None, alias="sqlVersion")
    databases: list[SourceDatabase] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def total_data_size_mb(self) -> float:
        return sum(db.data_size_mb for db in self.databases)

    @property
    def total_log_size_mb(self) -> float:
        return sum(db.log_size_mb for db in self.databases)


class SourceInventory(BaseModel):
    """Databases collected from the selected source servers."""
    servers: list[SourceServer] = Field(default_factory=list)
    generated_at: Optional[datetime] = Field(None, alias="generatedAt")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def connected_servers(self) -> list[SourceServer]:
        return [s for s in self.servers if s.connection_success]


# =============================================================================
# Destination Inventory (from the naming-suggestion endpoint)
# =============================================================================


class ExistingInstanceInfo(BaseModel):
    """A destination instance that already exists and may receive databases."""
    name: str
    connection_success: bool = Field(False, alias="connectionSuccess")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    current_data_size_mb: float = Field(0.0, ge=0, alias="currentDataSizeMB")
    current_log_size_mb: float = Field(0.0, ge=0, alias="currentLogSizeMB")
    current_database_count: int = Field(0, alias="currentDatabaseCount")
    current_database_names: list[str] = Field(default_factory=list, alias="currentDatabaseNames")
    current_data_disk_count: int = Field(0, ge=0, alias="currentDataDiskCount")
    last_data_disk_letter: Optional[str] = Field(None, alias="lastDataDiskLetter")

    class Config:
        populate_by_name = True
        extra = "ignore"


class NamingSuggestion(BaseModel):
    """Naming source for new destination instances."""
    base_name: str = Field(..., alias="baseName")
    next_available_number: int = Field(1, ge=0, alias="nextAvailableNumber")
    environment: str = ""
    target_version: str = Field("", alias="targetVersion")
    existing_instances: list[str] = Field(default_factory=list, alias="existingInstances")
    existing_instances_info: list[ExistingInstanceInfo] = Field(
        default_factory=list, alias="existingInstancesInfo"
    )

    class Config:
        populate_by_name = True
        extra = "ignore"


# =============================================================================
# Simulation Parameters
# =============================================================================


class CapacityConfig(BaseModel):
    """Parameters supplied by the operator before running a simulation."""
    max_data_disks_per_new_instance: int = Field(4, ge=1, le=18)
    destination_strategy: DestinationStrategy = DestinationStrategy.NEW_ONLY
    custom_instance_names: list[str] = Field(default_factory=list)
    disks: DiskConfig = Field(default_factory=DiskConfig)
    warning_ratio: float = Field(0.85, gt=0, le=1)
    grow_existing_instances: bool = Field(
        True,
        description="Existing instances may add data disks up to the last letter; "
                    "otherwise they only fill the data disks they already have"
    )

    @model_validator(mode="after")
    def _check_disk_count(self) -> "CapacityConfig":
        if self.max_data_disks_per_new_instance > self.disks.max_data_disks:
            raise ValueError(
                f"max_data_disks_per_new_instance ({self.max_data_disks_per_new_instance}) "
                f"exceeds the {self.disks.max_data_disks} available data disk letters"
            )
        return self

    @property
    def usable_gb(self) -> float:
        return self.disks.usable_gb

    @property
    def max_data_capacity_new_gb(self) -> float:
        """Data ceiling of a newly created instance."""
        return self.max_data_disks_per_new_instance * self.disks.usable_gb

    @property
    def max_data_capacity_existing_gb(self) -> float:
        """Data ceiling of an existing instance (every data letter in use)."""
        return self.disks.max_data_disks * self.disks.usable_gb


class SimulationInput(BaseModel):
    """Everything the distribution engine reads for one run."""
    databases: list[SourceDatabase] = Field(default_factory=list)
    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    naming: NamingSuggestion
    existing_instances: list[ExistingInstanceInfo] = Field(default_factory=list)
    manual_assignments: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Output Models
# =============================================================================


class DiskInfo(BaseModel):
    """One physical data disk of a suggested instance."""
    letter: str
    used_gb: float
    is_existing_disk: bool = False
    pre_existing_gb: float = 0.0
    new_gb: float = 0.0


class LogDiskInfo(BaseModel):
    """The single log disk of a suggested instance."""
    letter: str = "H"
    used_gb: float = 0.0


class CapacityAlert(BaseModel):
    """A capacity problem surfaced to the operator."""
    level: AlertLevel
    instance_name: str
    disk_letter: Optional[str] = None
    message: str


class SuggestedInstance(BaseModel):
    """One destination instance (new or existing) and what it receives."""
    name: str
    index: int = 0
    is_existing: bool = False
    databases: list[SourceDatabase] = Field(default_factory=list)
    total_data_gb: float = 0.0
    total_log_gb: float = 0.0
    pre_existing_data_gb: float = 0.0
    pre_existing_log_gb: float = 0.0
    pre_existing_db_count: int = 0
    pre_existing_db_names: list[str] = Field(default_factory=list)
    data_capacity_gb: float = 0.0
    data_disks: list[DiskInfo] = Field(default_factory=list)
    log_disk: LogDiskInfo = Field(default_factory=LogDiskInfo)
    status: InstanceStatus = InstanceStatus.OK
    alerts: list[CapacityAlert] = Field(default_factory=list)

    @property
    def new_data_gb(self) -> float:
        return self.total_data_gb - self.pre_existing_data_gb

    @property
    def database_keys(self) -> list[str]:
        return [db.key for db in self.databases]


class DatabasePlacement(BaseModel):
    """Where a single source database lands."""
    key: str
    source_instance: str
    database_name: str
    target_instance: str
    target_disk: str
    pct_of_usable_disk: float = 0.0


class SimulationTotals(BaseModel):
    """Aggregate size of the selected databases."""
    database_count: int = 0
    data_mb: float = 0.0
    log_mb: float = 0.0

    @property
    def total_mb(self) -> float:
        return self.data_mb + self.log_mb


class SimulationResult(BaseModel):
    """Complete output of one simulation run."""
    base_name: str
    environment: str = ""
    target_version: str = ""
    destination_strategy: DestinationStrategy = DestinationStrategy.NEW_ONLY
    disks: DiskConfig = Field(default_factory=DiskConfig)
    instances: list[SuggestedInstance] = Field(default_factory=list)
    placements: list[DatabasePlacement] = Field(default_factory=list)
    alerts: list[CapacityAlert] = Field(default_factory=list)
    totals: SimulationTotals = Field(default_factory=SimulationTotals)

    @property
    def instance_names(self) -> list[str]:
        return [i.name for i in self.instances]

    @property
    def new_instance_count(self) -> int:
        return sum(1 for i in self.instances if not i.is_existing)

    def instance_for(self, key: str) -> Optional[SuggestedInstance]:
        """Find the instance that received the database with this key."""
        for inst in self.instances:
            if key in inst.database_keys:
                return inst
        return None

    def placement_for(self, key: str) -> Optional[DatabasePlacement]:
        return next((p for p in self.placements if p.key == key), None)

"""Packer - distributes source databases across destination instances.

Greedy first-fit bin packing over databases sorted largest first. Manual
assignments are honoured before any automatic placement. Existing
destination instances are filled before new ones are created when the
destination strategy allows them.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .disk_layout import existing_disk_count
from .naming import InstanceNameCursor
from .schema import (
    AUTO_ASSIGNMENT,
    NEW_INSTANCE,
    CapacityConfig,
    ExistingInstanceInfo,
    SourceDatabase,
)

logger = logging.getLogger(__name__)


@dataclass
class Bin:
    """A destination instance while databases are being placed."""
    name: str
    data_capacity_gb: float
    is_existing: bool = False
    dedicated: bool = False  # Reserved for its manual assignments only
    databases: list[SourceDatabase] = field(default_factory=list)
    data_gb: float = 0.0
    log_gb: float = 0.0
    pre_existing_data_gb: float = 0.0
    pre_existing_log_gb: float = 0.0
    pre_existing_db_count: int = 0
    pre_existing_db_names: list[str] = field(default_factory=list)
    observed_disk_count: int = 0

    def add(self, db: SourceDatabase) -> None:
        self.databases.append(db)
        self.data_gb += db.data_gb
        self.log_gb += db.log_gb

    def fits(self, db: SourceDatabase) -> bool:
        return self.data_gb + db.data_gb <= self.data_capacity_gb


class DatabasePacker:
    """Assigns every selected database to exactly one destination bin.

    Placement rules:
    - Databases are considered largest first (total size, data + log)
    - Manual assignments win over automatic placement
    - Automatic placement uses the first bin with room for the data
    - A database that fits nowhere opens a new bin, even if it alone
      exceeds the bin ceiling (status reporting flags it later)
    - Empty new bins are dropped; empty existing instances are kept
    """

    def __init__(self, capacity: CapacityConfig):
        self.capacity = capacity

    def pack(
        self,
        databases: list[SourceDatabase],
        existing_instances: list[ExistingInstanceInfo],
        manual_assignments: dict[str, str],
        cursor: InstanceNameCursor,
    ) -> list[Bin]:
        """Pack databases into bins.

        Args:
            databases: Selected source databases
            existing_instances: Destination instances already in the inventory
            manual_assignments: Map of database key to target bin name,
                ``__new__`` or ``__auto__``
            cursor: Naming source for new bins

        Returns:
            Bins in creation order (existing instances first)
        """
        ordered = sorted(databases, key=lambda db: db.total_size_mb, reverse=True)

        manual_by_target: dict[str, list[SourceDatabase]] = {}
        auto_dbs: list[SourceDatabase] = []
        for db in ordered:
            target = manual_assignments.get(db.key)
            if target and target != AUTO_ASSIGNMENT:
                manual_by_target.setdefault(target, []).append(db)
            else:
                auto_dbs.append(db)

        bins: list[Bin] = []
        if self.capacity.destination_strategy.uses_existing():
            bins.extend(self._seed_existing(existing_instances))

        for b in bins:
            cursor.reserve(b.name)
        for target in manual_by_target:
            if target != NEW_INSTANCE:
                cursor.reserve(target)

        for target, dbs in manual_by_target.items():
            bin_ = self._find(bins, target) if target != NEW_INSTANCE else None
            if bin_ is None:
                if target == NEW_INSTANCE:
                    bin_ = self._new_bin(cursor.next_name(), dedicated=True)
                else:
                    bin_ = self._new_bin(target)
                bins.append(bin_)
            for db in dbs:
                bin_.add(db)
            logger.debug("Manually assigned %d database(s) to %s", len(dbs), bin_.name)

        for db in auto_dbs:
            bin_ = next((b for b in bins if not b.dedicated and b.fits(db)), None)
            if bin_ is None:
                bin_ = self._new_bin(cursor.next_name())
                bins.append(bin_)
                logger.debug("Opened %s for %s (%.1f GB data)", bin_.name, db.key, db.data_gb)
            bin_.add(db)

        return [b for b in bins if b.databases or b.is_existing]

    def _seed_existing(self, existing_instances: list[ExistingInstanceInfo]) -> list[Bin]:
        """Create one pre-loaded bin per reachable existing instance."""
        connected = sorted(
            (ei for ei in existing_instances if ei.connection_success),
            key=lambda ei: ei.name,
        )
        skipped = len(existing_instances) - len(connected)
        if skipped:
            logger.info("Skipping %d unreachable existing instance(s)", skipped)

        bins = []
        for ei in connected:
            pre_data_gb = ei.current_data_size_mb / 1024
            pre_log_gb = ei.current_log_size_mb / 1024
            if self.capacity.grow_existing_instances:
                ceiling = self.capacity.max_data_capacity_existing_gb
            else:
                disks = self.capacity.disks
                ceiling = existing_disk_count(pre_data_gb, ei.current_data_disk_count, disks) * disks.usable_gb
            bins.append(Bin(
                name=ei.name,
                data_capacity_gb=ceiling,
                is_existing=True,
                data_gb=pre_data_gb,
                log_gb=pre_log_gb,
                pre_existing_data_gb=pre_data_gb,
                pre_existing_log_gb=pre_log_gb,
                pre_existing_db_count=ei.current_database_count,
                pre_existing_db_names=list(ei.current_database_names),
                observed_disk_count=ei.current_data_disk_count,
            ))
        return bins

    def _new_bin(self, name: str, dedicated: bool = False) -> Bin:
        return Bin(
            name=name,
            data_capacity_gb=self.capacity.max_data_capacity_new_gb,
            dedicated=dedicated,
        )

    @staticmethod
    def _find(bins: list[Bin], name: str) -> Optional[Bin]:
        return next((b for b in bins if b.name == name), None)

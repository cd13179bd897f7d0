"""Distribution Engine - the migration simulation as one pure function.

Pipeline:
1. Pack the selected databases into destination bins (packer)
2. Lay out each bin's data over its data disks (disk_layout)
3. Classify each bin and collect capacity alerts (status)
4. Estimate the target disk of every database (disk_layout)

``simulate`` has no side effects: identical input gives identical output.
"""

import logging
from typing import Optional

from .disk_layout import assign_database_disks, layout_data_disks
from .naming import InstanceNameCursor
from .packer import Bin, DatabasePacker
from .schema import (
    AUTO_ASSIGNMENT,
    DatabasePlacement,
    DestinationStrategy,
    LogDiskInfo,
    SimulationInput,
    SimulationResult,
    SimulationTotals,
    SuggestedInstance,
)
from .status import CapacityClassifier

logger = logging.getLogger(__name__)


def simulate(sim_input: SimulationInput) -> SimulationResult:
    """Distribute the selected databases over destination instances.

    Args:
        sim_input: Selected databases, capacity parameters, naming source,
            existing destination instances and manual assignments

    Returns:
        SimulationResult with the suggested instances in creation order
    """
    capacity = sim_input.capacity
    naming = sim_input.naming
    disks = capacity.disks

    result = SimulationResult(
        base_name=naming.base_name,
        environment=naming.environment,
        target_version=naming.target_version,
        destination_strategy=capacity.destination_strategy,
        disks=disks,
        totals=_totals(sim_input),
    )

    if not sim_input.databases:
        return result

    cursor = InstanceNameCursor(naming, capacity.custom_instance_names)
    bins = DatabasePacker(capacity).pack(
        sim_input.databases,
        sim_input.existing_instances,
        sim_input.manual_assignments,
        cursor,
    )

    classifier = CapacityClassifier(disks.usable_gb, capacity.warning_ratio)

    for index, bin_ in enumerate(bins):
        instance = _build_instance(bin_, index, sim_input, classifier)
        result.instances.append(instance)
        result.alerts.extend(instance.alerts)

        disk_map = assign_database_disks(instance.databases, instance.data_disks, disks.usable_gb)
        for db in instance.databases:
            result.placements.append(DatabasePlacement(
                key=db.key,
                source_instance=db.instance_name,
                database_name=db.name,
                target_instance=instance.name,
                target_disk=disk_map[db.key],
                pct_of_usable_disk=round(db.data_gb / disks.usable_gb * 100, 1) if db.data_size_mb > 0 else 0.0,
            ))

    logger.info(
        "Distributed %d database(s) over %d instance(s) (%d new, %d alert(s))",
        result.totals.database_count,
        len(result.instances),
        result.new_instance_count,
        len(result.alerts),
    )
    return result


def _build_instance(
    bin_: Bin,
    index: int,
    sim_input: SimulationInput,
    classifier: CapacityClassifier,
) -> SuggestedInstance:
    """Turn a packed bin into its reported instance."""
    disks = sim_input.capacity.disks

    data_disks = layout_data_disks(
        bin_.data_gb,
        disks,
        pre_existing_data_gb=bin_.pre_existing_data_gb,
        is_existing=bin_.is_existing,
        observed_disk_count=bin_.observed_disk_count,
    )
    log_disk = LogDiskInfo(letter=disks.log_disk_letter, used_gb=round(bin_.log_gb, 1))

    status = classifier.classify(data_disks, log_disk, bin_.data_gb, bin_.data_capacity_gb)
    alerts = classifier.alerts(bin_.name, data_disks, log_disk, bin_.data_gb, bin_.data_capacity_gb)

    return SuggestedInstance(
        name=bin_.name,
        index=index,
        is_existing=bin_.is_existing,
        databases=list(bin_.databases),
        total_data_gb=round(bin_.data_gb, 2),
        total_log_gb=round(bin_.log_gb, 2),
        pre_existing_data_gb=round(bin_.pre_existing_data_gb, 2),
        pre_existing_log_gb=round(bin_.pre_existing_log_gb, 2),
        pre_existing_db_count=bin_.pre_existing_db_count,
        pre_existing_db_names=list(bin_.pre_existing_db_names),
        data_capacity_gb=bin_.data_capacity_gb,
        data_disks=data_disks,
        log_disk=log_disk,
        status=status,
        alerts=alerts,
    )


def _totals(sim_input: SimulationInput) -> SimulationTotals:
    return SimulationTotals(
        database_count=len(sim_input.databases),
        data_mb=sum(db.data_size_mb for db in sim_input.databases),
        log_mb=sum(db.log_size_mb for db in sim_input.databases),
    )


class ManualAssignments:
    """Operator overrides of automatic placement, owned by the caller.

    Overrides only make sense for the inputs they were made against, so
    they are cleared when the number of selected databases, the data disks
    per new instance, the destination strategy or the number of custom
    instance names changes.
    """

    def __init__(self):
        self._assignments: dict[str, str] = {}
        self._fingerprint: Optional[tuple] = None

    def move(self, db_key: str, target: str) -> None:
        """Send a database to a target instance, ``__new__`` or ``__auto__``."""
        if target == AUTO_ASSIGNMENT:
            self._assignments.pop(db_key, None)
        else:
            self._assignments[db_key] = target

    def reset(self) -> None:
        self._assignments.clear()

    def invalidate_if_changed(
        self,
        selection_count: int,
        max_data_disks: int,
        strategy: DestinationStrategy,
        custom_name_count: int,
    ) -> bool:
        """Clear all overrides if any of their dependencies changed.

        Returns:
            True if overrides were cleared
        """
        fingerprint = (selection_count, max_data_disks, DestinationStrategy(strategy), custom_name_count)
        changed = self._fingerprint is not None and fingerprint != self._fingerprint
        self._fingerprint = fingerprint
        if changed and self._assignments:
            logger.debug("Simulation inputs changed, clearing %d manual assignment(s)", len(self._assignments))
            self.reset()
            return True
        return False

    def as_dict(self) -> dict[str, str]:
        return dict(self._assignments)

    def __len__(self) -> int:
        return len(self._assignments)

    def __contains__(self, db_key: str) -> bool:
        return db_key in self._assignments

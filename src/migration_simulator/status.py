"""Status classification and capacity alerts for suggested instances.

Status is for operator attention only; it never changes placement.
"""

from typing import Optional

from .schema import (
    AlertLevel,
    CapacityAlert,
    DiskInfo,
    InstanceStatus,
    LogDiskInfo,
)


class CapacityClassifier:
    """Classifies instances as ok, warning or critical.

    - critical: a data disk or the log disk holds more than the usable
      capacity, or the instance's data exceeds its data ceiling
    - warning: a data disk or the log disk is above the warning ratio
      of usable capacity
    - ok: otherwise
    """

    def __init__(self, usable_gb: float, warning_ratio: float = 0.85):
        self.usable_gb = usable_gb
        self.warning_ratio = warning_ratio

    @property
    def warning_gb(self) -> float:
        return self.usable_gb * self.warning_ratio

    def classify(
        self,
        data_disks: list[DiskInfo],
        log_disk: LogDiskInfo,
        data_gb: float = 0.0,
        data_capacity_gb: Optional[float] = None,
    ) -> InstanceStatus:
        """Return the status of one instance."""
        used = [d.used_gb for d in data_disks] + [log_disk.used_gb]

        if any(u > self.usable_gb for u in used):
            return InstanceStatus.CRITICAL
        if data_capacity_gb is not None and data_gb > data_capacity_gb:
            return InstanceStatus.CRITICAL
        if any(u > self.warning_gb for u in used):
            return InstanceStatus.WARNING
        return InstanceStatus.OK

    def alerts(
        self,
        instance_name: str,
        data_disks: list[DiskInfo],
        log_disk: LogDiskInfo,
        data_gb: float = 0.0,
        data_capacity_gb: Optional[float] = None,
    ) -> list[CapacityAlert]:
        """Describe every disk of an instance that is full or nearly full."""
        alerts = []

        if log_disk.used_gb > self.usable_gb:
            alerts.append(CapacityAlert(
                level=AlertLevel.ERROR,
                instance_name=instance_name,
                disk_letter=log_disk.letter,
                message=(
                    f"{instance_name}: logs ({log_disk.used_gb:.1f} GB) exceed the "
                    f"{self.usable_gb:g} GB usable on disk {log_disk.letter}:"
                ),
            ))
        elif log_disk.used_gb > self.warning_gb:
            alerts.append(CapacityAlert(
                level=AlertLevel.WARNING,
                instance_name=instance_name,
                disk_letter=log_disk.letter,
                message=(
                    f"{instance_name}: disk {log_disk.letter}: at "
                    f"{self._pct(log_disk.used_gb):.0f}% of usable capacity"
                ),
            ))

        for disk in data_disks:
            if disk.used_gb > self.usable_gb:
                alerts.append(CapacityAlert(
                    level=AlertLevel.ERROR,
                    instance_name=instance_name,
                    disk_letter=disk.letter,
                    message=(
                        f"{instance_name}: disk {disk.letter}: ({disk.used_gb:.1f} GB) "
                        f"exceeds the {self.usable_gb:g} GB usable"
                    ),
                ))
            elif disk.used_gb > self.warning_gb:
                alerts.append(CapacityAlert(
                    level=AlertLevel.WARNING,
                    instance_name=instance_name,
                    disk_letter=disk.letter,
                    message=(
                        f"{instance_name}: disk {disk.letter}: at "
                        f"{self._pct(disk.used_gb):.0f}% of usable capacity"
                    ),
                ))

        if data_capacity_gb is not None and data_gb > data_capacity_gb:
            alerts.append(CapacityAlert(
                level=AlertLevel.ERROR,
                instance_name=instance_name,
                message=(
                    f"{instance_name}: data ({data_gb:.1f} GB) exceeds the "
                    f"{data_capacity_gb:g} GB data ceiling"
                ),
            ))

        return alerts

    def _pct(self, used_gb: float) -> float:
        return used_gb / self.usable_gb * 100

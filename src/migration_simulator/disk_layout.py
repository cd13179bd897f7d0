"""Disk layout of a destination instance.

Spreads an instance's data load over fixed-size data disks with
consecutive drive letters, and separately estimates which disk each
database would land on. Both are planning estimates: real per-disk
contents of existing instances are not tracked, so their pre-existing
load is spread evenly over the disks they already use.
"""

import math
from typing import Optional

from .config import DiskConfig
from .schema import DiskInfo, SourceDatabase

# Remaining data below this (GB) is treated as placed
_EPSILON_GB = 0.01


def existing_disk_count(pre_existing_data_gb: float, observed_disk_count: int, disks: DiskConfig) -> int:
    """Data disks an existing instance already uses.

    The observed count is used when known, otherwise it is estimated from
    the pre-existing data. Always at least 1 and at most one per letter.
    """
    if observed_disk_count:
        count = max(1, observed_disk_count)
    else:
        count = max(1, math.ceil(pre_existing_data_gb / disks.usable_gb))
    return min(count, disks.max_data_disks)


def layout_data_disks(
    data_gb: float,
    disks: DiskConfig,
    pre_existing_data_gb: float = 0.0,
    is_existing: bool = False,
    observed_disk_count: int = 0,
) -> list[DiskInfo]:
    """Lay out an instance's data over its data disks.

    Args:
        data_gb: Total data on the instance (pre-existing plus new)
        disks: Disk geometry
        pre_existing_data_gb: Data already on an existing instance
        is_existing: Whether the instance already exists
        observed_disk_count: Data disks seen on the existing instance
            (0 when unknown)

    Returns:
        Data disks in letter order. Data that does not fit on the
        available letters is added to the last disk.
    """
    if is_existing and pre_existing_data_gb > 0:
        return _layout_existing(data_gb, pre_existing_data_gb, observed_disk_count, disks)
    return _layout_new(data_gb, disks)


def _layout_existing(
    data_gb: float,
    pre_existing_data_gb: float,
    observed_disk_count: int,
    disks: DiskConfig,
) -> list[DiskInfo]:
    usable = disks.usable_gb
    letters = disks.data_disk_letters

    existing_count = existing_disk_count(pre_existing_data_gb, observed_disk_count, disks)
    per_disk = round(pre_existing_data_gb / existing_count, 1)
    layout = [
        DiskInfo(
            letter=letters[d],
            used_gb=per_disk,
            is_existing_disk=True,
            pre_existing_gb=per_disk,
            new_gb=0.0,
        )
        for d in range(existing_count)
    ]

    remaining = max(0.0, data_gb - pre_existing_data_gb)

    # Free space on the last existing disk is filled first
    last = layout[-1]
    free_on_last = usable - last.pre_existing_gb
    if free_on_last > 0 and remaining > 0:
        fill = min(free_on_last, remaining)
        last.new_gb = round(fill, 1)
        last.used_gb = round(last.used_gb + fill, 1)
        remaining -= fill

    next_index = existing_count
    while remaining > _EPSILON_GB and next_index < len(letters):
        used = min(remaining, usable)
        layout.append(DiskInfo(
            letter=letters[next_index],
            used_gb=round(used, 1),
            is_existing_disk=False,
            pre_existing_gb=0.0,
            new_gb=round(used, 1),
        ))
        remaining -= used
        next_index += 1

    _absorb_overflow(layout, remaining)
    return layout


def _layout_new(data_gb: float, disks: DiskConfig) -> list[DiskInfo]:
    usable = disks.usable_gb
    letters = disks.data_disk_letters

    disk_count = min(len(letters), max(1, math.ceil(round(data_gb / usable, 6))))

    layout = []
    remaining = data_gb
    for d in range(disk_count):
        used = min(remaining, usable)
        layout.append(DiskInfo(
            letter=letters[d],
            used_gb=round(used, 1),
            is_existing_disk=False,
            pre_existing_gb=0.0,
            new_gb=round(used, 1),
        ))
        remaining -= used

    _absorb_overflow(layout, remaining)
    return layout


def _absorb_overflow(layout: list[DiskInfo], remaining: float) -> None:
    """Put data left over after the last letter onto the last disk."""
    if remaining <= _EPSILON_GB or not layout:
        return
    last = layout[-1]
    last.new_gb = round(last.new_gb + remaining, 1)
    last.used_gb = round(last.used_gb + remaining, 1)


def assign_database_disks(
    databases: list[SourceDatabase],
    data_disks: list[DiskInfo],
    usable_gb: float,
) -> dict[str, str]:
    """Estimate the data disk each database lands on.

    Databases are taken largest data first and put on the first disk
    (in letter order, starting from each disk's pre-existing load) that
    still has room. When none has room the first disk is reported.

    This is a separate pass from ``layout_data_disks`` and is used for
    reporting only; it does not re-check capacity.

    Returns:
        Map of database key to drive letter
    """
    if not data_disks:
        return {db.key: "?" for db in databases}

    disk_used = [d.pre_existing_gb for d in data_disks]
    assignments = {}
    for db in sorted(databases, key=lambda db: db.data_size_mb, reverse=True):
        data_gb = db.data_gb
        best = 0
        for d, used in enumerate(disk_used):
            if used + data_gb <= usable_gb:
                best = d
                break
        disk_used[best] += data_gb
        assignments[db.key] = data_disks[best].letter
    return assignments


def disk_letter_range(count: int, letters: Optional[str] = None) -> str:
    """Describe the data disk letters used by ``count`` disks (e.g. "I: to L:")."""
    letters = letters or DiskConfig().data_disk_letters
    if count <= 0:
        return "-"
    if count == 1:
        return f"{letters[0]}:"
    last = letters[min(count - 1, len(letters) - 1)]
    return f"{letters[0]}: to {last}:"

"""Excel (.xlsx) export of a simulation result.

Three worksheets:
- Summary: selection totals, suggested instance names and disk geometry
- Database Detail: one row per selected database and where it lands
- Disk Layout: one row per log and data disk of every instance
"""

import io
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .naming import TARGET_VERSIONS
from .schema import NamingSuggestion, SimulationResult

logger = logging.getLogger(__name__)

# ── Colour palette ──────────────────────────────────────────────────────────
_BLUE = "1D4ED8"  # header bg
_GREY = "F3F4F6"  # alternating row
_RED = "FEE2E2"
_YELLOW = "FEF9C3"
_WHITE = "FFFFFF"

_STATUS_FILLS = {
    "warning": _YELLOW,
    "critical": _RED,
}


def default_export_name(base_name: Optional[str], on: Optional[date] = None) -> str:
    """File name used when no output path is given."""
    on = on or date.today()
    return f"MigrationSimulator_{base_name or 'export'}_{on.isoformat()}.xlsx"


def generate_workbook(
    result: SimulationResult,
    source_servers: Optional[list[str]] = None,
    naming: Optional[NamingSuggestion] = None,
) -> bytes:
    """Build the workbook and return it as bytes."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)  # remove default sheet

    _sheet_summary(wb, result, source_servers or [], naming)
    _sheet_database_detail(wb, result)
    _sheet_disk_layout(wb, result)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_workbook(
    result: SimulationResult,
    path: Union[str, Path],
    source_servers: Optional[list[str]] = None,
    naming: Optional[NamingSuggestion] = None,
) -> Path:
    """Write the workbook to ``path`` and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(generate_workbook(result, source_servers, naming))
    logger.info("Workbook exported to %s", path)
    return path


# ── helpers ─────────────────────────────────────────────────────────────────

def _thin_border():
    s = Side(border_style="thin", color="D1D5DB")
    return Border(left=s, right=s, top=s, bottom=s)


def _set_col_widths(ws, widths: list[float]):
    for i, w in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(i)].width = w


def _write_table_header(ws, cols: list[str]):
    for ci, label in enumerate(cols, 1):
        c = ws.cell(row=1, column=ci, value=label)
        c.font = Font(bold=True, color=_WHITE, name="Calibri", size=10)
        c.fill = PatternFill("solid", fgColor=_BLUE)
        c.border = _thin_border()
        c.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _write_row(ws, row: int, values: list[Any], alt: bool = False, fill_hex: Optional[str] = None):
    if fill_hex:
        fill = PatternFill("solid", fgColor=fill_hex)
    elif alt:
        fill = PatternFill("solid", fgColor=_GREY)
    else:
        fill = PatternFill()
    for ci, val in enumerate(values, 1):
        c = ws.cell(row=row, column=ci, value=val)
        c.fill = fill
        c.border = _thin_border()
        c.font = Font(name="Calibri", size=9)


# ── Sheet 1: Summary ────────────────────────────────────────────────────────

def _sheet_summary(wb, result: SimulationResult, source_servers: list[str], naming: Optional[NamingSuggestion]):
    ws = wb.create_sheet("Summary")
    _set_col_widths(ws, [40, 60])
    _write_table_header(ws, ["Item", "Value"])

    totals = result.totals
    disks = result.disks
    version = TARGET_VERSIONS.get(result.target_version, result.target_version)

    rows = [
        ("Target Version", version),
        ("Environment", result.environment),
        ("Destination Strategy", result.destination_strategy.value),
        ("Selected Databases", totals.database_count),
        ("Total Data (GB)", round(totals.data_mb / 1024, 2)),
        ("Total Log (GB)", round(totals.log_mb / 1024, 2)),
        ("Grand Total (GB)", round(totals.total_mb / 1024, 2)),
        ("Suggested Instances", len(result.instances)),
        ("Suggested Names", ", ".join(result.instance_names)),
        ("Usable Capacity per Disk (GB)", disks.usable_gb),
        ("Reserved Space per Disk (GB)", disks.reserved_gb),
        ("Total Capacity per Disk (GB)", disks.total_gb),
        ("", ""),
        ("Source Servers", ", ".join(source_servers)),
    ]
    if naming and naming.existing_instances:
        rows.append(("Existing Instances Matching Pattern", ", ".join(naming.existing_instances)))

    for i, (item, value) in enumerate(rows, 2):
        _write_row(ws, i, [item, value], alt=i % 2 == 1)


# ── Sheet 2: Database detail ────────────────────────────────────────────────

def _sheet_database_detail(wb, result: SimulationResult):
    ws = wb.create_sheet("Database Detail")
    cols = [
        "Source Server", "Database", "Target Instance", "Target Disk",
        "% Usable Disk", "Data (MB)", "Log (MB)", "Total (MB)",
        "State", "Recovery Model", "Collation",
    ]
    _set_col_widths(ws, [30, 30, 20, 14, 14, 14, 14, 14, 12, 16, 25])
    _write_table_header(ws, cols)

    databases = {db.key: db for inst in result.instances for db in inst.databases}

    for i, placement in enumerate(result.placements, 2):
        db = databases[placement.key]
        _write_row(ws, i, [
            placement.source_instance,
            placement.database_name,
            placement.target_instance,
            f"{placement.target_disk}:\\",
            placement.pct_of_usable_disk,
            round(db.data_size_mb, 2),
            round(db.log_size_mb, 2),
            round(db.total_size_mb, 2),
            db.state or "",
            db.recovery_model or "",
            db.collation or "",
        ], alt=i % 2 == 1)


# ── Sheet 3: Disk layout ────────────────────────────────────────────────────

def _sheet_disk_layout(wb, result: SimulationResult):
    ws = wb.create_sheet("Disk Layout")
    cols = [
        "Instance", "Disk", "Role", "Used (GB)", "Usable (GB)", "Reserved (GB)",
        "Total (GB)", "Free Usable (GB)", "% Used (of usable)", "Databases",
    ]
    _set_col_widths(ws, [20, 10, 10, 14, 14, 14, 14, 16, 18, 12])
    _write_table_header(ws, cols)

    disks = result.disks
    usable = disks.usable_gb

    def disk_row(instance, letter, role, used_gb, db_count):
        return [
            instance,
            f"{letter}:\\",
            role,
            used_gb,
            usable,
            disks.reserved_gb,
            disks.total_gb,
            round(max(usable - used_gb, 0), 1),
            round(used_gb / usable * 100, 1),
            db_count,
        ]

    row = 2
    for inst in result.instances:
        fill = _STATUS_FILLS.get(inst.status.value)
        _write_row(ws, row, disk_row(inst.name, inst.log_disk.letter, "Log", inst.log_disk.used_gb,
                                     len(inst.databases)), fill_hex=fill)
        row += 1
        for disk in inst.data_disks:
            _write_row(ws, row, disk_row(inst.name, disk.letter, "Data", disk.used_gb, ""), fill_hex=fill)
            row += 1

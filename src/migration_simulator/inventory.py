"""Loading and selecting the simulator's inventories.

Two JSON documents feed a simulation, both as returned by the SQL Nova
API:

- the source inventory: the selected source servers and their user
  databases (``{"servers": [...]}``)
- the naming suggestion: the naming pattern for new destination
  instances and the usage of instances that already follow it
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from .schema import (
    NamingSuggestion,
    SourceDatabase,
    SourceInventory,
)

logger = logging.getLogger(__name__)

# Databases never offered for migration
SYSTEM_DATABASES = frozenset(name.lower() for name in [
    "master",
    "model",
    "msdb",
    "tempdb",
    "ReportServer",
    "ReportServerTempDB",
    "SSISDB",
    "distribution",
])


class InventoryLoadError(Exception):
    """Raised when an inventory file cannot be read or validated."""


def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise InventoryLoadError(f"File not found: {path}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InventoryLoadError(f"Invalid JSON in {path}: {exc}")
    except OSError as exc:
        raise InventoryLoadError(f"Cannot read {path}: {exc}")


def parse_source_inventory(data: Any) -> SourceInventory:
    """Validate a source inventory document.

    Accepts either the full response (``{"servers": [...]}``) or a bare
    list of servers. System databases are dropped and every database is
    stamped with the name of its server.

    Raises:
        InventoryLoadError: If the document does not match the schema.
    """
    if isinstance(data, list):
        data = {"servers": data}
    if not isinstance(data, dict):
        raise InventoryLoadError("Source inventory must be a JSON object or array")

    try:
        inventory = SourceInventory.model_validate(data)
    except ValidationError as exc:
        raise InventoryLoadError(f"Invalid source inventory: {exc}")

    for server in inventory.servers:
        server.databases = [
            db.model_copy(update={"instance_name": server.instance_name})
            for db in server.databases
            if db.name.lower() not in SYSTEM_DATABASES
        ]
        if not server.connection_success:
            logger.warning(
                "Source server %s is unreachable: %s",
                server.instance_name,
                server.error_message or "no error message",
            )

    return inventory


def parse_naming_suggestion(data: Any) -> NamingSuggestion:
    """Validate a naming suggestion document.

    Raises:
        InventoryLoadError: If the document does not match the schema.
    """
    if not isinstance(data, dict):
        raise InventoryLoadError("Naming suggestion must be a JSON object")
    try:
        return NamingSuggestion.model_validate(data)
    except ValidationError as exc:
        raise InventoryLoadError(f"Invalid naming suggestion: {exc}")


def load_source_inventory(path: Union[str, Path]) -> SourceInventory:
    """Load the source inventory from a JSON file."""
    inventory = parse_source_inventory(_read_json(path))
    logger.info(
        "Loaded %d source server(s) (%d connected) from %s",
        len(inventory.servers),
        len(inventory.connected_servers),
        path,
    )
    return inventory


def load_naming_suggestion(path: Union[str, Path]) -> NamingSuggestion:
    """Load the naming suggestion from a JSON file."""
    naming = parse_naming_suggestion(_read_json(path))
    logger.info(
        "Loaded naming suggestion %s (next %02d, %d existing instance(s)) from %s",
        naming.base_name,
        naming.next_available_number,
        len(naming.existing_instances_info),
        path,
    )
    return naming


def select_databases(
    inventory: SourceInventory,
    keys: Optional[Iterable[str]] = None,
    instances: Optional[Iterable[str]] = None,
    name_filter: Optional[str] = None,
) -> list[SourceDatabase]:
    """Select databases from the connected source servers.

    With no criteria every database of every connected server is selected.

    Args:
        inventory: Source inventory
        keys: Only databases with these ``instance||db`` keys
        instances: Only databases of these source instances
        name_filter: Only databases whose name contains this text
            (case-insensitive)

    Returns:
        Selected databases in inventory order
    """
    key_set = set(keys) if keys else None
    instance_set = {i.lower() for i in instances} if instances else None
    needle = name_filter.lower() if name_filter else None

    selected = []
    for server in inventory.connected_servers:
        if instance_set is not None and server.instance_name.lower() not in instance_set:
            continue
        for db in server.databases:
            if key_set is not None and db.key not in key_set:
                continue
            if needle and needle not in db.name.lower():
                continue
            selected.append(db)
    return selected


def validate_source_inventory(path: Union[str, Path]) -> tuple[bool, list[str]]:
    """Validate a source inventory file.

    Returns:
        Tuple of (is_valid, list of issues)
    """
    issues = []
    try:
        inventory = parse_source_inventory(_read_json(path))
    except InventoryLoadError as exc:
        return False, [str(exc)]

    if not inventory.servers:
        issues.append("No source servers listed")
    elif not inventory.connected_servers:
        issues.append("No source server connected successfully")

    for server in inventory.servers:
        names = [db.name.lower() for db in server.databases]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            issues.append(f"{server.instance_name}: duplicate databases {', '.join(duplicates)}")

    return len(issues) == 0, issues


def validate_naming_suggestion(path: Union[str, Path]) -> tuple[bool, list[str]]:
    """Validate a naming suggestion file.

    Returns:
        Tuple of (is_valid, list of issues)
    """
    issues = []
    try:
        naming = parse_naming_suggestion(_read_json(path))
    except InventoryLoadError as exc:
        return False, [str(exc)]

    if not naming.base_name.strip():
        issues.append("baseName is empty")
    if naming.next_available_number < 1:
        issues.append("nextAvailableNumber must be at least 1")

    return len(issues) == 0, issues

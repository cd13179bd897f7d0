"""Destination instance naming.

New destination instances follow the ``SS{ENV}{VERSION}-{NN}`` pattern
(e.g. ``SSPR22-03``). Operators may also supply their own names, which are
used before any generated name.
"""

import re
from typing import Iterable, Optional

from .schema import ExistingInstanceInfo, NamingSuggestion


# Supported SQL Server target versions
TARGET_VERSIONS = {
    "16": "SQL Server 2016",
    "17": "SQL Server 2017",
    "19": "SQL Server 2019",
    "22": "SQL Server 2022",
}

# Environment markers found in instance names, in detection priority
ENVIRONMENT_MARKERS = ("DS", "TS", "PR")


def build_base_name(environment: str, target_version: str) -> str:
    """Build the naming prefix for an environment and target version."""
    return f"SS{environment.upper()}{target_version}"


def detect_environment(instance_names: Iterable[str]) -> Optional[str]:
    """Detect the environment shared by a set of source instance names.

    Each name contributes the first marker it contains (DS, then TS, then PR).
    Returns the marker only when every contributing name agrees.
    """
    envs = set()
    for name in instance_names:
        upper = name.upper()
        for marker in ENVIRONMENT_MARKERS:
            if marker in upper:
                envs.add(marker)
                break
    if len(envs) == 1:
        return envs.pop()
    return None


def suggest_naming(
    instance_names: Iterable[str],
    target_version: str,
    environment: str,
    existing_info: Optional[list[ExistingInstanceInfo]] = None,
) -> NamingSuggestion:
    """Compute the naming suggestion for new destination instances.

    Args:
        instance_names: All known instance names in the inventory
        target_version: Target SQL Server version (e.g. "22")
        environment: Environment marker (e.g. "PR")
        existing_info: Usage information already collected for the
            instances matching the pattern

    Returns:
        NamingSuggestion with the next free number after the highest
        ``{base}-NN`` suffix in use
    """
    base_name = build_base_name(environment, target_version)
    prefix = f"{base_name}-".lower()

    matching = sorted(n for n in instance_names if n.lower().startswith(prefix))

    pattern = re.compile(rf"^{re.escape(base_name)}-(\d+)", re.IGNORECASE)
    max_number = 0
    for name in matching:
        match = pattern.match(name)
        if match:
            max_number = max(max_number, int(match.group(1)))

    info = sorted(
        (i for i in (existing_info or []) if i.name in matching),
        key=lambda i: i.name,
    )

    return NamingSuggestion(
        base_name=base_name,
        next_available_number=max_number + 1,
        environment=environment.upper(),
        target_version=target_version,
        existing_instances=matching,
        existing_instances_info=info,
    )


class InstanceNameCursor:
    """Hands out names for newly created destination instances.

    Custom names are consumed first, in order. After that, names are
    generated as ``{base_name}-{NN}`` counting up from the naming source's
    next available number. Names already taken in the current run are
    skipped.
    """

    def __init__(self, naming: NamingSuggestion, custom_names: Optional[list[str]] = None):
        self.base_name = naming.base_name
        self.next_number = naming.next_available_number
        self._custom = [n.strip() for n in (custom_names or []) if n and n.strip()]
        self._custom_index = 0
        self._taken: set[str] = set()

    def reserve(self, name: str) -> None:
        """Mark a name as already in use."""
        self._taken.add(name.lower())

    def next_name(self) -> str:
        """Return the next unused name and reserve it."""
        while self._custom_index < len(self._custom):
            name = self._custom[self._custom_index]
            self._custom_index += 1
            if name.lower() not in self._taken:
                self.reserve(name)
                return name

        while True:
            name = f"{self.base_name}-{self.next_number:02d}"
            self.next_number += 1
            if name.lower() not in self._taken:
                self.reserve(name)
                return name

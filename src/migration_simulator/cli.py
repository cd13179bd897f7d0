"""CLI for the Migration Simulator.

Provides command-line interface for distributing source databases over
destination SQL Server instances.
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .app_logging import get_logger, setup_logging
from .config import SimulatorConfig, find_config_file, get_config, load_config
from .disk_layout import disk_letter_range
from .engine import ManualAssignments, simulate
from .export import default_export_name, export_workbook
from .inventory import (
    load_naming_suggestion,
    load_source_inventory,
    select_databases,
    validate_naming_suggestion,
    validate_source_inventory,
)
from .naming import TARGET_VERSIONS, detect_environment, suggest_naming
from .schema import (
    CapacityConfig,
    DestinationStrategy,
    SimulationInput,
    SimulationResult,
    SourceServer,
)

console = Console()
logger = get_logger("cli")

STRATEGY_CHOICES = [s.value for s in DestinationStrategy]


@click.group()
@click.version_option(version=__version__, prog_name="migration-simulator")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for diagnostic output (stderr)"
)
def main(log_level: str):
    """SQL Server Migration Simulator.

    Calculates how many destination instances are needed and how to
    distribute the source databases over them and their data disks.
    """
    setup_logging(log_level)


def _resolve_config(config_path: Optional[str]) -> SimulatorConfig:
    """Load an explicit config file, a discovered one, or the defaults."""
    if config_path:
        return load_config(Path(config_path))
    found = find_config_file()
    if found:
        logger.info("Using configuration from %s", found)
        return load_config(found)
    return get_config()


def parse_assignments(values: tuple) -> dict[str, str]:
    """Parse ``instance||db=target`` options into a manual assignment map."""
    book = ManualAssignments()
    for value in values:
        if "=" not in value:
            raise click.BadParameter(f"Expected instance||db=target, got: {value}", param_hint="--assign")
        key, target = value.rsplit("=", 1)
        book.move(key.strip(), target.strip())
    return book.as_dict()


@main.command("simulate")
@click.option(
    "--sources", "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to the source inventory JSON (servers and databases)"
)
@click.option(
    "--naming", "-n",
    required=True,
    type=click.Path(exists=True),
    help="Path to the naming suggestion JSON (pattern and existing instances)"
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Path to a simulator-config.yaml file"
)
@click.option(
    "--max-data-disks", "-d",
    type=click.IntRange(1, 18),
    help="Data disks per new instance (default from config)"
)
@click.option(
    "--strategy", "-t",
    type=click.Choice(STRATEGY_CHOICES),
    help="Destination strategy (default from config)"
)
@click.option(
    "--grow-existing/--no-grow-existing",
    default=None,
    help="Let existing instances add data disks (default from config)"
)
@click.option(
    "--custom-name", "-c",
    multiple=True,
    help="Name for a new instance, used before generated names (repeatable)"
)
@click.option(
    "--assign", "-a",
    multiple=True,
    help="Manual assignment (format: instance||db=target, target may be __new__ or __auto__)"
)
@click.option(
    "--instance", "-i",
    "instances",
    multiple=True,
    help="Only migrate databases of this source instance (repeatable)"
)
@click.option(
    "--database",
    "database_keys",
    multiple=True,
    help="Only migrate this database (format: instance||db, repeatable)"
)
@click.option(
    "--filter", "-f",
    "name_filter",
    help="Only migrate databases whose name contains this text"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Output file for JSON results"
)
@click.option(
    "--xlsx", "-x",
    type=click.Path(),
    help="Export the result to an Excel workbook (file or directory)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show databases and disks of every instance"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def simulate_cmd(
    sources: str,
    naming: str,
    config_path: Optional[str],
    max_data_disks: Optional[int],
    strategy: Optional[str],
    grow_existing: Optional[bool],
    custom_name: tuple,
    assign: tuple,
    instances: tuple,
    database_keys: tuple,
    name_filter: Optional[str],
    out: Optional[str],
    xlsx: Optional[str],
    verbose: bool,
    json_output: bool,
):
    """Simulate the distribution of source databases.

    Examples:
        migration-simulator simulate -s sources.json -n naming.json
        migration-simulator simulate -s sources.json -n naming.json -d 2 -t both
        migration-simulator simulate -s sources.json -n naming.json -a "SRV01||Sales=__new__"
    """
    try:
        config = _resolve_config(config_path)
        inventory = load_source_inventory(sources)
        naming_data = load_naming_suggestion(naming)

        databases = select_databases(
            inventory,
            keys=database_keys or None,
            instances=instances or None,
            name_filter=name_filter,
        )

        capacity = CapacityConfig(
            max_data_disks_per_new_instance=max_data_disks or config.defaults.max_data_disks_per_new_instance,
            destination_strategy=DestinationStrategy.from_string(
                strategy or config.defaults.destination_strategy
            ),
            custom_instance_names=list(custom_name),
            disks=config.disks,
            warning_ratio=config.thresholds.warning_ratio,
            grow_existing_instances=(
                config.defaults.grow_existing_instances if grow_existing is None else grow_existing
            ),
        )

        sim_input = SimulationInput(
            databases=databases,
            capacity=capacity,
            naming=naming_data,
            existing_instances=naming_data.existing_instances_info,
            manual_assignments=parse_assignments(assign),
        )
        result = simulate(sim_input)

        if json_output:
            output_json(result, out)
        else:
            display_result(result, verbose, inventory.servers)
            if out:
                output_json(result, out)
                console.print(f"\n[green]Results saved to {out}[/green]")

        if xlsx:
            source_servers = [s.instance_name for s in inventory.connected_servers]
            xlsx_path = Path(xlsx)
            if xlsx_path.is_dir():
                xlsx_path = xlsx_path / default_export_name(naming_data.base_name)
            path = export_workbook(result, xlsx_path, source_servers=source_servers, naming=naming_data)
            if not json_output:
                console.print(f"[green]Workbook exported to {path}[/green]")

    except click.BadParameter:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("validate")
@click.option(
    "--sources", "-s",
    type=click.Path(),
    help="Path to the source inventory JSON"
)
@click.option(
    "--naming", "-n",
    type=click.Path(),
    help="Path to the naming suggestion JSON"
)
def validate_cmd(sources: Optional[str], naming: Optional[str]):
    """Validate source inventory and/or naming suggestion files.

    Examples:
        migration-simulator validate -s sources.json
        migration-simulator validate -s sources.json -n naming.json
    """
    if not sources and not naming:
        console.print("[yellow]Please specify --sources and/or --naming to validate[/yellow]")
        return

    all_valid = True

    if sources:
        is_valid, issues = validate_source_inventory(sources)
        if is_valid:
            console.print(f"[green]✓ Source inventory valid: {sources}[/green]")
        else:
            console.print(f"[red]✗ Source inventory invalid: {sources}[/red]")
            for issue in issues:
                console.print(f"  - {issue}")
            all_valid = False

    if naming:
        is_valid, issues = validate_naming_suggestion(naming)
        if is_valid:
            console.print(f"[green]✓ Naming suggestion valid: {naming}[/green]")
        else:
            console.print(f"[red]✗ Naming suggestion invalid: {naming}[/red]")
            for issue in issues:
                console.print(f"  - {issue}")
            all_valid = False

    sys.exit(0 if all_valid else 1)


@main.command("suggest-name")
@click.option(
    "--target-version", "-V",
    required=True,
    type=click.Choice(sorted(TARGET_VERSIONS)),
    help="Target SQL Server version"
)
@click.option(
    "--environment", "-e",
    help="Environment marker (DS, TS, PR); detected from --source when omitted"
)
@click.option(
    "--source",
    "source_names",
    multiple=True,
    help="Source instance name used to detect the environment (repeatable)"
)
@click.option(
    "--existing", "-x",
    "existing_names",
    multiple=True,
    help="Instance name already present in the inventory (repeatable)"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def suggest_name_cmd(
    target_version: str,
    environment: Optional[str],
    source_names: tuple,
    existing_names: tuple,
    json_output: bool,
):
    """Suggest the naming pattern and next number for new instances.

    Example:
        migration-simulator suggest-name -V 22 --source SRVPR01 -x SSPR22-01 -x SSPR22-02
    """
    env = environment or detect_environment(source_names)
    if not env:
        console.print("[red]Error:[/red] Could not detect the environment. Use --environment.")
        sys.exit(1)

    suggestion = suggest_naming(existing_names, target_version, env)

    if json_output:
        print(suggestion.model_dump_json(indent=2, by_alias=True))
        return

    console.print(f"Base name: [bold cyan]{suggestion.base_name}[/bold cyan]")
    console.print(f"Target: {TARGET_VERSIONS[target_version]} ({suggestion.environment})")
    console.print(f"Next name: [bold]{suggestion.base_name}-{suggestion.next_available_number:02d}[/bold]")
    if suggestion.existing_instances:
        console.print(f"Existing: {', '.join(suggestion.existing_instances)}")


@main.command("init-config")
@click.option(
    "--out", "-o",
    type=click.Path(),
    default="simulator-config.yaml",
    help="Output path for the configuration file"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def init_config_cmd(out: str, force: bool):
    """Generate a default simulator configuration file.

    Example:
        migration-simulator init-config --out my-config.yaml
    """
    from .config import save_default_config

    out_path = Path(out)
    if out_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out_path)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nThis file configures:")
        console.print("  • disks - Disk size, reserve and drive letters")
        console.print("  • thresholds - When a disk is flagged as nearly full")
        console.print("  • defaults - Data disks per new instance and destination strategy")
        console.print("\nThe simulator will look for config in this order:")
        console.print("  1. MIGRATION_SIMULATOR_CONFIG environment variable")
        console.print("  2. ./simulator-config.yaml (current directory)")
        console.print("  3. ~/.config/migration-simulator/config.yaml")
    except Exception as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)


def output_json(result: SimulationResult, out_path: Optional[str]):
    """Output result as JSON."""
    json_str = result.model_dump_json(indent=2)

    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(json_str)
    else:
        print(json_str)


def display_result(result: SimulationResult, verbose: bool, source_servers: Optional[list[SourceServer]] = None):
    """Display simulation result in formatted text."""
    totals = result.totals
    usable = result.disks.usable_gb

    console.print(Panel(
        f"[bold]{result.base_name}[/bold] "
        f"({TARGET_VERSIONS.get(result.target_version, result.target_version)}, {result.environment})\n\n"
        f"Databases: {totals.database_count} | "
        f"Data: {totals.data_mb / 1024:.1f} GB | Log: {totals.log_mb / 1024:.1f} GB\n"
        f"Instances: {len(result.instances)} ({result.new_instance_count} new) | "
        f"Strategy: {result.destination_strategy.value}",
        title="Simulation Summary",
    ))

    if source_servers:
        display_source_servers(source_servers)

    if not result.instances:
        console.print("\n[yellow]No databases selected.[/yellow]")
        return

    status_color = {"ok": "green", "warning": "yellow", "critical": "red"}

    table = Table(show_header=True, header_style="bold")
    table.add_column("Instance", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("DBs", justify="right")
    table.add_column("Data (GB)", justify="right")
    table.add_column("Log (GB)", justify="right")
    table.add_column("Data Disks")
    table.add_column("Status")

    for inst in result.instances:
        color = status_color[inst.status.value]
        db_count = str(len(inst.databases))
        if inst.is_existing:
            db_count += f" (+{inst.pre_existing_db_count})"
        table.add_row(
            inst.name,
            "existing" if inst.is_existing else "new",
            db_count,
            f"{inst.total_data_gb:.1f}",
            f"{inst.total_log_gb:.1f}",
            disk_letter_range(len(inst.data_disks), result.disks.data_disk_letters),
            f"[{color}]{inst.status.value}[/{color}]",
        )

    console.print()
    console.print(table)

    if verbose:
        console.print()
        for inst in result.instances:
            display_instance_detail(result, inst, usable)

    if result.alerts:
        console.print(f"\n[bold]Alerts ({len(result.alerts)}):[/bold]")
        for alert in result.alerts:
            color = "red" if alert.level.value == "error" else "yellow"
            console.print(f"  [{color}]•[/{color}] {alert.message}")


def display_source_servers(servers: list[SourceServer]):
    """Display the source servers and their user database totals."""
    table = Table(title="Source Servers", show_header=True, header_style="bold")
    table.add_column("Server", style="cyan", no_wrap=True)
    table.add_column("DBs", justify="right")
    table.add_column("Data (GB)", justify="right")
    table.add_column("Log (GB)", justify="right")
    table.add_column("Connection")

    for server in servers:
        connection = "[green]ok[/green]" if server.connection_success else "[red]unreachable[/red]"
        table.add_row(
            server.instance_name,
            str(len(server.databases)),
            f"{server.total_data_size_mb / 1024:.1f}",
            f"{server.total_log_size_mb / 1024:.1f}",
            connection,
        )

    console.print(table)


def display_instance_detail(result: SimulationResult, inst, usable: float):
    """Display disks and databases of one instance."""
    tree = Tree(f"[bold cyan]{inst.name}[/bold cyan]")

    disks = tree.add("[bold]Disks[/bold]")
    disks.add(f"{inst.log_disk.letter}: log {inst.log_disk.used_gb:.1f} / {usable:g} GB")
    for disk in inst.data_disks:
        origin = f" ({disk.pre_existing_gb:.1f} existing + {disk.new_gb:.1f} new)" if disk.is_existing_disk else ""
        disks.add(f"{disk.letter}: data {disk.used_gb:.1f} / {usable:g} GB{origin}")

    dbs = tree.add(f"[bold]Databases ({len(inst.databases)})[/bold]")
    for db in inst.databases:
        placement = result.placement_for(db.key)
        disk = f"{placement.target_disk}:" if placement else "?"
        dbs.add(f"{db.instance_name} / {db.name} → {disk} ({db.data_gb:.1f} GB data, {db.log_gb:.1f} GB log)")

    if inst.pre_existing_db_names:
        tree.add(f"[dim]Already hosts: {', '.join(inst.pre_existing_db_names)}[/dim]")

    console.print(tree)

"""
GCP Discovery CLI - Infrastructure Inventory

Main entry point for the command-line interface.
"""

import asyncio
import contextlib
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.credentials import CredentialManager
from .core.exceptions import DiscoveryError, GCPClientError
from .core.logging import LogContext, get_logger, setup_logging
from .core.models import (
    DiscoveryConfig,
    DiscoveryProgress,
    DiscoveryStatus,
    InfrastructureInventory,
    RegionSelection,
)
from .core.orchestrator import InfrastructureScanner
from .core.region_manager import RegionManager
from .reporters.cli_reporter import CLIReporter
from .reporters.csv_reporter import CSVReporter
from .reporters.json_reporter import JSONReporter
from .scanners import create_scanner_registry


console = Console()
logger = get_logger(__name__)


def parse_list(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse a comma-separated option value."""
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    if not items:
        raise click.BadParameter(f"No values given for {param.name}")
    return items


@click.group()
@click.version_option(version=__version__, prog_name="gcp-discovery")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level (default: WARNING)",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file",
)
def cli(log_level: str, log_file: Optional[str]):
    """
    GCP Discovery: Infrastructure Inventory

    Scans a GCP project across services and regions and produces a
    normalized, deduplicated inventory of its resources and their
    relationships, ready for IaC generation.
    """
    setup_logging(level=log_level, log_file=log_file)


@cli.command("discover")
@click.option(
    "--project",
    "-p",
    default=None,
    help="GCP project id (default: GOOGLE_CLOUD_PROJECT or ADC project)",
)
@click.option(
    "--regions",
    "-r",
    callback=parse_list,
    help="Comma-separated list of regions (default: all regions)",
)
@click.option(
    "--exclude-regions",
    callback=parse_list,
    help="Comma-separated list of regions to skip",
)
@click.option(
    "--services",
    "-s",
    callback=parse_list,
    help="Comma-separated list of services (default: Compute,Storage,GKE,IAM,VPC)",
)
@click.option(
    "--exclude-services",
    callback=parse_list,
    help="Comma-separated list of services to skip",
)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output file path (auto-detects format from extension)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["cli", "csv", "json"]),
    default="cli",
    help="Output format (default: cli)",
)
@click.option(
    "--scan-timeout",
    type=float,
    default=None,
    help="Seconds allowed per service scan (default: no limit)",
)
@click.option(
    "--show-all",
    is_flag=True,
    help="List every resource in the terminal report",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show debug logs from the scanners",
)
def discover(
    project: Optional[str],
    regions: Optional[List[str]],
    exclude_regions: Optional[List[str]],
    services: Optional[List[str]],
    exclude_services: Optional[List[str]],
    output: Optional[str],
    output_format: str,
    scan_timeout: Optional[float],
    show_all: bool,
    verbose: bool,
):
    """
    Discover resources in a GCP project.

    Examples:

        # Scan every region with the default services
        gcp-discovery discover --project my-project

        # Scan two regions
        gcp-discovery discover -p my-project --regions us-central1,europe-west1

        # Only networking and compute
        gcp-discovery discover -p my-project --services Compute,VPC

        # Export to JSON
        gcp-discovery discover -p my-project --format json -o inventory.json
    """
    cli_reporter = CLIReporter(console)
    config = DiscoveryConfig(
        project_id=project,
        regions=RegionSelection(
            regions=regions or "all",
            exclude_regions=exclude_regions or [],
        ),
        services=services,
        exclude_services=exclude_services,
    )

    log_context = (
        LogContext(get_logger("gcp_discovery"), "DEBUG")
        if verbose else contextlib.nullcontext()
    )

    try:
        with log_context:
            inventory, progress = asyncio.run(
                _run_discovery(config, scan_timeout, cli_reporter)
            )

        if progress is None or progress.status != DiscoveryStatus.COMPLETED:
            for error in progress.errors if progress else []:
                cli_reporter.print_error(f"{error.service} {error.operation}: {error.message}")
            sys.exit(1)

        _output_inventory(inventory, cli_reporter, output, output_format, show_all)

    except GCPClientError as e:
        console.print(f"\n[red bold]GCP Error:[/red bold] {escape(e.message)}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Discovery cancelled by user.[/yellow]")
        sys.exit(130)
    except DiscoveryError as e:
        console.print(f"\n[red bold]Error:[/red bold] {escape(str(e))}")
        sys.exit(1)


async def _run_discovery(
    config: DiscoveryConfig,
    scan_timeout: Optional[float],
    cli_reporter: CLIReporter,
) -> Tuple[Optional[InfrastructureInventory], Optional[DiscoveryProgress]]:
    """Run one session to completion with a live progress bar."""
    scanner = InfrastructureScanner(
        credential_manager=CredentialManager(project_id=config.project_id),
        region_manager=RegionManager(project_id=config.project_id),
        scan_timeout=scan_timeout,
    )
    cli_reporter.print_discovery_message(
        config.project_id,
        scanner.filter_services(config.services, config.exclude_services),
    )

    with cli_reporter.create_progress() as progress_bar:
        task = progress_bar.add_task("Validating credentials...", total=None)

        def on_progress(progress: DiscoveryProgress) -> None:
            total = progress.total_regions * progress.total_services
            done = progress.regions_scanned * progress.total_services + progress.services_scanned
            location = " ".join(
                part for part in (progress.current_region, progress.current_service) if part
            )
            progress_bar.update(
                task,
                total=total,
                completed=min(done, total),
                description=(
                    f"{location or progress.status.value} "
                    f"({progress.resources_found} resources)"
                ),
            )

        session_id = await scanner.start_discovery(config, on_progress)
        final_progress = await scanner.wait_for_completion(session_id)

    logger.debug(f"Session {session_id} finished with status {final_progress.status}")
    return scanner.get_inventory(session_id), final_progress


def _output_inventory(
    inventory: InfrastructureInventory,
    cli_reporter: CLIReporter,
    output: Optional[str],
    output_format: str,
    show_all: bool,
) -> None:
    """Write the inventory to the requested file and show the terminal report."""
    output_file = None

    if output_format == "json" or (output and output.endswith(".json")):
        output_file = JSONReporter(output_path=output).report(inventory)
    elif output_format == "csv" or (output and output.endswith(".csv")):
        output_file = CSVReporter(output_path=output).report(inventory)
    elif output:
        output_file = JSONReporter(output_path=output).report(inventory)

    cli_reporter.report(inventory, show_all=show_all)
    cli_reporter.print_completion_message(output_file)


@cli.command("regions")
@click.option(
    "--project",
    "-p",
    default=None,
    help="GCP project used to list regions (default: built-in catalogue)",
)
def list_regions(project: Optional[str]):
    """List available GCP regions grouped by area."""
    region_manager = RegionManager(project_id=project)
    regions = asyncio.run(region_manager.list_regions())

    table = Table(title=f"Available GCP Regions ({len(regions)} total)", show_lines=False)
    table.add_column("Area", style="yellow")
    table.add_column("Region", style="cyan")
    table.add_column("Location", style="white")
    table.add_column("Zones", style="dim", justify="right")

    for area, members in region_manager.group_regions_by_area(regions).items():
        for region in members:
            table.add_row(
                area,
                region.region_name,
                region_manager.get_region_display_name(region.region_name),
                str(len(region.zones)),
            )

    console.print()
    console.print(table)
    console.print()


@cli.command("services")
def list_services():
    """List the services that can be discovered."""
    registry = create_scanner_registry()

    table = Table(title="Discoverable Services", show_lines=False)
    table.add_column("Service", style="cyan")
    table.add_column("Scope", style="yellow")
    table.add_column("Resource Types", style="white")

    for scanner in registry.get_all():
        table.add_row(
            scanner.service_name,
            "global" if scanner.is_global else "regional",
            "\n".join(scanner.get_resource_types()),
        )

    console.print()
    console.print(table)
    console.print()


@cli.command("validate")
@click.option(
    "--project",
    "-p",
    default=None,
    help="GCP project id to validate against",
)
def validate_credentials(project: Optional[str]):
    """Validate Application Default Credentials and show the identity."""
    manager = CredentialManager(project_id=project)
    result = asyncio.run(manager.validate_credentials(project))

    if not result.valid:
        console.print(f"\n[red bold]Validation Failed:[/red bold] {escape(result.error or '')}")
        sys.exit(1)

    credential = result.credential
    console.print("\n[green bold]GCP credentials are valid![/green bold]")
    console.print(f"\n  Project: {credential.project_id}")
    if credential.service_account_email:
        console.print(f"  Service Account: {credential.service_account_email}")
    console.print()


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

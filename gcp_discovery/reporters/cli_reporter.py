"""
CLI Reporter Module
===================

Provides rich terminal output for discovery inventories using the Rich
library.

This module creates terminal displays with:
- A header panel naming the project and regions
- Summary tables by service, region and resource type
- The resource list
- Scan errors grouped by service

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from gcp_discovery.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report(inventory)

See Also
--------
rich : Python library for rich text and formatting.
CSVReporter : For data export.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from gcp_discovery.core.models import (
    DiscoveredResource,
    InfrastructureInventory,
    ScanError,
)

# Module logger
logger = logging.getLogger(__name__)

# Resource tables longer than this are cut unless show_all is set
MAX_RESOURCE_ROWS = 100


class CLIReporter:
    """
    Reporter for displaying inventories in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    show_resources : bool, default=True
        Whether to print the per-resource table after the summaries.

    Examples
    --------
    Basic usage:

    >>> reporter = CLIReporter()
    >>> reporter.report(inventory)

    Summaries only:

    >>> CLIReporter(show_resources=False).report(inventory)

    Displaying progress:

    >>> with reporter.create_progress() as progress:
    ...     task = progress.add_task("Discovering...", total=10)
    ...     progress.update(task, completed=3)
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        show_resources: bool = True,
    ) -> None:
        self.console = console or Console()
        self.show_resources = show_resources
        logger.debug("Initialized CLIReporter")

    def report(self, inventory: InfrastructureInventory, show_all: bool = False) -> None:
        """
        Display an inventory.

        Parameters
        ----------
        inventory : InfrastructureInventory
            Inventory of a completed discovery session.
        show_all : bool, default=False
            Print every resource instead of the first ``MAX_RESOURCE_ROWS``.
        """
        self._print_header(inventory)
        self._print_summary(inventory)

        if not inventory.resources:
            self.console.print("\n[yellow]No resources discovered.[/yellow]")
        else:
            self._print_counts("Resources by Service", inventory.summary.resources_by_service)
            self._print_counts("Resources by Region", inventory.summary.resources_by_region)
            self._print_counts("Resources by Type", inventory.summary.resources_by_type)
            if self.show_resources:
                self._print_resources_table(inventory.resources, show_all)

        if inventory.metadata.errors:
            self._print_errors(inventory.metadata.errors)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, inventory: InfrastructureInventory) -> None:
        regions = inventory.regions
        region_text = (
            ", ".join(regions) if len(regions) <= 5
            else f"{len(regions)} regions"
        )

        header_text = Text()
        header_text.append(
            f"\nGCP Discovery Report: {inventory.project_id}\n", style="bold blue"
        )
        header_text.append(f"Regions: {region_text}", style="dim")

        self.console.print(Panel(header_text, border_style="blue"))

    def _print_summary(self, inventory: InfrastructureInventory) -> None:
        metadata = inventory.metadata
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        summary.add_row("Session:", inventory.id)
        summary.add_row("Total Resources:", str(inventory.summary.total_resources))
        summary.add_row("Scanner Calls:", str(metadata.api_call_count))
        summary.add_row("Duration:", f"{metadata.scan_duration_ms / 1000:.1f}s")
        summary.add_row(
            "Completed:",
            metadata.completed_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        )

        error_style = "red" if metadata.errors else "green"
        summary.add_row("Errors:", f"[{error_style}]{len(metadata.errors)}[/]")
        if metadata.warnings:
            summary.add_row("Warnings:", f"[yellow]{len(metadata.warnings)}[/]")

        self.console.print("\n")
        self.console.print(summary)

    def _print_counts(self, title: str, counts: Dict[str, int]) -> None:
        self.console.print(f"\n[bold]{title}[/bold]")
        table = Table(show_lines=False)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Count", style="white", justify="right")

        for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
            table.add_row(name, str(count))

        self.console.print(table)

    def _print_resources_table(
        self,
        resources: List[DiscoveredResource],
        show_all: bool,
    ) -> None:
        self.console.print("\n[bold]Discovered Resources[/bold]")
        table = Table(show_lines=False)

        table.add_column("Service", style="yellow", no_wrap=True)
        table.add_column("Region", style="yellow", no_wrap=True)
        table.add_column("Type", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Status", style="dim")
        table.add_column("Links", style="dim", justify="right")

        sorted_resources = sorted(resources, key=lambda r: (r.service, r.region, r.type))
        shown = sorted_resources if show_all else sorted_resources[:MAX_RESOURCE_ROWS]

        for resource in shown:
            table.add_row(
                resource.service,
                resource.region,
                resource.type,
                self._truncate(resource.name or resource.id, 50),
                resource.status or "",
                str(len(resource.relationships)),
            )

        self.console.print(table)

        hidden = len(sorted_resources) - len(shown)
        if hidden:
            self.console.print(f"[dim]... and {hidden} more (use --show-all)[/dim]")

    def _print_errors(self, errors: List[ScanError]) -> None:
        self.console.print("\n[yellow bold]Errors encountered:[/yellow bold]")

        by_service: Dict[str, List[ScanError]] = {}
        for error in errors:
            by_service.setdefault(error.service, []).append(error)

        for service, service_errors in by_service.items():
            self.console.print(f"\n[yellow]{service}:[/yellow]")
            for error in service_errors:
                code = f" ({error.code})" if error.code else ""
                self.console.print(
                    f"  [red]• {error.region} {error.operation}{code}: "
                    f"{escape(self._truncate(error.message, 120))}[/red]"
                )

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Public Methods: Progress and Messages
    # =========================================================================

    def create_progress(self) -> Progress:
        """
        Create a progress bar for a discovery run.

        Returns
        -------
        Progress
            Rich Progress instance with spinner, bar and step counter.
        """
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )

    def print_discovery_message(self, project_id: Optional[str], services: List[str]) -> None:
        """Announce the project and services about to be discovered."""
        project = project_id or "default project"
        self.console.print(f"\n[bold]Discovering resources in {project}...[/bold]")
        self.console.print(f"[dim]Services: {', '.join(services)}[/dim]")

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        self.console.print("\n[green bold]Discovery complete![/green bold]")
        if output_file:
            self.console.print(f"[dim]Results saved to: {output_file}[/dim]")

    def print_error(self, message: str) -> None:
        self.console.print(f"\n[red bold]Error:[/red bold] {escape(message)}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {escape(message)}")

    def __repr__(self) -> str:
        return f"CLIReporter(show_resources={self.show_resources})"

"""
CSV Reporter Module
===================

Exports discovery inventories to CSV for spreadsheet analysis.

Classes
-------
CSVReporter
    Main reporter class for CSV export.

Example
-------
>>> from gcp_discovery.reporters import CSVReporter
>>>
>>> reporter = CSVReporter(output_path="inventory.csv")
>>> filepath = reporter.report(inventory)

Output Format
-------------
The CSV file includes:
1. Metadata header rows (prefixed with #), unless disabled
2. Empty separator row
3. Column headers
4. One row per resource, sorted by service, region and type

Example output::

    # Discovery Metadata
    # Project:,my-project
    # Regions Scanned:,1
    # Region List:,us-central1
    # Total Resources:,2
    # Errors:,0
    # Completed At:,2024-01-15T10:30:00+00:00

    Service,Region,Type,ID,Name,Status,Self Link,Labels,Relationships
    Compute,us-central1,google_compute_instance,123,web-1,RUNNING,https://...,env=dev,references:https://...

See Also
--------
CLIReporter : For terminal display.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from gcp_discovery.core.models import DiscoveredResource, InfrastructureInventory

# Module logger
logger = logging.getLogger(__name__)


class CSVReporter:
    """
    Reporter for exporting inventories to CSV format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    include_metadata : bool, default=True
        Whether to write the ``#`` metadata header rows.

    Examples
    --------
    Auto-generate filename:

    >>> reporter = CSVReporter()
    >>> filepath = reporter.report(inventory)
    >>> print(filepath)  # e.g., 'inventory_my-project_20240115_103000.csv'

    Plain table for tools that dislike comment rows:

    >>> reporter = CSVReporter(output_path="out.csv", include_metadata=False)
    """

    COLUMNS = [
        "Service",
        "Region",
        "Type",
        "ID",
        "Name",
        "Status",
        "Self Link",
        "Labels",
        "Relationships",
    ]

    def __init__(
        self,
        output_path: Optional[str] = None,
        include_metadata: bool = True,
    ) -> None:
        self.output_path = output_path
        self.include_metadata = include_metadata
        logger.debug(f"Initialized CSVReporter (output_path={output_path})")

    def _get_output_path(self, project_id: str) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"inventory_{project_id}_{timestamp}.csv")

    def report(self, inventory: InfrastructureInventory) -> str:
        """
        Export an inventory to CSV.

        Parameters
        ----------
        inventory : InfrastructureInventory
            Inventory of a completed discovery session.

        Returns
        -------
        str
            Path to the created CSV file.
        """
        output_path = self._get_output_path(inventory.project_id)

        logger.info(
            f"Exporting {inventory.summary.total_resources} resources to {output_path}"
        )

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)

            if self.include_metadata:
                self._write_metadata(writer, inventory)

            writer.writerow(self.COLUMNS)

            sorted_resources = sorted(
                inventory.resources, key=lambda r: (r.service, r.region, r.type)
            )
            for resource in sorted_resources:
                writer.writerow(self._format_resource_row(resource))

        logger.info(f"CSV export complete: {output_path}")
        return str(output_path)

    def _write_metadata(self, writer: Any, inventory: InfrastructureInventory) -> None:
        regions = inventory.regions
        writer.writerow(["# Discovery Metadata"])
        writer.writerow(["# Project:", inventory.project_id])
        writer.writerow(["# Regions Scanned:", len(regions)])
        if len(regions) <= 5:
            writer.writerow(["# Region List:", ", ".join(regions)])
        writer.writerow(["# Total Resources:", inventory.summary.total_resources])
        writer.writerow(["# Errors:", len(inventory.metadata.errors)])
        writer.writerow(["# Completed At:", inventory.metadata.completed_at.isoformat()])
        writer.writerow([])  # Empty row for separation

    def _format_resource_row(self, resource: DiscoveredResource) -> List[Any]:
        return [
            resource.service,
            resource.region,
            resource.type,
            resource.id,
            resource.name or "",
            resource.status or "",
            resource.self_link,
            self._format_labels(resource.labels),
            "; ".join(
                f"{r.kind.value}:{r.target_self_link}" for r in resource.relationships
            ),
        ]

    @staticmethod
    def _format_labels(labels: Dict[str, str]) -> str:
        """
        Format a label map as ``"key1=value1; key2=value2"``.

        Keys are sorted so that rows are stable across runs.
        """
        if not labels:
            return ""
        return "; ".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def __repr__(self) -> str:
        return f"CSVReporter(output_path={self.output_path!r})"

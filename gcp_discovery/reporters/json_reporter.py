"""
JSON Reporter Module
====================

Exports discovery inventories to JSON for downstream IaC generation and
programmatic access.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> from gcp_discovery.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="inventory.json")
>>> filepath = reporter.report(inventory)
>>>
>>> # Or get as string for API responses
>>> json_str = reporter.to_string(inventory)

Output Structure
----------------
::

    {
      "id": "8c0f...",
      "timestamp": "2024-01-15T10:30:00+00:00",
      "provider": "gcp",
      "project_id": "my-project",
      "credential": {...},
      "regions": ["us-central1"],
      "summary": {
        "total_resources": 12,
        "resources_by_service": {"Compute": 7, "VPC": 5},
        "resources_by_region": {...},
        "resources_by_type": {...}
      },
      "resources": [...],
      "metadata": {"scan_duration_ms": 5400, "api_call_count": 5, ...}
    }

See Also
--------
CLIReporter : For terminal display.
CSVReporter : For spreadsheet export.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from gcp_discovery.core.models import InfrastructureInventory

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting inventories to JSON format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level for pretty printing.
        Set to None for compact output.

    Examples
    --------
    Export to file:

    >>> reporter = JSONReporter(output_path="inventory.json")
    >>> filepath = reporter.report(inventory)

    Compact output (no indentation):

    >>> reporter = JSONReporter(indent=None)
    >>> json_str = reporter.to_string(inventory)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self, project_id: str) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"inventory_{project_id}_{timestamp}.json")

    def report(self, inventory: InfrastructureInventory) -> str:
        """
        Export an inventory to a JSON file.

        Parameters
        ----------
        inventory : InfrastructureInventory
            Inventory of a completed discovery session.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path(inventory.project_id)

        logger.info(
            f"Exporting {inventory.summary.total_resources} resources to {output_path}"
        )

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(inventory), f, indent=self.indent, default=str)

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(self, inventory: InfrastructureInventory) -> str:
        """Convert an inventory to a JSON string without writing a file."""
        return json.dumps(self.to_dict(inventory), indent=self.indent, default=str)

    def to_dict(self, inventory: InfrastructureInventory) -> Dict[str, Any]:
        return inventory.to_dict()

    def __repr__(self) -> str:
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"

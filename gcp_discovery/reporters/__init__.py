"""
Report Generators
=================

This module provides output formatters for discovery inventories.

Each reporter renders an ``InfrastructureInventory`` in a specific format
suitable for different use cases (terminal display, data export, IaC
generation input).

Available Reporters
-------------------
CLIReporter
    Rich terminal output with summary tables and progress bars.
CSVReporter
    CSV export for spreadsheet analysis.
JSONReporter
    JSON export for programmatic access.

Example
-------
>>> from gcp_discovery.reporters import CLIReporter, CSVReporter, JSONReporter
>>>
>>> # Display in terminal
>>> CLIReporter().report(inventory)
>>>
>>> # Export to CSV
>>> filepath = CSVReporter(output_path="inventory.csv").report(inventory)
>>>
>>> # Get as JSON
>>> json_str = JSONReporter().to_string(inventory)

See Also
--------
gcp_discovery.core.models.InfrastructureInventory : Input data structure.
"""

from gcp_discovery.reporters.cli_reporter import CLIReporter
from gcp_discovery.reporters.csv_reporter import CSVReporter
from gcp_discovery.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "CSVReporter",
    "JSONReporter",
]

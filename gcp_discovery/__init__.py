"""
GCP Discovery: Infrastructure Inventory Engine
==============================================

Discovers the resources of a GCP project across services and regions and
assembles them into a normalized, deduplicated inventory for downstream
IaC generation.

Modules
-------
core
    Orchestrator, scanner base class, registry, data model, credential
    and region management
scanners
    Service scanner implementations (Compute, Storage, GKE, IAM, VPC)
reporters
    Output formatters (CLI, CSV, JSON)

Example
-------
>>> import asyncio
>>> from gcp_discovery import DiscoveryConfig, InfrastructureScanner
>>>
>>> async def run():
...     scanner = InfrastructureScanner()
...     session_id = await scanner.start_discovery(
...         DiscoveryConfig(project_id="my-project")
...     )
...     await scanner.wait_for_completion(session_id)
...     return scanner.get_inventory(session_id)
>>>
>>> inventory = asyncio.run(run())
>>> print(f"Found {inventory.summary.total_resources} resources")

Notes
-----
Requires Application Default Credentials, configured via:
- ``gcloud auth application-default login``
- GOOGLE_APPLICATION_CREDENTIALS pointing at a key file
- The attached service account (when running on GCP)

See Also
--------
google-cloud-python : Google Cloud client libraries for Python
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Public API
from gcp_discovery.core.base_scanner import BaseScanner
from gcp_discovery.core.exceptions import CredentialsError, DiscoveryError, RegionError
from gcp_discovery.core.models import (
    DiscoveryConfig,
    InfrastructureInventory,
    RegionSelection,
    ScanResult,
)
from gcp_discovery.core.orchestrator import InfrastructureScanner

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Core classes
    "InfrastructureScanner",
    "BaseScanner",
    "ScanResult",
    "DiscoveryConfig",
    "RegionSelection",
    "InfrastructureInventory",
    # Exceptions
    "DiscoveryError",
    "CredentialsError",
    "RegionError",
]

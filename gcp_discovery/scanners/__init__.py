"""
Service Scanners
================

This module provides scanner implementations for GCP services.

Each scanner enumerates the resources of one service for a
(project, region) context and normalizes them into ``DiscoveredResource``
records with relationships to the resources they touch.

Available Scanners
------------------
ComputeScanner
    Instances, disks and firewall rules.
StorageScanner
    Cloud Storage buckets (global).
GKEScanner
    GKE clusters and node pools.
IAMScanner
    Service accounts, custom roles and IAM bindings (global).
VPCScanner
    Networks, subnetworks and Cloud Routers.

Example
-------
>>> from gcp_discovery.scanners import create_scanner_registry
>>>
>>> registry = create_scanner_registry()
>>> registry.get_service_names()
['Compute', 'Storage', 'GKE', 'IAM', 'VPC']

Adding New Scanners
-------------------
To add a new scanner:

1. Create a new file in this directory (e.g., `dns.py`)
2. Implement a class extending `BaseScanner`
3. Implement ``scan`` and ``get_resource_types``
4. Register it in :func:`create_scanner_registry`

Example template::

    from gcp_discovery.core.base_scanner import BaseScanner

    class DNSScanner(BaseScanner):
        service_name = "DNS"
        is_global = True

        def get_resource_types(self):
            return ["dns.googleapis.com/ManagedZone"]

        async def scan(self, context):
            return await self.gather_sub_scans(
                context, {"listManagedZones": self._list_zones}
            )

See Also
--------
gcp_discovery.core.base_scanner : Base class for all scanners.
"""

from gcp_discovery.core.registry import ScannerRegistry
from gcp_discovery.scanners.compute import ComputeScanner
from gcp_discovery.scanners.gke import GKEScanner
from gcp_discovery.scanners.iam import IAMScanner
from gcp_discovery.scanners.storage import StorageScanner
from gcp_discovery.scanners.vpc import VPCScanner


def create_scanner_registry() -> ScannerRegistry:
    """Registry holding one instance of every built-in scanner."""
    registry = ScannerRegistry()
    registry.register(ComputeScanner())
    registry.register(StorageScanner())
    registry.register(GKEScanner())
    registry.register(IAMScanner())
    registry.register(VPCScanner())
    return registry


__all__ = [
    "ComputeScanner",
    "GKEScanner",
    "IAMScanner",
    "StorageScanner",
    "VPCScanner",
    "create_scanner_registry",
]

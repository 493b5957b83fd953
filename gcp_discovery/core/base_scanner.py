"""
Base Scanner Module
===================

Provides the abstract base class for all service scanners together with
the helper functions they share.

A scanner enumerates the resources of one GCP service for one
(project, region) context. Scanners are registered once and shared, so
they keep no state between calls: everything a call produces travels in
the :class:`~gcp_discovery.core.models.ScanResult` it returns.

Classes
-------
BaseScanner
    Abstract base class for service scanners.

Functions
---------
build_self_link
    Build a Compute API style self link.
service_account_self_link
    Build the self link of a service account.
labels_to_dict
    Normalize SDK label maps.
zone_to_region
    Strip the zone suffix from a zone name.
short_name
    Last path segment of a resource URL.
parse_timestamp
    Parse provider timestamps into aware datetimes.
error_code
    Extract a short error code from an SDK exception.

Example
-------
>>> from gcp_discovery.core.base_scanner import BaseScanner
>>>
>>> class DnsScanner(BaseScanner):
...     service_name = "DNS"
...     is_global = True
...
...     def get_resource_types(self):
...         return ["dns.googleapis.com/ManagedZone"]
...
...     async def scan(self, context):
...         return await self.gather_sub_scans(
...             context, {"listManagedZones": self._list_zones}
...         )

Notes
-----
Sub-resource kinds are fetched concurrently and independently: a failing
sub-fetch becomes one ``ScanError`` and never prevents its siblings from
returning resources. ``scan()`` must not raise for such partial failures.

See Also
--------
ScannerRegistry : Lookup table of scanner instances.
InfrastructureScanner : Orchestrator invoking the scanners.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from google.api_core import exceptions as google_exceptions

from gcp_discovery.core.models import (
    DiscoveredResource,
    ResourceRelationship,
    ScanError,
    ScannerContext,
    ScanResult,
    ScanWarning,
)

# Module logger
logger = logging.getLogger(__name__)

GLOBAL_REGION = "global"
COMPUTE_API = "compute/v1"
IAM_API_ROOT = "https://iam.googleapis.com/v1/"

# Provider type -> Terraform resource type
PROVIDER_TYPE_MAP: Dict[str, str] = {
    "compute.googleapis.com/Instance": "google_compute_instance",
    "compute.googleapis.com/Disk": "google_compute_disk",
    "compute.googleapis.com/Firewall": "google_compute_firewall",
    "compute.googleapis.com/Network": "google_compute_network",
    "compute.googleapis.com/Subnetwork": "google_compute_subnetwork",
    "compute.googleapis.com/Router": "google_compute_router",
    "storage.googleapis.com/Bucket": "google_storage_bucket",
    "container.googleapis.com/Cluster": "google_container_cluster",
    "container.googleapis.com/NodePool": "google_container_node_pool",
    "iam.googleapis.com/ServiceAccount": "google_service_account",
    "iam.googleapis.com/Role": "google_project_iam_custom_role",
    "cloudresourcemanager.googleapis.com/ProjectIamBinding": "google_project_iam_binding",
}

Fetcher = Callable[[ScannerContext, ScanResult], List[DiscoveredResource]]


# =============================================================================
# Helper Functions
# =============================================================================


def build_self_link(
    project: str,
    collection: str,
    name: str,
    zone: Optional[str] = None,
    region: Optional[str] = None,
    api: str = COMPUTE_API,
) -> str:
    """
    Build a self link in the format used by the Compute API.

    Parameters
    ----------
    project : str
        Project id.
    collection : str
        Plural collection name (``instances``, ``networks``...).
    name : str
        Resource name.
    zone, region : str, optional
        Scope of the resource; global when neither is given.

    Example
    -------
    >>> build_self_link("p", "networks", "default")
    'https://www.googleapis.com/compute/v1/projects/p/global/networks/default'
    """
    if zone:
        scope = f"zones/{zone}"
    elif region:
        scope = f"regions/{region}"
    else:
        scope = "global"
    return f"https://www.googleapis.com/{api}/projects/{project}/{scope}/{collection}/{name}"


def service_account_self_link(project: str, email: str) -> str:
    """Self link of a service account, as emitted by the IAM scanner."""
    return f"{IAM_API_ROOT}projects/{project}/serviceAccounts/{email}"


def labels_to_dict(labels: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Convert an SDK label map (proto map or dict) into a plain dict."""
    if not labels:
        return {}
    return {str(key): str(value) for key, value in labels.items()}


def zone_to_region(zone: str) -> str:
    """Extract the region from a zone (``us-central1-a`` -> ``us-central1``)."""
    parts = zone.split("-")
    if len(parts) >= 3:
        return "-".join(parts[:-1])
    return zone


def short_name(url: Optional[str]) -> Optional[str]:
    """Last path segment of a resource URL, ``None`` for empty input."""
    if not url:
        return None
    return url.rstrip("/").rsplit("/", 1)[-1]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a provider timestamp into an aware datetime.

    Accepts RFC 3339 strings (Compute returns them with an offset, GKE with
    ``Z``) and datetimes. Unparseable values yield ``None``.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def error_code(exc: BaseException) -> str:
    """
    Short code for an exception.

    Google API errors yield their HTTP status, exceptions carrying a
    ``code`` attribute yield it, everything else its class name.
    """
    if isinstance(exc, google_exceptions.GoogleAPICallError) and exc.code is not None:
        return str(int(exc.code))
    code = getattr(exc, "code", None)
    if isinstance(code, (str, int)) and code != "":
        return str(code)
    return exc.__class__.__name__


# =============================================================================
# Base Class
# =============================================================================


class BaseScanner(ABC):
    """
    Abstract base class for all service scanners.

    Attributes
    ----------
    service_name : str
        Name the scanner is registered under (``"Compute"``...).
    is_global : bool
        Whether results are independent of the region. The orchestrator
        invokes global scanners for the first region only, but they must
        stay correct if invoked again.

    Methods
    -------
    scan(context)
        Enumerate resources for one project/region (abstract).
    get_resource_types()
        Provider types this scanner can produce (abstract).
    gather_sub_scans(context, fetchers)
        Run independent sub-fetches concurrently and collect their output.
    create_resource(...)
        Build a DiscoveredResource owned by this scanner.
    """

    service_name: str = ""
    is_global: bool = False

    @abstractmethod
    async def scan(self, context: ScannerContext) -> ScanResult:
        """
        Enumerate the service's resources for ``context``.

        Returns
        -------
        ScanResult
            Resources found plus one ``ScanError`` per failed sub-fetch.
        """

    @abstractmethod
    def get_resource_types(self) -> List[str]:
        """Provider types this scanner can emit. Informational only."""

    async def gather_sub_scans(
        self,
        context: ScannerContext,
        fetchers: Dict[str, Fetcher],
    ) -> ScanResult:
        """
        Run sub-resource fetchers concurrently and merge their output.

        Each fetcher is a blocking function calling a ``google-cloud-*``
        client; it runs in a worker thread. Resources are concatenated in
        the declaration order of ``fetchers``.

        Parameters
        ----------
        context : ScannerContext
            Scan context passed to every fetcher.
        fetchers : dict
            Operation name -> ``fetcher(context, result)``. Fetchers may add
            warnings to ``result`` and return their resources.

        Returns
        -------
        ScanResult
            Combined resources, one error per failed operation, warnings.
        """
        result = ScanResult()
        operations = list(fetchers)

        outcomes = await asyncio.gather(
            *(asyncio.to_thread(fetchers[op], context, result) for op in operations),
            return_exceptions=True,
        )

        for operation, outcome in zip(operations, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    f"{self.service_name} {operation} failed in {context.region}: {outcome}"
                )
                result.errors.append(
                    self.make_error(
                        context.region, operation, str(outcome), error_code(outcome)
                    )
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.resources.extend(outcome)

        logger.debug(
            f"{self.service_name} scanner found {len(result.resources)} resources "
            f"in {context.region} ({len(result.errors)} errors)"
        )
        return result

    def create_resource(
        self,
        *,
        resource_id: str,
        self_link: str,
        provider_type: str,
        region: str,
        name: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
        properties: Optional[Dict[str, Any]] = None,
        relationships: Optional[List[ResourceRelationship]] = None,
        created_at: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> DiscoveredResource:
        """Build a resource attributed to this scanner's service."""
        return DiscoveredResource(
            id=str(resource_id),
            self_link=self_link,
            type=PROVIDER_TYPE_MAP.get(provider_type, "unknown"),
            provider_type=provider_type,
            service=self.service_name,
            region=region,
            name=name,
            labels=labels or {},
            properties=properties or {},
            relationships=relationships or [],
            created_at=created_at,
            status=status,
        )

    def make_error(
        self,
        region: str,
        operation: str,
        message: str,
        code: Optional[str] = None,
    ) -> ScanError:
        """Build an error scoped to this scanner."""
        return ScanError(
            service=self.service_name,
            region=region,
            operation=operation,
            message=message,
            code=code,
        )

    def add_warning(
        self,
        result: ScanResult,
        region: str,
        operation: str,
        message: str,
    ) -> None:
        """Attach a warning scoped to this scanner to ``result``."""
        logger.debug(f"{self.service_name} {operation} warning in {region}: {message}")
        result.warnings.append(
            ScanWarning(
                service=self.service_name,
                region=region,
                operation=operation,
                message=message,
            )
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"service_name='{self.service_name}', "
            f"is_global={self.is_global})"
        )

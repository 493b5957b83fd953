"""
Core Discovery Components
=========================

This module provides the foundational components for GCP discovery:

- :class:`InfrastructureScanner` - Runs discovery sessions
- :class:`BaseScanner` - Abstract base class for service scanners
- :class:`ScannerRegistry` - Service name to scanner lookup
- :class:`CredentialManager` - Application Default Credentials checks
- :class:`RegionManager` - Region listing and filtering
- Exception hierarchy for error handling

Classes
-------
InfrastructureScanner
    Session lifecycle, region x service loop, dedup and progress.
BaseScanner
    Abstract base class defining the scanner interface.
ScanResult
    Data class containing the output of one scan.
DiscoveredResource
    One normalized cloud resource.
InfrastructureInventory
    Deduplicated result of a completed session.

Exceptions
----------
DiscoveryError
    Base exception for all discovery errors.
GCPClientError
    Base exception for GCP client errors.
CredentialsError
    Raised when credentials are invalid or missing.
RegionError
    Raised when no region is left to scan.
ScannerError
    Base exception for scanner errors.
ScanTimeoutError
    Raised when a scan exceeds its time limit.

Example
-------
>>> from gcp_discovery.core import DiscoveryConfig, InfrastructureScanner
>>>
>>> scanner = InfrastructureScanner()
>>> session_id = await scanner.start_discovery(DiscoveryConfig(project_id="p"))
>>> await scanner.wait_for_completion(session_id)

See Also
--------
gcp_discovery.scanners : Service scanner implementations.
gcp_discovery.reporters : Output formatters.
"""

from gcp_discovery.core.base_scanner import BaseScanner
from gcp_discovery.core.credentials import CredentialManager
from gcp_discovery.core.exceptions import (
    CredentialsError,
    DiscoveryError,
    GCPClientError,
    RegionError,
    ScannerError,
    ScanTimeoutError,
)
from gcp_discovery.core.inventory import build_summary, deduplicate_resources
from gcp_discovery.core.models import (
    DiscoveredResource,
    DiscoveryConfig,
    DiscoveryProgress,
    DiscoverySession,
    DiscoveryStatus,
    InfrastructureInventory,
    RegionSelection,
    RelationshipKind,
    ResourceRelationship,
    ScanError,
    ScannerContext,
    ScanResult,
    ScanWarning,
)
from gcp_discovery.core.orchestrator import DEFAULT_SERVICES, InfrastructureScanner
from gcp_discovery.core.region_manager import GCPRegion, RegionManager
from gcp_discovery.core.registry import ScannerRegistry

__all__ = [
    # Orchestration
    "InfrastructureScanner",
    "DEFAULT_SERVICES",
    # Scanner base
    "BaseScanner",
    "ScannerRegistry",
    "ScannerContext",
    "ScanResult",
    # Collaborators
    "CredentialManager",
    "RegionManager",
    "GCPRegion",
    # Data model
    "DiscoveredResource",
    "ResourceRelationship",
    "RelationshipKind",
    "ScanError",
    "ScanWarning",
    "DiscoveryConfig",
    "RegionSelection",
    "DiscoveryProgress",
    "DiscoverySession",
    "DiscoveryStatus",
    "InfrastructureInventory",
    # Inventory
    "deduplicate_resources",
    "build_summary",
    # Exceptions - Base
    "DiscoveryError",
    # Exceptions - GCP Client
    "GCPClientError",
    "CredentialsError",
    "RegionError",
    # Exceptions - Scanner
    "ScannerError",
    "ScanTimeoutError",
]

"""
Discovery Data Model
====================

Data classes shared by scanners, the orchestrator and the reporters.

Classes
-------
DiscoveredResource
    One normalized cloud resource.
ResourceRelationship
    Directed edge from a resource to another resource's self link.
ScanError, ScanWarning
    Problems attributable to one (service, region, operation) triple.
DiscoveryProgress
    Mutable progress record of a running session.
DiscoverySession
    One discovery run: config, progress and the eventual inventory.
InfrastructureInventory
    Terminal, deduplicated result of a completed session.

Example
-------
>>> from gcp_discovery.core.models import DiscoveryConfig, RegionSelection
>>>
>>> config = DiscoveryConfig(
...     project_id="my-project",
...     regions=RegionSelection(regions=["us-central1", "europe-west1"]),
...     services=["Compute", "GKE"],
... )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RelationshipKind(str, Enum):
    """Kinds of directed edges between resources."""

    DEPENDS_ON = "depends_on"
    CONTAINS = "contains"
    REFERENCES = "references"
    ATTACHED_TO = "attached_to"


class DiscoveryStatus(str, Enum):
    """Lifecycle states of a discovery session."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Resources
# =============================================================================


@dataclass
class ResourceRelationship:
    """
    Directed edge from the owning resource to another resource.

    The target does not have to be part of the same inventory; a firewall
    may reference a network that was never scanned.
    """

    kind: RelationshipKind
    target_self_link: str
    target_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "target_self_link": self.target_self_link,
            "target_type": self.target_type,
        }


@dataclass
class DiscoveredResource:
    """
    A single resource found by a service scanner.

    Parameters
    ----------
    id : str
        Provider-native identifier.
    self_link : str
        Stable unique locator, used as the deduplication key.
    type : str
        Target IaC type tag (e.g. ``google_compute_instance``).
    provider_type : str
        Provider-native type tag (e.g. ``compute.googleapis.com/Instance``).
    service : str
        Name of the scanner that produced the resource.
    region : str
        Region name, or ``"global"``.
    name : str, optional
        Human readable label.
    labels : dict
        String to string label map.
    properties : dict
        Service specific attribute bag.
    relationships : list of ResourceRelationship
        Outgoing edges, in discovery order.
    created_at : datetime, optional
        Creation time reported by the provider.
    status : str, optional
        Provider status string.
    """

    id: str
    self_link: str
    type: str
    provider_type: str
    service: str
    region: str
    name: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    properties: Dict[str, Any] = field(default_factory=dict)
    relationships: List[ResourceRelationship] = field(default_factory=list)
    created_at: Optional[datetime] = None
    status: Optional[str] = None

    @property
    def identity(self) -> str:
        """Deduplication key: the self link, or ``type:id`` without one."""
        return self.self_link or f"{self.type}:{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "self_link": self.self_link,
            "type": self.type,
            "provider_type": self.provider_type,
            "service": self.service,
            "region": self.region,
            "name": self.name,
            "labels": dict(self.labels),
            "properties": dict(self.properties),
            "relationships": [r.to_dict() for r in self.relationships],
            "created_at": _isoformat(self.created_at),
            "status": self.status,
        }


# =============================================================================
# Errors and Warnings
# =============================================================================


@dataclass
class ScanError:
    """An error scoped to exactly one (service, region, operation) triple."""

    service: str
    region: str
    operation: str
    message: str
    code: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "region": self.region,
            "operation": self.operation,
            "message": self.message,
            "code": self.code,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ScanWarning(ScanError):
    """A non-fatal observation, same shape as :class:`ScanError`."""


# =============================================================================
# Scanner Input / Output
# =============================================================================


@dataclass
class ScannerContext:
    """What a scanner needs to know about one invocation."""

    project_id: str
    region: str
    credentials: Any = field(default=None, repr=False)


@dataclass
class ScanResult:
    """Resources and problems returned by a single ``scan()`` call."""

    resources: List[DiscoveredResource] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


# =============================================================================
# Credentials
# =============================================================================


@dataclass
class GCPCredential:
    """
    Identity that a discovery run executes as.

    ``credentials`` carries the live ``google.auth`` credentials object
    handed to API clients. It is never serialized.
    """

    project_id: str
    service_account_email: Optional[str] = None
    authenticated: bool = False
    credentials: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "service_account_email": self.service_account_email,
            "authenticated": self.authenticated,
        }


@dataclass
class CredentialValidationResult:
    """Outcome of :meth:`CredentialManager.validate_credentials`."""

    valid: bool
    credential: Optional[GCPCredential] = None
    error: Optional[str] = None


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class RegionSelection:
    """
    Which regions to scan.

    Parameters
    ----------
    regions : "all" or list of str
        ``"all"`` resolves through the region manager; a list is used as is.
    exclude_regions : list of str
        Regions removed after resolution.
    """

    regions: Union[str, List[str]] = "all"
    exclude_regions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regions": self.regions if isinstance(self.regions, str) else list(self.regions),
            "exclude_regions": list(self.exclude_regions),
        }


@dataclass
class DiscoveryConfig:
    """
    Parameters of one discovery run.

    Parameters
    ----------
    project_id : str, optional
        Target project. When omitted, the credential manager resolves it.
    regions : RegionSelection
        Region selection, ``"all"`` by default.
    services : list of str, optional
        Services to scan. Empty or missing means the default set.
    exclude_services : list of str, optional
        Services removed from the resolved list.
    """

    project_id: Optional[str] = None
    regions: RegionSelection = field(default_factory=RegionSelection)
    services: Optional[List[str]] = None
    exclude_services: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "regions": self.regions.to_dict(),
            "services": self.services,
            "exclude_services": self.exclude_services,
        }


# =============================================================================
# Progress and Sessions
# =============================================================================


@dataclass
class DiscoveryProgress:
    """
    Mutable progress record owned by the orchestrator.

    Counters only grow during a run, except ``services_scanned`` which is
    reset to 0 at every region boundary.
    """

    status: DiscoveryStatus = DiscoveryStatus.PENDING
    regions_scanned: int = 0
    total_regions: int = 0
    services_scanned: int = 0
    total_services: int = 0
    resources_found: int = 0
    current_region: Optional[str] = None
    current_service: Optional[str] = None
    errors: List[ScanError] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_finished(self) -> bool:
        return self.status in (DiscoveryStatus.COMPLETED, DiscoveryStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "regions_scanned": self.regions_scanned,
            "total_regions": self.total_regions,
            "services_scanned": self.services_scanned,
            "total_services": self.total_services,
            "resources_found": self.resources_found,
            "current_region": self.current_region,
            "current_service": self.current_service,
            "errors": [e.to_dict() for e in self.errors],
            "started_at": self.started_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class InventorySummary:
    """Resource counts grouped by service, region and type."""

    total_resources: int = 0
    resources_by_service: Dict[str, int] = field(default_factory=dict)
    resources_by_region: Dict[str, int] = field(default_factory=dict)
    resources_by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_resources": self.total_resources,
            "resources_by_service": dict(self.resources_by_service),
            "resources_by_region": dict(self.resources_by_region),
            "resources_by_type": dict(self.resources_by_type),
        }


@dataclass
class InventoryMetadata:
    """Bookkeeping about how an inventory was produced."""

    scan_duration_ms: int
    api_call_count: int
    started_at: datetime
    completed_at: datetime
    errors: List[ScanError] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_duration_ms": self.scan_duration_ms,
            "api_call_count": self.api_call_count,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class InfrastructureInventory:
    """
    Terminal artifact of a completed discovery session.

    ``id`` equals the id of the session that produced it.
    """

    id: str
    timestamp: datetime
    project_id: str
    credential: GCPCredential
    regions: List[str]
    summary: InventorySummary
    resources: List[DiscoveredResource]
    metadata: InventoryMetadata
    provider: str = "gcp"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider,
            "project_id": self.project_id,
            "credential": self.credential.to_dict(),
            "regions": list(self.regions),
            "summary": self.summary.to_dict(),
            "resources": [r.to_dict() for r in self.resources],
            "metadata": self.metadata.to_dict(),
        }


class CancellationToken:
    """
    Cooperative cancellation flag handed to a session's run loop.

    The loop checks :attr:`cancelled` once per service iteration; nothing
    in flight is interrupted.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancelled = True
        self.reason = reason

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


@dataclass
class DiscoverySession:
    """
    One discovery run.

    Sessions are owned by the orchestrator's session store. Callers get
    read references and must not mutate them.
    """

    id: str
    config: DiscoveryConfig
    progress: DiscoveryProgress
    inventory: Optional[InfrastructureInventory] = None
    cancel_token: CancellationToken = field(
        default_factory=CancellationToken, repr=False, compare=False
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "config": self.config.to_dict(),
            "progress": self.progress.to_dict(),
            "inventory": self.inventory.to_dict() if self.inventory else None,
        }

"""
Pytest configuration and shared fixtures for testing.
"""

import asyncio
from typing import Callable, Dict, List, Optional

import pytest

from gcp_discovery.core.base_scanner import BaseScanner
from gcp_discovery.core.models import (
    CredentialValidationResult,
    DiscoveredResource,
    GCPCredential,
    RegionSelection,
    ScanError,
    ScannerContext,
    ScanResult,
)
from gcp_discovery.core.orchestrator import InfrastructureScanner
from gcp_discovery.core.registry import ScannerRegistry


def make_resource(
    service: str,
    region: str,
    name: str = "thing",
    self_link: Optional[str] = None,
    resource_type: str = "google_test_thing",
    **fields,
) -> DiscoveredResource:
    """Build a resource with a predictable self link."""
    return DiscoveredResource(
        id=fields.pop("id", f"{service}-{region}-{name}"),
        self_link=(
            self_link if self_link is not None
            else f"https://example.test/{service}/{region}/{name}"
        ),
        type=resource_type,
        provider_type="test.googleapis.com/Thing",
        service=service,
        region=region,
        name=name,
        **fields,
    )


class FakeCredentialManager:
    """Credential collaborator returning a fixed outcome."""

    def __init__(self, valid: bool = True, error: str = "no credentials configured"):
        self.valid = valid
        self.error = error
        self.calls: List[Optional[str]] = []

    async def validate_credentials(self, project_id=None):
        self.calls.append(project_id)
        if not self.valid:
            return CredentialValidationResult(valid=False, error=self.error)
        return CredentialValidationResult(
            valid=True,
            credential=GCPCredential(
                project_id=project_id or "test-project",
                service_account_email="scanner@test-project.iam.gserviceaccount.com",
                authenticated=True,
            ),
        )


class FakeRegionManager:
    """Region collaborator resolving ``"all"`` to a fixed list."""

    def __init__(self, regions: List[str]):
        self.regions = regions

    async def filter_regions(self, selection: RegionSelection, project_id=None):
        names = (
            list(self.regions) if selection.regions == "all"
            else list(selection.regions)
        )
        return [r for r in names if r not in selection.exclude_regions]


class FakeScanner(BaseScanner):
    """
    Scanner returning one resource per region unless told otherwise.

    Parameters
    ----------
    produce : callable, optional
        ``produce(context) -> list of DiscoveredResource``.
    errors : list of ScanError, optional
        Errors returned with every result.
    raises : Exception, optional
        Raised from ``scan`` instead of returning.
    gate : asyncio.Event, optional
        ``scan`` waits for it before returning.
    delay : float
        Seconds ``scan`` sleeps before returning.
    """

    def __init__(
        self,
        service_name: str,
        is_global: bool = False,
        produce: Optional[Callable[[ScannerContext], List[DiscoveredResource]]] = None,
        errors: Optional[List[ScanError]] = None,
        raises: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
        delay: float = 0,
    ):
        self.service_name = service_name
        self.is_global = is_global
        self.produce = produce
        self.errors = errors or []
        self.raises = raises
        self.gate = gate
        self.delay = delay
        self.calls: List[str] = []
        self.started = asyncio.Event()

    def get_resource_types(self):
        return ["test.googleapis.com/Thing"]

    async def scan(self, context):
        self.calls.append(context.region)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.produce is not None:
            resources = self.produce(context)
        else:
            resources = [make_resource(self.service_name, context.region)]
        return ScanResult(resources=resources, errors=list(self.errors))


@pytest.fixture
def credential_manager():
    """Credential collaborator that accepts any project."""
    return FakeCredentialManager()


@pytest.fixture
def region_manager():
    """Region collaborator with two regions."""
    return FakeRegionManager(["us-central1", "us-east1"])


@pytest.fixture
def make_orchestrator(credential_manager, region_manager):
    """Factory building an orchestrator around the given scanners."""

    def _make(
        *scanners: BaseScanner,
        credentials: Optional[FakeCredentialManager] = None,
        regions: Optional[FakeRegionManager] = None,
        scan_timeout: Optional[float] = None,
    ) -> InfrastructureScanner:
        registry = ScannerRegistry()
        for scanner in scanners:
            registry.register(scanner)
        return InfrastructureScanner(
            credential_manager=credentials or credential_manager,
            region_manager=regions or region_manager,
            scanner_registry=registry,
            scan_timeout=scan_timeout,
        )

    return _make


@pytest.fixture
def context():
    """Scanner context for a regional scan."""
    return ScannerContext(project_id="test-project", region="us-central1")


@pytest.fixture
def sample_resources() -> Dict[str, DiscoveredResource]:
    """A network, a subnetwork and an instance referencing both."""
    from gcp_discovery.core.models import RelationshipKind, ResourceRelationship

    network_link = "https://www.googleapis.com/compute/v1/projects/p/global/networks/default"
    subnet_link = (
        "https://www.googleapis.com/compute/v1/projects/p/regions/us-central1/"
        "subnetworks/default"
    )
    return {
        "network": make_resource(
            "VPC", "global", name="default", self_link=network_link,
            resource_type="google_compute_network",
        ),
        "subnetwork": make_resource(
            "VPC", "us-central1", name="default", self_link=subnet_link,
            resource_type="google_compute_subnetwork",
            relationships=[ResourceRelationship(
                RelationshipKind.DEPENDS_ON, network_link, "google_compute_network"
            )],
        ),
        "instance": make_resource(
            "Compute", "us-central1", name="web-1",
            resource_type="google_compute_instance",
            labels={"env": "dev"},
            status="RUNNING",
            relationships=[
                ResourceRelationship(
                    RelationshipKind.REFERENCES, network_link, "google_compute_network"
                ),
                ResourceRelationship(
                    RelationshipKind.REFERENCES, subnet_link, "google_compute_subnetwork"
                ),
            ],
        ),
    }

"""
Discovery Orchestrator Module
=============================

Runs discovery sessions across regions and services.

This module handles:
- Pre-flight validation of credentials and region selection
- Session creation and background execution of the region x service loop
- Aggregation of resources, errors and warnings
- Deduplication and inventory assembly
- Progress reporting, cooperative cancellation and session cleanup

Classes
-------
SessionStore
    In-memory table of sessions owned by one orchestrator.
InfrastructureScanner
    The orchestrator.

Example
-------
>>> from gcp_discovery.core.models import DiscoveryConfig, RegionSelection
>>> from gcp_discovery.core.orchestrator import InfrastructureScanner
>>>
>>> scanner = InfrastructureScanner()
>>> session_id = await scanner.start_discovery(
...     DiscoveryConfig(
...         project_id="my-project",
...         regions=RegionSelection(regions=["us-central1", "us-east1"]),
...     )
... )
>>> progress = await scanner.wait_for_completion(session_id)
>>> inventory = scanner.get_inventory(session_id)
>>> print(f"Found {inventory.summary.total_resources} resources")

Notes
-----
Everything runs on one asyncio event loop. Regions and services are
scanned strictly one after another; only a scanner's own sub-fetches run
concurrently. Cancellation is checked once per service iteration and
never interrupts a scan already in flight.

See Also
--------
BaseScanner : Scanner interface.
ScannerRegistry : Service name -> scanner lookup.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional

from gcp_discovery.core.base_scanner import GLOBAL_REGION, BaseScanner, error_code
from gcp_discovery.core.credentials import CredentialManager
from gcp_discovery.core.exceptions import CredentialsError, RegionError, ScanTimeoutError
from gcp_discovery.core.inventory import build_summary, deduplicate_resources
from gcp_discovery.core.models import (
    DiscoveredResource,
    DiscoveryConfig,
    DiscoveryProgress,
    DiscoverySession,
    DiscoveryStatus,
    GCPCredential,
    InfrastructureInventory,
    InventoryMetadata,
    ScanError,
    ScannerContext,
    ScanResult,
    ScanWarning,
    utcnow,
)
from gcp_discovery.core.region_manager import RegionManager
from gcp_discovery.core.registry import ScannerRegistry

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_SERVICES = ["Compute", "Storage", "GKE", "IAM", "VPC"]
DEFAULT_SESSION_MAX_AGE = timedelta(hours=24)

# Pseudo service/region used for errors of the orchestration itself
DISCOVERY_SERVICE = "discovery"

ProgressCallback = Callable[[DiscoveryProgress], None]


class SessionStore:
    """
    Session table owned by a single orchestrator instance.

    Only the owning orchestrator mutates it, always from the event loop.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, DiscoverySession] = {}

    def add(self, session: DiscoverySession) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Optional[DiscoverySession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[DiscoverySession]:
        return self._sessions.pop(session_id, None)

    def __iter__(self) -> Iterator[DiscoverySession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class InfrastructureScanner:
    """
    Orchestrates discovery across services and regions.

    Parameters
    ----------
    credential_manager : CredentialManager, optional
        Validates credentials before a session is created.
    region_manager : RegionManager, optional
        Resolves region selections.
    scanner_registry : ScannerRegistry, optional
        Scanners by service name. Defaults to the five built-in scanners.
    scan_timeout : float, optional
        Seconds allowed for a single ``scan()`` call. ``None`` (default)
        means no limit; a timed out call is recorded as a ``TIMEOUT`` error
        and the loop moves on.

    Attributes
    ----------
    sessions : SessionStore
        Sessions started by this instance.

    Examples
    --------
    With injected collaborators (as in tests):

    >>> scanner = InfrastructureScanner(
    ...     credential_manager=FakeCredentials(),
    ...     region_manager=FakeRegions(),
    ...     scanner_registry=registry,
    ... )

    Observing progress:

    >>> def on_progress(progress):
    ...     print(progress.current_region, progress.current_service)
    >>> session_id = await scanner.start_discovery(config, on_progress)
    """

    def __init__(
        self,
        credential_manager: Optional[CredentialManager] = None,
        region_manager: Optional[RegionManager] = None,
        scanner_registry: Optional[ScannerRegistry] = None,
        scan_timeout: Optional[float] = None,
    ) -> None:
        if scanner_registry is None:
            from gcp_discovery.scanners import create_scanner_registry

            scanner_registry = create_scanner_registry()

        self.credential_manager = credential_manager or CredentialManager()
        self.region_manager = region_manager or RegionManager()
        self.scanner_registry = scanner_registry
        self.scan_timeout = scan_timeout
        self.sessions = SessionStore()
        self._tasks: Dict[str, asyncio.Task] = {}

        logger.debug(
            f"Initialized InfrastructureScanner with services "
            f"{self.scanner_registry.get_service_names()}"
        )

    # =========================================================================
    # Session Lifecycle
    # =========================================================================

    async def start_discovery(
        self,
        config: DiscoveryConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Validate, create a session and start discovery in the background.

        Returns as soon as the session exists; scanning continues on the
        event loop.

        Parameters
        ----------
        config : DiscoveryConfig
            Project, region selection and service filters.
        on_progress : callable, optional
            Called with the session's ``DiscoveryProgress`` at every update.

        Returns
        -------
        str
            The new session id.

        Raises
        ------
        CredentialsError
            If the credential manager rejects the credentials.
        RegionError
            If the region selection resolves to nothing.
        """
        session_id = str(uuid.uuid4())

        credential_result = await self.credential_manager.validate_credentials(
            config.project_id
        )
        if not credential_result.valid or credential_result.credential is None:
            raise CredentialsError(f"Invalid credentials: {credential_result.error}")
        credential = credential_result.credential

        regions = await self.region_manager.filter_regions(
            config.regions, config.project_id
        )
        if not regions:
            raise RegionError("No valid regions to scan")

        services = self.filter_services(config.services, config.exclude_services)

        session = DiscoverySession(
            id=session_id,
            config=config,
            progress=DiscoveryProgress(
                status=DiscoveryStatus.PENDING,
                total_regions=len(regions),
                total_services=len(services),
            ),
        )
        self.sessions.add(session)

        logger.info(
            f"Starting discovery session {session_id}: {len(regions)} regions, "
            f"services={services}"
        )

        self._tasks[session_id] = asyncio.create_task(
            self._run_session(session, regions, services, credential, on_progress),
            name=f"discovery-{session_id}",
        )
        return session_id

    async def _run_session(
        self,
        session: DiscoverySession,
        regions: List[str],
        services: List[str],
        credential: GCPCredential,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        """Background boundary: no exception escapes past this point."""
        try:
            await self._run_discovery(session, regions, services, credential, on_progress)
        except Exception as e:
            logger.error(f"Discovery session {session.id} failed: {e}")
            if session.progress.status != DiscoveryStatus.FAILED:
                self._fail(session, "runDiscovery", str(e))

    async def _run_discovery(
        self,
        session: DiscoverySession,
        regions: List[str],
        services: List[str],
        credential: GCPCredential,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        """
        The region x service loop.

        Raises
        ------
        Exception
            Anything escaping the loop itself, after the session has been
            marked failed.
        """
        start_time = time.monotonic()
        progress = session.progress
        progress.status = DiscoveryStatus.IN_PROGRESS

        all_resources: List[DiscoveredResource] = []
        errors: List[ScanError] = []
        warnings: List[ScanWarning] = []
        api_call_count = 0

        def update_progress(resources_found: Optional[int] = None) -> None:
            progress.updated_at = utcnow()
            progress.resources_found = (
                len(all_resources) if resources_found is None else resources_found
            )
            if on_progress:
                on_progress(progress)

        try:
            for region_index, region in enumerate(regions):
                progress.current_region = region
                context = ScannerContext(
                    project_id=credential.project_id,
                    region=region,
                    credentials=credential.credentials,
                )

                for service_index, service in enumerate(services):
                    progress.current_service = service
                    update_progress()

                    if session.cancel_token.cancelled:
                        logger.info(f"Discovery session {session.id} cancelled")
                        return

                    scanner = self.scanner_registry.get(service)
                    if scanner is None:
                        logger.debug(f"No scanner found for service {service}")
                    elif scanner.is_global and region_index > 0:
                        logger.debug(f"Skipping global service {service} in {region}")
                    else:
                        try:
                            result = await self._invoke_scanner(scanner, context)
                        except Exception as e:
                            error = ScanError(
                                service=service,
                                region=region,
                                operation="scan",
                                message=str(e),
                                code=error_code(e),
                            )
                            errors.append(error)
                            progress.errors.append(error)
                            logger.warning(f"Failed to scan {service} in {region}: {e}")
                        else:
                            all_resources.extend(result.resources)
                            errors.extend(result.errors)
                            progress.errors.extend(result.errors)
                            warnings.extend(result.warnings)
                            logger.debug(
                                f"Scanned {service} in {region}: "
                                f"{len(result.resources)} resources, "
                                f"{len(result.errors)} errors"
                            )
                            api_call_count += 1

                    progress.services_scanned = service_index + 1
                    update_progress()

                progress.regions_scanned = region_index + 1
                progress.services_scanned = 0
                update_progress()

            # Cancelled during the final scan: the session is already failed
            if session.cancel_token.cancelled:
                return

            unique_resources = deduplicate_resources(all_resources)
            completed_at = utcnow()

            session.inventory = InfrastructureInventory(
                id=session.id,
                timestamp=completed_at,
                project_id=credential.project_id,
                credential=credential,
                regions=list(regions),
                summary=build_summary(unique_resources),
                resources=unique_resources,
                metadata=InventoryMetadata(
                    scan_duration_ms=int((time.monotonic() - start_time) * 1000),
                    api_call_count=api_call_count,
                    started_at=progress.started_at,
                    completed_at=completed_at,
                    errors=errors,
                    warnings=warnings,
                ),
            )
            progress.status = DiscoveryStatus.COMPLETED
            progress.current_region = None
            progress.current_service = None
            update_progress(len(unique_resources))

            logger.info(
                f"Discovery completed: session={session.id}, "
                f"resources={len(unique_resources)}, errors={len(errors)}, "
                f"duration={time.monotonic() - start_time:.1f}s"
            )

        except Exception as e:
            self._fail(session, "runDiscovery", str(e))
            raise

    async def _invoke_scanner(
        self,
        scanner: BaseScanner,
        context: ScannerContext,
    ) -> ScanResult:
        if self.scan_timeout is None:
            return await scanner.scan(context)
        try:
            return await asyncio.wait_for(scanner.scan(context), self.scan_timeout)
        except asyncio.TimeoutError:
            raise ScanTimeoutError(
                f"Scan timed out after {self.scan_timeout} seconds",
                service=scanner.service_name,
                region=context.region,
            )

    def _fail(self, session: DiscoverySession, operation: str, message: str) -> None:
        session.progress.status = DiscoveryStatus.FAILED
        session.progress.errors.append(
            ScanError(
                service=DISCOVERY_SERVICE,
                region=GLOBAL_REGION,
                operation=operation,
                message=message,
            )
        )
        session.progress.updated_at = utcnow()

    # =========================================================================
    # Service Selection
    # =========================================================================

    def filter_services(
        self,
        include: Optional[List[str]] = None,
        exclude: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Resolve the services to scan.

        A non-empty ``include`` keeps only recognised names (registered or
        default), in the given order; otherwise the default set is used.
        ``exclude`` is applied last.
        """
        if include:
            services = [s for s in include if self.is_valid_service(s)]
        else:
            services = list(DEFAULT_SERVICES)

        if exclude:
            excluded = set(exclude)
            services = [s for s in services if s not in excluded]

        return services

    def is_valid_service(self, service: str) -> bool:
        return self.scanner_registry.has(service) or service in DEFAULT_SERVICES

    def get_available_services(self) -> List[str]:
        return self.scanner_registry.get_service_names()

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_session(self, session_id: str) -> Optional[DiscoverySession]:
        return self.sessions.get(session_id)

    def get_progress(self, session_id: str) -> Optional[DiscoveryProgress]:
        session = self.sessions.get(session_id)
        return session.progress if session else None

    def get_inventory(self, session_id: str) -> Optional[InfrastructureInventory]:
        session = self.sessions.get(session_id)
        return session.inventory if session else None

    async def wait_for_completion(self, session_id: str) -> Optional[DiscoveryProgress]:
        """
        Wait until a session's background run has finished.

        Never raises for failures of the run itself; inspect the returned
        progress instead.

        Returns
        -------
        DiscoveryProgress or None
            Final progress, or ``None`` for unknown sessions.
        """
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.wait({task})
        return self.get_progress(session_id)

    # =========================================================================
    # Cancellation and Cleanup
    # =========================================================================

    def cancel_discovery(self, session_id: str) -> bool:
        """
        Cancel a running session.

        Cancellation is cooperative: the run loop stops at its next
        per-service check, the scan in flight is not interrupted.

        Returns
        -------
        bool
            ``True`` if the session was in progress and is now failed.
        """
        session = self.sessions.get(session_id)
        if session is None or session.progress.status != DiscoveryStatus.IN_PROGRESS:
            return False

        session.cancel_token.cancel("Discovery cancelled by user")
        self._fail(session, "cancel", "Discovery cancelled by user")
        logger.info(f"Cancellation requested for session {session_id}")
        return True

    def cleanup_sessions(self, max_age: timedelta = DEFAULT_SESSION_MAX_AGE) -> int:
        """
        Remove sessions started more than ``max_age`` ago.

        A session whose discovery is still running has its task cancelled.

        Returns
        -------
        int
            Number of sessions removed.
        """
        now = utcnow()
        cleaned = 0
        for session in self.sessions:
            if now - session.progress.started_at > max_age:
                self.sessions.remove(session.id)
                task = self._tasks.pop(session.id, None)
                if task is not None and not task.done():
                    task.cancel()
                cleaned += 1

        if cleaned:
            logger.info(f"Cleaned up {cleaned} discovery sessions")
        return cleaned

    def __repr__(self) -> str:
        return (
            f"InfrastructureScanner(services={self.get_available_services()}, "
            f"sessions={len(self.sessions)})"
        )

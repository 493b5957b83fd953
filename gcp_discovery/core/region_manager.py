"""
Region Manager Module
=====================

Lists GCP regions and resolves region selections into concrete lists.

This module handles:
- Listing regions through the Compute API, with a built-in catalogue as
  fallback when the API is unavailable
- Resolving ``"all"`` or explicit selections minus exclusions
- Validating region names and grouping them by geography

Classes
-------
GCPRegion
    A region with its zones.
RegionManager
    Region listing, filtering and validation.

Example
-------
>>> from gcp_discovery.core.models import RegionSelection
>>> from gcp_discovery.core.region_manager import RegionManager
>>>
>>> manager = RegionManager(project_id="my-project")
>>> regions = await manager.filter_regions(
...     RegionSelection(regions="all", exclude_regions=["me-west1"])
... )

Notes
-----
The region list is cached per manager instance after the first successful
lookup (API or fallback). Use :meth:`RegionManager.clear_cache` to force a
refresh.

See Also
--------
InfrastructureScanner : Consumes ``filter_regions``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google.cloud import compute_v1

from gcp_discovery.core.base_scanner import short_name
from gcp_discovery.core.models import RegionSelection

# Module logger
logger = logging.getLogger(__name__)

COMMON_GCP_REGIONS: Dict[str, List[str]] = {
    "us-central1": ["us-central1-a", "us-central1-b", "us-central1-c", "us-central1-f"],
    "us-east1": ["us-east1-b", "us-east1-c", "us-east1-d"],
    "us-east4": ["us-east4-a", "us-east4-b", "us-east4-c"],
    "us-west1": ["us-west1-a", "us-west1-b", "us-west1-c"],
    "us-west2": ["us-west2-a", "us-west2-b", "us-west2-c"],
    "us-west3": ["us-west3-a", "us-west3-b", "us-west3-c"],
    "us-west4": ["us-west4-a", "us-west4-b", "us-west4-c"],
    "us-south1": ["us-south1-a", "us-south1-b", "us-south1-c"],
    "europe-west1": ["europe-west1-b", "europe-west1-c", "europe-west1-d"],
    "europe-west2": ["europe-west2-a", "europe-west2-b", "europe-west2-c"],
    "europe-west3": ["europe-west3-a", "europe-west3-b", "europe-west3-c"],
    "europe-west4": ["europe-west4-a", "europe-west4-b", "europe-west4-c"],
    "europe-west6": ["europe-west6-a", "europe-west6-b", "europe-west6-c"],
    "europe-north1": ["europe-north1-a", "europe-north1-b", "europe-north1-c"],
    "europe-central2": ["europe-central2-a", "europe-central2-b", "europe-central2-c"],
    "asia-east1": ["asia-east1-a", "asia-east1-b", "asia-east1-c"],
    "asia-east2": ["asia-east2-a", "asia-east2-b", "asia-east2-c"],
    "asia-northeast1": ["asia-northeast1-a", "asia-northeast1-b", "asia-northeast1-c"],
    "asia-northeast2": ["asia-northeast2-a", "asia-northeast2-b", "asia-northeast2-c"],
    "asia-northeast3": ["asia-northeast3-a", "asia-northeast3-b", "asia-northeast3-c"],
    "asia-south1": ["asia-south1-a", "asia-south1-b", "asia-south1-c"],
    "asia-south2": ["asia-south2-a", "asia-south2-b", "asia-south2-c"],
    "asia-southeast1": ["asia-southeast1-a", "asia-southeast1-b", "asia-southeast1-c"],
    "asia-southeast2": ["asia-southeast2-a", "asia-southeast2-b", "asia-southeast2-c"],
    "australia-southeast1": [
        "australia-southeast1-a", "australia-southeast1-b", "australia-southeast1-c",
    ],
    "australia-southeast2": [
        "australia-southeast2-a", "australia-southeast2-b", "australia-southeast2-c",
    ],
    "southamerica-east1": [
        "southamerica-east1-a", "southamerica-east1-b", "southamerica-east1-c",
    ],
    "northamerica-northeast1": [
        "northamerica-northeast1-a", "northamerica-northeast1-b", "northamerica-northeast1-c",
    ],
    "me-west1": ["me-west1-a", "me-west1-b", "me-west1-c"],
}

REGION_DISPLAY_NAMES: Dict[str, str] = {
    "us-central1": "Iowa",
    "us-east1": "South Carolina",
    "us-east4": "Northern Virginia",
    "us-west1": "Oregon",
    "us-west2": "Los Angeles",
    "us-west3": "Salt Lake City",
    "us-west4": "Las Vegas",
    "us-south1": "Dallas",
    "europe-west1": "Belgium",
    "europe-west2": "London",
    "europe-west3": "Frankfurt",
    "europe-west4": "Netherlands",
    "europe-west6": "Zurich",
    "europe-north1": "Finland",
    "europe-central2": "Warsaw",
    "asia-east1": "Taiwan",
    "asia-east2": "Hong Kong",
    "asia-northeast1": "Tokyo",
    "asia-northeast2": "Osaka",
    "asia-northeast3": "Seoul",
    "asia-south1": "Mumbai",
    "asia-south2": "Delhi",
    "asia-southeast1": "Singapore",
    "asia-southeast2": "Jakarta",
    "australia-southeast1": "Sydney",
    "australia-southeast2": "Melbourne",
    "southamerica-east1": "Sao Paulo",
    "northamerica-northeast1": "Montreal",
    "me-west1": "Tel Aviv",
}

# Geographic area -> region name prefixes, in display order
AREA_PREFIXES = (
    ("North America", ("us-", "northamerica-")),
    ("Europe", ("europe-",)),
    ("Asia Pacific", ("asia-",)),
    ("South America", ("southamerica-",)),
    ("Middle East", ("me-",)),
    ("Australia", ("australia-",)),
)


@dataclass
class GCPRegion:
    """A GCP region with its zones."""

    region_name: str
    zones: List[str] = field(default_factory=list)
    status: str = "UP"


class RegionManager:
    """
    Lists and filters GCP regions.

    Parameters
    ----------
    project_id : str, optional
        Project used for the API listing. Falls back to the
        GOOGLE_CLOUD_PROJECT / GCLOUD_PROJECT environment variables.
    credentials : google.auth.credentials.Credentials, optional
        Credentials for the Compute client. ``None`` uses ADC.

    Examples
    --------
    Explicit selection:

    >>> manager = RegionManager()
    >>> await manager.filter_regions(RegionSelection(regions=["us-east1"]))
    ['us-east1']

    Grouping for display:

    >>> regions = await manager.list_regions()
    >>> manager.group_regions_by_area(regions)["Europe"][0].region_name
    'europe-west1'
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials: Any = None,
    ) -> None:
        self.project_id = (
            project_id
            or os.environ.get("GOOGLE_CLOUD_PROJECT")
            or os.environ.get("GCLOUD_PROJECT")
            or ""
        )
        self.credentials = credentials
        self._cached_regions: Optional[List[GCPRegion]] = None

        logger.debug(f"Initialized RegionManager (project={self.project_id or 'None'})")

    def _fetch_regions(self, project_id: str) -> List[GCPRegion]:
        """Fetch regions from the Compute API (blocking)."""
        client = compute_v1.RegionsClient(credentials=self.credentials)
        return [
            GCPRegion(
                region_name=region.name,
                zones=[short_name(zone) for zone in region.zones],
                status=region.status or "UP",
            )
            for region in client.list(project=project_id)
        ]

    @staticmethod
    def _default_regions() -> List[GCPRegion]:
        return [
            GCPRegion(region_name=name, zones=list(zones))
            for name, zones in COMMON_GCP_REGIONS.items()
        ]

    async def list_regions(self, project_id: Optional[str] = None) -> List[GCPRegion]:
        """
        List available regions.

        Uses the Compute API when a project is known and falls back to the
        built-in catalogue if the call fails or no project is configured.

        Returns
        -------
        list of GCPRegion
            Available regions.
        """
        if self._cached_regions is not None:
            return self._cached_regions

        effective_project = project_id or self.project_id
        if effective_project:
            try:
                regions = await asyncio.to_thread(self._fetch_regions, effective_project)
                if regions:
                    logger.info(f"Discovered {len(regions)} GCP regions")
                    self._cached_regions = regions
                    return regions
            except Exception as e:
                logger.debug(f"Failed to list regions from API, using defaults: {e}")

        self._cached_regions = self._default_regions()
        return self._cached_regions

    async def filter_regions(
        self,
        selection: RegionSelection,
        project_id: Optional[str] = None,
    ) -> List[str]:
        """
        Resolve a region selection into region names.

        Parameters
        ----------
        selection : RegionSelection
            ``"all"`` or an explicit list, plus exclusions.
        project_id : str, optional
            Project for the API listing when ``"all"`` is requested.

        Returns
        -------
        list of str
            Region names in selection order, exclusions removed.
        """
        if selection.regions == "all":
            regions = await self.list_regions(project_id)
            names = [r.region_name for r in regions]
        else:
            names = list(selection.regions)

        if selection.exclude_regions:
            excluded = set(selection.exclude_regions)
            names = [name for name in names if name not in excluded]

        return names

    async def validate_regions(
        self,
        regions: List[str],
        project_id: Optional[str] = None,
    ) -> Dict[str, List[str]]:
        """
        Split ``regions`` into known and unknown names.

        Returns
        -------
        dict
            ``{"valid": [...], "invalid": [...]}``.
        """
        known = {r.region_name for r in await self.list_regions(project_id)}
        valid = [r for r in regions if r in known]
        invalid = [r for r in regions if r not in known]
        return {"valid": valid, "invalid": invalid}

    def get_region_display_name(self, region_name: str) -> str:
        return REGION_DISPLAY_NAMES.get(region_name, region_name)

    def group_regions_by_area(
        self,
        regions: List[GCPRegion],
    ) -> Dict[str, List[GCPRegion]]:
        """Group regions by geographic area; empty areas are omitted."""
        groups: Dict[str, List[GCPRegion]] = {area: [] for area, _ in AREA_PREFIXES}
        for region in regions:
            for area, prefixes in AREA_PREFIXES:
                if region.region_name.startswith(prefixes):
                    groups[area].append(region)
                    break
        return {area: members for area, members in groups.items() if members}

    async def get_zones(
        self,
        region_name: str,
        project_id: Optional[str] = None,
    ) -> List[str]:
        """Zones of ``region_name``, empty when the region is unknown."""
        for region in await self.list_regions(project_id):
            if region.region_name == region_name:
                return list(region.zones)
        return list(COMMON_GCP_REGIONS.get(region_name, []))

    def clear_cache(self) -> None:
        self._cached_regions = None

    def __repr__(self) -> str:
        return f"RegionManager(project_id={self.project_id!r})"

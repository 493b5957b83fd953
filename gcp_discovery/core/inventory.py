"""
Inventory Assembly
==================

Deduplication and summarization of discovered resources.

Several scanners may observe the same underlying object (a network seen
by both the Compute and VPC scanners, or a global resource listed once
per region). Records sharing an identity are merged into one enriched
record instead of being kept side by side.

Functions
---------
deduplicate_resources
    Fold resources into one record per identity.
merge_resources
    Merge a later observation into an earlier one.
build_summary
    Count resources by service, region and type.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List

from gcp_discovery.core.models import DiscoveredResource, InventorySummary


def merge_resources(
    existing: DiscoveredResource,
    later: DiscoveredResource,
) -> DiscoveredResource:
    """
    Merge ``later`` into ``existing``.

    Relationships are unioned on ``(kind, target_self_link)``, properties
    and labels are shallow-merged with ``later`` winning, and every other
    field is taken from ``later``.
    """
    relationships = list(existing.relationships)
    seen = {(r.kind, r.target_self_link) for r in relationships}
    for relationship in later.relationships:
        key = (relationship.kind, relationship.target_self_link)
        if key not in seen:
            seen.add(key)
            relationships.append(relationship)

    return dataclasses.replace(
        later,
        relationships=relationships,
        properties={**existing.properties, **later.properties},
        labels={**existing.labels, **later.labels},
    )


def deduplicate_resources(
    resources: Iterable[DiscoveredResource],
) -> List[DiscoveredResource]:
    """
    Deduplicate resources by identity, folding left to right.

    The identity is the self link, or ``"{type}:{id}"`` when the self link
    is empty. Output keeps the order in which identities were first seen.

    Example
    -------
    >>> unique = deduplicate_resources(all_resources)
    >>> len({r.identity for r in unique}) == len(unique)
    True
    """
    seen: Dict[str, DiscoveredResource] = {}
    for resource in resources:
        key = resource.identity
        existing = seen.get(key)
        seen[key] = resource if existing is None else merge_resources(existing, resource)
    return list(seen.values())


def build_summary(resources: List[DiscoveredResource]) -> InventorySummary:
    """Count resources by service, region and type."""
    summary = InventorySummary(total_resources=len(resources))
    for resource in resources:
        by_service = summary.resources_by_service
        by_region = summary.resources_by_region
        by_type = summary.resources_by_type
        by_service[resource.service] = by_service.get(resource.service, 0) + 1
        by_region[resource.region] = by_region.get(resource.region, 0) + 1
        by_type[resource.type] = by_type.get(resource.type, 0) + 1
    return summary

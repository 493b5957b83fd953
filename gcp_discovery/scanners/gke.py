"""
GKE Scanner Module
==================

Discovers Google Kubernetes Engine clusters and their node pools.

Classes
-------
GKEScanner
    Scanner for the ``GKE`` service.

Discovery Logic
---------------
Clusters are listed once across all locations (``locations/-``) and kept
when their location, zonal or regional, belongs to the scanned region.
Every node pool becomes a resource of its own:

- cluster ``contains`` node pool
- node pool ``depends_on`` cluster
- cluster ``references`` its network and subnetwork

Notes
-----
Zones the API could not reach are listed in the response's
``missing_zones``; they are reported as warnings, not errors.
"""

from __future__ import annotations

import logging
from typing import List

from google.cloud import container_v1

from gcp_discovery.core.base_scanner import (
    BaseScanner,
    build_self_link,
    labels_to_dict,
    parse_timestamp,
    short_name,
    zone_to_region,
)
from gcp_discovery.core.models import (
    DiscoveredResource,
    RelationshipKind,
    ResourceRelationship,
    ScannerContext,
    ScanResult,
)

# Module logger
logger = logging.getLogger(__name__)

CLUSTER_TYPE = "container.googleapis.com/Cluster"
NODE_POOL_TYPE = "container.googleapis.com/NodePool"
CONTAINER_API_ROOT = "https://container.googleapis.com/v1/"


class GKEScanner(BaseScanner):
    """Scanner for GKE clusters and node pools."""

    service_name = "GKE"
    is_global = False

    def get_resource_types(self) -> List[str]:
        return [CLUSTER_TYPE, NODE_POOL_TYPE]

    async def scan(self, context: ScannerContext) -> ScanResult:
        return await self.gather_sub_scans(context, {"listClusters": self._list_clusters})

    def _list_clusters(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = container_v1.ClusterManagerClient(credentials=context.credentials)
        response = client.list_clusters(
            parent=f"projects/{context.project_id}/locations/-"
        )

        if response.missing_zones:
            self.add_warning(
                result, context.region, "listClusters",
                f"Clusters could not be listed in zones: {', '.join(response.missing_zones)}",
            )

        resources = []
        for cluster in response.clusters:
            if zone_to_region(cluster.location) != context.region:
                continue
            if not cluster.id or not cluster.name:
                self.add_warning(
                    result, context.region, "listClusters",
                    f"Skipping cluster without id or name in {cluster.location}",
                )
                continue
            resources.extend(self._cluster_resources(cluster, context, result))

        return resources

    def _cluster_resources(
        self,
        cluster: container_v1.Cluster,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        """The cluster followed by its node pools."""
        cluster_link = cluster.self_link or (
            f"{CONTAINER_API_ROOT}projects/{context.project_id}"
            f"/locations/{cluster.location}/clusters/{cluster.name}"
        )

        relationships = []
        if cluster.network:
            relationships.append(ResourceRelationship(
                kind=RelationshipKind.REFERENCES,
                target_self_link=build_self_link(
                    context.project_id, "networks", short_name(cluster.network)
                ),
                target_type="google_compute_network",
            ))
        if cluster.subnetwork:
            relationships.append(ResourceRelationship(
                kind=RelationshipKind.REFERENCES,
                target_self_link=build_self_link(
                    context.project_id, "subnetworks", short_name(cluster.subnetwork),
                    region=context.region,
                ),
                target_type="google_compute_subnetwork",
            ))

        pools = []
        for pool in cluster.node_pools:
            if not pool.name:
                self.add_warning(
                    result, context.region, "listClusters",
                    f"Skipping node pool without name in cluster {cluster.name}",
                )
                continue

            pool_link = pool.self_link or f"{cluster_link}/nodePools/{pool.name}"
            relationships.append(ResourceRelationship(
                kind=RelationshipKind.CONTAINS,
                target_self_link=pool_link,
                target_type="google_container_node_pool",
            ))

            autoscaling = None
            if pool.autoscaling.enabled:
                autoscaling = {
                    "min_node_count": pool.autoscaling.min_node_count,
                    "max_node_count": pool.autoscaling.max_node_count,
                }

            pools.append(self.create_resource(
                resource_id=f"{cluster.id}/{pool.name}",
                self_link=pool_link,
                provider_type=NODE_POOL_TYPE,
                region=context.region,
                name=pool.name,
                labels=labels_to_dict(pool.config.labels),
                properties={
                    "cluster": cluster.name,
                    "version": pool.version,
                    "machine_type": pool.config.machine_type,
                    "disk_size_gb": pool.config.disk_size_gb,
                    "service_account": pool.config.service_account or None,
                    "initial_node_count": pool.initial_node_count,
                    "locations": list(pool.locations),
                    "autoscaling": autoscaling,
                },
                relationships=[ResourceRelationship(
                    kind=RelationshipKind.DEPENDS_ON,
                    target_self_link=cluster_link,
                    target_type="google_container_cluster",
                )],
                status=pool.status.name,
            ))

        cluster_resource = self.create_resource(
            resource_id=cluster.id,
            self_link=cluster_link,
            provider_type=CLUSTER_TYPE,
            region=context.region,
            name=cluster.name,
            labels=labels_to_dict(cluster.resource_labels),
            properties={
                "location": cluster.location,
                "network": short_name(cluster.network),
                "subnetwork": short_name(cluster.subnetwork),
                "endpoint": cluster.endpoint,
                "master_version": cluster.current_master_version,
                "node_version": cluster.current_node_version,
                "node_pools": [pool.name for pool in cluster.node_pools if pool.name],
                "autopilot": cluster.autopilot.enabled,
                "private_cluster": cluster.private_cluster_config.enable_private_nodes,
            },
            relationships=relationships,
            created_at=parse_timestamp(cluster.create_time),
            status=cluster.status.name,
        )
        return [cluster_resource, *pools]

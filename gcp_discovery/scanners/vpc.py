"""
VPC Scanner Module
==================

Discovers VPC networks, subnetworks and Cloud Routers.

Classes
-------
VPCScanner
    Scanner for the ``VPC`` service.

Discovery Logic
---------------
1. **Networks** - project-wide list, reported under region ``global``;
   a network ``contains`` its subnetworks and ``references`` its peers
2. **Subnetworks** - listed for the scanned region; ``depends_on`` their
   network
3. **Routers** - listed for the scanned region; ``references`` their
   network, NAT configurations kept as properties

Notes
-----
Networks are global but listed on every regional pass; deduplication
merges the copies.
"""

from __future__ import annotations

import logging
from typing import List

from google.cloud import compute_v1

from gcp_discovery.core.base_scanner import (
    GLOBAL_REGION,
    BaseScanner,
    build_self_link,
    parse_timestamp,
    short_name,
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

NETWORK_TYPE = "compute.googleapis.com/Network"
SUBNETWORK_TYPE = "compute.googleapis.com/Subnetwork"
ROUTER_TYPE = "compute.googleapis.com/Router"


def _network_reference(network: str, kind: RelationshipKind) -> ResourceRelationship:
    return ResourceRelationship(
        kind=kind,
        target_self_link=network,
        target_type="google_compute_network",
    )


class VPCScanner(BaseScanner):
    """
    Scanner for VPC networking resources.

    See Also
    --------
    ComputeScanner : Firewall rules attached to these networks.
    """

    service_name = "VPC"
    is_global = False

    def get_resource_types(self) -> List[str]:
        return [NETWORK_TYPE, SUBNETWORK_TYPE, ROUTER_TYPE]

    async def scan(self, context: ScannerContext) -> ScanResult:
        return await self.gather_sub_scans(
            context,
            {
                "listNetworks": self._list_networks,
                "listSubnetworks": self._list_subnetworks,
                "listRouters": self._list_routers,
            },
        )

    def _list_networks(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.NetworksClient(credentials=context.credentials)
        resources = []

        for network in client.list(project=context.project_id):
            if not network.id or not network.name:
                self.add_warning(
                    result, context.region, "listNetworks",
                    "Skipping network without id or name",
                )
                continue

            relationships = [
                ResourceRelationship(
                    kind=RelationshipKind.CONTAINS,
                    target_self_link=subnetwork,
                    target_type="google_compute_subnetwork",
                )
                for subnetwork in network.subnetworks
            ]
            relationships.extend(
                _network_reference(peering.network, RelationshipKind.REFERENCES)
                for peering in network.peerings
                if peering.network
            )

            resources.append(self.create_resource(
                resource_id=network.id,
                self_link=network.self_link or build_self_link(
                    context.project_id, "networks", network.name
                ),
                provider_type=NETWORK_TYPE,
                region=GLOBAL_REGION,
                name=network.name,
                properties={
                    "description": network.description or None,
                    "auto_create_subnetworks": network.auto_create_subnetworks,
                    "routing_mode": network.routing_config.routing_mode or None,
                    "mtu": network.mtu or None,
                    "subnetworks": [short_name(s) for s in network.subnetworks],
                    "peerings": [
                        {
                            "name": peering.name,
                            "network": short_name(peering.network),
                            "state": peering.state or None,
                        }
                        for peering in network.peerings
                    ],
                },
                relationships=relationships,
                created_at=parse_timestamp(network.creation_timestamp),
            ))

        return resources

    def _list_subnetworks(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.SubnetworksClient(credentials=context.credentials)
        resources = []

        for subnetwork in client.list(project=context.project_id, region=context.region):
            if not subnetwork.id or not subnetwork.name:
                self.add_warning(
                    result, context.region, "listSubnetworks",
                    "Skipping subnetwork without id or name",
                )
                continue

            relationships = []
            if subnetwork.network:
                relationships.append(
                    _network_reference(subnetwork.network, RelationshipKind.DEPENDS_ON)
                )

            resources.append(self.create_resource(
                resource_id=subnetwork.id,
                self_link=subnetwork.self_link or build_self_link(
                    context.project_id, "subnetworks", subnetwork.name,
                    region=context.region,
                ),
                provider_type=SUBNETWORK_TYPE,
                region=context.region,
                name=subnetwork.name,
                properties={
                    "network": short_name(subnetwork.network),
                    "ip_cidr_range": subnetwork.ip_cidr_range,
                    "gateway_address": subnetwork.gateway_address or None,
                    "private_ip_google_access": subnetwork.private_ip_google_access,
                    "purpose": subnetwork.purpose or None,
                    "stack_type": subnetwork.stack_type or None,
                    "secondary_ip_ranges": [
                        {"range_name": r.range_name, "ip_cidr_range": r.ip_cidr_range}
                        for r in subnetwork.secondary_ip_ranges
                    ],
                    "flow_logs": subnetwork.log_config.enable,
                },
                relationships=relationships,
                created_at=parse_timestamp(subnetwork.creation_timestamp),
            ))

        return resources

    def _list_routers(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.RoutersClient(credentials=context.credentials)
        resources = []

        for router in client.list(project=context.project_id, region=context.region):
            if not router.id or not router.name:
                self.add_warning(
                    result, context.region, "listRouters",
                    "Skipping router without id or name",
                )
                continue

            relationships = []
            if router.network:
                relationships.append(
                    _network_reference(router.network, RelationshipKind.REFERENCES)
                )

            resources.append(self.create_resource(
                resource_id=router.id,
                self_link=router.self_link or build_self_link(
                    context.project_id, "routers", router.name, region=context.region
                ),
                provider_type=ROUTER_TYPE,
                region=context.region,
                name=router.name,
                properties={
                    "network": short_name(router.network),
                    "bgp_asn": router.bgp.asn or None,
                    "nats": [
                        {
                            "name": nat.name,
                            "nat_ip_allocate_option": nat.nat_ip_allocate_option or None,
                            "source_subnetwork_ip_ranges_to_nat": (
                                nat.source_subnetwork_ip_ranges_to_nat or None
                            ),
                        }
                        for nat in router.nats
                    ],
                    "interfaces": [interface.name for interface in router.interfaces],
                },
                relationships=relationships,
                created_at=parse_timestamp(router.creation_timestamp),
            ))

        return resources

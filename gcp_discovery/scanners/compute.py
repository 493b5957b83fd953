"""
Compute Scanner Module
======================

Discovers Compute Engine instances, persistent disks and firewall rules.

Classes
-------
ComputeScanner
    Scanner for the ``Compute`` service.

Example
-------
>>> from gcp_discovery.core.models import ScannerContext
>>> from gcp_discovery.scanners import ComputeScanner
>>>
>>> scanner = ComputeScanner()
>>> result = await scanner.scan(
...     ScannerContext(project_id="my-project", region="us-central1")
... )
>>> for resource in result.resources:
...     print(resource.type, resource.name)

Discovery Logic
---------------
1. **Instances** - aggregated list across zones, kept when the zone
   belongs to the scanned region
2. **Disks** - aggregated list across zones, same region filter
3. **Firewalls** - project-wide list, reported under region ``global``

Instances reference their networks, subnetworks and service accounts and
are attached to their disks.

Notes
-----
Firewall rules are global but the scanner is regional, so they are
returned for every region scanned. The orchestrator's deduplication folds
the copies into one record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from google.cloud import compute_v1

from gcp_discovery.core.base_scanner import (
    GLOBAL_REGION,
    BaseScanner,
    build_self_link,
    labels_to_dict,
    parse_timestamp,
    service_account_self_link,
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

INSTANCE_TYPE = "compute.googleapis.com/Instance"
DISK_TYPE = "compute.googleapis.com/Disk"
FIREWALL_TYPE = "compute.googleapis.com/Firewall"


def _zone_in_region(scope: str, region: str) -> bool:
    """Whether an aggregated-list scope key (``zones/x``) lies in ``region``."""
    return scope.startswith("zones/") and zone_to_region(short_name(scope)) == region


def _rules(rules: Any) -> List[Dict[str, Any]]:
    return [
        {"ip_protocol": rule.I_p_protocol, "ports": list(rule.ports)}
        for rule in rules
    ]


class ComputeScanner(BaseScanner):
    """
    Scanner for Compute Engine resources.

    Each sub-kind is listed by its own client, created per call with the
    context's credentials.

    See Also
    --------
    VPCScanner : Networks, subnetworks and routers referenced by instances.
    """

    service_name = "Compute"
    is_global = False

    def get_resource_types(self) -> List[str]:
        return [INSTANCE_TYPE, DISK_TYPE, FIREWALL_TYPE]

    async def scan(self, context: ScannerContext) -> ScanResult:
        return await self.gather_sub_scans(
            context,
            {
                "listInstances": self._list_instances,
                "listDisks": self._list_disks,
                "listFirewalls": self._list_firewalls,
            },
        )

    # =========================================================================
    # Instances
    # =========================================================================

    def _list_instances(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.InstancesClient(credentials=context.credentials)
        resources = []

        for scope, scoped_list in client.aggregated_list(project=context.project_id):
            if not _zone_in_region(scope, context.region):
                continue
            zone = short_name(scope)

            for instance in scoped_list.instances:
                if not instance.id or not instance.name:
                    self.add_warning(
                        result, context.region, "listInstances",
                        f"Skipping instance without id or name in {zone}",
                    )
                    continue
                resources.append(self._instance_resource(instance, zone, context))

        return resources

    def _instance_resource(
        self,
        instance: compute_v1.Instance,
        zone: str,
        context: ScannerContext,
    ) -> DiscoveredResource:
        relationships = []
        for interface in instance.network_interfaces:
            if interface.network:
                relationships.append(ResourceRelationship(
                    kind=RelationshipKind.REFERENCES,
                    target_self_link=interface.network,
                    target_type="google_compute_network",
                ))
            if interface.subnetwork:
                relationships.append(ResourceRelationship(
                    kind=RelationshipKind.REFERENCES,
                    target_self_link=interface.subnetwork,
                    target_type="google_compute_subnetwork",
                ))
        for disk in instance.disks:
            if disk.source:
                relationships.append(ResourceRelationship(
                    kind=RelationshipKind.ATTACHED_TO,
                    target_self_link=disk.source,
                    target_type="google_compute_disk",
                ))
        for account in instance.service_accounts:
            if account.email:
                relationships.append(ResourceRelationship(
                    kind=RelationshipKind.REFERENCES,
                    target_self_link=service_account_self_link(
                        context.project_id, account.email
                    ),
                    target_type="google_service_account",
                ))

        scheduling = None
        if "scheduling" in instance:
            scheduling = {
                "preemptible": instance.scheduling.preemptible,
                "automatic_restart": instance.scheduling.automatic_restart,
                "on_host_maintenance": instance.scheduling.on_host_maintenance,
            }

        return self.create_resource(
            resource_id=instance.id,
            self_link=instance.self_link or build_self_link(
                context.project_id, "instances", instance.name, zone=zone
            ),
            provider_type=INSTANCE_TYPE,
            region=context.region,
            name=instance.name,
            labels=labels_to_dict(instance.labels),
            properties={
                "machine_type": short_name(instance.machine_type),
                "zone": zone,
                "network_interfaces": [
                    {
                        "network": short_name(ni.network),
                        "subnetwork": short_name(ni.subnetwork),
                        "network_ip": ni.network_i_p,
                    }
                    for ni in instance.network_interfaces
                ],
                "disks": [
                    {
                        "source": d.source,
                        "boot": d.boot,
                        "auto_delete": d.auto_delete,
                        "type": d.type_,
                    }
                    for d in instance.disks
                ],
                "service_accounts": [
                    {"email": sa.email, "scopes": list(sa.scopes)}
                    for sa in instance.service_accounts
                ],
                "tags": list(instance.tags.items),
                "metadata": {item.key: item.value for item in instance.metadata.items},
                "can_ip_forward": instance.can_ip_forward,
                "scheduling": scheduling,
            },
            relationships=relationships,
            created_at=parse_timestamp(instance.creation_timestamp),
            status=instance.status or None,
        )

    # =========================================================================
    # Disks
    # =========================================================================

    def _list_disks(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.DisksClient(credentials=context.credentials)
        resources = []

        for scope, scoped_list in client.aggregated_list(project=context.project_id):
            if not _zone_in_region(scope, context.region):
                continue
            zone = short_name(scope)

            for disk in scoped_list.disks:
                if not disk.id or not disk.name:
                    self.add_warning(
                        result, context.region, "listDisks",
                        f"Skipping disk without id or name in {zone}",
                    )
                    continue

                resources.append(self.create_resource(
                    resource_id=disk.id,
                    self_link=disk.self_link or build_self_link(
                        context.project_id, "disks", disk.name, zone=zone
                    ),
                    provider_type=DISK_TYPE,
                    region=context.region,
                    name=disk.name,
                    labels=labels_to_dict(disk.labels),
                    properties={
                        "zone": zone,
                        "size_gb": disk.size_gb,
                        "type": short_name(disk.type_),
                        "source_image": disk.source_image or None,
                        "source_snapshot": disk.source_snapshot or None,
                        "users": list(disk.users),
                        "physical_block_size_bytes": disk.physical_block_size_bytes,
                        "provisioned_iops": disk.provisioned_iops,
                    },
                    created_at=parse_timestamp(disk.creation_timestamp),
                    status=disk.status or None,
                ))

        return resources

    # =========================================================================
    # Firewalls
    # =========================================================================

    def _list_firewalls(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = compute_v1.FirewallsClient(credentials=context.credentials)
        resources = []

        for firewall in client.list(project=context.project_id):
            if not firewall.id or not firewall.name:
                self.add_warning(
                    result, context.region, "listFirewalls",
                    "Skipping firewall without id or name",
                )
                continue

            relationships = []
            if firewall.network:
                relationships.append(ResourceRelationship(
                    kind=RelationshipKind.REFERENCES,
                    target_self_link=firewall.network,
                    target_type="google_compute_network",
                ))

            resources.append(self.create_resource(
                resource_id=firewall.id,
                self_link=firewall.self_link or build_self_link(
                    context.project_id, "firewalls", firewall.name
                ),
                provider_type=FIREWALL_TYPE,
                region=GLOBAL_REGION,
                name=firewall.name,
                properties={
                    "network": short_name(firewall.network),
                    "direction": firewall.direction or None,
                    "priority": firewall.priority,
                    "source_ranges": list(firewall.source_ranges),
                    "destination_ranges": list(firewall.destination_ranges),
                    "source_tags": list(firewall.source_tags),
                    "target_tags": list(firewall.target_tags),
                    "source_service_accounts": list(firewall.source_service_accounts),
                    "target_service_accounts": list(firewall.target_service_accounts),
                    "allowed": _rules(firewall.allowed),
                    "denied": _rules(firewall.denied),
                    "disabled": firewall.disabled,
                    "log_enabled": firewall.log_config.enable,
                },
                relationships=relationships,
                created_at=parse_timestamp(firewall.creation_timestamp),
            ))

        return resources

"""
Tests for the service scanners.

Client classes are patched; they return real SDK message objects so the
field access in the scanners is exercised as it is against the API.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from google.api_core import exceptions as google_exceptions
from google.cloud import compute_v1, container_v1, iam_admin_v1, storage
from google.iam.v1 import policy_pb2
from google.type import expr_pb2

from gcp_discovery.core.models import RelationshipKind
from gcp_discovery.scanners import (
    ComputeScanner,
    GKEScanner,
    IAMScanner,
    StorageScanner,
    VPCScanner,
)

BASE = "https://www.googleapis.com/compute/v1/projects/test-project"
NETWORK = f"{BASE}/global/networks/default"
SUBNETWORK = f"{BASE}/regions/us-central1/subnetworks/default"
DISK = f"{BASE}/zones/us-central1-a/disks/web-1"
SA_EMAIL = "app@test-project.iam.gserviceaccount.com"
SA_LINK = f"https://iam.googleapis.com/v1/projects/test-project/serviceAccounts/{SA_EMAIL}"


def edges(resource):
    return {(r.kind, r.target_self_link) for r in resource.relationships}


def by_type(resources, resource_type):
    return [r for r in resources if r.type == resource_type]


# =============================================================================
# Compute
# =============================================================================


def make_instance(**overrides):
    fields = dict(
        id=123,
        name="web-1",
        self_link=f"{BASE}/zones/us-central1-a/instances/web-1",
        machine_type=f"{BASE}/zones/us-central1-a/machineTypes/e2-small",
        status="RUNNING",
        creation_timestamp="2024-01-15T02:30:00.000-08:00",
        labels={"env": "dev"},
        network_interfaces=[compute_v1.NetworkInterface(
            network=NETWORK, subnetwork=SUBNETWORK, network_i_p="10.128.0.2",
        )],
        disks=[compute_v1.AttachedDisk(
            source=DISK, boot=True, auto_delete=True, type_="PERSISTENT",
        )],
        service_accounts=[compute_v1.ServiceAccount(
            email=SA_EMAIL, scopes=["https://www.googleapis.com/auth/cloud-platform"],
        )],
        tags=compute_v1.Tags(items=["web"]),
        scheduling=compute_v1.Scheduling(
            preemptible=False, automatic_restart=True, on_host_maintenance="MIGRATE",
        ),
    )
    fields.update(overrides)
    return compute_v1.Instance(**fields)


@pytest.fixture
def compute_clients():
    """Patched Compute clients with one instance, one disk and one firewall."""
    with patch("gcp_discovery.scanners.compute.compute_v1.InstancesClient") as instances, \
            patch("gcp_discovery.scanners.compute.compute_v1.DisksClient") as disks, \
            patch("gcp_discovery.scanners.compute.compute_v1.FirewallsClient") as firewalls:
        instances.return_value.aggregated_list.return_value = [
            ("zones/us-central1-a", compute_v1.InstancesScopedList(
                instances=[make_instance()]
            )),
            ("zones/us-east1-b", compute_v1.InstancesScopedList(
                instances=[make_instance(id=456, name="far-away", self_link="")]
            )),
        ]
        disks.return_value.aggregated_list.return_value = [
            ("zones/us-central1-a", compute_v1.DisksScopedList(disks=[compute_v1.Disk(
                id=9, name="web-1", self_link=DISK, size_gb=10,
                type_=f"{BASE}/zones/us-central1-a/diskTypes/pd-balanced",
                users=[f"{BASE}/zones/us-central1-a/instances/web-1"],
                status="READY",
            )])),
        ]
        firewalls.return_value.list.return_value = [compute_v1.Firewall(
            id=7, name="allow-ssh", network=NETWORK, direction="INGRESS", priority=1000,
            source_ranges=["0.0.0.0/0"],
            allowed=[compute_v1.Allowed(I_p_protocol="tcp", ports=["22"])],
        )]
        yield {"instances": instances, "disks": disks, "firewalls": firewalls}


class TestComputeScanner:
    """Tests for ComputeScanner."""

    @pytest.mark.asyncio
    async def test_scan_region(self, compute_clients, context):
        """Test instances, disks and firewalls for one region."""
        result = await ComputeScanner().scan(context)

        assert result.errors == []
        assert [r.type for r in result.resources] == [
            "google_compute_instance", "google_compute_disk", "google_compute_firewall",
        ]
        assert all(r.service == "Compute" for r in result.resources)

    @pytest.mark.asyncio
    async def test_instance_fields(self, compute_clients, context):
        """Test instance normalization and relationships."""
        result = await ComputeScanner().scan(context)
        (instance,) = by_type(result.resources, "google_compute_instance")

        assert instance.id == "123"
        assert instance.name == "web-1"
        assert instance.region == "us-central1"
        assert instance.status == "RUNNING"
        assert instance.labels == {"env": "dev"}
        assert instance.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert instance.properties["machine_type"] == "e2-small"
        assert instance.properties["zone"] == "us-central1-a"
        assert instance.properties["tags"] == ["web"]
        assert instance.properties["scheduling"]["automatic_restart"] is True
        assert edges(instance) == {
            (RelationshipKind.REFERENCES, NETWORK),
            (RelationshipKind.REFERENCES, SUBNETWORK),
            (RelationshipKind.ATTACHED_TO, DISK),
            (RelationshipKind.REFERENCES, SA_LINK),
        }

    @pytest.mark.asyncio
    async def test_other_region_filtered(self, compute_clients, context):
        """Test that instances outside the scanned region are dropped."""
        result = await ComputeScanner().scan(context)
        assert "far-away" not in [r.name for r in result.resources]

    @pytest.mark.asyncio
    async def test_firewall_is_global(self, compute_clients, context):
        """Test firewall normalization."""
        result = await ComputeScanner().scan(context)
        (firewall,) = by_type(result.resources, "google_compute_firewall")

        assert firewall.region == "global"
        assert firewall.properties["allowed"] == [{"ip_protocol": "tcp", "ports": ["22"]}]
        assert firewall.properties["log_enabled"] is False
        assert edges(firewall) == {(RelationshipKind.REFERENCES, NETWORK)}
        assert firewall.self_link == f"{BASE}/global/firewalls/allow-ssh"

    @pytest.mark.asyncio
    async def test_malformed_instance_becomes_warning(self, compute_clients, context):
        """Test that entries without id or name are skipped with a warning."""
        compute_clients["instances"].return_value.aggregated_list.return_value = [
            ("zones/us-central1-b", compute_v1.InstancesScopedList(
                instances=[compute_v1.Instance(name="no-id")]
            )),
        ]

        result = await ComputeScanner().scan(context)

        assert by_type(result.resources, "google_compute_instance") == []
        assert len(result.warnings) == 1
        assert result.warnings[0].operation == "listInstances"
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_failed_sub_fetch_isolated(self, compute_clients, context):
        """Test that a failing disk listing leaves the other kinds intact."""
        compute_clients["disks"].return_value.aggregated_list.side_effect = (
            google_exceptions.Forbidden("compute.disks.list denied")
        )

        result = await ComputeScanner().scan(context)

        assert [r.type for r in result.resources] == [
            "google_compute_instance", "google_compute_firewall",
        ]
        assert len(result.errors) == 1
        assert result.errors[0].operation == "listDisks"
        assert result.errors[0].code == "403"


# =============================================================================
# Storage
# =============================================================================


class TestStorageScanner:
    """Tests for StorageScanner."""

    @pytest.mark.asyncio
    async def test_list_buckets(self, context):
        """Test bucket normalization."""
        bucket = storage.Bucket(None, name="logs-bucket")
        bucket._set_properties({
            "name": "logs-bucket",
            "id": "logs-bucket",
            "location": "US-CENTRAL1",
            "locationType": "region",
            "storageClass": "STANDARD",
            "labels": {"team": "ops"},
            "versioning": {"enabled": True},
            "iamConfiguration": {
                "uniformBucketLevelAccess": {"enabled": True},
                "publicAccessPrevention": "enforced",
            },
            "timeCreated": "2024-01-15T10:30:00.000Z",
        })

        with patch("gcp_discovery.scanners.storage.storage.Client") as client_cls:
            client_cls.return_value.list_buckets.return_value = [bucket]
            result = await StorageScanner().scan(context)

        (resource,) = result.resources
        assert resource.type == "google_storage_bucket"
        assert resource.region == "us-central1"
        assert resource.self_link == "https://www.googleapis.com/storage/v1/b/logs-bucket"
        assert resource.labels == {"team": "ops"}
        assert resource.properties["versioning_enabled"] is True
        assert resource.properties["uniform_bucket_level_access"] is True
        assert resource.properties["public_access_prevention"] == "enforced"
        assert resource.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        client_cls.assert_called_once_with(project="test-project", credentials=None)

    @pytest.mark.asyncio
    async def test_listing_failure(self, context):
        """Test that a failed listing becomes one error."""
        with patch("gcp_discovery.scanners.storage.storage.Client") as client_cls:
            client_cls.return_value.list_buckets.side_effect = (
                google_exceptions.PermissionDenied("no access")
            )
            result = await StorageScanner().scan(context)

        assert result.resources == []
        assert [(e.operation, e.code) for e in result.errors] == [("listBuckets", "403")]


# =============================================================================
# GKE
# =============================================================================


CLUSTER_LINK = (
    "https://container.googleapis.com/v1/projects/test-project/"
    "locations/us-central1/clusters/main"
)


def make_cluster(**overrides):
    fields = dict(
        id="abc123",
        name="main",
        location="us-central1",
        self_link=CLUSTER_LINK,
        network="default",
        subnetwork="default",
        status=container_v1.Cluster.Status.RUNNING,
        resource_labels={"env": "prod"},
        node_pools=[container_v1.NodePool(
            name="pool-1",
            status=container_v1.NodePool.Status.RUNNING,
            config=container_v1.NodeConfig(machine_type="e2-medium"),
            autoscaling=container_v1.NodePoolAutoscaling(
                enabled=True, min_node_count=1, max_node_count=3,
            ),
        )],
    )
    fields.update(overrides)
    return container_v1.Cluster(**fields)


class TestGKEScanner:
    """Tests for GKEScanner."""

    @pytest.mark.asyncio
    async def test_cluster_and_node_pools(self, context):
        """Test clusters, their pools and the edges between them."""
        response = container_v1.ListClustersResponse(
            clusters=[
                make_cluster(),
                make_cluster(id="zzz", name="tokyo", location="asia-northeast1-a"),
            ],
            missing_zones=["asia-east1-a"],
        )
        with patch(
            "gcp_discovery.scanners.gke.container_v1.ClusterManagerClient"
        ) as client_cls:
            client_cls.return_value.list_clusters.return_value = response
            result = await GKEScanner().scan(context)

        client_cls.return_value.list_clusters.assert_called_once_with(
            parent="projects/test-project/locations/-"
        )
        cluster, pool = result.resources
        pool_link = f"{CLUSTER_LINK}/nodePools/pool-1"

        assert cluster.type == "google_container_cluster"
        assert cluster.status == "RUNNING"
        assert cluster.labels == {"env": "prod"}
        assert edges(cluster) == {
            (RelationshipKind.REFERENCES, NETWORK),
            (RelationshipKind.REFERENCES, SUBNETWORK),
            (RelationshipKind.CONTAINS, pool_link),
        }

        assert pool.type == "google_container_node_pool"
        assert pool.id == "abc123/pool-1"
        assert pool.self_link == pool_link
        assert pool.properties["autoscaling"] == {"min_node_count": 1, "max_node_count": 3}
        assert edges(pool) == {(RelationshipKind.DEPENDS_ON, CLUSTER_LINK)}

        assert len(result.warnings) == 1
        assert "asia-east1-a" in result.warnings[0].message

    @pytest.mark.asyncio
    async def test_zonal_cluster_matches_region(self, context):
        """Test that zonal clusters are reported under their region."""
        response = container_v1.ListClustersResponse(
            clusters=[make_cluster(location="us-central1-c", self_link="", node_pools=[])],
        )
        with patch(
            "gcp_discovery.scanners.gke.container_v1.ClusterManagerClient"
        ) as client_cls:
            client_cls.return_value.list_clusters.return_value = response
            result = await GKEScanner().scan(context)

        (cluster,) = result.resources
        assert cluster.region == "us-central1"
        assert cluster.self_link.endswith("/locations/us-central1-c/clusters/main")


# =============================================================================
# IAM
# =============================================================================


@pytest.fixture
def iam_clients():
    """Patched IAM and Resource Manager clients."""
    with patch("gcp_discovery.scanners.iam.iam_admin_v1.IAMClient") as iam, \
            patch("gcp_discovery.scanners.iam.resourcemanager_v3.ProjectsClient") as projects:
        iam.return_value.list_service_accounts.return_value = [
            iam_admin_v1.ServiceAccount(
                unique_id="1001", email=SA_EMAIL, display_name="App", disabled=False,
            ),
            iam_admin_v1.ServiceAccount(unique_id="1002", email="", display_name="Broken"),
        ]
        iam.return_value.list_roles.return_value = [
            iam_admin_v1.Role(
                name="projects/test-project/roles/auditor",
                title="Auditor",
                included_permissions=["compute.instances.list"],
                stage=iam_admin_v1.Role.RoleLaunchStage.GA,
            ),
            iam_admin_v1.Role(
                name="projects/test-project/roles/old", title="Old", deleted=True,
            ),
        ]
        projects.return_value.get_iam_policy.return_value = policy_pb2.Policy(bindings=[
            policy_pb2.Binding(
                role="roles/viewer",
                members=[f"serviceAccount:{SA_EMAIL}", "user:alice@example.com"],
            ),
            policy_pb2.Binding(
                role="roles/editor",
                members=["group:ops@example.com"],
                condition=expr_pb2.Expr(title="business-hours", expression="true"),
            ),
        ])
        yield {"iam": iam, "projects": projects}


class TestIAMScanner:
    """Tests for IAMScanner."""

    @pytest.mark.asyncio
    async def test_service_accounts(self, iam_clients, context):
        """Test service accounts and the malformed-entry warning."""
        result = await IAMScanner().scan(context)
        (account,) = by_type(result.resources, "google_service_account")

        assert account.id == "1001"
        assert account.self_link == SA_LINK
        assert account.region == "global"
        assert account.status == "ENABLED"
        assert [w.operation for w in result.warnings] == ["listServiceAccounts"]

    @pytest.mark.asyncio
    async def test_custom_roles(self, iam_clients, context):
        """Test that deleted roles are skipped and the full view is requested."""
        result = await IAMScanner().scan(context)
        (role,) = by_type(result.resources, "google_project_iam_custom_role")

        assert role.name == "Auditor"
        assert role.status == "GA"
        assert role.properties["permissions"] == ["compute.instances.list"]
        request = iam_clients["iam"].return_value.list_roles.call_args.kwargs["request"]
        assert request.view == iam_admin_v1.RoleView.FULL

    @pytest.mark.asyncio
    async def test_policy_bindings(self, iam_clients, context):
        """Test one resource per binding with service account edges."""
        result = await IAMScanner().scan(context)
        viewer, editor = by_type(result.resources, "google_project_iam_binding")

        assert viewer.id == "test-project/roles/viewer"
        assert edges(viewer) == {(RelationshipKind.REFERENCES, SA_LINK)}
        assert editor.id == "test-project/roles/editor#business-hours"
        assert editor.properties["condition"]["title"] == "business-hours"
        assert editor.relationships == []

    @pytest.mark.asyncio
    async def test_policy_failure_isolated(self, iam_clients, context):
        """Test that a failed policy read keeps accounts and roles."""
        iam_clients["projects"].return_value.get_iam_policy.side_effect = (
            google_exceptions.PermissionDenied("no getIamPolicy")
        )

        result = await IAMScanner().scan(context)

        assert [e.operation for e in result.errors] == ["getIamPolicy"]
        assert len(result.resources) == 2


# =============================================================================
# VPC
# =============================================================================


@pytest.fixture
def vpc_clients():
    """Patched networking clients."""
    with patch("gcp_discovery.scanners.vpc.compute_v1.NetworksClient") as networks, \
            patch("gcp_discovery.scanners.vpc.compute_v1.SubnetworksClient") as subnets, \
            patch("gcp_discovery.scanners.vpc.compute_v1.RoutersClient") as routers:
        networks.return_value.list.return_value = [compute_v1.Network(
            id=1, name="default", self_link=NETWORK,
            subnetworks=[SUBNETWORK],
            peerings=[compute_v1.NetworkPeering(
                name="to-shared", network=f"{BASE}/global/networks/shared", state="ACTIVE",
            )],
            auto_create_subnetworks=True,
            routing_config=compute_v1.NetworkRoutingConfig(routing_mode="REGIONAL"),
        )]
        subnets.return_value.list.return_value = [compute_v1.Subnetwork(
            id=2, name="default", network=NETWORK, ip_cidr_range="10.128.0.0/20",
        )]
        routers.return_value.list.return_value = [compute_v1.Router(
            id=3, name="nat-router", network=NETWORK,
            bgp=compute_v1.RouterBgp(asn=64514),
            nats=[compute_v1.RouterNat(name="nat", nat_ip_allocate_option="AUTO_ONLY")],
        )]
        yield {"networks": networks, "subnets": subnets, "routers": routers}


class TestVPCScanner:
    """Tests for VPCScanner."""

    @pytest.mark.asyncio
    async def test_networks_subnets_routers(self, vpc_clients, context):
        """Test the networking resources and their edges."""
        result = await VPCScanner().scan(context)
        network, subnetwork, router = result.resources

        assert network.region == "global"
        assert network.properties["routing_mode"] == "REGIONAL"
        assert edges(network) == {
            (RelationshipKind.CONTAINS, SUBNETWORK),
            (RelationshipKind.REFERENCES, f"{BASE}/global/networks/shared"),
        }

        assert subnetwork.region == "us-central1"
        assert subnetwork.self_link == SUBNETWORK
        assert edges(subnetwork) == {(RelationshipKind.DEPENDS_ON, NETWORK)}

        assert router.properties["bgp_asn"] == 64514
        assert router.properties["nats"][0]["name"] == "nat"
        assert edges(router) == {(RelationshipKind.REFERENCES, NETWORK)}

        vpc_clients["subnets"].return_value.list.assert_called_once_with(
            project="test-project", region="us-central1"
        )

    @pytest.mark.asyncio
    async def test_router_failure_isolated(self, vpc_clients, context):
        """Test that a failing router listing keeps networks and subnetworks."""
        vpc_clients["routers"].return_value.list.side_effect = (
            google_exceptions.ServiceUnavailable("backend error")
        )

        result = await VPCScanner().scan(context)

        assert [r.type for r in result.resources] == [
            "google_compute_network", "google_compute_subnetwork",
        ]
        assert [(e.operation, e.code) for e in result.errors] == [("listRouters", "503")]

"""
IAM Scanner Module
==================

Discovers service accounts, custom roles and project IAM bindings.

Classes
-------
IAMScanner
    Scanner for the ``IAM`` service.

Discovery Logic
---------------
1. **Service accounts** - ``IAMClient.list_service_accounts``
2. **Custom roles** - ``IAMClient.list_roles`` on the project, full view
3. **Policy bindings** - ``ProjectsClient.get_iam_policy``; one resource
   per binding, referencing the service accounts among its members

All IAM resources are project-level and reported under region ``global``.
"""

from __future__ import annotations

import logging
from typing import List

from google.cloud import iam_admin_v1, resourcemanager_v3

from gcp_discovery.core.base_scanner import (
    GLOBAL_REGION,
    IAM_API_ROOT,
    BaseScanner,
    service_account_self_link,
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

SERVICE_ACCOUNT_TYPE = "iam.googleapis.com/ServiceAccount"
ROLE_TYPE = "iam.googleapis.com/Role"
BINDING_TYPE = "cloudresourcemanager.googleapis.com/ProjectIamBinding"
RESOURCE_MANAGER_API_ROOT = "https://cloudresourcemanager.googleapis.com/v3/"
SERVICE_ACCOUNT_PREFIX = "serviceAccount:"


class IAMScanner(BaseScanner):
    """Scanner for project-level IAM resources."""

    service_name = "IAM"
    is_global = True

    def get_resource_types(self) -> List[str]:
        return [SERVICE_ACCOUNT_TYPE, ROLE_TYPE, BINDING_TYPE]

    async def scan(self, context: ScannerContext) -> ScanResult:
        return await self.gather_sub_scans(
            context,
            {
                "listServiceAccounts": self._list_service_accounts,
                "listCustomRoles": self._list_custom_roles,
                "getIamPolicy": self._get_iam_policy,
            },
        )

    def _list_service_accounts(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = iam_admin_v1.IAMClient(credentials=context.credentials)
        resources = []

        for account in client.list_service_accounts(
            request={"name": f"projects/{context.project_id}"}
        ):
            if not account.unique_id or not account.email:
                self.add_warning(
                    result, context.region, "listServiceAccounts",
                    "Skipping service account without id or email",
                )
                continue

            resources.append(self.create_resource(
                resource_id=account.unique_id,
                self_link=service_account_self_link(context.project_id, account.email),
                provider_type=SERVICE_ACCOUNT_TYPE,
                region=GLOBAL_REGION,
                name=account.email,
                properties={
                    "email": account.email,
                    "display_name": account.display_name or None,
                    "description": account.description or None,
                    "disabled": account.disabled,
                    "oauth2_client_id": account.oauth2_client_id or None,
                },
                status="DISABLED" if account.disabled else "ENABLED",
            ))

        return resources

    def _list_custom_roles(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = iam_admin_v1.IAMClient(credentials=context.credentials)
        request = iam_admin_v1.ListRolesRequest(
            parent=f"projects/{context.project_id}",
            view=iam_admin_v1.RoleView.FULL,
        )
        resources = []

        for role in client.list_roles(request=request):
            if not role.name:
                self.add_warning(
                    result, context.region, "listCustomRoles", "Skipping role without name"
                )
                continue
            if role.deleted:
                continue

            resources.append(self.create_resource(
                resource_id=role.name,
                self_link=f"{IAM_API_ROOT}{role.name}",
                provider_type=ROLE_TYPE,
                region=GLOBAL_REGION,
                name=role.title or role.name.rsplit("/", 1)[-1],
                properties={
                    "role_id": role.name.rsplit("/", 1)[-1],
                    "title": role.title,
                    "description": role.description or None,
                    "permissions": list(role.included_permissions),
                },
                status=role.stage.name,
            ))

        return resources

    def _get_iam_policy(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = resourcemanager_v3.ProjectsClient(credentials=context.credentials)
        policy = client.get_iam_policy(resource=f"projects/{context.project_id}")
        resources = []

        for binding in policy.bindings:
            if not binding.role:
                self.add_warning(
                    result, context.region, "getIamPolicy", "Skipping binding without role"
                )
                continue

            key = binding.role
            condition = None
            if binding.HasField("condition"):
                key = f"{binding.role}#{binding.condition.title}"
                condition = {
                    "title": binding.condition.title,
                    "expression": binding.condition.expression,
                }

            members = list(binding.members)
            relationships = [
                ResourceRelationship(
                    kind=RelationshipKind.REFERENCES,
                    target_self_link=service_account_self_link(
                        context.project_id, member[len(SERVICE_ACCOUNT_PREFIX):]
                    ),
                    target_type="google_service_account",
                )
                for member in members
                if member.startswith(SERVICE_ACCOUNT_PREFIX)
            ]

            resources.append(self.create_resource(
                resource_id=f"{context.project_id}/{key}",
                self_link=(
                    f"{RESOURCE_MANAGER_API_ROOT}projects/{context.project_id}"
                    f"/iamBindings/{key}"
                ),
                provider_type=BINDING_TYPE,
                region=GLOBAL_REGION,
                name=binding.role,
                properties={
                    "role": binding.role,
                    "members": members,
                    "condition": condition,
                },
                relationships=relationships,
            ))

        return resources

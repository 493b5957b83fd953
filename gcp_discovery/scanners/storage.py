"""
Storage Scanner Module
======================

Discovers Cloud Storage buckets.

Buckets are a project-level listing, so the scanner is global: the
orchestrator runs it for the first region only. Each bucket is reported
under its own location, lower-cased (``US``, ``EU`` and ``us-central1``
become ``us``, ``eu`` and ``us-central1``).

Classes
-------
StorageScanner
    Scanner for the ``Storage`` service.
"""

from __future__ import annotations

import logging
from typing import List

from google.cloud import storage

from gcp_discovery.core.base_scanner import BaseScanner, labels_to_dict, parse_timestamp
from gcp_discovery.core.models import DiscoveredResource, ScannerContext, ScanResult

# Module logger
logger = logging.getLogger(__name__)

BUCKET_TYPE = "storage.googleapis.com/Bucket"
STORAGE_API_ROOT = "https://www.googleapis.com/storage/v1/b/"


class StorageScanner(BaseScanner):
    """Scanner for Cloud Storage buckets."""

    service_name = "Storage"
    is_global = True

    def get_resource_types(self) -> List[str]:
        return [BUCKET_TYPE]

    async def scan(self, context: ScannerContext) -> ScanResult:
        return await self.gather_sub_scans(context, {"listBuckets": self._list_buckets})

    def _list_buckets(
        self,
        context: ScannerContext,
        result: ScanResult,
    ) -> List[DiscoveredResource]:
        client = storage.Client(project=context.project_id, credentials=context.credentials)
        resources = []

        for bucket in client.list_buckets():
            if not bucket.name:
                self.add_warning(
                    result, context.region, "listBuckets", "Skipping bucket without name"
                )
                continue

            iam_config = bucket.iam_configuration
            resources.append(self.create_resource(
                resource_id=bucket.id or bucket.name,
                self_link=bucket.self_link or f"{STORAGE_API_ROOT}{bucket.name}",
                provider_type=BUCKET_TYPE,
                region=(bucket.location or "").lower(),
                name=bucket.name,
                labels=labels_to_dict(bucket.labels),
                properties={
                    "location": bucket.location,
                    "location_type": bucket.location_type,
                    "storage_class": bucket.storage_class,
                    "versioning_enabled": bucket.versioning_enabled,
                    "uniform_bucket_level_access": (
                        iam_config.uniform_bucket_level_access_enabled
                    ),
                    "public_access_prevention": iam_config.public_access_prevention,
                    "requester_pays": bucket.requester_pays,
                    "default_kms_key_name": bucket.default_kms_key_name,
                    "retention_period": bucket.retention_period,
                    "lifecycle_rules": [dict(rule) for rule in bucket.lifecycle_rules],
                },
                created_at=parse_timestamp(bucket.time_created),
            ))

        return resources

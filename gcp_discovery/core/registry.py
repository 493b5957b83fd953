"""
Scanner Registry Module
=======================

Lookup table from service name to scanner instance.

The registry holds no scan state, so one instance can be shared by any
number of orchestrators.

Example
-------
>>> from gcp_discovery.core.registry import ScannerRegistry
>>> from gcp_discovery.scanners import ComputeScanner
>>>
>>> registry = ScannerRegistry()
>>> registry.register(ComputeScanner())
>>> registry.get_service_names()
['Compute']
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from gcp_discovery.core.base_scanner import BaseScanner
from gcp_discovery.core.exceptions import ScannerError

# Module logger
logger = logging.getLogger(__name__)


class ScannerRegistry:
    """
    Maps service names to scanners, in registration order.

    Registering a second scanner under an existing name replaces the
    first one.
    """

    def __init__(self) -> None:
        self._scanners: Dict[str, BaseScanner] = {}

    def register(self, scanner: BaseScanner) -> None:
        """
        Register ``scanner`` under its ``service_name``.

        Raises
        ------
        ScannerError
            If the scanner declares no service name.
        """
        name = getattr(scanner, "service_name", "")
        if not name:
            raise ScannerError(
                f"Cannot register {scanner.__class__.__name__} without a service name"
            )
        if name in self._scanners:
            logger.debug(f"Replacing scanner registered for {name}")
        self._scanners[name] = scanner

    def get(self, service_name: str) -> Optional[BaseScanner]:
        return self._scanners.get(service_name)

    def has(self, service_name: str) -> bool:
        return service_name in self._scanners

    def get_all(self) -> List[BaseScanner]:
        return list(self._scanners.values())

    def get_service_names(self) -> List[str]:
        return list(self._scanners)

    def __len__(self) -> int:
        return len(self._scanners)

    def __contains__(self, service_name: object) -> bool:
        return service_name in self._scanners

    def __repr__(self) -> str:
        return f"ScannerRegistry(services={self.get_service_names()})"

"""
Custom Exceptions for GCP Discovery
===================================

This module defines the hierarchy of custom exceptions used throughout
the discovery engine for consistent error handling and reporting.

Only pre-flight failures (invalid credentials, an empty region set) ever
propagate out of :meth:`InfrastructureScanner.start_discovery`. Everything
that goes wrong once a session exists is recorded on the session as a
:class:`~gcp_discovery.core.models.ScanError` instead.

Exception Hierarchy
-------------------
::

    DiscoveryError (base)
    ├── GCPClientError
    │   ├── CredentialsError
    │   └── RegionError
    └── ScannerError
        └── ScanTimeoutError

Example
-------
>>> from gcp_discovery.core.exceptions import CredentialsError, RegionError
>>>
>>> try:
...     session_id = await scanner.start_discovery(config)
... except CredentialsError as e:
...     print(f"Fix your credentials: {e}")
... except RegionError as e:
...     print(f"Nothing to scan: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DiscoveryError(Exception):
    """
    Base exception for all discovery errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise DiscoveryError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# GCP Client Exceptions
# =============================================================================


class GCPClientError(DiscoveryError):
    """
    Base exception for GCP connectivity and authentication errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The GCP service that caused the error.
    region : str, optional
        The GCP region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(GCPClientError):
    """
    Raised when GCP credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "Invalid credentials: no default credentials found",
    ...     details={"hint": "Run 'gcloud auth application-default login'"}
    ... )
    """

    pass


class RegionError(GCPClientError):
    """
    Raised when region selection resolves to nothing usable.

    Example
    -------
    >>> raise RegionError("No valid regions to scan")
    """

    pass


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(DiscoveryError):
    """
    Base exception for scanner-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The scanner's service name.
    region : str, optional
        The region being scanned.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class ScanTimeoutError(ScannerError):
    """
    Raised when a single scanner invocation exceeds the configured timeout.

    Example
    -------
    >>> raise ScanTimeoutError(
    ...     "Scan timed out after 300 seconds",
    ...     service="Compute",
    ...     details={"timeout_seconds": 300}
    ... )
    """

    code = "TIMEOUT"

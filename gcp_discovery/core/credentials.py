"""
Credential Manager Module
=========================

Checks that Application Default Credentials are usable for a project.

Acquiring credentials (``gcloud auth application-default login``,
workload identity, key files) is left to the environment. This module
only loads what ``google.auth.default()`` finds, refreshes it once to
prove it works and reports the outcome.

Classes
-------
CredentialManager
    Loads, validates and hands out GCP credentials.

Example
-------
>>> from gcp_discovery.core.credentials import CredentialManager
>>>
>>> manager = CredentialManager()
>>> result = await manager.validate_credentials("my-project")
>>> if result.valid:
...     print(result.credential.service_account_email)

Notes
-----
Project resolution order:
  1. The explicit ``project_id`` argument
  2. The ``project_id`` given to the constructor
  3. GOOGLE_CLOUD_PROJECT / GCLOUD_PROJECT environment variables
  4. The project attached to the default credentials

See Also
--------
google.auth : Google authentication library.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, List, Optional, Tuple

import google.auth
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import Request

from gcp_discovery.core.exceptions import CredentialsError
from gcp_discovery.core.models import CredentialValidationResult, GCPCredential

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
PROJECT_ENV_VARS = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")


class CredentialManager:
    """
    Loads Application Default Credentials and validates them.

    Parameters
    ----------
    project_id : str, optional
        Project used when ``validate_credentials`` gets none.
    scopes : list of str, optional
        OAuth scopes requested. Defaults to ``cloud-platform``.
    refresh : bool, default=True
        Whether validation performs a token refresh. Turning it off
        only checks that credentials can be found.

    Attributes
    ----------
    project_id : str or None
        The configured fallback project.
    scopes : list of str
        Requested scopes.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        refresh: bool = True,
    ) -> None:
        self.project_id = project_id
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.refresh = refresh

        # Lazy-loaded
        self._credentials: Any = None
        self._default_project: Optional[str] = None

        logger.debug(f"Initialized CredentialManager (project={project_id})")

    def _load_default(self) -> Tuple[Any, Optional[str]]:
        """
        Load (and cache) the default credentials.

        Raises
        ------
        CredentialsError
            If no default credentials can be found.
        """
        if self._credentials is None:
            try:
                credentials, project = google.auth.default(scopes=self.scopes)
            except auth_exceptions.DefaultCredentialsError as e:
                raise CredentialsError(
                    f"No default credentials found: {e}",
                    details={
                        "hint": "Run 'gcloud auth application-default login' or "
                        "set GOOGLE_APPLICATION_CREDENTIALS",
                    },
                )
            self._credentials = credentials
            self._default_project = project
            logger.debug(f"Loaded default credentials (project={project})")
        return self._credentials, self._default_project

    def resolve_project_id(self, project_id: Optional[str] = None) -> Optional[str]:
        """
        Resolve the project without touching credentials.

        Returns
        -------
        str or None
            The first configured project found, or ``None``.
        """
        if project_id:
            return project_id
        if self.project_id:
            return self.project_id
        for env_var in PROJECT_ENV_VARS:
            value = os.environ.get(env_var)
            if value:
                return value
        return None

    def get_credentials(self) -> Any:
        """
        Return the default credentials object for API clients.

        Raises
        ------
        CredentialsError
            If no default credentials can be found.
        """
        credentials, _ = self._load_default()
        return credentials

    def _validate(self, project_id: Optional[str]) -> CredentialValidationResult:
        try:
            credentials, default_project = self._load_default()
            project = self.resolve_project_id(project_id) or default_project
            if not project:
                return CredentialValidationResult(
                    valid=False,
                    error=(
                        "Cannot determine GCP project. Set GOOGLE_CLOUD_PROJECT, "
                        "GCLOUD_PROJECT, or pass a project id."
                    ),
                )
            if self.refresh:
                credentials.refresh(Request())
        except CredentialsError as e:
            return CredentialValidationResult(valid=False, error=e.message)
        except auth_exceptions.RefreshError as e:
            return CredentialValidationResult(
                valid=False, error=f"Failed to refresh credentials: {e}"
            )
        except auth_exceptions.GoogleAuthError as e:
            logger.exception("Credential validation failed")
            return CredentialValidationResult(
                valid=False, error=f"Failed to validate credentials: {e}"
            )

        email = getattr(credentials, "service_account_email", None)
        logger.info(f"Credentials validated for project {project}")
        return CredentialValidationResult(
            valid=True,
            credential=GCPCredential(
                project_id=project,
                service_account_email=email,
                authenticated=True,
                credentials=credentials,
            ),
        )

    async def validate_credentials(
        self,
        project_id: Optional[str] = None,
    ) -> CredentialValidationResult:
        """
        Validate credentials for ``project_id``.

        Never raises for authentication problems; they are reported through
        ``CredentialValidationResult.error``.

        Parameters
        ----------
        project_id : str, optional
            Target project; resolved as described in the module notes.

        Returns
        -------
        CredentialValidationResult
            ``valid`` plus the credential or an error message.
        """
        return await asyncio.to_thread(self._validate, project_id)

    def __repr__(self) -> str:
        return (
            f"CredentialManager(project_id={self.project_id!r}, "
            f"refresh={self.refresh})"
        )

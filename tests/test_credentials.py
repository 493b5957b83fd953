"""
Tests for the Credential Manager module.
"""

from unittest.mock import MagicMock, patch

import pytest
from google.auth import exceptions as auth_exceptions

from gcp_discovery.core.credentials import CredentialManager
from gcp_discovery.core.exceptions import CredentialsError


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without project variables."""
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.delenv("GCLOUD_PROJECT", raising=False)


@pytest.fixture
def fake_credentials():
    credentials = MagicMock()
    credentials.service_account_email = "scanner@adc-project.iam.gserviceaccount.com"
    return credentials


@pytest.fixture
def google_default(fake_credentials):
    """Patched google.auth.default returning fake credentials."""
    with patch("gcp_discovery.core.credentials.google.auth.default") as default:
        default.return_value = (fake_credentials, "adc-project")
        yield default


class TestCredentialManager:
    """Tests for CredentialManager class."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, clean_env, google_default, fake_credentials):
        """Test a successful validation."""
        result = await CredentialManager().validate_credentials("my-project")

        assert result.valid
        assert result.error is None
        assert result.credential.project_id == "my-project"
        assert result.credential.authenticated
        assert result.credential.service_account_email == (
            "scanner@adc-project.iam.gserviceaccount.com"
        )
        fake_credentials.refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_project_from_default_credentials(self, clean_env, google_default):
        """Test falling back to the project attached to the credentials."""
        result = await CredentialManager().validate_credentials()
        assert result.credential.project_id == "adc-project"

    @pytest.mark.asyncio
    async def test_project_from_environment(self, clean_env, monkeypatch, google_default):
        """Test that environment variables beat the credentials project."""
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")
        result = await CredentialManager().validate_credentials()
        assert result.credential.project_id == "env-project"

    @pytest.mark.asyncio
    async def test_no_project(self, clean_env, google_default, fake_credentials):
        """Test the failure when no project can be determined."""
        google_default.return_value = (fake_credentials, None)

        result = await CredentialManager().validate_credentials()

        assert not result.valid
        assert "Cannot determine GCP project" in result.error

    @pytest.mark.asyncio
    async def test_missing_credentials(self, clean_env, google_default):
        """Test that missing ADC is reported, not raised."""
        google_default.side_effect = auth_exceptions.DefaultCredentialsError("none found")

        result = await CredentialManager().validate_credentials("p")

        assert not result.valid
        assert result.credential is None
        assert "No default credentials found" in result.error

    @pytest.mark.asyncio
    async def test_refresh_failure(self, clean_env, google_default, fake_credentials):
        """Test that a failing token refresh is reported."""
        fake_credentials.refresh.side_effect = auth_exceptions.RefreshError("expired")

        result = await CredentialManager().validate_credentials("p")

        assert not result.valid
        assert "Failed to refresh credentials" in result.error

    @pytest.mark.asyncio
    async def test_refresh_disabled(self, clean_env, google_default, fake_credentials):
        """Test validation without a token refresh."""
        result = await CredentialManager(refresh=False).validate_credentials("p")

        assert result.valid
        fake_credentials.refresh.assert_not_called()

    def test_resolve_project_order(self, clean_env, monkeypatch):
        """Test explicit, constructor, then environment resolution."""
        monkeypatch.setenv("GCLOUD_PROJECT", "env-project")
        manager = CredentialManager(project_id="configured")

        assert manager.resolve_project_id("explicit") == "explicit"
        assert manager.resolve_project_id() == "configured"
        assert CredentialManager().resolve_project_id() == "env-project"

    def test_get_credentials_raises_when_missing(self, google_default):
        """Test that get_credentials raises CredentialsError."""
        google_default.side_effect = auth_exceptions.DefaultCredentialsError("none found")

        with pytest.raises(CredentialsError) as exc_info:
            CredentialManager().get_credentials()
        assert "hint" in exc_info.value.details

    def test_credentials_loaded_once(self, google_default, fake_credentials):
        """Test that default credentials are cached."""
        manager = CredentialManager()
        assert manager.get_credentials() is fake_credentials
        manager.get_credentials()
        assert google_default.call_count == 1

"""
Tests for the command-line interface.
"""

import json
from functools import partial

import pytest
from click.testing import CliRunner

from conftest import FakeCredentialManager, FakeRegionManager, FakeScanner
from gcp_discovery.core.orchestrator import InfrastructureScanner
from gcp_discovery.core.registry import ScannerRegistry
from gcp_discovery.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_backend(monkeypatch):
    """Route the discover command to in-memory collaborators."""
    registry = ScannerRegistry()
    registry.register(FakeScanner("Compute"))
    registry.register(FakeScanner("IAM", is_global=True))

    monkeypatch.setattr(
        "gcp_discovery.main.CredentialManager",
        lambda project_id=None: FakeCredentialManager(),
    )
    monkeypatch.setattr(
        "gcp_discovery.main.RegionManager",
        lambda project_id=None: FakeRegionManager(["us-central1", "us-east1"]),
    )
    monkeypatch.setattr(
        "gcp_discovery.main.InfrastructureScanner",
        partial(InfrastructureScanner, scanner_registry=registry),
    )
    return registry


class TestDiscoverCommand:
    """Tests for the discover command."""

    def test_json_export(self, runner, fake_backend):
        """Test a full run written to a JSON file."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "discover", "-p", "test-project",
                "--services", "Compute,IAM", "-o", "inventory.json",
            ])

            assert result.exit_code == 0, result.output
            assert "Discovery complete!" in result.output
            with open("inventory.json") as f:
                data = json.load(f)

        assert data["project_id"] == "test-project"
        assert data["regions"] == ["us-central1", "us-east1"]
        # Compute once per region, IAM once
        assert data["summary"]["resources_by_service"] == {"Compute": 2, "IAM": 1}
        assert data["metadata"]["api_call_count"] == 3

    def test_csv_format(self, runner, fake_backend):
        """Test the csv format with an explicit path."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "discover", "--services", "Compute",
                "--regions", "us-central1", "-f", "csv", "-o", "out.csv",
            ])

            assert result.exit_code == 0, result.output
            with open("out.csv") as f:
                content = f.read()

        assert "# Discovery Metadata" in content
        assert "Compute,us-central1" in content

    def test_invalid_credentials(self, runner, fake_backend, monkeypatch):
        """Test that credential failures exit with status 1."""
        monkeypatch.setattr(
            "gcp_discovery.main.CredentialManager",
            lambda project_id=None: FakeCredentialManager(valid=False),
        )

        result = runner.invoke(cli, ["discover", "-p", "test-project"])

        assert result.exit_code == 1
        assert "Invalid credentials" in result.output

    def test_all_regions_excluded(self, runner, fake_backend):
        """Test that an empty region list is rejected."""
        result = runner.invoke(cli, [
            "discover", "--regions", "us-central1", "--exclude-regions", "us-central1",
        ])

        assert result.exit_code == 1
        assert "No valid regions to scan" in result.output

    def test_empty_list_option(self, runner):
        """Test that a list option without values is a usage error."""
        result = runner.invoke(cli, ["discover", "--services", " , "])

        assert result.exit_code == 2
        assert "No values given" in result.output


class TestInfoCommands:
    """Tests for the informational commands."""

    def test_services(self, runner):
        """Test the list of discoverable services."""
        result = runner.invoke(cli, ["services"])

        assert result.exit_code == 0
        for name in ("Compute", "Storage", "GKE", "IAM", "VPC"):
            assert name in result.output

    def test_regions_from_catalogue(self, runner, monkeypatch):
        """Test listing regions without a project."""
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.delenv("GCLOUD_PROJECT", raising=False)

        result = runner.invoke(cli, ["regions"])

        assert result.exit_code == 0
        assert "us-central1" in result.output
        assert "Iowa" in result.output

    def test_validate_failure(self, runner, monkeypatch):
        """Test the validate command with unusable credentials."""
        monkeypatch.setattr(
            "gcp_discovery.main.CredentialManager",
            lambda project_id=None: FakeCredentialManager(valid=False),
        )

        result = runner.invoke(cli, ["validate", "-p", "test-project"])

        assert result.exit_code == 1
        assert "no credentials configured" in result.output

    def test_version(self, runner):
        """Test the version option."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

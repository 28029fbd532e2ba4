"""Unit tests for the vaultsync CLI commands."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from vaultsync.cli import main
from vaultsync.config import Config
from vaultsync.exceptions import ConfigError, NotFoundError, TransportError
from vaultsync.sync import Archiver


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    (root / "old.md").write_text("old")
    return root


@pytest.fixture
def remote_blob(tmp_path):
    remote = tmp_path / "remote"
    (remote / "notes").mkdir(parents=True)
    (remote / "notes" / "new.md").write_text("new")
    return Archiver().build(remote).data


@pytest.fixture
def mock_client():
    """Patch the API client used by the CLI."""
    with patch("vaultsync.cli.VaultSyncClient") as mock_class:
        client = MagicMock()
        client.upload_snapshot.return_value = {"status": "ok", "downloadUrl": "u"}
        mock_class.return_value = client
        yield client


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "VaultSync" in result.output
        assert "push" in result.output
        assert "pull" in result.output
        assert "diff" in result.output
        assert "init" in result.output


class TestInitCommand:
    """Tests for the init command."""

    @patch("vaultsync.cli.config")
    def test_init_saves_credentials(self, mock_config, runner):
        mock_config.get_config_path.return_value = Path("/mock/config.json")

        result = runner.invoke(
            main, ["init"], input="https://sync.example\nsecret\n"
        )

        assert result.exit_code == 0
        assert "Configuration saved successfully" in result.output
        mock_config.save_credentials.assert_called_once_with(
            "https://sync.example", "secret"
        )

    @patch("vaultsync.cli.config")
    def test_init_save_failure(self, mock_config, runner):
        mock_config.save_credentials.side_effect = OSError("read-only")

        result = runner.invoke(main, ["init"], input="https://sync.example\nx\n")

        assert result.exit_code == 1
        assert "Failed to save configuration" in result.output


class TestPushCommand:
    """Tests for the push command."""

    def test_push_success(self, runner, vault, mock_client):
        result = runner.invoke(
            main, ["--token", "t", "push", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        assert "Started" in result.output
        assert "Succeeded" in result.output
        name, _ = mock_client.upload_snapshot.call_args[0]
        assert name == "notes"

    def test_push_defaults_vault_name_to_directory(self, runner, vault, mock_client):
        result = runner.invoke(main, ["--token", "t", "-q", "push", str(vault)])

        assert result.exit_code == 0, result.output
        assert mock_client.upload_snapshot.call_args[0][0] == "vault"

    def test_push_failure(self, runner, vault, mock_client):
        mock_client.upload_snapshot.side_effect = TransportError("server down")

        result = runner.invoke(
            main, ["--token", "t", "push", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 1
        assert "Push failed while uploading" in result.output

    def test_push_json_output(self, runner, vault, mock_client):
        result = runner.invoke(
            main, ["--token", "t", "--json", "push", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["vault"] == "notes"
        assert data["files"] == 1

    def test_push_invalid_vault_name(self, runner, vault, mock_client):
        result = runner.invoke(
            main, ["--token", "t", "push", str(vault), "--vault", "a/b"]
        )

        assert result.exit_code == 1
        mock_client.upload_snapshot.assert_not_called()

    @patch("vaultsync.auth.config")
    def test_push_without_token(self, mock_config, runner, vault, monkeypatch):
        monkeypatch.delenv("VAULTSYNC_AUTH_TOKEN", raising=False)
        mock_config.auth_token = None

        result = runner.invoke(main, ["push", str(vault)])

        assert result.exit_code == 1
        assert "No auth token configured" in result.output


class TestPullCommand:
    """Tests for the pull command."""

    def test_pull_applies_snapshot(self, runner, vault, mock_client, remote_blob):
        mock_client.fetch_snapshot.return_value = remote_blob

        result = runner.invoke(
            main, ["--token", "t", "pull", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        assert "Succeeded" in result.output
        assert not (vault / "old.md").exists()
        assert (vault / "notes" / "new.md").read_text() == "new"

    def test_pull_dry_run(self, runner, vault, mock_client, remote_blob):
        mock_client.fetch_snapshot.return_value = remote_blob

        result = runner.invoke(
            main,
            ["--token", "t", "pull", str(vault), "--vault", "notes", "--dry-run"],
        )

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert (vault / "old.md").exists()
        assert not (vault / "notes").exists()

    def test_pull_not_found(self, runner, vault, mock_client):
        mock_client.fetch_snapshot.side_effect = NotFoundError("missing")

        result = runner.invoke(
            main, ["--token", "t", "pull", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 1
        assert "no remote snapshot" in result.output
        assert (vault / "old.md").exists()

    def test_pull_malformed_archive(self, runner, vault, mock_client):
        mock_client.fetch_snapshot.return_value = b"garbage"

        result = runner.invoke(
            main, ["--token", "t", "pull", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 1
        assert "Pull failed while extracting" in result.output

    def test_pull_json_output(self, runner, vault, mock_client, remote_blob):
        mock_client.fetch_snapshot.return_value = remote_blob

        result = runner.invoke(
            main, ["--token", "t", "--json", "pull", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["plan"] == {"writes": 1, "new": 1, "overwrites": 0, "deletes": 1}
        assert data["result"]["deleted"] == ["old.md"]

    def test_pull_missing_path(self, runner, tmp_path, mock_client):
        result = runner.invoke(main, ["--token", "t", "pull", str(tmp_path / "nope")])

        assert result.exit_code == 2


class TestDiffCommand:
    """Tests for the diff command."""

    def test_diff_json(self, runner, vault, mock_client, remote_blob):
        mock_client.fetch_snapshot.return_value = remote_blob

        result = runner.invoke(
            main, ["--token", "t", "--json", "diff", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data == {
            "vault": "notes",
            "to_write": ["notes/new.md"],
            "to_delete": ["old.md"],
        }
        assert (vault / "old.md").exists()

    def test_diff_table(self, runner, vault, mock_client, remote_blob):
        mock_client.fetch_snapshot.return_value = remote_blob

        result = runner.invoke(
            main, ["--token", "t", "diff", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 0, result.output
        assert "old.md" in result.output
        assert "notes/new.md" in result.output


class TestStatusCommand:
    """Tests for the status command."""

    @patch("vaultsync.cli.config")
    def test_status_configured(self, mock_config, runner):
        mock_config.api_url = "https://sync.example"
        mock_config.is_configured.return_value = True
        mock_config.get_config_path.return_value = Path("/mock/config.json")

        result = runner.invoke(main, ["status"])

        assert result.exit_code == 0
        assert "https://sync.example" in result.output
        assert "Auth token configured" in result.output

    @patch("vaultsync.cli.config")
    def test_status_json(self, mock_config, runner, monkeypatch):
        monkeypatch.delenv("VAULTSYNC_AUTH_TOKEN", raising=False)
        mock_config.api_url = "https://sync.example"
        mock_config.is_configured.return_value = False
        mock_config.get_config_path.return_value = Path("/mock/config.json")

        result = runner.invoke(main, ["--json", "status"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["configured"] is False
        assert data["api_url"] == "https://sync.example"


class TestMalformedConfig:
    """Commands report a broken config file instead of crashing."""

    @pytest.fixture
    def broken_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("VAULTSYNC_API_URL", raising=False)
        monkeypatch.delenv("VAULTSYNC_AUTH_TOKEN", raising=False)
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "config.json").write_text("{not json")
        broken = Config(config_dir=config_dir)
        monkeypatch.setattr("vaultsync.auth.config", broken)
        monkeypatch.setattr("vaultsync.cli.config", broken)
        monkeypatch.setattr("vaultsync.api.config", broken)
        return broken

    def test_push_without_token_option(self, runner, vault, broken_config):
        result = runner.invoke(main, ["push", str(vault), "--vault", "notes"])

        assert result.exit_code == 1
        assert "Failed to read config file" in result.output
        assert not isinstance(result.exception, ConfigError)

    def test_push_with_token_option(self, runner, vault, broken_config):
        result = runner.invoke(
            main, ["--token", "t", "push", str(vault), "--vault", "notes"]
        )

        assert result.exit_code == 1
        assert "Failed to read config file" in result.output

    def test_status(self, runner, broken_config):
        result = runner.invoke(main, ["status"])

        assert result.exit_code == 1
        assert "Failed to read config file" in result.output

"""Tests for entrasync.core.config."""

from unittest.mock import patch

import pytest

from entrasync.core.config import get_config_url, get_graph_credentials, get_refresh_limit


class TestGetGraphCredentials:
    """Tests for get_graph_credentials function."""

    def test_returns_secret_credentials(self, mock_env_vars):
        # Patch load_dotenv so a local .env cannot override the test values
        with patch("entrasync.core.config.load_dotenv"):
            credentials = get_graph_credentials()

        assert credentials.tenant_id == "test-tenant-id"
        assert credentials.client_id == "test-client-id"
        assert credentials.client_secret == "test-client-secret"
        assert credentials.uses_certificate is False

    def test_certificate_credentials(self, mock_env_vars, monkeypatch):
        monkeypatch.delenv("MS_GRAPH_CLIENT_SECRET")
        monkeypatch.setenv("MS_GRAPH_CERTIFICATE_PATH", "/certs/app.pem")
        monkeypatch.setenv("MS_GRAPH_CERTIFICATE_PASSWORD", "pw")

        with patch("entrasync.core.config.load_dotenv"):
            credentials = get_graph_credentials()

        assert credentials.uses_certificate is True
        assert credentials.certificate_path == "/certs/app.pem"
        assert credentials.certificate_password == "pw"

    def test_secret_wins_over_certificate(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("MS_GRAPH_CERTIFICATE_PATH", "/certs/app.pem")

        with patch("entrasync.core.config.load_dotenv"):
            credentials = get_graph_credentials()

        assert credentials.uses_certificate is False

    def test_raises_when_tenant_missing(self, mock_env_vars, monkeypatch):
        monkeypatch.delenv("MS_GRAPH_TENANT_ID")

        with (
            patch("entrasync.core.config.load_dotenv"),
            pytest.raises(ValueError, match="MS_GRAPH_TENANT_ID"),
        ):
            get_graph_credentials()

    def test_raises_when_no_secret_or_certificate(self, mock_env_vars, monkeypatch):
        monkeypatch.delenv("MS_GRAPH_CLIENT_SECRET")

        with (
            patch("entrasync.core.config.load_dotenv"),
            pytest.raises(ValueError, match="MS_GRAPH_CERTIFICATE_PATH"),
        ):
            get_graph_credentials()


class TestGetRefreshLimit:
    """Tests for get_refresh_limit function."""

    def test_default(self, mock_env_vars):
        with patch("entrasync.core.config.load_dotenv"):
            assert get_refresh_limit() == 24

    def test_from_environment(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("ENTRASYNC_REFRESH_LIMIT", "5")

        with patch("entrasync.core.config.load_dotenv"):
            assert get_refresh_limit() == 5

    @pytest.mark.parametrize("value", ["many", "-1"])
    def test_invalid_value(self, mock_env_vars, monkeypatch, value):
        monkeypatch.setenv("ENTRASYNC_REFRESH_LIMIT", value)

        with (
            patch("entrasync.core.config.load_dotenv"),
            pytest.raises(ValueError, match="ENTRASYNC_REFRESH_LIMIT"),
        ):
            get_refresh_limit()


class TestGetConfigUrl:
    """Tests for get_config_url function."""

    def test_unset(self, mock_env_vars):
        with patch("entrasync.core.config.load_dotenv"):
            assert get_config_url() is None

    def test_set(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("ENTRASYNC_CONFIG_URL", "https://config.example.com/c.json")

        with patch("entrasync.core.config.load_dotenv"):
            assert get_config_url() == "https://config.example.com/c.json"

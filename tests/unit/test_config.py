"""
Unit Tests for Configuration Loading
"""

import os

import pytest
from pydantic import ValidationError

from net_exporter.api.main import parse_args, settings_from_args
from net_exporter.core.config import (
    Settings,
    build_settings,
    load_config_file,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from NET_EXPORTER_* variables and any .env file."""
    for key in list(os.environ):
        if key.startswith("NET_EXPORTER_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self):
        settings = Settings()

        assert settings.namespace == "monitoring"
        assert settings.port == "8000"
        assert settings.service == "net-exporter"
        assert settings.dial_timeout_seconds == 5.0
        assert settings.host_list == ["giantswarm.io", "kubernetes.default.svc.cluster.local"]
        assert settings.api.port == 8000
        assert settings.kubernetes.api_url is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NET_EXPORTER_NAMESPACE", "kube-system")
        monkeypatch.setenv("NET_EXPORTER_DIAL_TIMEOUT_SECONDS", "1.5")
        monkeypatch.setenv("NET_EXPORTER_API_PORT", "9100")
        monkeypatch.setenv("NET_EXPORTER_KUBERNETES_API_URL", "http://127.0.0.1:8001")

        settings = Settings()

        assert settings.namespace == "kube-system"
        assert settings.dial_timeout_seconds == 1.5
        assert settings.api.port == 9100
        assert settings.kubernetes.api_url == "http://127.0.0.1:8001"

    @pytest.mark.parametrize("field", ["namespace", "port", "service"])
    def test_empty_values_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: "  "})

    def test_dial_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(dial_timeout_seconds=0)

    def test_host_list_skips_blanks(self):
        settings = Settings(hosts=" a.example , ,b.example,")

        assert settings.host_list == ["a.example", "b.example"]


class TestConfigFile:
    """Tests for YAML overrides."""

    def test_missing_file(self, tmp_path):
        assert load_config_file(None) == {}
        assert load_config_file(str(tmp_path / "missing.yaml")) == {}

    def test_load(self, tmp_path):
        path = tmp_path / "net-exporter.yaml"
        path.write_text(
            "namespace: kube-system\n"
            "service: coredns\n"
            "port: dns-tcp\n"
            "api:\n"
            "  port: 9100\n"
        )

        data = load_config_file(str(path))
        settings = build_settings(data)

        assert settings.namespace == "kube-system"
        assert settings.port == "dns-tcp"
        assert settings.api.port == 9100
        assert settings.api.host == "0.0.0.0"

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "net-exporter.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_config_file(str(path))


class TestCommandLine:
    """Tests for flag parsing and precedence."""

    def test_no_flags_uses_defaults(self):
        settings = settings_from_args(parse_args([]))

        assert settings.service == "net-exporter"
        assert settings.log_json is False

    def test_flags_override_file_and_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NET_EXPORTER_SERVICE", "from-env")
        monkeypatch.setenv("NET_EXPORTER_NAMESPACE", "from-env")
        path = tmp_path / "net-exporter.yaml"
        path.write_text("namespace: from-file\nport: '9000'\napi:\n  host: 127.0.0.1\n")

        args = parse_args([
            "--config", str(path),
            "--port", "9999",
            "--listen-port", "9101",
            "--hosts", "a.example,b.example",
            "--log-json",
        ])
        settings = settings_from_args(args)

        assert settings.service == "from-env"
        assert settings.namespace == "from-file"
        assert settings.port == "9999"
        assert settings.api.host == "127.0.0.1"
        assert settings.api.port == 9101
        assert settings.host_list == ["a.example", "b.example"]
        assert settings.log_json is True

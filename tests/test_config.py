"""Tests for env + YAML configuration."""
from __future__ import annotations

from pathlib import Path

from symsync.engine.config import RegistryConfig, identity_from_env
from symsync.engine.models import Role
from symsync.engine.yaml_config import discover_config_path, load_yaml_config


def test_defaults_are_demo_mode(monkeypatch):
    for key in ("SYMSYNC_API_URL", "SYMSYNC_AUTH_TOKEN", "SYMSYNC_ERROR_CLEAR_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    config = RegistryConfig.from_env()
    assert config.api_url == ""
    assert config.demo_mode
    assert not config.enabled
    assert config.error_clear_seconds == 5.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SYMSYNC_API_URL", "https://registry.example/api/")
    monkeypatch.setenv("SYMSYNC_AUTH_TOKEN", "tok")
    monkeypatch.setenv("SYMSYNC_ERROR_CLEAR_SECONDS", "2.5")
    monkeypatch.setenv("SYMSYNC_TEAM_ID", "t-1")
    monkeypatch.setenv("SYMSYNC_ROLE", "ORG_ADMIN")
    config = RegistryConfig.from_env()
    identity = identity_from_env()
    assert config.api_url == "https://registry.example/api"
    assert config.auth_token == "tok"
    assert config.error_clear_seconds == 2.5
    assert config.enabled
    assert identity.team_id == "t-1"
    assert identity.role is Role.ORG_ADMIN


def test_yaml_layers_over_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SYMSYNC_API_URL", "https://from-env")
    monkeypatch.setenv("SYMSYNC_TEAM_ID", "env-team")
    monkeypatch.setenv("REGISTRY_TOKEN", "expanded")
    path = tmp_path / "symsync.yaml"
    path.write_text(
        "registry:\n"
        "  api_url: https://from-yaml/\n"
        "  auth_token: ${REGISTRY_TOKEN}\n"
        "  error_clear_seconds: 3\n"
        "identity:\n"
        "  user_id: u-1\n"
        "  role: team_admin\n"
        "  organization_id: org-9\n"
    )
    config = load_yaml_config(path)
    assert config.source_path == path
    assert config.registry.api_url == "https://from-yaml"
    assert config.registry.auth_token == "expanded"
    assert config.registry.error_clear_seconds == 3.0
    assert config.identity.team_id == "env-team"
    assert config.identity.user_id == "u-1"
    assert config.identity.role is Role.TEAM_ADMIN
    assert config.identity.has_organization


def test_bad_yaml_falls_back(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("SYMSYNC_API_URL", raising=False)
    path = tmp_path / "symsync.yaml"
    path.write_text("registry: [unclosed\n")
    config = load_yaml_config(path)
    assert config.source_path is None
    assert config.registry.api_url == ""

    missing = load_yaml_config(tmp_path / "nope.yaml")
    assert missing.source_path is None


def test_discover_prefers_dot_directory(tmp_path: Path):
    assert discover_config_path(tmp_path) is None
    (tmp_path / "symsync.yaml").write_text("{}\n")
    assert discover_config_path(tmp_path) == tmp_path / "symsync.yaml"
    (tmp_path / ".symsync").mkdir()
    (tmp_path / ".symsync" / "symsync.yaml").write_text("{}\n")
    assert discover_config_path(tmp_path) == tmp_path / ".symsync" / "symsync.yaml"

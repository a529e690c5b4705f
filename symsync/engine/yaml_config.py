"""YAML configuration loader.

Loads a single YAML file layered over the SYMSYNC_* environment.
When no YAML is provided, env vars work exactly as before.

Example YAML:
    registry:
      api_url: https://prototyper.example.com/api
      auth_token: ${SYMSYNC_AUTH_TOKEN}
      error_clear_seconds: 5
      log_level: DEBUG

    identity:
      user_id: 7b0c...
      team_id: 1f3e...
      organization_id: 9a2d...
      role: team_admin
      prototype_id: 44c1...
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import RegistryConfig, identity_from_env
from .models import IdentityContext, Role

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".symsync"
CONFIG_FILENAME = "symsync.yaml"


@dataclass
class SymSyncConfig:
    """Complete parsed configuration."""
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    identity: IdentityContext = field(default_factory=IdentityContext)
    source_path: Path | None = None


def _expand(value: object) -> object:
    """Expand ${VAR} references in string values."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    return value


def _parse_registry(raw: dict, base: RegistryConfig) -> RegistryConfig:
    config = RegistryConfig(
        api_url=base.api_url,
        auth_token=base.auth_token,
        error_clear_seconds=base.error_clear_seconds,
        log_level=base.log_level,
    )
    if "api_url" in raw:
        config.api_url = str(_expand(raw["api_url"]) or "").rstrip("/")
    if "auth_token" in raw:
        token = _expand(raw["auth_token"])
        config.auth_token = str(token) if token else None
    if "error_clear_seconds" in raw:
        try:
            config.error_clear_seconds = float(raw["error_clear_seconds"])
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring invalid registry.error_clear_seconds: %r",
                raw["error_clear_seconds"],
            )
    if "log_level" in raw:
        config.log_level = str(raw["log_level"]).upper()
    return config


def _parse_identity(raw: dict, base: IdentityContext) -> IdentityContext:
    def pick(key: str, current: str | None) -> str | None:
        if key not in raw:
            return current
        value = _expand(raw[key])
        return str(value) if value else None

    role = base.role
    if "role" in raw:
        role = Role.parse(raw["role"])
        if role is None and raw["role"]:
            logger.warning("Unknown identity.role %r; treating as no role", raw["role"])
    return IdentityContext(
        user_id=pick("user_id", base.user_id),
        team_id=pick("team_id", base.team_id),
        organization_id=pick("organization_id", base.organization_id),
        role=role,
        prototype_id=pick("prototype_id", base.prototype_id),
    )


def load_yaml_config(path: str | Path | None = None) -> SymSyncConfig:
    """Load env configuration, then layer *path* over it when given.

    A missing or unparseable file is logged and ignored so the client
    still starts with env/default settings.
    """
    registry = RegistryConfig.from_env()
    identity = identity_from_env()
    if path is None:
        return SymSyncConfig(registry=registry, identity=identity)

    path = Path(path)
    logger.info("load_yaml_config: loading %s (exists=%s)", path, path.exists())
    if not path.is_file():
        logger.warning("load_yaml_config: %s not found; using env/defaults", path)
        return SymSyncConfig(registry=registry, identity=identity)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        logger.warning("load_yaml_config: YAML parse error in %s: %s", path, exc)
        return SymSyncConfig(registry=registry, identity=identity)

    if not isinstance(data, dict):
        logger.warning("load_yaml_config: %s is not a mapping; ignoring", path)
        return SymSyncConfig(registry=registry, identity=identity)

    registry_raw = data.get("registry") or {}
    identity_raw = data.get("identity") or {}
    if isinstance(registry_raw, dict):
        registry = _parse_registry(registry_raw, registry)
    if isinstance(identity_raw, dict):
        identity = _parse_identity(identity_raw, identity)
    logger.info(
        "load_yaml_config: loaded %s (sections: %s)",
        path, ", ".join(k for k in data if k in ("registry", "identity")) or "empty",
    )
    return SymSyncConfig(registry=registry, identity=identity, source_path=path)


def discover_config_path(cwd: Path) -> Path | None:
    """Find .symsync/symsync.yaml (preferred) or symsync.yaml in *cwd*."""
    for candidate in (cwd / CONFIG_DIRNAME / CONFIG_FILENAME, cwd / CONFIG_FILENAME):
        if candidate.is_file():
            logger.info("Auto-discovered config: %s", candidate)
            return candidate
    logger.debug("No config file found under %s; using env/defaults", cwd)
    return None

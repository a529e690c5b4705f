"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via SYMSYNC_* env vars.
An empty API URL means demo mode: the registry is disabled and every
list is empty.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .models import IdentityContext, Role

logger = logging.getLogger(__name__)


@dataclass
class RegistryConfig:
    """Symbol registry client configuration."""

    # Base URL of the registry API, e.g. https://host/api
    api_url: str = ""
    auth_token: str | None = None
    # Item-level error messages clear themselves after this many seconds.
    error_clear_seconds: float = 5.0
    log_level: str = "INFO"

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    @property
    def demo_mode(self) -> bool:
        return not self.enabled

    @classmethod
    def from_env(cls) -> RegistryConfig:
        """Load configuration from SYMSYNC_* environment variables."""
        sym_vars = sorted(
            k for k in os.environ
            if k.startswith("SYMSYNC_") and k != "SYMSYNC_AUTH_TOKEN"
        )
        if sym_vars:
            logger.info("RegistryConfig.from_env: env overrides: %s", ", ".join(sym_vars))
        else:
            logger.debug("RegistryConfig.from_env: no SYMSYNC_* env vars set, using defaults")

        config = cls(
            api_url=os.getenv("SYMSYNC_API_URL", cls.api_url).rstrip("/"),
            auth_token=os.getenv("SYMSYNC_AUTH_TOKEN") or None,
            error_clear_seconds=float(os.getenv(
                "SYMSYNC_ERROR_CLEAR_SECONDS", str(cls.error_clear_seconds)
            )),
            log_level=os.getenv("SYMSYNC_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "RegistryConfig.from_env: api_url=%s demo_mode=%s log_level=%s",
            config.api_url or "<none>", config.demo_mode, config.log_level,
        )
        return config


def identity_from_env() -> IdentityContext:
    """Default identity from SYMSYNC_USER_ID/TEAM_ID/ORG_ID/ROLE/PROTOTYPE_ID."""
    return IdentityContext(
        user_id=os.getenv("SYMSYNC_USER_ID") or None,
        team_id=os.getenv("SYMSYNC_TEAM_ID") or None,
        organization_id=os.getenv("SYMSYNC_ORG_ID") or None,
        role=Role.parse(os.getenv("SYMSYNC_ROLE") or None),
        prototype_id=os.getenv("SYMSYNC_PROTOTYPE_ID") or None,
    )

"""Project document persistence.

A project document is a JSON object whose ``symbols`` list holds the
session's fragments. Registry fragments are merged in on load and the
list is filtered on save, so only local and native registry fragments
ever reach disk.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from symsync.engine.reconcile import (
    SYMBOLS_KEY,
    extract_project_data,
    merge_project_data,
)
from symsync.engine.registry import SymbolRegistry
from symsync.shared.services.durable_write import atomic_write_json

logger = logging.getLogger(__name__)


class DocumentFormatError(ValueError):
    """The file exists but is not a project document."""


class DocumentStore:
    """Load and save one project document file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def read_raw(self) -> dict[str, Any]:
        """Return the document as stored, or an empty document if absent."""
        if not self.path.exists():
            logger.info("Document %s does not exist yet; starting empty", self.path)
            return {"components": [], SYMBOLS_KEY: []}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise DocumentFormatError(f"{self.path}: invalid JSON ({exc.msg})") from exc
        if not isinstance(data, dict):
            raise DocumentFormatError(f"{self.path}: expected a JSON object")
        return data

    def load(self, registry: SymbolRegistry | None = None) -> dict[str, Any]:
        """Read the document and overlay the registry's current fragments."""
        data = self.read_raw()
        if registry is None:
            return data
        merged = merge_project_data(data, registry.as_session_fragments())
        logger.debug(
            "Loaded %s with %d fragments",
            self.path, len((merged or {}).get(SYMBOLS_KEY) or []),
        )
        return merged if merged is not None else data

    def save(self, project_data: dict[str, Any]) -> Path:
        """Filter fragments for persistence and write atomically."""
        persisted = extract_project_data(project_data) or {}
        atomic_write_json(self.path, persisted)
        logger.info("Saved document %s", self.path)
        return self.path

    @staticmethod
    def export(project_data: dict[str, Any], destination: Path | str) -> Path:
        """Write the persisted form of *project_data* to another file."""
        return DocumentStore(destination).save(project_data)

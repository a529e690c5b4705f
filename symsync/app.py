"""SymSync CLI: main application entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import replace
from logging.handlers import RotatingFileHandler
from pathlib import Path

from symsync.engine.models import Role
from symsync.engine.yaml_config import SymSyncConfig, discover_config_path, load_yaml_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


def configure_logging(level: str, *, to_stderr: bool) -> Path:
    """Rotating file log under ~/.symsync/logs, plus stderr outside the TUI."""
    log_dir = Path.home() / ".symsync" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "symsync.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="symsync",
        description="SymSync: shared symbol registry client",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: .symsync/symsync.yaml or symsync.yaml)",
    )
    parser.add_argument("--api-url", metavar="URL", help="Registry API base URL")
    parser.add_argument("--team", metavar="TEAM_ID", help="Team whose symbols to load")
    parser.add_argument("--user", metavar="USER_ID", help="Acting user id")
    parser.add_argument(
        "--role", choices=[r.value for r in Role],
        help="Acting user's role within the team",
    )
    parser.add_argument("--org", metavar="ORG_ID", help="Organization id, if any")
    parser.add_argument(
        "--prototype", metavar="PROTOTYPE_ID",
        help="Current prototype (enables prototype-scoped symbols)",
    )
    parser.add_argument(
        "--document", metavar="PATH",
        help="Project document JSON to open (and save with ctrl+s)",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="Print the team's symbols grouped by scope and exit (no TUI)",
    )
    parser.add_argument(
        "--export", metavar="PATH",
        help="Write the persisted form of --document to PATH and exit",
    )
    return parser


def _resolve_config(args) -> SymSyncConfig:
    config_path = args.config
    if config_path is None:
        config_path = discover_config_path(Path.cwd())
    config = load_yaml_config(config_path)

    identity = config.identity
    overrides = {
        "team_id": args.team,
        "user_id": args.user,
        "organization_id": args.org,
        "prototype_id": args.prototype,
    }
    identity = replace(identity, **{k: v for k, v in overrides.items() if v})
    if args.role:
        identity = replace(identity, role=Role.parse(args.role))
    registry = config.registry
    if args.api_url is not None:
        registry = replace(registry, api_url=args.api_url.rstrip("/"))
    return replace(config, registry=registry, identity=identity)


def _build_registry(config: SymSyncConfig):
    from symsync.engine.api import RegistryApi
    from symsync.engine.registry import SymbolRegistry

    api = None
    if config.registry.enabled:
        api = RegistryApi(config.registry.api_url, auth_token=config.registry.auth_token)
    registry = SymbolRegistry(
        api,
        config.identity.team_id,
        prototype_id=config.identity.prototype_id,
        enabled=config.registry.enabled,
    )
    return api, registry


async def _list_symbols(config: SymSyncConfig) -> int:
    from symsync.shared.formatters.symbol import (
        DEMO_MESSAGE,
        EMPTY_MESSAGE,
        format_created_date,
        group_heading,
        scope_badge,
    )
    from symsync.tui.handlers.symbols_controller import SymbolsController

    api, registry = _build_registry(config)
    try:
        await registry.refresh()
    finally:
        if api is not None:
            await api.close()

    if not registry.enabled:
        print(DEMO_MESSAGE)
        return 0
    if registry.error:
        print(f"Error: {registry.error}")
        return 1
    controller = SymbolsController(registry, None, config.identity)
    groups = controller.grouped()
    if not groups:
        print(EMPTY_MESSAGE)
        return 0
    for scope, symbols in groups:
        print(group_heading(scope, len(symbols)))
        for symbol in symbols:
            created = format_created_date(symbol.created_at)
            suffix = f"  ({created})" if created else ""
            print(f"  [{scope_badge(symbol.scope)}] {symbol.name}  {symbol.id}{suffix}")
    return 0


async def _export_document(config: SymSyncConfig, document: Path, destination: Path) -> int:
    from symsync.shared.services.document_store import DocumentStore, DocumentFormatError

    api, registry = _build_registry(config)
    try:
        await registry.refresh()
    finally:
        if api is not None:
            await api.close()
    if registry.error:
        logger.warning("Exporting without registry fragments: %s", registry.error)

    try:
        project = DocumentStore(document).load(registry)
    except DocumentFormatError as exc:
        print(f"Error: {exc}")
        return 1
    path = DocumentStore.export(project, destination)
    print(f"Exported {document} -> {path}")
    return 0


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    config = _resolve_config(args)
    headless = bool(args.list or args.export)
    log_file = configure_logging(config.registry.log_level, to_stderr=headless)
    logger.info(
        "Starting symsync cwd=%s config=%s log=%s team=%s demo=%s",
        Path.cwd(), config.source_path, log_file,
        config.identity.team_id, config.registry.demo_mode,
    )

    if args.list:
        sys.exit(asyncio.run(_list_symbols(config)))

    if args.export:
        if not args.document:
            print("Error: --export requires --document.")
            sys.exit(2)
        sys.exit(asyncio.run(
            _export_document(config, Path(args.document), Path(args.export))
        ))

    # TUI mode
    from symsync.adapters.memory_session import InMemorySession
    from symsync.shared.services.document_store import DocumentFormatError, DocumentStore
    from symsync.tui.app import SymSyncApp
    from symsync.tui.handlers.symbols_controller import SymbolsController

    store = DocumentStore(args.document) if args.document else None
    try:
        project = store.read_raw() if store is not None else {}
    except DocumentFormatError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    session = InMemorySession.from_project_data(project)
    api, registry = _build_registry(config)
    controller = SymbolsController(
        registry, session, config.identity,
        error_clear_seconds=config.registry.error_clear_seconds,
    )
    app = SymSyncApp(controller, session, store=store, api=api)
    app.run()


if __name__ == "__main__":
    main()

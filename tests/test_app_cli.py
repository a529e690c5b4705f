"""Tests for CLI argument handling and headless commands."""
from __future__ import annotations

import asyncio
import json
from unittest.mock import patch

from symsync import app as cli
from symsync.engine.models import ApiResult, Role, SymbolScope
from symsync.engine.registry import SymbolRegistry
from symsync.engine.yaml_config import SymSyncConfig

from conftest import make_symbol


def _args(*argv: str):
    return cli._build_parser().parse_args(list(argv))


def test_cli_flags_override_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SYMSYNC_API_URL", raising=False)
    config = cli._resolve_config(_args(
        "--team", "t-9", "--user", "u-1", "--role", "org_admin",
        "--org", "o-1", "--api-url", "http://localhost:9000/",
    ))
    assert config.identity.team_id == "t-9"
    assert config.identity.role is Role.ORG_ADMIN
    assert config.identity.has_organization
    assert config.registry.api_url == "http://localhost:9000"
    assert config.registry.enabled


def test_list_in_demo_mode(capsys):
    code = asyncio.run(cli._list_symbols(SymSyncConfig()))
    assert code == 0
    assert "demo mode" in capsys.readouterr().out


def test_list_prints_groups(fake_api, capsys):
    fake_api.list_symbols.return_value = ApiResult.ok([
        make_symbol("o1", "Footer", SymbolScope.ORGANIZATION),
        make_symbol("t1", "Header", SymbolScope.TEAM),
    ])
    registry = SymbolRegistry(fake_api, "team-1")
    with patch.object(cli, "_build_registry", return_value=(None, registry)):
        code = asyncio.run(cli._list_symbols(SymSyncConfig()))
    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert out == [
        "Team (1)",
        "  [T] Header  t1",
        "Organization (1)",
        "  [O] Footer  o1",
    ]


def test_export_writes_filtered_document(fake_api, tmp_path, capsys):
    document = tmp_path / "doc.json"
    document.write_text(json.dumps({"symbols": [{"id": "team-old", "label": "Old", "children": []}]}))
    registry = SymbolRegistry(fake_api, "team-1")
    destination = tmp_path / "out.json"
    with patch.object(cli, "_build_registry", return_value=(None, registry)):
        code = asyncio.run(cli._export_document(SymSyncConfig(), document, destination))
    assert code == 0
    assert json.loads(destination.read_text()) == {"symbols": []}

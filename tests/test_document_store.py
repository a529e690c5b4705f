"""Tests for project document load/save through reconciliation."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from symsync.engine.models import ApiResult, SymbolScope
from symsync.engine.registry import SymbolRegistry
from symsync.shared.services.document_store import DocumentFormatError, DocumentStore
from symsync.shared.services.durable_write import atomic_write_text

from conftest import make_symbol


def _write(path: Path, data) -> None:
    path.write_text(json.dumps(data))


@pytest.mark.asyncio
async def test_load_merges_registry_and_save_extracts(tmp_path, fake_api):
    path = tmp_path / "doc.json"
    _write(path, {
        "components": [{"tagName": "main"}],
        "symbols": [
            {"id": "local-1", "type": "text"},
            {"id": "team-frag-a", "tagName": "div", "content": "stale"},
        ],
    })
    fake_api.list_symbols.return_value = ApiResult.ok([
        make_symbol("a", fragment={"id": "frag-a", "tagName": "div", "content": "fresh"}),
        make_symbol("b", scope=SymbolScope.ORGANIZATION,
                    fragment={"id": "b", "label": "B", "components": []}),
    ])
    registry = SymbolRegistry(fake_api, "team-1")
    await registry.refresh()

    store = DocumentStore(path)
    project = store.load(registry)
    assert [f["id"] for f in project["symbols"]] == ["local-1", "team-frag-a", "org-b"]
    assert project["symbols"][1]["content"] == "fresh"

    store.save(project)
    saved = json.loads(path.read_text())
    assert [f["id"] for f in saved["symbols"]] == ["local-1", "team-frag-a"]
    assert saved["components"] == [{"tagName": "main"}]


@pytest.mark.asyncio
async def test_load_empty_document_merges_registry(tmp_path, fake_api):
    path = tmp_path / "doc.json"
    _write(path, {})
    fake_api.list_symbols.return_value = ApiResult.ok([
        make_symbol("a", fragment={"id": "frag-a", "tagName": "div"}),
    ])
    registry = SymbolRegistry(fake_api, "team-1")
    await registry.refresh()

    project = DocumentStore(path).load(registry)
    assert [f["id"] for f in project["symbols"]] == ["team-frag-a"]


def test_missing_document_starts_empty(tmp_path):
    store = DocumentStore(tmp_path / "new.json")
    assert not store.exists()
    assert store.load() == {"components": [], "symbols": []}


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_invalid_document_raises(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(DocumentFormatError):
        DocumentStore(path).read_raw()


def test_export_writes_persisted_form(tmp_path):
    project = {"symbols": [{"id": "local"}, {"id": "team-x", "label": "X", "children": []}]}
    out = DocumentStore.export(project, tmp_path / "nested" / "out.json")
    assert json.loads(out.read_text()) == {"symbols": [{"id": "local"}]}


def test_atomic_write_leaves_no_temp_files(tmp_path):
    target = tmp_path / "file.txt"
    atomic_write_text(target, "one")
    atomic_write_text(target, "two")
    assert target.read_text() == "two"
    assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

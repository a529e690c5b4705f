"""Tests for document merge and persistence extraction."""
from __future__ import annotations

import copy

from symsync.engine.reconcile import (
    extract_for_persistence,
    extract_project_data,
    merge_into_document,
    merge_project_data,
)


def test_merge_precedence_and_order():
    document = [{"id": "a", "v": 1}, {"id": "b", "v": 1}]
    registry = [{"id": "a", "v": 2}, {"id": "c", "v": 1}]
    assert merge_into_document(document, registry) == [
        {"id": "a", "v": 2},
        {"id": "b", "v": 1},
        {"id": "c", "v": 1},
    ]


def test_merge_does_not_mutate_inputs():
    document = [{"id": "a", "v": 1}]
    registry = [{"id": "a", "v": 2}]
    before = (copy.deepcopy(document), copy.deepcopy(registry))
    merged = merge_into_document(document, registry)
    merged[0]["v"] = 99
    assert (document, registry) == before


def test_merge_yields_union_of_ids():
    document = [{"id": "local-1"}, {"id": "team-x", "v": 1}, {"no": "id"}]
    registry = [{"id": "team-x", "v": 2}, {"id": "org-y"}, {"id": "proto-z"}]
    merged = merge_into_document(document, registry)
    ids = [f.get("id") for f in merged]
    assert ids == ["local-1", "team-x", None, "org-y", "proto-z"]


def test_merge_duplicate_registry_ids_first_wins():
    merged = merge_into_document([], [{"id": "a", "v": 1}, {"id": "a", "v": 2}])
    assert merged == [{"id": "a", "v": 1}]


def test_extract_keeps_local_and_native_drops_legacy():
    native = {"id": "team-y", "tagName": "div", "components": []}
    legacy = {"id": "org-z", "label": "Card", "components": [{"tagName": "p"}]}
    fragments = [{"id": "local-x"}, native, legacy]
    assert extract_for_persistence(fragments) == [{"id": "local-x"}, native]


def test_extract_drops_unrecognized_managed_fragment():
    fragments = [{"id": "proto-q", "something": True}, {"id": "global-w", "type": "text"}]
    assert extract_for_persistence(fragments) == [{"id": "global-w", "type": "text"}]


def test_project_wrappers():
    project = {"components": [{"tagName": "main"}], "symbols": [{"id": "local-1"}]}
    merged = merge_project_data(project, [{"id": "team-a", "tagName": "div"}])
    assert merged["components"] == project["components"]
    assert [s["id"] for s in merged["symbols"]] == ["local-1", "team-a"]
    assert project["symbols"] == [{"id": "local-1"}]

    legacy = {"id": "team-b", "label": "B", "children": []}
    extracted = extract_project_data({**merged, "symbols": merged["symbols"] + [legacy]})
    assert [s["id"] for s in extracted["symbols"]] == ["local-1", "team-a"]


def test_project_wrappers_pass_through_when_nothing_to_do():
    project = {"components": []}
    assert merge_project_data(project, []) is project
    assert merge_project_data(None, [{"id": "a"}]) is None
    assert extract_project_data(project) is project


def test_empty_document_still_receives_registry_fragments():
    merged = merge_project_data({}, [{"id": "team-a", "tagName": "div"}])
    assert merged == {"symbols": [{"id": "team-a", "tagName": "div"}]}

    assert extract_project_data({}) == {}
    assert extract_project_data({"symbols": []}) == {"symbols": []}

"""Tests for the in-memory editing session."""
from __future__ import annotations

from symsync.adapters.memory_session import Component, InMemorySession
from symsync.engine.session import EditingSession


def _session() -> InMemorySession:
    return InMemorySession.from_project_data({
        "components": [
            {"tagName": "header", "id": "hdr"},
            {"tagName": "main", "id": "body", "components": [{"tagName": "p", "id": "p1"}]},
        ],
        "symbols": [
            {"id": "team-card", "tagName": "div", "components": [{"tagName": "h2"}]},
            {"id": "org-old", "label": "Old", "components": [{"tagName": "span"}]},
            {"id": "local-x", "type": "text"},
        ],
    })


def test_satisfies_protocol():
    assert isinstance(_session(), EditingSession)


def test_mains_built_from_native_fragments_only():
    session = _session()
    assert sorted(session.component_id(m) for m in session.get_mains()) == ["local-x", "team-card"]
    assert session.find_main("org-old") is None


def test_instance_links_to_main_and_serializes_link():
    session = _session()
    main = session.find_main("team-card")
    instance = session.create_instance(main)
    assert instance.main_id == "team-card"
    assert instance.id != main.id
    session.move(instance, session.primary_container(), 0)
    data = session.serialize(instance)
    assert data["__symbol"] == "team-card"
    assert session.instances_of("team-card") == [instance]



def test_is_symbol_for_mains_and_instances_only():
    session = _session()
    main = session.find_main("team-card")
    instance = session.create_instance(main)
    session.move(instance, session.primary_container(), 0)
    assert session.is_symbol(main)
    assert session.is_symbol(instance)
    assert session.is_symbol(session.find_main("local-x"))
    assert not session.is_symbol(session.primary_container())
    assert not session.is_symbol(instance.children[0])
    assert not session.is_symbol(None)

def test_get_fragments_reflects_live_main_and_keeps_extra_keys():
    session = InMemorySession(fragments=[{"id": "team-a", "tagName": "div", "_registryId": "s1"}])
    session.find_main("team-a").content = "edited"
    (fragment,) = session.get_fragments()
    assert fragment["content"] == "edited"
    assert fragment["_registryId"] == "s1"


def test_insert_content_positions():
    session = _session()
    body = session.primary_container()
    inserted = session.insert_content(body, [{"tagName": "a"}, {"tagName": "b"}], at=0)
    assert [c.tag_name for c in body.children] == ["a", "b", "p"]
    assert all(isinstance(c, Component) for c in inserted)
    assert session.index_of(body.children[1]) == 1


def test_drag_removes_block_on_drop_and_abandon():
    session = _session()
    session.add_block("blk", "Card", [{"tagName": "div"}])
    assert session.start_drag("blk", lambda: session.remove_block("blk"))
    assert not session.start_drag("blk", lambda: None)
    session.abandon_drag()
    assert "blk" not in session.blocks

    session.add_block("blk", "Card", [{"tagName": "div"}])
    session.start_drag("blk", lambda: session.remove_block("blk"))
    inserted = session.drop(session.primary_container())
    assert [c.tag_name for c in inserted] == ["div"]
    assert "blk" not in session.blocks
    assert session.dragging is None


def test_transaction_counts_one_undo_step():
    session = _session()
    with session.transaction():
        with session.transaction():
            session.insert_content(session.root(), [{"tagName": "x"}])
    assert session.undo_steps == 1


def test_project_data_round_trip_keeps_tree():
    session = _session()
    data = session.to_project_data()
    assert [c["id"] for c in data["components"]] == ["hdr", "body"]
    assert data["components"][1]["components"][0]["id"] == "p1"
    assert [f["id"] for f in data["symbols"]] == ["team-card", "org-old", "local-x"]

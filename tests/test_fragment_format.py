"""Tests for fragment format detection and content copying."""
from __future__ import annotations

import pytest

from symsync.engine.errors import ReconciliationAmbiguity
from symsync.engine.fragment_format import (
    FragmentFormat,
    classify_fragment,
    copy_content,
    is_native_fragment,
    require_native,
)

NATIVE = {"id": "team-a", "tagName": "section", "components": [{"tagName": "h1"}]}
LEGACY = {"id": "org-z", "label": "Card", "components": [{"tagName": "div"}, {"type": "text"}]}


@pytest.mark.parametrize("payload", [
    None,
    {},
    [],
    "tagName",
    42,
    {"id": None, "label": None},
    {"components": "not-a-list", "id": "x", "label": "y"},
    {"tagName": ""},
    {"children": [], "id": "x"},
])
def test_detection_is_total_and_safe(payload):
    result = is_native_fragment(payload)
    assert result is False
    assert classify_fragment(payload) is FragmentFormat.UNKNOWN


def test_native_by_tag_name_or_type():
    assert is_native_fragment({"tagName": "div"})
    assert is_native_fragment({"type": "text"})
    assert classify_fragment(NATIVE) is FragmentFormat.NATIVE


def test_legacy_envelope_is_not_native():
    assert classify_fragment(LEGACY) is FragmentFormat.LEGACY
    assert classify_fragment({"id": "x", "label": "y", "children": []}) is FragmentFormat.LEGACY
    assert not is_native_fragment(LEGACY)


def test_require_native_raises_for_other_shapes():
    assert require_native(NATIVE) is NATIVE
    with pytest.raises(ReconciliationAmbiguity) as excinfo:
        require_native(LEGACY)
    assert excinfo.value.fragment_id == "org-z"


def test_copy_content_legacy_uses_children():
    content = copy_content(LEGACY)
    assert content == LEGACY["components"]
    content[0]["tagName"] = "span"
    assert LEGACY["components"][0]["tagName"] == "div"


def test_copy_content_native_drops_identity_and_links():
    data = {**NATIVE, "__symbol": "team-a", "_registryId": "sym-1"}
    (content,) = copy_content(data)
    assert "id" not in content
    assert "__symbol" not in content
    assert "_registryId" not in content
    assert content["tagName"] == "section"
    assert data["id"] == "team-a"


def test_copy_content_unknown_is_empty():
    assert copy_content({"foo": "bar"}) == []

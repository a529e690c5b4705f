"""Session reconciliation: registry fragments in on load, out on save.

Both transforms are pure. They never mutate their inputs and always
return a new list.
"""
from __future__ import annotations

import logging
from typing import Any

from .fragment_format import FragmentFormat, classify_fragment
from .scope_codec import is_managed_id

logger = logging.getLogger(__name__)

SYMBOLS_KEY = "symbols"


def _fragment_id(fragment: Any) -> str | None:
    if isinstance(fragment, dict):
        value = fragment.get("id")
        if isinstance(value, str) and value:
            return value
    return None


def merge_into_document(
    document_fragments: list[Any],
    registry_fragments: list[dict[str, Any]],
) -> list[Any]:
    """Overlay registry fragments onto a document's fragment list.

    Registry content wins on id collision (another document may have
    edited it since this one was saved). Registry fragments the
    document has never seen are appended in registry order. Local
    fragments pass through unchanged.
    """
    by_id: dict[str, dict[str, Any]] = {}
    order: list[str] = []
    for fragment in registry_fragments:
        fid = _fragment_id(fragment)
        if fid is None or fid in by_id:
            continue
        by_id[fid] = fragment
        order.append(fid)

    consumed: set[str] = set()
    merged: list[Any] = []
    for fragment in document_fragments:
        fid = _fragment_id(fragment)
        if fid is not None and fid in by_id:
            merged.append(dict(by_id[fid]))
            consumed.add(fid)
        else:
            merged.append(fragment)

    appended = [dict(by_id[fid]) for fid in order if fid not in consumed]
    merged.extend(appended)
    logger.debug(
        "Merged registry fragments: %d replaced, %d appended, %d local",
        len(consumed), len(appended), len(merged) - len(consumed) - len(appended),
    )
    return merged


def extract_for_persistence(document_fragments: list[Any]) -> list[Any]:
    """Filter a document's fragments for saving.

    Local fragments are always kept. Registry-managed fragments are kept
    only in native form, which the session needs to relink instances on
    the next load; legacy snapshots were inserted by value and are
    dropped. Unrecognized managed payloads are dropped as well.
    """
    kept: list[Any] = []
    dropped: list[str] = []
    for fragment in document_fragments:
        fid = _fragment_id(fragment)
        if fid is None or not is_managed_id(fid):
            kept.append(fragment)
            continue
        fmt = classify_fragment(fragment)
        if fmt is FragmentFormat.NATIVE:
            kept.append(fragment)
            continue
        if fmt is FragmentFormat.UNKNOWN:
            logger.debug("Fragment %s has an unrecognized format; dropping on save", fid)
        dropped.append(fid)
    logger.debug(
        "Extracted %d of %d fragments for persistence (dropped: %s)",
        len(kept), len(document_fragments), ", ".join(dropped) or "none",
    )
    return kept


def merge_project_data(
    project_data: dict[str, Any] | None,
    registry_fragments: list[dict[str, Any]],
) -> dict[str, Any] | None:
    """Apply merge_into_document to a project document's ``symbols`` list."""
    if project_data is None or not registry_fragments:
        return project_data
    existing = project_data.get(SYMBOLS_KEY)
    if not isinstance(existing, list):
        existing = []
    return {
        **project_data,
        SYMBOLS_KEY: merge_into_document(existing, registry_fragments),
    }


def extract_project_data(project_data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Apply extract_for_persistence to a project document's ``symbols`` list."""
    if project_data is None or not isinstance(project_data.get(SYMBOLS_KEY), list):
        return project_data
    return {
        **project_data,
        SYMBOLS_KEY: extract_for_persistence(project_data[SYMBOLS_KEY]),
    }

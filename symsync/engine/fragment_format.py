"""Fragment format detector.

Two stored shapes of ``fragmentData`` coexist:

- native: a serialized component (``tagName``/``type`` at the top level)
  that the editing session can register as a main definition and link
  instances to;
- legacy: an ``{id, label, components[]}`` envelope around a flat tree,
  inserted by copy only.

Every merge, extract and insert decision goes through classify_fragment.
"""
from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Any

from .errors import ReconciliationAmbiguity
from .models import REGISTRY_REF_KEY

logger = logging.getLogger(__name__)

ELEMENT_KIND_KEYS: tuple[str, ...] = ("tagName", "type")
CHILD_KEYS: tuple[str, ...] = ("components", "children")

# Keys that tie a serialized component to a main definition.
LINK_KEYS: tuple[str, ...] = ("__symbol", "__symbolId")


class FragmentFormat(str, Enum):
    NATIVE = "native"
    LEGACY = "legacy"
    UNKNOWN = "unknown"


def _child_list(data: dict[str, Any]) -> list[Any] | None:
    for key in CHILD_KEYS:
        value = data.get(key)
        if isinstance(value, list):
            return value
    return None


def classify_fragment(data: Any) -> FragmentFormat:
    """Classify a stored fragment payload. Never raises."""
    if not isinstance(data, dict):
        return FragmentFormat.UNKNOWN
    if any(data.get(key) for key in ELEMENT_KIND_KEYS):
        return FragmentFormat.NATIVE
    if _child_list(data) is not None and data.get("id") and data.get("label"):
        return FragmentFormat.LEGACY
    return FragmentFormat.UNKNOWN


def is_native_fragment(data: Any) -> bool:
    return classify_fragment(data) is FragmentFormat.NATIVE


def require_native(data: Any) -> dict[str, Any]:
    """Return *data* if native, else raise ReconciliationAmbiguity."""
    if classify_fragment(data) is not FragmentFormat.NATIVE:
        fragment_id = data.get("id") if isinstance(data, dict) else None
        raise ReconciliationAmbiguity(fragment_id)
    return data


def copy_content(data: Any) -> list[dict[str, Any]]:
    """Raw, unlinked copy of a fragment's content for insertion by value.

    Legacy envelopes contribute their children; a native fragment
    contributes itself minus its id and link markers.
    """
    fmt = classify_fragment(data)
    if fmt is FragmentFormat.LEGACY:
        return [copy.deepcopy(c) for c in (_child_list(data) or []) if isinstance(c, dict)]
    if fmt is FragmentFormat.NATIVE:
        content = copy.deepcopy(data)
        content.pop("id", None)
        for key in (*LINK_KEYS, REGISTRY_REF_KEY):
            content.pop(key, None)
        return [content]
    logger.debug("copy_content: unrecognized fragment shape, nothing to copy")
    return []

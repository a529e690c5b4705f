"""Adapters package - editing session implementations.

The core talks to the editing session only through the
EditingSession protocol; this package holds concrete sessions.
"""
from __future__ import annotations

from .memory_session import Component, InMemorySession

__all__ = [
    "Component",
    "InMemorySession",
]

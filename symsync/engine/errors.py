"""Exception hierarchy for the symbol synchronization core.

These are raised inside the core only. The registry client converts
them into a failed result plus a user-facing message at its boundary.
"""
from __future__ import annotations


class SymbolSyncError(Exception):
    """Base exception for all symbol synchronization errors."""


class NetworkFailure(SymbolSyncError):
    """A registry request was rejected or returned a non-success status."""
    def __init__(self, operation: str, reason: str, status: int | None = None):
        self.operation = operation
        self.reason = reason
        self.status = status
        suffix = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"{operation} failed: {reason}{suffix}")


class ValidationFailure(SymbolSyncError):
    """Input rejected before any network call."""
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(reason)


class PermissionDenied(SymbolSyncError):
    """The actor may not perform this action on the symbol."""
    def __init__(self, action: str, symbol_id: str):
        self.action = action
        self.symbol_id = symbol_id
        super().__init__(f"Not allowed to {action} symbol {symbol_id}")


class ReconciliationAmbiguity(SymbolSyncError):
    """A fragment payload is neither clearly native nor clearly legacy."""
    def __init__(self, fragment_id: str | None):
        self.fragment_id = fragment_id
        super().__init__(
            f"Fragment {fragment_id or '<no id>'} has an unrecognized format"
        )

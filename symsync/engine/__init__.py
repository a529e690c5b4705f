"""Symbol synchronization core: registry client, reconciliation, codecs."""
from .models import (
    ApiResult,
    IdentityContext,
    Role,
    Symbol,
    SymbolScope,
)
from .config import RegistryConfig
from .errors import (
    NetworkFailure,
    PermissionDenied,
    ReconciliationAmbiguity,
    SymbolSyncError,
    ValidationFailure,
)
from .fragment_format import FragmentFormat, classify_fragment, is_native_fragment
from .reconcile import extract_for_persistence, merge_into_document
from .registry import SymbolRegistry
from .scope_codec import ScopedId, is_managed_id, prefix_for_scope, strip_known_prefix

__all__ = [
    # Models
    "ApiResult",
    "IdentityContext",
    "Role",
    "Symbol",
    "SymbolScope",
    # Config
    "RegistryConfig",
    # Errors
    "NetworkFailure",
    "PermissionDenied",
    "ReconciliationAmbiguity",
    "SymbolSyncError",
    "ValidationFailure",
    # Codec / detector
    "FragmentFormat",
    "ScopedId",
    "classify_fragment",
    "is_managed_id",
    "is_native_fragment",
    "prefix_for_scope",
    "strip_known_prefix",
    # Registry + reconciliation
    "SymbolRegistry",
    "extract_for_persistence",
    "merge_into_document",
]

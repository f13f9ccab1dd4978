"""
Document lifecycle invariants.

These are structural law for every document kind. No settings file or
caller option may switch them off. Enforcement lives in
``services.document_store``, ``services.approval_service``, the pure
topology in ``docflow_engines.approval`` and the ORM listeners in
``models.document``; this module only names them.
"""

from enum import Enum, unique


@unique
class DocumentInvariant(str, Enum):
    """Non-configurable guarantees of the lifecycle core."""

    HISTORY_NON_EMPTY = "history_non_empty"
    """Every document has at least one snapshot; creation writes v1."""

    VERSION_MONOTONICITY = "version_monotonicity"
    """Snapshot versions are exactly 1..n, strictly increasing, no gaps,
    no duplicates."""

    APPEND_ONLY_HISTORY = "append_only_history"
    """Snapshots and approval history entries are never rewritten or
    removed. Restoring a version appends a new snapshot."""

    LOCK_IMMUTABILITY = "lock_immutability"
    """While a document is locked its payload and version cannot change
    until it is explicitly unlocked."""

    TRANSITION_TOPOLOGY = "transition_topology"
    """Approval status moves only along the next/prev edges of the
    transition table. There is no jump to an arbitrary status."""

    DERIVED_TOTALS_PURITY = "derived_totals_purity"
    """Totals are recomputed from cost inputs on read and never stored."""

    ATOMIC_MUTATION = "atomic_mutation"
    """A mutation is checked in full before anything is written and is
    persisted with a single repository save."""


ALL_DOCUMENT_INVARIANTS: frozenset[DocumentInvariant] = frozenset(DocumentInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "docflow_engines",
    "docflow_services",
    "docflow_config",
)

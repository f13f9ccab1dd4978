"""
Versioned document (``docflow_kernel.domain.document``).

Responsibility
--------------
The immutable ``Document`` record shared by every document kind
(contracts and fund plans), its append-only ``VersionSnapshot`` history,
lock metadata and the helpers the store uses to derive new states.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects. ZERO I/O. Every mutation
in ``services.document_store`` builds a new ``Document`` with
``dataclasses.replace``; nothing here is ever modified in place.

Invariants enforced
-------------------
* ``version_history`` is never empty and its versions are exactly
  ``1..n`` (``validate_history``).
* After a versioning action the last snapshot's version equals
  ``Document.version``.
* A locked document carries ``lock_type``, ``locked_at`` and
  ``locked_by``; an unlocked one carries none of them.

Failure modes
-------------
* ``VersionSequenceError`` from ``validate_history`` when a history read
  back from storage has gaps, duplicates or does not start at 1.
* ``UnsupportedPayloadError`` from ``merge_payload`` when the payload type
  cannot take a partial update.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from docflow_kernel.domain.approval import ApprovalRecord, ContractStatus
from docflow_kernel.exceptions import UnsupportedPayloadError, VersionSequenceError

PayloadT = TypeVar("PayloadT")


class DocumentKind(str, Enum):
    CONTRACT = "contract"
    FUND_PLAN = "fund_plan"


class LockType(str, Enum):
    """Why a version was frozen."""

    CONTRACT = "contract"
    CHANGE_CONTRACT = "change_contract"


DEFAULT_LOCK_NOTES: dict[LockType, str] = {
    LockType.CONTRACT: "At contract signing",
    LockType.CHANGE_CONTRACT: "At change contract",
}

RESTORE_NOTE_TEMPLATE = "restored from v{version}"


@dataclass(frozen=True)
class DocumentSettings:
    """Store options.

    ``lock_notes`` supplies the snapshot note when ``lock`` is called
    without one. ``reference_prefix`` starts contract reference numbers
    (``C-2025-0001``).
    """

    lock_notes: dict[LockType, str] = field(
        default_factory=lambda: dict(DEFAULT_LOCK_NOTES)
    )
    restore_note_template: str = RESTORE_NOTE_TEMPLATE
    reference_prefix: str = "C"

    def __post_init__(self) -> None:
        if not self.reference_prefix:
            raise ValueError("reference_prefix must not be empty")
        if "{version}" not in self.restore_note_template:
            raise ValueError("restore_note_template must contain '{version}'")

    def lock_note(self, lock_type: LockType) -> str | None:
        return self.lock_notes.get(lock_type)

    def restore_note(self, version: int) -> str:
        return self.restore_note_template.format(version=version)


@dataclass(frozen=True)
class VersionSnapshot(Generic[PayloadT]):
    """A frozen copy of the payload at one version. Append-only."""

    version: int
    payload: PayloadT
    saved_at: datetime
    saved_by: str | None
    lock_type: LockType | None = None
    note: str | None = None


@dataclass(frozen=True)
class Document(Generic[PayloadT]):
    """A versioned, lockable business record."""

    document_id: UUID
    kind: DocumentKind
    payload: PayloadT
    version: int
    version_history: tuple[VersionSnapshot[PayloadT], ...]
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    owner_id: str | None = None
    is_locked: bool = False
    lock_type: LockType | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    approval: ApprovalRecord = field(default_factory=ApprovalRecord)
    reference_number: str | None = None

    @property
    def status(self) -> ContractStatus:
        return self.approval.status

    @property
    def latest_snapshot(self) -> VersionSnapshot[PayloadT]:
        return self.version_history[-1]

    def snapshot(self, version: int) -> VersionSnapshot[PayloadT] | None:
        for snap in self.version_history:
            if snap.version == version:
                return snap
        return None

    def last_locked_snapshot(self) -> VersionSnapshot[PayloadT] | None:
        """Most recent locked snapshot preceding the current editable state.

        While the document is locked, its own lock snapshot IS the current
        state, so the lock before that one is returned.
        """
        locked = [s for s in self.version_history if s.lock_type is not None]
        if self.is_locked and locked and locked[-1].version == self.version:
            locked = locked[:-1]
        return locked[-1] if locked else None


def validate_history(document_id: UUID, history: tuple[VersionSnapshot, ...]) -> None:
    """Raise ``VersionSequenceError`` unless versions are exactly 1..n."""
    versions = tuple(s.version for s in history)
    if not versions or versions != tuple(range(1, len(versions) + 1)):
        raise VersionSequenceError(str(document_id), versions)


def merge_payload(payload: Any, partial: Mapping[str, Any]) -> Any:
    """Shallow-merge ``partial`` into ``payload`` without mutating it.

    Dataclass payloads are rebuilt with ``dataclasses.replace`` (so their
    own validation runs again); mapping payloads are merged key by key.
    """
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        known = {f.name for f in dataclasses.fields(payload)}
        unknown = sorted(set(partial) - known)
        if unknown:
            raise UnsupportedPayloadError(
                type(payload).__name__, f"unknown fields {unknown}"
            )
        return dataclasses.replace(payload, **partial)
    if isinstance(payload, Mapping):
        return {**payload, **partial}
    raise UnsupportedPayloadError(
        type(payload).__name__, "only dataclass and mapping payloads can be merged"
    )


def format_reference_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year:04d}-{sequence:04d}"


def parse_reference_sequence(reference: str | None, prefix: str, year: int) -> int | None:
    """Sequence part of ``reference`` if it belongs to ``prefix``/``year``."""
    if not reference:
        return None
    head = f"{prefix}-{year:04d}-"
    if not reference.startswith(head):
        return None
    tail = reference[len(head):]
    return int(tail) if tail.isdigit() else None

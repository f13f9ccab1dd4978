"""
Approval domain types (``docflow_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the contract approval workflow: the closed status
enum, the transition table, the approval record carried by every
document, history entries, stage signoffs, transition results and the
event handed to the notification collaborator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects. ZERO I/O.

Invariants enforced
-------------------
* Topology: ``CONTRACT_TRANSITIONS`` is total over ``ContractStatus``.
  Each status declares at most one forward (``next``) and one backward
  (``prev``) target; nothing else is reachable.
* ``COMPLETED`` is terminal: neither edge is defined.
* ``REVISION`` is only entered by a return and behaves like ``DRAFT`` for
  submission.
* ``ApprovalRecord.history`` and ``return_count`` only grow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID


# =========================================================================
# Status lifecycle
# =========================================================================


class ContractStatus(str, Enum):
    """Approval stages, in workflow order."""

    DRAFT = "draft"
    DOCUMENT_REVIEW = "document_review"
    MANAGER_APPROVAL = "manager_approval"
    COMPLETED = "completed"
    REVISION = "revision"


@dataclass(frozen=True)
class StageTransition:
    """Forward and backward edges out of one status."""

    next: ContractStatus | None = None
    prev: ContractStatus | None = None


CONTRACT_TRANSITIONS: dict[ContractStatus, StageTransition] = {
    ContractStatus.DRAFT: StageTransition(next=ContractStatus.DOCUMENT_REVIEW),
    ContractStatus.REVISION: StageTransition(next=ContractStatus.DOCUMENT_REVIEW),
    ContractStatus.DOCUMENT_REVIEW: StageTransition(
        next=ContractStatus.MANAGER_APPROVAL,
        prev=ContractStatus.REVISION,
    ),
    ContractStatus.MANAGER_APPROVAL: StageTransition(
        next=ContractStatus.COMPLETED,
        prev=ContractStatus.REVISION,
    ),
    ContractStatus.COMPLETED: StageTransition(),
}

INITIAL_STATUS = ContractStatus.DRAFT

SUBMITTABLE_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.DRAFT,
    ContractStatus.REVISION,
})

TERMINAL_STATUSES: frozenset[ContractStatus] = frozenset(
    status for status, edges in CONTRACT_TRANSITIONS.items()
    if edges.next is None and edges.prev is None
)


class ApprovalAction(str, Enum):
    """Discrete actions recorded in an approval history."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    RETURNED = "returned"


# =========================================================================
# Actors, signoffs, history
# =========================================================================


@dataclass(frozen=True)
class Actor:
    """Who is acting. ``role`` is only consulted by caller-side gating."""

    actor_id: str
    name: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class StageSignoff:
    """Auditable signer of one stage (check, approval or return)."""

    actor_id: str
    actor_name: str | None
    signed_at: datetime
    comment: str | None = None


@dataclass(frozen=True)
class ApprovalHistoryEntry:
    """One transition in the approval log. Immutable."""

    entry_id: UUID
    action: ApprovalAction
    actor_id: str
    actor_name: str | None
    from_status: ContractStatus
    to_status: ContractStatus
    comment: str | None
    timestamp: datetime


@dataclass(frozen=True)
class ApprovalRecord:
    """Approval state carried by a document.

    ``checked`` is stamped when a document leaves DOCUMENT_REVIEW,
    ``approved`` when it leaves MANAGER_APPROVAL and ``returned`` on every
    return (the latest one wins; earlier ones remain in ``history``).
    """

    status: ContractStatus = INITIAL_STATUS
    return_count: int = 0
    history: tuple[ApprovalHistoryEntry, ...] = ()
    checked: StageSignoff | None = None
    approved: StageSignoff | None = None
    returned: StageSignoff | None = None


# =========================================================================
# Settings and role gating data
# =========================================================================


DEFAULT_STAGE_ROLES: dict[ContractStatus, tuple[str, ...]] = {
    ContractStatus.DRAFT: ("sales",),
    ContractStatus.REVISION: ("sales",),
    ContractStatus.DOCUMENT_REVIEW: ("reviewer",),
    ContractStatus.MANAGER_APPROVAL: ("manager",),
    ContractStatus.COMPLETED: (),
}


@dataclass(frozen=True)
class ApprovalSettings:
    """Workflow options.

    ``require_return_comment``: a return with a blank comment is refused
    (soft failure) by the state machine itself.
    ``stage_roles``: which roles may act while a document sits in a status.
    ``superuser_roles``: roles allowed to act in any non-terminal status.
    """

    require_return_comment: bool = True
    stage_roles: dict[ContractStatus, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_STAGE_ROLES)
    )
    superuser_roles: tuple[str, ...] = ("admin",)


# =========================================================================
# Results and events
# =========================================================================


@dataclass(frozen=True)
class TransitionEvent:
    """What the notification collaborator receives after a transition."""

    document_id: UUID
    action: ApprovalAction
    from_status: ContractStatus
    to_status: ContractStatus
    actor_id: str
    actor_name: str | None
    comment: str | None
    occurred_at: datetime


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a state machine call. Truthy only on success."""

    success: bool
    new_status: ContractStatus | None = None
    event: TransitionEvent | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.success


class NotificationEmitter(Protocol):
    """Receives one event per successful transition. Rendering and delivery
    are the implementer's concern."""

    def emit(self, event: TransitionEvent) -> None:
        ...

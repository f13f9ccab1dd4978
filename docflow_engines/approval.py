"""
docflow_engines.approval -- Pure approval transition engine.

Responsibility:
    Decide whether an approval action is legal for a record, compute the
    record that results from a legal action, and answer the role-gating
    question callers ask before invoking the state machine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import docflow_kernel/domain/ types.

Invariants enforced:
    - Topology: targets come only from ``CONTRACT_TRANSITIONS``.  There is
      no way to request an arbitrary target status.
    - Submission is legal only from DRAFT or REVISION.
    - Every return increments ``return_count``, including repeats.
    - Purity: no clock access.  Timestamps and entry ids are passed in.

Failure modes:
    - ``evaluate_transition`` never raises; an illegal action is reported as
      ``TransitionCheck(allowed=False, reason=...)``.
    - ``apply_transition`` raises ValueError if called with an action that
      ``evaluate_transition`` would refuse (programming error).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from docflow_kernel.domain.approval import (
    CONTRACT_TRANSITIONS,
    SUBMITTABLE_STATUSES,
    ApprovalAction,
    ApprovalHistoryEntry,
    ApprovalRecord,
    ApprovalSettings,
    ContractStatus,
    StageSignoff,
    StageTransition,
)


@dataclass(frozen=True)
class TransitionCheck:
    """Result of evaluating an action against a record."""

    allowed: bool
    target: ContractStatus | None = None
    reason: str = ""


def transition_for(status: ContractStatus) -> StageTransition:
    """Edges out of ``status``. Total over ``ContractStatus``."""
    return CONTRACT_TRANSITIONS[status]


def evaluate_transition(
    record: ApprovalRecord,
    action: ApprovalAction,
    comment: str | None = None,
    settings: ApprovalSettings | None = None,
) -> TransitionCheck:
    """Check ``action`` against the topology and the workflow settings."""
    settings = settings or ApprovalSettings()
    status = record.status
    edges = transition_for(status)

    if action == ApprovalAction.SUBMITTED:
        if status not in SUBMITTABLE_STATUSES:
            return TransitionCheck(False, reason=f"cannot submit from {status.value}")
        if edges.next is None:
            return TransitionCheck(False, reason=f"{status.value} has no next stage")
        return TransitionCheck(True, target=edges.next)

    if action == ApprovalAction.APPROVED:
        if edges.next is None:
            return TransitionCheck(False, reason=f"{status.value} has no next stage")
        return TransitionCheck(True, target=edges.next)

    if action == ApprovalAction.RETURNED:
        if edges.prev is None:
            return TransitionCheck(False, reason=f"{status.value} has no previous stage")
        if settings.require_return_comment and not (comment and comment.strip()):
            return TransitionCheck(False, reason="a return requires a comment")
        return TransitionCheck(True, target=edges.prev)

    return TransitionCheck(False, reason=f"unknown action {action!r}")


def apply_transition(
    record: ApprovalRecord,
    action: ApprovalAction,
    *,
    actor_id: str,
    actor_name: str | None,
    comment: str | None,
    at: datetime,
    entry_id: UUID,
    settings: ApprovalSettings | None = None,
) -> ApprovalRecord:
    """Return the record after ``action``. The input record is not modified.

    Leaving DOCUMENT_REVIEW by approval stamps ``checked``; leaving
    MANAGER_APPROVAL by approval stamps ``approved``; a return stamps
    ``returned`` and increments ``return_count``.
    """
    check = evaluate_transition(record, action, comment, settings)
    if not check.allowed or check.target is None:
        raise ValueError(f"Illegal transition: {check.reason}")

    entry = ApprovalHistoryEntry(
        entry_id=entry_id,
        action=action,
        actor_id=actor_id,
        actor_name=actor_name,
        from_status=record.status,
        to_status=check.target,
        comment=comment,
        timestamp=at,
    )
    signoff = StageSignoff(
        actor_id=actor_id, actor_name=actor_name, signed_at=at, comment=comment,
    )
    updated = replace(record, status=check.target, history=record.history + (entry,))

    if action == ApprovalAction.APPROVED:
        if record.status == ContractStatus.DOCUMENT_REVIEW:
            updated = replace(updated, checked=signoff)
        elif record.status == ContractStatus.MANAGER_APPROVAL:
            updated = replace(updated, approved=signoff)
    elif action == ApprovalAction.RETURNED:
        updated = replace(
            updated, returned=signoff, return_count=record.return_count + 1,
        )
    return updated


def can_act(
    role: str | None,
    status: ContractStatus,
    settings: ApprovalSettings | None = None,
) -> bool:
    """Whether ``role`` may act on a document sitting in ``status``.

    The state machine does not call this; callers gate with it first.
    Nobody may act on a terminal status.
    """
    settings = settings or ApprovalSettings()
    edges = transition_for(status)
    if edges.next is None and edges.prev is None:
        return False
    if role is None:
        return False
    if role in settings.superuser_roles:
        return True
    return role in settings.stage_roles.get(status, ())

"""
docflow_services.approval_service -- ApprovalStateMachine.

Responsibility:
    Move a document through the contract approval workflow.  Loads one
    document, asks the pure approval engine whether the action is legal,
    persists the new approval record with a single save and hands one
    ``TransitionEvent`` to the notification emitter.

Architecture position:
    Services -- orchestration over docflow_engines + docflow_kernel.
    Role identity is NOT checked here; callers gate with
    ``docflow_engines.approval.can_act`` before invoking a transition.

Invariants enforced:
    - Topology: only next/prev edges of the transition table are taken.
    - Atomic mutation: on failure the document is untouched and no event is
      emitted; on success exactly one save and one emit happen, in that
      order.
    - Return counting: every successful return increments return_count.

Failure modes:
    - Rejections return a falsy ``TransitionResult`` with a reason.  They
      never raise.
    - Repository and emitter errors propagate; under ``session_scope`` the
      save is rolled back with them.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID, uuid4

from docflow_engines.approval import apply_transition, evaluate_transition
from docflow_kernel.domain.approval import (
    Actor,
    ApprovalAction,
    ApprovalSettings,
    NotificationEmitter,
    TransitionEvent,
    TransitionResult,
)
from docflow_kernel.domain.clock import Clock, SystemClock
from docflow_kernel.domain.repository import DocumentRepository
from docflow_kernel.logging_config import get_logger
from docflow_kernel.services.notifications import NullEmitter

logger = get_logger("services.approval")


class ApprovalStateMachine:
    """Topology-checked approval transitions over a document repository."""

    def __init__(
        self,
        repository: DocumentRepository,
        clock: Clock | None = None,
        emitter: NotificationEmitter | None = None,
        settings: ApprovalSettings | None = None,
    ) -> None:
        self._repo = repository
        self._clock = clock or SystemClock()
        self._emitter = emitter or NullEmitter()
        self._settings = settings or ApprovalSettings()

    def submit(self, document_id: UUID, actor: Actor) -> TransitionResult:
        """DRAFT or REVISION -> DOCUMENT_REVIEW."""
        return self._transition(document_id, ApprovalAction.SUBMITTED, actor, None)

    def approve(
        self, document_id: UUID, actor: Actor, comment: str | None = None,
    ) -> TransitionResult:
        """Move forward one stage, stamping the stage signer."""
        return self._transition(document_id, ApprovalAction.APPROVED, actor, comment)

    def return_(
        self, document_id: UUID, actor: Actor, comment: str | None,
    ) -> TransitionResult:
        """Move back one stage and count the return."""
        return self._transition(document_id, ApprovalAction.RETURNED, actor, comment)

    def _transition(
        self,
        document_id: UUID,
        action: ApprovalAction,
        actor: Actor,
        comment: str | None,
    ) -> TransitionResult:
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject(document_id, action, actor, "document not found")

        check = evaluate_transition(document.approval, action, comment, self._settings)
        if not check.allowed:
            return self._reject(document_id, action, actor, check.reason)

        now = self._clock.now()
        from_status = document.status
        approval = apply_transition(
            document.approval,
            action,
            actor_id=actor.actor_id,
            actor_name=actor.name,
            comment=comment,
            at=now,
            entry_id=uuid4(),
            settings=self._settings,
        )
        self._repo.save(replace(document, approval=approval, updated_at=now))

        event = TransitionEvent(
            document_id=document_id,
            action=action,
            from_status=from_status,
            to_status=approval.status,
            actor_id=actor.actor_id,
            actor_name=actor.name,
            comment=comment,
            occurred_at=now,
        )
        logger.info(
            f"contract_{action.value}",
            extra={
                "document_id": str(document_id),
                "from_status": from_status.value,
                "to_status": approval.status.value,
                "actor_id": actor.actor_id,
                "return_count": approval.return_count,
            },
        )
        self._emitter.emit(event)
        return TransitionResult(success=True, new_status=approval.status, event=event)

    def _reject(
        self,
        document_id: UUID,
        action: ApprovalAction,
        actor: Actor,
        reason: str,
    ) -> TransitionResult:
        logger.info(
            "contract_transition_rejected",
            extra={
                "document_id": str(document_id),
                "action": action.value,
                "actor_id": actor.actor_id,
                "reason": reason,
            },
        )
        return TransitionResult(success=False, reason=reason)

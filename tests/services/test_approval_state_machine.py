"""
Tests for ApprovalStateMachine.

Every test runs against both the in-memory and the SQLite repository.

Covers:
- The end-to-end contract workflow with signoff stamping
- Topology: nothing leaves COMPLETED, submit only from DRAFT/REVISION
- Return counting across repeated returns
- Mandatory return comment
- Exactly one notification per successful transition, none on failure
- Approval history persistence
"""

from uuid import uuid4

import pytest

from docflow_kernel.domain.approval import (
    ApprovalAction,
    ApprovalSettings,
    ContractStatus,
)
from docflow_kernel.services.notifications import RecordingEmitter
from docflow_services.approval_service import ApprovalStateMachine


@pytest.fixture
def contract_id(store, sales_actor):
    return store.create({"title": "Suzuki residence"}, sales_actor.actor_id)


def _run_to_completion(machine, doc_id, sales, reviewer, manager):
    assert machine.submit(doc_id, sales)
    assert machine.approve(doc_id, reviewer, "ok")
    assert machine.approve(doc_id, manager)


class TestEndToEnd:

    def test_full_workflow(
        self, state_machine, store, contract_id, deterministic_clock,
        sales_actor, reviewer_actor, manager_actor,
    ):
        result = state_machine.submit(contract_id, sales_actor)
        assert result.success
        assert result.new_status == ContractStatus.DOCUMENT_REVIEW

        deterministic_clock.tick()
        result = state_machine.approve(contract_id, reviewer_actor, "ok")
        assert result.new_status == ContractStatus.MANAGER_APPROVAL
        checked = store.get(contract_id).approval.checked
        assert checked is not None
        assert checked.actor_id == reviewer_actor.actor_id
        assert checked.actor_name == "Ito"
        assert checked.signed_at == deterministic_clock.now()

        result = state_machine.return_(contract_id, manager_actor, "fix amount")
        assert result.new_status == ContractStatus.REVISION
        assert store.get(contract_id).approval.return_count == 1

        assert state_machine.submit(contract_id, sales_actor).new_status == \
            ContractStatus.DOCUMENT_REVIEW
        assert state_machine.approve(contract_id, reviewer_actor).new_status == \
            ContractStatus.MANAGER_APPROVAL
        result = state_machine.approve(contract_id, manager_actor)
        assert result.new_status == ContractStatus.COMPLETED

        approval = store.get(contract_id).approval
        assert approval.status == ContractStatus.COMPLETED
        assert approval.approved.actor_id == manager_actor.actor_id
        assert approval.returned.comment == "fix amount"

        assert not state_machine.submit(contract_id, sales_actor)
        assert not state_machine.approve(contract_id, manager_actor)
        assert not state_machine.return_(contract_id, manager_actor, "again")

    def test_history_records_every_transition(
        self, state_machine, store, contract_id,
        sales_actor, reviewer_actor, manager_actor,
    ):
        _run_to_completion(state_machine, contract_id, sales_actor, reviewer_actor, manager_actor)

        history = store.get(contract_id).approval.history
        assert [e.action for e in history] == [
            ApprovalAction.SUBMITTED,
            ApprovalAction.APPROVED,
            ApprovalAction.APPROVED,
        ]
        assert [e.to_status for e in history] == [
            ContractStatus.DOCUMENT_REVIEW,
            ContractStatus.MANAGER_APPROVAL,
            ContractStatus.COMPLETED,
        ]
        assert history[1].comment == "ok"

    def test_transitions_do_not_touch_versions(
        self, state_machine, store, contract_id, sales_actor,
    ):
        state_machine.submit(contract_id, sales_actor)
        document = store.get(contract_id)
        assert document.version == 1
        assert len(document.version_history) == 1


class TestTopology:

    def test_completed_is_terminal(
        self, state_machine, store, contract_id,
        sales_actor, reviewer_actor, manager_actor, admin_actor,
    ):
        _run_to_completion(state_machine, contract_id, sales_actor, reviewer_actor, manager_actor)

        for actor in (sales_actor, manager_actor, admin_actor):
            assert not state_machine.submit(contract_id, actor)
            assert not state_machine.approve(contract_id, actor, "ok")
            assert not state_machine.return_(contract_id, actor, "please")
        assert store.get(contract_id).status == ContractStatus.COMPLETED

    def test_submit_twice_fails(self, state_machine, contract_id, sales_actor):
        assert state_machine.submit(contract_id, sales_actor)
        result = state_machine.submit(contract_id, sales_actor)
        assert not result
        assert result.new_status is None
        assert "document_review" in result.reason

    def test_approve_from_draft_moves_to_review(
        self, state_machine, store, contract_id, reviewer_actor,
    ):
        result = state_machine.approve(contract_id, reviewer_actor)
        # approve is the forward edge, so from DRAFT it lands in review
        assert result.new_status == ContractStatus.DOCUMENT_REVIEW
        assert store.get(contract_id).approval.checked is None

    def test_return_from_draft_fails(self, state_machine, contract_id, manager_actor):
        assert not state_machine.return_(contract_id, manager_actor, "no")

    def test_unknown_document(self, state_machine, sales_actor):
        result = state_machine.submit(uuid4(), sales_actor)
        assert not result
        assert result.reason == "document not found"


class TestReturnCounting:

    def test_two_returns(
        self, state_machine, store, contract_id,
        sales_actor, reviewer_actor, manager_actor,
    ):
        state_machine.submit(contract_id, sales_actor)
        state_machine.return_(contract_id, reviewer_actor, "missing drawings")
        state_machine.submit(contract_id, sales_actor)
        state_machine.approve(contract_id, reviewer_actor)
        state_machine.return_(contract_id, manager_actor, "fix amount")

        approval = store.get(contract_id).approval
        assert approval.return_count == 2
        assert approval.status == ContractStatus.REVISION
        assert approval.returned.comment == "fix amount"

    @pytest.mark.parametrize("comment", [None, "", "  "])
    def test_blank_comment_rejected(
        self, state_machine, store, contract_id, sales_actor, reviewer_actor, comment,
    ):
        state_machine.submit(contract_id, sales_actor)

        result = state_machine.return_(contract_id, reviewer_actor, comment)

        assert not result
        approval = store.get(contract_id).approval
        assert approval.status == ContractStatus.DOCUMENT_REVIEW
        assert approval.return_count == 0

    def test_blank_comment_allowed_when_configured(
        self, repository, deterministic_clock, store, contract_id,
        sales_actor, reviewer_actor,
    ):
        machine = ApprovalStateMachine(
            repository,
            deterministic_clock,
            settings=ApprovalSettings(require_return_comment=False),
        )
        machine.submit(contract_id, sales_actor)
        assert machine.return_(contract_id, reviewer_actor, None)
        assert store.get(contract_id).approval.return_count == 1


class TestNotifications:

    def test_one_event_per_success(
        self, state_machine, recording_emitter, contract_id,
        sales_actor, reviewer_actor, deterministic_clock,
    ):
        state_machine.submit(contract_id, sales_actor)
        state_machine.return_(contract_id, reviewer_actor, "redo")

        assert [e.action for e in recording_emitter.events] == [
            ApprovalAction.SUBMITTED,
            ApprovalAction.RETURNED,
        ]
        event = recording_emitter.last
        assert event.document_id == contract_id
        assert event.from_status == ContractStatus.DOCUMENT_REVIEW
        assert event.to_status == ContractStatus.REVISION
        assert event.actor_id == reviewer_actor.actor_id
        assert event.comment == "redo"
        assert event.occurred_at == deterministic_clock.now()

    def test_result_carries_the_event(
        self, state_machine, recording_emitter, contract_id, sales_actor,
    ):
        result = state_machine.submit(contract_id, sales_actor)
        assert result.event is recording_emitter.last

    def test_no_event_on_failure(
        self, state_machine, recording_emitter, contract_id, manager_actor,
    ):
        state_machine.return_(contract_id, manager_actor, "no")
        assert recording_emitter.events == []

    def test_default_emitter_discards(self, repository, contract_id, sales_actor):
        machine = ApprovalStateMachine(repository)
        assert machine.submit(contract_id, sales_actor)

    def test_transition_logged(self, state_machine, contract_id, sales_actor, captured_logs):
        state_machine.submit(contract_id, sales_actor)
        records = [r for r in captured_logs() if r["message"] == "contract_submitted"]
        assert records[0]["to_status"] == "document_review"
        assert records[0]["actor_id"] == sales_actor.actor_id

    def test_rejection_logged(self, state_machine, contract_id, manager_actor, captured_logs):
        state_machine.return_(contract_id, manager_actor, "no")
        records = [
            r for r in captured_logs() if r["message"] == "contract_transition_rejected"
        ]
        assert records[0]["action"] == "returned"


class TestEmitterFailure:

    def test_emitter_error_propagates(self, repository, deterministic_clock, contract_id, sales_actor):
        class _Broken(RecordingEmitter):
            def emit(self, event):
                raise RuntimeError("mail server down")

        machine = ApprovalStateMachine(repository, deterministic_clock, _Broken())
        with pytest.raises(RuntimeError):
            machine.submit(contract_id, sales_actor)

"""
Tests for the document ORM models and SqlDocumentRepository mapping.

Covers:
- Round trip of contracts and fund plans through the tables
- Snapshot and approval rows are inserted once and never rewritten
- Cascade delete of a document removes its history rows
- Repository contract errors (duplicate add, unknown save, shrinking history)
"""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from docflow_kernel.domain.approval import (
    ApprovalAction,
    ApprovalHistoryEntry,
    ContractStatus,
)
from docflow_kernel.domain.cost_input import CostInput, CostTier, LoanTranche
from docflow_kernel.domain.document import Document, DocumentKind, LockType, VersionSnapshot
from docflow_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    ImmutabilityViolationError,
)
from docflow_kernel.models.document import (
    ApprovalEventModel,
    DocumentModel,
    DocumentVersionModel,
)
from docflow_kernel.services.document_store import VersionedDocumentStore
from docflow_services.approval_service import ApprovalStateMachine

NOW = datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)


def _document(payload=None, kind=DocumentKind.CONTRACT) -> Document:
    payload = payload if payload is not None else {"title": "t"}
    return Document(
        document_id=uuid4(),
        kind=kind,
        payload=payload,
        version=1,
        version_history=(VersionSnapshot(1, payload, NOW, "u1"),),
        created_by="u1",
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def sql_store(sql_repository, deterministic_clock):
    return VersionedDocumentStore(sql_repository, deterministic_clock)


class TestRoundTrip:

    def test_contract_round_trip(self, sql_repository, session):
        document = _document({"title": "t", "amount": Decimal("1.50")})
        sql_repository.add(document)
        session.expire_all()

        loaded = sql_repository.get(document.document_id)

        # Decimals in mapping payloads are stored as normalized strings
        assert loaded.payload == {"title": "t", "amount": "1.5"}
        assert loaded.created_at == NOW
        assert loaded.version_history[0].saved_by == "u1"
        assert loaded.status == ContractStatus.DRAFT

    def test_fund_plan_round_trip(self, sql_repository, session):
        plan = CostInput(
            building_area=Decimal("30"),
            tier_a=CostTier.of(zeta=Decimal("1"), alpha=None),
            loans=(LoanTranche("main", Decimal("1000"), Decimal("0.01"), Decimal("35")),),
        )
        document = _document(plan, kind=DocumentKind.FUND_PLAN)
        sql_repository.add(document)
        session.expire_all()

        assert sql_repository.get(document.document_id).payload == plan

    def test_lock_metadata_round_trip(self, sql_store, session, deterministic_clock):
        doc_id = sql_store.create({"title": "t"}, "u1")
        sql_store.lock(doc_id, LockType.CHANGE_CONTRACT, "u-manager")
        session.commit()
        session.expire_all()

        document = sql_store.get(doc_id)
        assert document.is_locked
        assert document.lock_type == LockType.CHANGE_CONTRACT
        assert document.locked_at == deterministic_clock.now()
        assert document.latest_snapshot.note == "At change contract"

    def test_approval_round_trip(
        self, sql_repository, sql_store, session, deterministic_clock,
        sales_actor, reviewer_actor,
    ):
        machine = ApprovalStateMachine(sql_repository, deterministic_clock)
        doc_id = sql_store.create({"title": "t"}, "u1")
        machine.submit(doc_id, sales_actor)
        machine.approve(doc_id, reviewer_actor, "ok")
        session.commit()
        session.expire_all()

        approval = sql_store.get(doc_id).approval
        assert approval.status == ContractStatus.MANAGER_APPROVAL
        assert approval.checked.actor_id == reviewer_actor.actor_id
        assert approval.checked.signed_at == deterministic_clock.now()
        assert [e.action for e in approval.history] == [
            ApprovalAction.SUBMITTED,
            ApprovalAction.APPROVED,
        ]
        sequences = session.scalars(
            select(ApprovalEventModel.sequence).order_by(ApprovalEventModel.sequence)
        ).all()
        assert sequences == [1, 2]

    def test_get_for_update(self, sql_repository):
        document = _document()
        sql_repository.add(document)
        assert sql_repository.get(document.document_id, for_update=True) is not None


class TestAppendOnlyRows:

    def test_versions_inserted_once(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        sql_store.create_new_version(doc_id, {"title": "t2"}, "u1")
        sql_store.update(doc_id, {"title": "t3"}, "u1")

        count = session.scalar(
            select(func.count()).select_from(DocumentVersionModel)
            .where(DocumentVersionModel.document_id == doc_id)
        )
        assert count == 2

    def test_version_row_update_refused(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        row = session.scalars(
            select(DocumentVersionModel).where(DocumentVersionModel.document_id == doc_id)
        ).one()

        row.note = "edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_approval_row_update_refused(self, sql_repository, sql_store, session, sales_actor):
        doc_id = sql_store.create({"title": "t"}, "u1")
        ApprovalStateMachine(sql_repository).submit(doc_id, sales_actor)
        row = session.scalars(select(ApprovalEventModel)).one()

        row.comment = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_cascades(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        sql_store.create_new_version(doc_id, {"title": "t2"}, "u1")

        assert sql_store.delete(doc_id)

        assert session.get(DocumentModel, doc_id) is None
        assert session.scalar(select(func.count()).select_from(DocumentVersionModel)) == 0


class TestRepositoryContract:

    def test_duplicate_add(self, repository):
        document = _document()
        repository.add(document)
        with pytest.raises(DuplicateDocumentError):
            repository.add(document)

    def test_save_unknown(self, repository):
        with pytest.raises(DocumentNotFoundError):
            repository.save(_document())

    def test_shrinking_version_history_refused(self, repository):
        document = _document()
        repository.add(document)
        snap = VersionSnapshot(2, {"title": "t2"}, NOW, "u1")
        grown = replace(document, version=2, version_history=document.version_history + (snap,))
        repository.save(grown)

        with pytest.raises(ImmutabilityViolationError):
            repository.save(document)

    def test_shrinking_approval_history_refused(self, repository):
        document = _document()
        repository.add(document)
        entry = ApprovalHistoryEntry(
            entry_id=uuid4(),
            action=ApprovalAction.SUBMITTED,
            actor_id="u1",
            actor_name=None,
            from_status=ContractStatus.DRAFT,
            to_status=ContractStatus.DOCUMENT_REVIEW,
            comment=None,
            timestamp=NOW,
        )
        submitted = replace(
            document,
            approval=replace(
                document.approval,
                status=ContractStatus.DOCUMENT_REVIEW,
                history=(entry,),
            ),
        )
        repository.save(submitted)

        with pytest.raises(ImmutabilityViolationError):
            repository.save(document)

    def test_delete_unknown(self, repository):
        assert repository.delete(uuid4()) is False

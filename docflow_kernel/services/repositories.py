"""
docflow_kernel.services.repositories -- DocumentRepository implementations.

Responsibility:
    Store and load whole ``Document`` states for the lifecycle services.
    ``InMemoryDocumentRepository`` keeps private deep copies in a dict;
    ``SqlDocumentRepository`` maps them onto the ``documents``,
    ``document_versions`` and ``approval_events`` tables.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, utils/.

Invariants enforced:
    - Append-only history: ``save`` only inserts snapshot and approval rows
      the database does not have yet.  A document whose history is shorter
      than what is stored is refused.
    - Version monotonicity: loaded histories are validated as 1..n.
    - Tamper evidence: each snapshot row's hash is recomputed on load.
    - Isolation: no caller holds a reference into stored state.  The
      in-memory repository copies on the way in and out; SQL loads decode
      fresh payload objects.

Failure modes:
    - DuplicateDocumentError from ``add`` for an existing id.
    - DocumentNotFoundError from ``save`` for an unknown id.
    - ImmutabilityViolationError from ``save`` when history would shrink.
    - VersionSequenceError / TamperDetectedError / PayloadDecodeError on load.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from docflow_kernel.domain.approval import ApprovalRecord, ContractStatus
from docflow_kernel.domain.document import (
    Document,
    DocumentKind,
    LockType,
    VersionSnapshot,
    validate_history,
)
from docflow_kernel.domain.repository import KindCodec
from docflow_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    ImmutabilityViolationError,
    TamperDetectedError,
)
from docflow_kernel.logging_config import get_logger
from docflow_kernel.models.document import (
    ApprovalEventModel,
    DocumentModel,
    DocumentVersionModel,
)
from docflow_kernel.utils.hashing import hash_snapshot, to_json_safe

logger = get_logger("services.repositories")


def _matches(
    document: Document,
    kind: DocumentKind | None,
    owner_id: str | None,
    status: ContractStatus | None,
) -> bool:
    return (
        (kind is None or document.kind == kind)
        and (owner_id is None or document.owner_id == owner_id)
        and (status is None or document.status == status)
    )


class InMemoryDocumentRepository:
    """Dict-backed repository.

    Frozen documents may still hold mutable payloads (contract dicts), so
    every document is deep-copied on ``add``, ``save``, ``get`` and ``find``.
    """

    def __init__(self) -> None:
        self._documents: dict[UUID, Document] = {}

    def add(self, document: Document) -> None:
        if document.document_id in self._documents:
            raise DuplicateDocumentError(str(document.document_id))
        self._documents[document.document_id] = deepcopy(document)

    def get(self, document_id: UUID, *, for_update: bool = False) -> Document | None:
        document = self._documents.get(document_id)
        return None if document is None else deepcopy(document)

    def save(self, document: Document) -> None:
        current = self._documents.get(document.document_id)
        if current is None:
            raise DocumentNotFoundError(str(document.document_id))
        _check_append_only(current, document)
        self._documents[document.document_id] = deepcopy(document)

    def delete(self, document_id: UUID) -> bool:
        return self._documents.pop(document_id, None) is not None

    def list_ids(self) -> list[UUID]:
        return list(self._documents)

    def find(
        self,
        *,
        kind: DocumentKind | None = None,
        owner_id: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Document]:
        return [
            deepcopy(d) for d in self._documents.values()
            if _matches(d, kind, owner_id, status)
        ]


def _check_append_only(current: Document, new: Document) -> None:
    if len(new.version_history) < len(current.version_history):
        raise ImmutabilityViolationError(
            entity_type="Document",
            entity_id=str(current.document_id),
            reason="version history cannot shrink",
        )
    if len(new.approval.history) < len(current.approval.history):
        raise ImmutabilityViolationError(
            entity_type="Document",
            entity_id=str(current.document_id),
            reason="approval history cannot shrink",
        )


class SqlDocumentRepository:
    """SQLAlchemy-backed repository.

    Flushes, never commits: the caller owns the transaction
    (see ``docflow_kernel.db.engine.session_scope``).
    """

    def __init__(self, session: Session, codecs: KindCodec | None = None) -> None:
        self._session = session
        self._codecs = codecs or KindCodec()

    # -- encoding ----------------------------------------------------------

    def _encode(self, kind: DocumentKind, payload: Any) -> dict[str, Any]:
        # The hash must be computed on exactly what the JSON column hands back.
        return to_json_safe(self._codecs.for_kind(kind).encode(payload))

    def _decode(self, kind: DocumentKind, data: dict[str, Any], document_id: UUID) -> Any:
        return self._codecs.for_kind(kind).decode(data, document_id)

    def _version_row(self, document: Document, snap: VersionSnapshot) -> DocumentVersionModel:
        payload = self._encode(document.kind, snap.payload)
        lock_type = snap.lock_type.value if snap.lock_type else None
        return DocumentVersionModel(
            document_id=document.document_id,
            version=snap.version,
            payload=payload,
            payload_hash=hash_snapshot(document.document_id, snap.version, payload, lock_type),
            saved_at=snap.saved_at,
            saved_by=snap.saved_by,
            lock_type=lock_type,
            note=snap.note,
        )

    # -- loading -----------------------------------------------------------

    def _to_document(self, model: DocumentModel) -> Document:
        kind = DocumentKind(model.kind)
        snapshots = []
        for row in model.versions:
            actual = hash_snapshot(model.id, row.version, row.payload, row.lock_type)
            if actual != row.payload_hash:
                logger.error(
                    "snapshot_tamper_detected",
                    extra={"document_id": str(model.id), "version": row.version},
                )
                raise TamperDetectedError(str(model.id), row.version, row.payload_hash, actual)
            snapshots.append(VersionSnapshot(
                version=row.version,
                payload=self._decode(kind, row.payload, model.id),
                saved_at=row.saved_at,
                saved_by=row.saved_by,
                lock_type=LockType(row.lock_type) if row.lock_type else None,
                note=row.note,
            ))
        history = tuple(snapshots)
        validate_history(model.id, history)

        signoffs = model.signoffs_to_dto()
        approval = ApprovalRecord(
            status=ContractStatus(model.status),
            return_count=model.return_count,
            history=tuple(e.to_dto() for e in model.events),
            checked=signoffs["checked"],
            approved=signoffs["approved"],
            returned=signoffs["returned"],
        )
        return Document(
            document_id=model.id,
            kind=kind,
            payload=self._decode(kind, model.payload, model.id),
            version=model.version,
            version_history=history,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            owner_id=model.owner_id,
            is_locked=model.is_locked,
            lock_type=LockType(model.lock_type) if model.lock_type else None,
            locked_at=model.locked_at,
            locked_by=model.locked_by,
            approval=approval,
            reference_number=model.reference_number,
        )

    def _apply_state(self, model: DocumentModel, document: Document) -> None:
        approval = document.approval
        model.kind = document.kind.value
        model.owner_id = document.owner_id
        model.reference_number = document.reference_number
        model.payload = self._encode(document.kind, document.payload)
        model.version = document.version
        model.is_locked = document.is_locked
        model.lock_type = document.lock_type.value if document.lock_type else None
        model.locked_at = document.locked_at
        model.locked_by = document.locked_by
        model.status = approval.status.value
        model.return_count = approval.return_count
        model.signoffs = DocumentModel.encode_signoffs(
            checked=approval.checked,
            approved=approval.approved,
            returned=approval.returned,
        )
        model.created_by = document.created_by
        model.created_at = document.created_at
        model.updated_at = document.updated_at

    # -- DocumentRepository ------------------------------------------------

    def add(self, document: Document) -> None:
        if self._session.get(DocumentModel, document.document_id) is not None:
            raise DuplicateDocumentError(str(document.document_id))
        model = DocumentModel(id=document.document_id)
        self._apply_state(model, document)
        model.versions = [self._version_row(document, s) for s in document.version_history]
        model.events = [
            ApprovalEventModel.from_dto(e, document.document_id, i + 1)
            for i, e in enumerate(document.approval.history)
        ]
        self._session.add(model)
        self._session.flush()

    def get(self, document_id: UUID, *, for_update: bool = False) -> Document | None:
        stmt = select(DocumentModel).where(DocumentModel.id == document_id)
        if for_update:
            stmt = stmt.with_for_update()
        model = self._session.execute(stmt).scalar_one_or_none()
        return None if model is None else self._to_document(model)

    def save(self, document: Document) -> None:
        model = self._session.get(DocumentModel, document.document_id)
        if model is None:
            raise DocumentNotFoundError(str(document.document_id))
        if (
            len(document.version_history) < len(model.versions)
            or len(document.approval.history) < len(model.events)
        ):
            raise ImmutabilityViolationError(
                entity_type="Document",
                entity_id=str(document.document_id),
                reason="history cannot shrink",
            )

        self._apply_state(model, document)

        stored_versions = {row.version for row in model.versions}
        for snap in document.version_history:
            if snap.version not in stored_versions:
                model.versions.append(self._version_row(document, snap))

        stored_entries = {row.entry_id for row in model.events}
        sequence = len(model.events)
        for entry in document.approval.history:
            if entry.entry_id not in stored_entries:
                sequence += 1
                model.events.append(
                    ApprovalEventModel.from_dto(entry, document.document_id, sequence)
                )

        self._session.flush()

    def delete(self, document_id: UUID) -> bool:
        model = self._session.get(DocumentModel, document_id)
        if model is None:
            return False
        self._session.delete(model)
        self._session.flush()
        return True

    def list_ids(self) -> list[UUID]:
        stmt = select(DocumentModel.id).order_by(DocumentModel.created_at, DocumentModel.id)
        return list(self._session.execute(stmt).scalars())

    def find(
        self,
        *,
        kind: DocumentKind | None = None,
        owner_id: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Document]:
        stmt = select(DocumentModel).order_by(DocumentModel.created_at, DocumentModel.id)
        if kind is not None:
            stmt = stmt.where(DocumentModel.kind == kind.value)
        if owner_id is not None:
            stmt = stmt.where(DocumentModel.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(DocumentModel.status == status.value)
        return [self._to_document(m) for m in self._session.execute(stmt).scalars()]

"""
docflow_kernel.services.document_store -- VersionedDocumentStore.

Responsibility:
    Keyed store of versioned, lockable documents of any payload type.
    Creates documents, applies routine edits, freezes checkpoints (lock),
    and appends explicit versions and restores to an append-only history.

Architecture position:
    Kernel > Services.  May import from domain/, utils/, logging_config.
    Persistence is an injected ``DocumentRepository``; time is an injected
    ``Clock``.  There is no module-level state.

Invariants enforced:
    - History non-empty: ``create`` seeds v1.
    - Version monotonicity: every versioning action appends exactly
      ``version + 1``; nothing else touches ``version_history``.
    - Lock immutability: ``update``, ``create_new_version`` and
      ``restore_version`` check ``is_locked`` before doing anything.
    - Atomic mutation: one mutation read, all guards, one ``save``.

Failure modes:
    - Rejected mutations return ``False``.  They never raise.
    - ``UnsupportedPayloadError`` from ``update`` when the payload type
      cannot take a partial update (programming error).
    - Repository errors (``PersistenceError`` subclasses) propagate.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Generic
from uuid import UUID, uuid4

from docflow_kernel.domain.approval import ApprovalRecord, ContractStatus
from docflow_kernel.domain.clock import Clock, SystemClock
from docflow_kernel.domain.document import (
    Document,
    DocumentKind,
    DocumentSettings,
    LockType,
    PayloadT,
    VersionSnapshot,
    format_reference_number,
    merge_payload,
    parse_reference_sequence,
)
from docflow_kernel.domain.repository import DocumentRepository
from docflow_kernel.logging_config import get_logger

logger = get_logger("services.document_store")


class VersionedDocumentStore(Generic[PayloadT]):
    """Generic versioned document store over an injected repository."""

    def __init__(
        self,
        repository: DocumentRepository,
        clock: Clock | None = None,
        settings: DocumentSettings | None = None,
    ) -> None:
        self._repo = repository
        self._clock = clock or SystemClock()
        self._settings = settings or DocumentSettings()

    # =====================================================================
    # Creation and reads
    # =====================================================================

    def create(
        self,
        payload: PayloadT,
        author: str | None,
        kind: DocumentKind = DocumentKind.CONTRACT,
        owner_id: str | None = None,
    ) -> UUID:
        """Create a document at version 1 and return its id."""
        now = self._clock.now()
        document_id = uuid4()
        reference = (
            self._next_reference_number(now.year)
            if kind == DocumentKind.CONTRACT
            else None
        )
        document: Document[PayloadT] = Document(
            document_id=document_id,
            kind=kind,
            payload=payload,
            version=1,
            version_history=(
                VersionSnapshot(version=1, payload=payload, saved_at=now, saved_by=author),
            ),
            created_by=author,
            created_at=now,
            updated_at=now,
            owner_id=owner_id,
            approval=ApprovalRecord(),
            reference_number=reference,
        )
        self._repo.add(document)
        logger.info(
            "document_created",
            extra={
                "document_id": str(document_id),
                "kind": kind.value,
                "owner_id": owner_id,
                "reference_number": reference,
                "actor_id": author,
            },
        )
        return document_id

    def _next_reference_number(self, year: int) -> str:
        prefix = self._settings.reference_prefix
        used = [
            parse_reference_sequence(d.reference_number, prefix, year)
            for d in self._repo.find(kind=DocumentKind.CONTRACT)
        ]
        return format_reference_number(prefix, year, max((s for s in used if s), default=0) + 1)

    def get(self, document_id: UUID) -> Document[PayloadT] | None:
        return self._repo.get(document_id)

    def list_ids(self) -> list[UUID]:
        return self._repo.list_ids()

    def list_by_owner(self, owner_id: str) -> list[Document[PayloadT]]:
        return self._repo.find(owner_id=owner_id)

    def list_by_status(
        self, status: ContractStatus, kind: DocumentKind | None = None,
    ) -> list[Document[PayloadT]]:
        return self._repo.find(kind=kind, status=status)

    def history(self, document_id: UUID) -> tuple[VersionSnapshot[PayloadT], ...]:
        """Snapshots oldest first. Empty for an unknown id."""
        document = self._repo.get(document_id)
        return () if document is None else document.version_history

    # =====================================================================
    # Mutations
    # =====================================================================

    def update(
        self,
        document_id: UUID,
        partial: Mapping[str, Any],
        actor: str | None = None,
    ) -> bool:
        """Merge ``partial`` into the current payload. Not versioned."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("update", document_id, "not_found")
        if document.is_locked:
            return self._reject("update", document_id, "locked")

        updated = replace(
            document,
            payload=merge_payload(document.payload, partial),
            updated_at=self._clock.now(),
        )
        self._repo.save(updated)
        logger.info(
            "document_updated",
            extra={
                "document_id": str(document_id),
                "fields": sorted(partial),
                "actor_id": actor,
            },
        )
        return True

    def lock(
        self,
        document_id: UUID,
        lock_type: LockType,
        actor: str | None,
        note: str | None = None,
    ) -> bool:
        """Freeze the current payload as a new, lock-tagged version."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("lock", document_id, "not_found")
        if document.is_locked:
            return self._reject("lock", document_id, "already_locked")

        now = self._clock.now()
        version = document.version + 1
        snapshot = VersionSnapshot(
            version=version,
            payload=document.payload,
            saved_at=now,
            saved_by=actor,
            lock_type=lock_type,
            note=note or self._settings.lock_note(lock_type),
        )
        locked = replace(
            document,
            version=version,
            version_history=document.version_history + (snapshot,),
            is_locked=True,
            lock_type=lock_type,
            locked_at=now,
            locked_by=actor,
            updated_at=now,
        )
        self._repo.save(locked)
        logger.info(
            "document_locked",
            extra={
                "document_id": str(document_id),
                "lock_type": lock_type.value,
                "version": version,
                "actor_id": actor,
            },
        )
        return True

    def unlock(self, document_id: UUID, actor: str | None = None) -> bool:
        """Clear the lock. Version and history are left as they are."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("unlock", document_id, "not_found")
        if not document.is_locked:
            return self._reject("unlock", document_id, "not_locked")

        unlocked = replace(
            document,
            is_locked=False,
            lock_type=None,
            locked_at=None,
            locked_by=None,
            updated_at=self._clock.now(),
        )
        self._repo.save(unlocked)
        logger.info(
            "document_unlocked",
            extra={
                "document_id": str(document_id),
                "version": document.version,
                "actor_id": actor,
            },
        )
        return True

    def create_new_version(
        self,
        document_id: UUID,
        payload: PayloadT,
        actor: str | None,
    ) -> bool:
        """Replace the payload and append it as an untagged version."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("create_new_version", document_id, "not_found")
        if document.is_locked:
            return self._reject("create_new_version", document_id, "locked")

        self._repo.save(self._append_version(document, payload, actor, note=None))
        logger.info(
            "document_version_created",
            extra={
                "document_id": str(document_id),
                "version": document.version + 1,
                "actor_id": actor,
            },
        )
        return True

    def restore_version(
        self,
        document_id: UUID,
        target_version: int,
        actor: str | None = None,
    ) -> bool:
        """Append a new version carrying the payload of ``target_version``."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("restore_version", document_id, "not_found")
        if document.is_locked:
            return self._reject("restore_version", document_id, "locked")
        target = document.snapshot(target_version)
        if target is None:
            return self._reject("restore_version", document_id, "version_not_found")

        note = self._settings.restore_note(target_version)
        self._repo.save(self._append_version(document, target.payload, actor, note=note))
        logger.info(
            "document_version_restored",
            extra={
                "document_id": str(document_id),
                "restored_from": target_version,
                "version": document.version + 1,
                "actor_id": actor,
            },
        )
        return True

    def delete(self, document_id: UUID, actor: str | None = None) -> bool:
        """Hard-delete a document. Refused while it is locked."""
        document = self._repo.get(document_id, for_update=True)
        if document is None:
            return self._reject("delete", document_id, "not_found")
        if document.is_locked:
            return self._reject("delete", document_id, "locked")

        deleted = self._repo.delete(document_id)
        logger.info(
            "document_deleted",
            extra={"document_id": str(document_id), "actor_id": actor},
        )
        return deleted

    # =====================================================================
    # Internals
    # =====================================================================

    def _append_version(
        self,
        document: Document[PayloadT],
        payload: PayloadT,
        actor: str | None,
        note: str | None,
    ) -> Document[PayloadT]:
        now = self._clock.now()
        version = document.version + 1
        snapshot = VersionSnapshot(
            version=version,
            payload=payload,
            saved_at=now,
            saved_by=actor,
            note=note,
        )
        return replace(
            document,
            payload=payload,
            version=version,
            version_history=document.version_history + (snapshot,),
            updated_at=now,
        )

    def _reject(self, operation: str, document_id: UUID, reason: str) -> bool:
        logger.info(
            "document_mutation_rejected",
            extra={
                "operation": operation,
                "document_id": str(document_id),
                "reason": reason,
            },
        )
        return False

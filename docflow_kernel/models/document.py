"""
Module: docflow_kernel.models.document
Responsibility: ORM persistence for documents, their version snapshots and
    their approval history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions only.  Domain types are imported lazily inside to_dto().

Invariants enforced:
    - Version snapshots are append-only: UNIQUE(document_id, version) and an
      ORM before_update listener that refuses any change.
    - Approval history rows are append-only in the same way.
    - Every snapshot row stores payload_hash; the repository recomputes it on
      load to detect rows edited outside the application.

Failure modes:
    - IntegrityError on a duplicate (document_id, version).
    - ImmutabilityViolationError on UPDATE of a snapshot or history row.

Audit relevance:
    document_versions and approval_events together are the audit trail of
    a document: what it contained at every version, and who moved it
    through which approval stage and when.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docflow_kernel.db.base import Base, UTCDateTime, UUIDString
from docflow_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from docflow_kernel.domain.approval import ApprovalHistoryEntry, StageSignoff


class DocumentModel(Base):
    """Current state of one document.

    Contract:
        ``id`` is the document id.  ``payload`` is the codec-encoded current
        payload (mutable while unlocked).  Approval status, return count and
        stage signoffs live here; the per-transition log lives in
        ``approval_events``.
    """

    __tablename__ = "documents"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'document_review', 'manager_approval', "
            "'completed', 'revision')",
            name="ck_documents_valid_status",
        ),
        CheckConstraint("version >= 1", name="ck_documents_version_positive"),
        CheckConstraint("return_count >= 0", name="ck_documents_return_count"),
        Index("ix_documents_owner", "owner_id"),
        Index("ix_documents_kind_status", "kind", "status"),
    )

    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True, unique=True,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    lock_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    return_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    signoffs: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    versions: Mapped[list["DocumentVersionModel"]] = relationship(
        "DocumentVersionModel",
        back_populates="document",
        order_by="DocumentVersionModel.version",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    events: Mapped[list["ApprovalEventModel"]] = relationship(
        "ApprovalEventModel",
        back_populates="document",
        order_by="ApprovalEventModel.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Document {self.id} {self.kind} v{self.version} "
            f"status={self.status} locked={self.is_locked}>"
        )

    def signoffs_to_dto(self) -> dict[str, StageSignoff | None]:
        """Decode the ``checked`` / ``approved`` / ``returned`` signoffs."""
        from docflow_kernel.domain.approval import StageSignoff as SignoffDTO

        result: dict[str, SignoffDTO | None] = {}
        for stage in ("checked", "approved", "returned"):
            raw = (self.signoffs or {}).get(stage)
            result[stage] = None if raw is None else SignoffDTO(
                actor_id=raw["actor_id"],
                actor_name=raw.get("actor_name"),
                signed_at=datetime.fromisoformat(raw["signed_at"]),
                comment=raw.get("comment"),
            )
        return result

    @staticmethod
    def encode_signoffs(**signoffs: StageSignoff | None) -> dict[str, Any]:
        return {
            stage: None if s is None else {
                "actor_id": s.actor_id,
                "actor_name": s.actor_name,
                "signed_at": s.signed_at.isoformat(),
                "comment": s.comment,
            }
            for stage, s in signoffs.items()
        }


class DocumentVersionModel(Base):
    """One version snapshot. Append-only.

    Contract:
        Rows are inserted once and never updated.  ``payload_hash`` covers
        document id, version, payload and lock type.
    """

    __tablename__ = "document_versions"

    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_versions_version"),
        CheckConstraint("version >= 1", name="ck_document_versions_version_positive"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    saved_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    saved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lock_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    document: Mapped["DocumentModel"] = relationship(
        "DocumentModel", back_populates="versions",
    )

    def __repr__(self) -> str:
        return f"<DocumentVersion {self.document_id} v{self.version}>"


class ApprovalEventModel(Base):
    """One approval history entry. Append-only."""

    __tablename__ = "approval_events"

    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_approval_events_sequence"),
        Index("ix_approval_events_document", "document_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    actor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    from_status: Mapped[str] = mapped_column(String(30), nullable=False)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    document: Mapped["DocumentModel"] = relationship(
        "DocumentModel", back_populates="events",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalEvent {self.entry_id} {self.action} "
            f"{self.from_status}->{self.to_status}>"
        )

    def to_dto(self) -> ApprovalHistoryEntry:
        """Convert ORM model to frozen domain DTO."""
        from docflow_kernel.domain.approval import (
            ApprovalAction,
            ApprovalHistoryEntry as EntryDTO,
            ContractStatus,
        )

        return EntryDTO(
            entry_id=self.entry_id,
            action=ApprovalAction(self.action),
            actor_id=self.actor_id,
            actor_name=self.actor_name,
            from_status=ContractStatus(self.from_status),
            to_status=ContractStatus(self.to_status),
            comment=self.comment,
            timestamp=self.occurred_at,
        )

    @classmethod
    def from_dto(
        cls, dto: ApprovalHistoryEntry, document_id: UUID, sequence: int,
    ) -> ApprovalEventModel:
        """Create ORM model from domain DTO."""
        return cls(
            entry_id=dto.entry_id,
            document_id=document_id,
            sequence=sequence,
            action=dto.action.value,
            actor_id=dto.actor_id,
            actor_name=dto.actor_name,
            from_status=dto.from_status.value,
            to_status=dto.to_status.value,
            comment=dto.comment,
            occurred_at=dto.timestamp,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(DocumentVersionModel, "before_update")
def prevent_version_update(mapper, connection, target):
    """Prevent updates to version snapshots."""
    raise ImmutabilityViolationError(
        entity_type="DocumentVersion",
        entity_id=f"{target.document_id}/v{target.version}",
        reason="Version snapshots are immutable -- restore creates a new version",
    )


@event.listens_for(ApprovalEventModel, "before_update")
def prevent_approval_event_update(mapper, connection, target):
    """Prevent updates to approval history entries."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalEvent",
        entity_id=str(target.entry_id),
        reason="Approval history is append-only -- cannot modify",
    )

"""
Settings schema (``docflow_config.schema``).

Frozen dataclasses describing one parsed settings file.  Sections map 1:1
onto YAML top-level keys::

    calculation:   tax rate, base utility cost, solar horizon
    lifecycle:     return-comment rule, lock notes, stage roles, reference prefix
    database:      url
    logging:       level

Bridges to the kernel's own settings objects (``to_approval_settings``,
``to_document_settings``) live here so the kernel never imports this
package.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from docflow_kernel.domain.approval import (
    DEFAULT_STAGE_ROLES,
    ApprovalSettings,
    ContractStatus,
)
from docflow_kernel.domain.cost_input import CalculationSettings
from docflow_kernel.domain.document import (
    DEFAULT_LOCK_NOTES,
    RESTORE_NOTE_TEMPLATE,
    DocumentSettings,
    LockType,
)


@dataclass(frozen=True)
class LifecycleSettings:
    """Workflow and versioning options."""

    require_return_comment: bool = True
    reference_prefix: str = "C"
    lock_notes: dict[LockType, str] = field(
        default_factory=lambda: dict(DEFAULT_LOCK_NOTES)
    )
    restore_note_template: str = RESTORE_NOTE_TEMPLATE
    stage_roles: dict[ContractStatus, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_STAGE_ROLES)
    )
    superuser_roles: tuple[str, ...] = ("admin",)

    def to_approval_settings(self) -> ApprovalSettings:
        return ApprovalSettings(
            require_return_comment=self.require_return_comment,
            stage_roles=dict(self.stage_roles),
            superuser_roles=self.superuser_roles,
        )

    def to_document_settings(self) -> DocumentSettings:
        return DocumentSettings(
            lock_notes=dict(self.lock_notes),
            restore_note_template=self.restore_note_template,
            reference_prefix=self.reference_prefix,
        )


@dataclass(frozen=True)
class DocflowSettings:
    """Everything one deployment configures."""

    calculation: CalculationSettings = field(default_factory=CalculationSettings)
    lifecycle: LifecycleSettings = field(default_factory=LifecycleSettings)
    database_url: str = "sqlite://"
    log_level: str = "INFO"
    source: str | None = None
    checksum: str | None = None

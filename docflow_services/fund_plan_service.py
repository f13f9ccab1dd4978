"""
docflow_services.fund_plan_service -- Fund plans over the versioned store.

Responsibility:
    Fund-plan entry points: create a plan from form input, and compute its
    derived totals on read.  Totals are never stored; they are recomputed
    from the current payload every time.

Architecture position:
    Services -- composes docflow_engines.calculation with the kernel's
    VersionedDocumentStore.

Invariants enforced:
    - Derived totals purity: ``totals`` has no side effects.
    - The locked total used for "difference from signing" comes from the
      most recent lock snapshot preceding the current state, unless the
      editor entered one explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID

from docflow_engines.calculation import compute_totals
from docflow_kernel.domain.coercion import cost_input_from_mapping
from docflow_kernel.domain.cost_input import CalculationSettings, CostInput, DerivedTotals
from docflow_kernel.domain.document import DocumentKind
from docflow_kernel.logging_config import get_logger
from docflow_kernel.services.document_store import VersionedDocumentStore

logger = get_logger("services.fund_plan")


class FundPlanService:
    """Fund-plan operations on top of a ``VersionedDocumentStore[CostInput]``."""

    def __init__(
        self,
        store: VersionedDocumentStore[CostInput],
        settings: CalculationSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or CalculationSettings()

    def create_from_form(
        self,
        form: Mapping[str, Any],
        author: str | None,
        owner_id: str | None = None,
    ) -> UUID:
        """Coerce raw form input and create a fund plan at v1."""
        return self._store.create(
            cost_input_from_mapping(form),
            author,
            kind=DocumentKind.FUND_PLAN,
            owner_id=owner_id,
        )

    def totals(self, document_id: UUID) -> DerivedTotals | None:
        """Derived totals of the current payload. ``None`` for an unknown id."""
        document = self._store.get(document_id)
        if document is None:
            return None
        cost_input: CostInput = document.payload
        if cost_input.locked_total_at_signing is None:
            locked = document.last_locked_snapshot()
            if locked is not None:
                locked_totals = compute_totals(locked.payload, self._settings)
                cost_input = replace(
                    cost_input, locked_total_at_signing=locked_totals.grand_total,
                )
        totals = compute_totals(cost_input, self._settings)
        logger.debug(
            "fund_plan_totals_computed",
            extra={
                "document_id": str(document_id),
                "version": document.version,
                "grand_total": totals.grand_total,
            },
        )
        return totals

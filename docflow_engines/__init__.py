"""
Module: docflow_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    engines.  This is the canonical import surface for docflow_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import docflow_kernel/domain/ (and the kernel logger).
    MUST NOT import docflow_services or docflow_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  Timestamps are passed
      in by the services.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from docflow_engines.calculation import compute_totals
    from docflow_engines.approval import evaluate_transition, can_act
"""

from docflow_engines.approval import (
    TransitionCheck,
    apply_transition,
    can_act,
    evaluate_transition,
    transition_for,
)
from docflow_engines.calculation import (
    bonus_payment,
    bridge_loan_interest,
    compute_totals,
    housing_comparison,
    loan_payment,
    monthly_payment,
    solar_economics,
    tier_total,
)
from docflow_engines.tracer import traced_engine

__all__ = [
    # Approval
    "TransitionCheck",
    "apply_transition",
    "can_act",
    "evaluate_transition",
    "transition_for",
    # Calculation
    "bonus_payment",
    "bridge_loan_interest",
    "compute_totals",
    "housing_comparison",
    "loan_payment",
    "monthly_payment",
    "solar_economics",
    "tier_total",
    # Tracing
    "traced_engine",
]

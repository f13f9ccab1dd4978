"""
Pure domain layer.

This module contains pure value objects and domain helpers
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (timestamps are passed in)
- I/O

All domain objects are immutable and deterministic.
"""

from docflow_kernel.domain.approval import (
    CONTRACT_TRANSITIONS,
    Actor,
    ApprovalAction,
    ApprovalHistoryEntry,
    ApprovalRecord,
    ApprovalSettings,
    ContractStatus,
    NotificationEmitter,
    StageSignoff,
    StageTransition,
    TransitionEvent,
    TransitionResult,
)
from docflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from docflow_kernel.domain.coercion import (
    cost_input_from_mapping,
    cost_input_to_mapping,
    to_amount,
)
from docflow_kernel.domain.cost_input import (
    BridgeInterest,
    BridgeLoanTranche,
    CalculationSettings,
    CostInput,
    CostTier,
    DerivedTotals,
    HousingComparison,
    LoanPayment,
    LoanTranche,
    SolarEconomics,
    SolarInputs,
)
from docflow_kernel.domain.document import (
    Document,
    DocumentKind,
    DocumentSettings,
    LockType,
    VersionSnapshot,
)
from docflow_kernel.domain.repository import DocumentRepository, PayloadCodec

__all__ = [
    # Approval
    "CONTRACT_TRANSITIONS",
    "Actor",
    "ApprovalAction",
    "ApprovalHistoryEntry",
    "ApprovalRecord",
    "ApprovalSettings",
    "ContractStatus",
    "NotificationEmitter",
    "StageSignoff",
    "StageTransition",
    "TransitionEvent",
    "TransitionResult",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Cost input
    "BridgeInterest",
    "BridgeLoanTranche",
    "CalculationSettings",
    "CostInput",
    "CostTier",
    "DerivedTotals",
    "HousingComparison",
    "LoanPayment",
    "LoanTranche",
    "SolarEconomics",
    "SolarInputs",
    "cost_input_from_mapping",
    "cost_input_to_mapping",
    "to_amount",
    # Documents
    "Document",
    "DocumentKind",
    "DocumentSettings",
    "LockType",
    "VersionSnapshot",
    "DocumentRepository",
    "PayloadCodec",
]

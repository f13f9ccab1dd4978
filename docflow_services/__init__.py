"""
docflow_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure engines (docflow_engines/)
    with repositories, clocks and notification emitters.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        docflow_services/ -> docflow_engines/  (allowed)
        docflow_services/ -> docflow_kernel/   (allowed)
        docflow_engines/  -> docflow_services/ (FORBIDDEN)
        docflow_kernel/   -> docflow_services/ (FORBIDDEN)
"""

from docflow_services.approval_service import ApprovalStateMachine
from docflow_services.fund_plan_service import FundPlanService

__all__ = [
    "ApprovalStateMachine",
    "FundPlanService",
]

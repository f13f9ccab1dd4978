"""SQLAlchemy ORM models."""

from docflow_kernel.models.document import (
    ApprovalEventModel,
    DocumentModel,
    DocumentVersionModel,
)

__all__ = [
    "DocumentModel",
    "DocumentVersionModel",
    "ApprovalEventModel",
]

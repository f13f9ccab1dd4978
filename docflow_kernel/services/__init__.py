"""Kernel services: the versioned document store and its repositories."""

from docflow_kernel.services.document_store import VersionedDocumentStore
from docflow_kernel.services.notifications import NullEmitter, RecordingEmitter
from docflow_kernel.services.repositories import (
    InMemoryDocumentRepository,
    SqlDocumentRepository,
)

__all__ = [
    "VersionedDocumentStore",
    "InMemoryDocumentRepository",
    "SqlDocumentRepository",
    "NullEmitter",
    "RecordingEmitter",
]

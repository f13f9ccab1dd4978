"""
Persistence contracts (``docflow_kernel.domain.repository``).

The lifecycle services depend only on these protocols. Storage engines
live in ``docflow_kernel.services.repositories``; payload encoding for
storage that needs plain JSON is supplied by a ``PayloadCodec``.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Protocol
from uuid import UUID

from docflow_kernel.domain.approval import ContractStatus
from docflow_kernel.domain.coercion import cost_input_from_mapping, cost_input_to_mapping
from docflow_kernel.domain.cost_input import CostInput
from docflow_kernel.domain.document import Document, DocumentKind
from docflow_kernel.exceptions import PayloadDecodeError


class DocumentRepository(Protocol):
    """Keyed storage of whole ``Document`` states.

    ``get(..., for_update=True)`` is a mutation read: implementations that
    support row locking take the lock here and hold it until the caller's
    transaction ends.
    """

    def add(self, document: Document) -> None:
        ...

    def get(self, document_id: UUID, *, for_update: bool = False) -> Document | None:
        ...

    def save(self, document: Document) -> None:
        ...

    def delete(self, document_id: UUID) -> bool:
        ...

    def list_ids(self) -> list[UUID]:
        ...

    def find(
        self,
        *,
        kind: DocumentKind | None = None,
        owner_id: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Document]:
        ...


class PayloadCodec(Protocol):
    """Converts a payload to and from a JSON-safe mapping."""

    def encode(self, payload: Any) -> dict[str, Any]:
        ...

    def decode(self, data: Mapping[str, Any], document_id: UUID) -> Any:
        ...


class MappingCodec:
    """Payloads that already are JSON-safe mappings."""

    def encode(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, Mapping):
            raise TypeError(f"MappingCodec cannot encode {type(payload).__name__}")
        return dict(payload)

    def decode(self, data: Mapping[str, Any], document_id: UUID) -> Any:
        if not isinstance(data, Mapping):
            raise PayloadDecodeError(str(document_id), "stored payload is not an object")
        return deepcopy(dict(data))


class CostInputCodec:
    """Fund plan payloads, stored in the same shape forms submit."""

    def encode(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, CostInput):
            raise TypeError(f"CostInputCodec cannot encode {type(payload).__name__}")
        return cost_input_to_mapping(payload)

    def decode(self, data: Mapping[str, Any], document_id: UUID) -> Any:
        if not isinstance(data, Mapping):
            raise PayloadDecodeError(str(document_id), "stored payload is not an object")
        try:
            return cost_input_from_mapping(data)
        except ValueError as exc:
            raise PayloadDecodeError(str(document_id), str(exc)) from exc


class KindCodec:
    """Dispatches to a codec per document kind (fund plans hold ``CostInput``)."""

    def __init__(self, codecs: Mapping[DocumentKind, PayloadCodec] | None = None):
        self._codecs = dict(codecs or {DocumentKind.FUND_PLAN: CostInputCodec()})
        self._fallback = MappingCodec()

    def for_kind(self, kind: DocumentKind) -> PayloadCodec:
        return self._codecs.get(kind, self._fallback)

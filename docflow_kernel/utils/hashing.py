"""
Deterministic hashing utilities.

Snapshot rows are stored with the hash of their encoded payload so a
history that was edited behind the application's back is detected the
next time it is loaded.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Trailing zeros must not change the hash
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bytes):
        return obj.hex()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Produces a deterministic JSON representation:
    - Keys are sorted alphabetically
    - No whitespace
    - Consistent handling of special types (Decimal, datetime, UUID, Enum)
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_snapshot(
    document_id: UUID,
    version: int,
    payload: dict,
    lock_type: str | None,
) -> str:
    """
    Tamper-evidence hash of one version snapshot.

    Covers the identity of the snapshot as well as its content, so moving a
    payload to a different version or document changes the hash.
    """
    return hash_payload({
        "document_id": str(document_id),
        "version": version,
        "payload": payload,
        "lock_type": lock_type,
    })


def to_json_safe(data: Any) -> Any:
    """
    Round-trip ``data`` through JSON using the canonical serializer.

    Key order is preserved (unlike ``canonicalize_json``) so ordered
    mappings such as cost tiers come back in entry order.
    """
    return json.loads(json.dumps(data, default=_json_serializer))

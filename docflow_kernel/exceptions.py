"""
Typed exception hierarchy for the docflow kernel.

===============================================================================
WHEN EXCEPTIONS ARE RAISED
===============================================================================

Business guards in the lifecycle core are SOFT failures: editing a locked
document, an illegal approval transition, or restoring a version that does
not exist all return ``False`` (or a falsy ``TransitionResult``).  Callers
branch on the result and show a message.  None of those paths raise.

The classes below are reserved for faults that are NOT ordinary user
mistakes:
  - malformed configuration files
  - payloads that cannot be encoded/decoded for persistence
  - broken version sequences or tampered snapshot rows read from storage
  - ORM-level attempts to rewrite append-only rows

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DocflowError (base)
    |
    +-- ConfigError
    |
    +-- PayloadError
    |   +-- PayloadDecodeError
    |   +-- UnsupportedPayloadError
    |
    +-- PersistenceError
    |   +-- DocumentNotFoundError
    |   +-- DuplicateDocumentError
    |   +-- VersionSequenceError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError
        +-- TamperDetectedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_ERROR                | Settings file malformed or out of range
----------------|-----------------------------|-----------------------------------------
Payload         | PAYLOAD_DECODE_ERROR        | Stored payload cannot be rebuilt
                | UNSUPPORTED_PAYLOAD         | Partial update on a non-mergeable payload
----------------|-----------------------------|-----------------------------------------
Persistence     | DOCUMENT_NOT_FOUND          | Repository asked to save an unknown id
                | DUPLICATE_DOCUMENT          | Repository asked to add an existing id
                | VERSION_SEQUENCE_BROKEN     | History versions not 1..n without gaps
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update of an append-only row
                | TAMPER_DETECTED             | Snapshot hash mismatch on load

Every class carries a ``code`` class attribute and stores its context as
attributes so it survives logging and serialization.
"""


class DocflowError(Exception):
    """Base exception for all docflow kernel errors."""

    code: str = "DOCFLOW_ERROR"


# Configuration


class ConfigError(DocflowError):
    """A settings file or value is invalid."""

    code: str = "CONFIG_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting!r}: {reason}")


# Payload handling


class PayloadError(DocflowError):
    """Base exception for payload encoding problems."""

    code: str = "PAYLOAD_ERROR"


class PayloadDecodeError(PayloadError):
    """A stored payload could not be converted back to its domain type."""

    code: str = "PAYLOAD_DECODE_ERROR"

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Cannot decode payload of document {document_id}: {reason}")


class UnsupportedPayloadError(PayloadError):
    """A partial update was requested on a payload that cannot be merged."""

    code: str = "UNSUPPORTED_PAYLOAD"

    def __init__(self, payload_type: str, reason: str):
        self.payload_type = payload_type
        self.reason = reason
        super().__init__(f"Cannot merge into {payload_type}: {reason}")


# Persistence


class PersistenceError(DocflowError):
    """Base exception for repository errors."""

    code: str = "PERSISTENCE_ERROR"


class DocumentNotFoundError(PersistenceError):
    """Document with given ID does not exist in the repository."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class DuplicateDocumentError(PersistenceError):
    """Document with given ID already exists in the repository."""

    code: str = "DUPLICATE_DOCUMENT"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document already exists: {document_id}")


class VersionSequenceError(PersistenceError):
    """Version history is not the gap-free sequence 1..n."""

    code: str = "VERSION_SEQUENCE_BROKEN"

    def __init__(self, document_id: str, versions: tuple[int, ...]):
        self.document_id = document_id
        self.versions = versions
        super().__init__(
            f"Version history of {document_id} is not contiguous: {list(versions)}"
        )


# Immutability


class ImmutabilityError(DocflowError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to rewrite an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class TamperDetectedError(ImmutabilityError):
    """A stored snapshot no longer matches the hash recorded at creation."""

    code: str = "TAMPER_DETECTED"

    def __init__(self, document_id: str, version: int, expected: str, actual: str):
        self.document_id = document_id
        self.version = version
        self.expected_hash = expected
        self.actual_hash = actual
        super().__init__(
            f"Snapshot v{version} of document {document_id} was modified after "
            f"creation (expected {expected[:12]}, got {actual[:12]})"
        )

"""Error taxonomy shared by the graph, migration, backup and restore layers.

The API layer translates these into HTTP responses; everything below it raises
them and lets the caller decide.
"""
from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by homeledger."""


class EntityValidationError(LedgerError):
    """A field value was rejected before anything was committed."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class EntityNotFoundError(LedgerError):
    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class IntegrityViolation(LedgerError):
    """A delete left a child pointing at a parent that no longer exists."""


class MigrationError(LedgerError):
    """The store or a snapshot cannot be brought to the current schema."""


class BackupIOError(LedgerError):
    """A snapshot file could not be read or written."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class BackupFormatError(BackupIOError):
    """The snapshot was readable but is corrupt, truncated or malformed."""


class PhotoStorageError(LedgerError):
    """A photo file could not be stored or loaded."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)

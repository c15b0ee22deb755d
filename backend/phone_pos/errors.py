"""
Error taxonomy for the inventory lifecycle and the backup codec.

State-machine violations are raised synchronously with a message that can be
shown to the operator as-is. They are logical errors; callers never retry them.
"""

from __future__ import annotations

from dataclasses import dataclass


class LifecycleError(Exception):
    """Base for every rule violation raised by the lifecycle services."""

    status_code = 400


class NotFound(LifecycleError):
    status_code = 404


class DuplicateImei(LifecycleError):
    status_code = 409


class AlreadySold(LifecycleError):
    status_code = 409


class NotSold(LifecycleError):
    status_code = 409


class Immutable(LifecycleError):
    status_code = 409


class SaleHistoryExists(LifecycleError):
    """In-stock phone still carries a sale marker; it cannot be deleted."""

    status_code = 409


class InvalidAmount(LifecycleError):
    pass


class ExceedsRemaining(LifecycleError):
    pass


class ValidationFailed(LifecycleError):
    """Input or backup document failed validation. Nothing was modified."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = list(problems or [])


class BackupError(Exception):
    """Restore could not run to completion. Live data may already be cleared."""

    def __init__(self, message: str, safety_backup: str | None = None, data_modified: bool = True):
        super().__init__(message)
        self.safety_backup = safety_backup
        self.data_modified = data_modified


@dataclass
class PartialImportFailure:
    """One record skipped during a restore. Collected, never raised."""

    entity: str
    old_id: object
    reason: str

    def to_dict(self) -> dict:
        return {"entity": self.entity, "old_id": self.old_id, "reason": self.reason}

# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Exceptions raised by the scoring engine.

Two families:

* ``ScoringValidationError`` -- the request was rejected locally, before
  any call to the log service (nothing staged, nothing to undo, no eligible
  substitute, a commit already in flight, ...).
* ``RemoteRejection`` -- the log service refused the mutation.  The
  service's reason is kept verbatim so it can be shown to the operator.

Neither is fatal.  Local staged state survives both so the operator can
retry or abandon.
"""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for scoring engine errors."""


class ScoringValidationError(ScoringError):
    """Raised when an operation is rejected before reaching the log service."""

    def __init__(self, message: str, field: str | None = None,
                 details: list[str] | None = None):
        self.field = field
        self.details = details or []
        super().__init__(message)


class SubstitutionError(ScoringValidationError):
    """Raised when a substitution step is invalid in the current state."""


class RemoteRejection(ScoringError):
    """Raised when the log service refuses a commit, undo or lineup change."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} rejected: {reason}")

"""Custom exceptions for maintplan."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ValidationVerdict


class MaintplanError(Exception):
    """Base exception for all maintplan errors."""

    pass


class ValidationError(MaintplanError):
    """Raised when an input record cannot be converted into a plan entity."""

    pass


class ParseError(MaintplanError):
    """Raised when YAML parsing fails."""

    pass


class LifecycleError(MaintplanError):
    """Base class for rejected plan lifecycle operations."""

    pass


class TransitionError(LifecycleError):
    """Raised when a status transition is not allowed from the current status."""

    pass


class ApprovalRequiredError(LifecycleError):
    """Raised when an approval stage is missing."""

    pass


class CommitBlockedError(LifecycleError):
    """Raised when committing a plan whose verdict does not allow it."""

    def __init__(self, message: str, verdict: ValidationVerdict) -> None:
        super().__init__(message)
        self.verdict = verdict


class PlanLockedError(LifecycleError):
    """Raised when editing a plan that has been committed."""

    pass


class ClosureError(LifecycleError):
    """Raised when a task is closed before its spares have been issued."""

    pass

"""
Vesting-specific exception hierarchy for tokenvest.

Every failure of a ledger operation is terminal for that operation and
leaves state unchanged; the exception type tells the caller which rule was
violated.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Validation Errors ====================


class VestingValidationError(VestingError):
    """Raised when a creation or lookup request fails validation."""
    pass


class AssetNotConfiguredError(VestingValidationError):
    """Raised when a schedule is created before the vested asset is set."""
    pass


class InvalidAssetError(VestingValidationError):
    """Raised when an empty or malformed asset identity is supplied."""
    pass


class AssetAlreadyConfiguredError(VestingValidationError):
    """Raised when the asset identity is set a second time."""
    pass


class InvalidBeneficiaryError(VestingValidationError):
    """Raised when a beneficiary address is empty."""
    pass


class InvalidAmountError(VestingValidationError):
    """Raised when an allocation amount is zero, negative or not an integer."""
    pass


class InvalidDurationIndexError(VestingValidationError):
    """Raised when a duration index falls outside the allowed durations."""

    def __init__(
        self,
        message: str,
        duration_index: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.duration_index = duration_index


class DurationMismatchError(VestingValidationError):
    """Raised when a schedule's duration differs from the beneficiary's first schedule."""

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class IndexOutOfRangeError(VestingValidationError, IndexError):
    """Raised when a schedule index does not exist for a beneficiary."""
    pass


class ArrayLengthMismatchError(VestingValidationError):
    """Raised when batch input sequences differ in length."""
    pass


# ==================== Schedule State Errors ====================


class VestingStateError(VestingError):
    """Raised when a schedule's state does not permit the operation."""
    pass


class InactiveScheduleError(VestingStateError):
    """Raised when claiming against a fully claimed schedule."""
    pass


class NothingToClaimError(VestingStateError):
    """Raised when a claim finds no newly vested units."""
    recoverable = True  # More units unlock at the next period boundary


class ReentrantCreationError(VestingStateError):
    """Raised when a schedule creation starts while another one's deposit is in flight."""
    pass


# ==================== Collaborator Errors ====================


class TransferFailedError(VestingError):
    """Raised when the asset transfer collaborator rejects a movement of funds."""
    recoverable = True


class UnauthorizedError(VestingError, PermissionError):
    """Raised when a caller lacks the privilege an operation requires."""
    pass


# ==================== Internal Consistency ====================


class AccountingInvariantViolation(VestingError):
    """Raised when ledger arithmetic contradicts its own invariants.

    Indicates a logic defect. It must surface to the caller and is never
    retried.
    """
    recoverable = False


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception represents a recoverable error.

    Args:
        exc: The exception to check

    Returns:
        True if the error is recoverable and the operation can be retried
    """
    if isinstance(exc, VestingError):
        return exc.recoverable
    return isinstance(exc, (ConnectionError, TimeoutError))


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VestingError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, DurationMismatchError):
        if exc.expected is not None:
            context["expected_duration"] = exc.expected
        if exc.actual is not None:
            context["actual_duration"] = exc.actual

    if isinstance(exc, InvalidDurationIndexError) and exc.duration_index is not None:
        context["duration_index"] = exc.duration_index

    return context

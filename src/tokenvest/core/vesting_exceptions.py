"""
Vesting-specific exception hierarchy for tokenvest.

Provides typed exceptions for ledger operations so callers can tell exactly
why a grant or a claim was rejected. Every ledger failure leaves ledger state
untouched; the ledger itself never retries.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting-related errors.

    All vesting exceptions inherit from this base class to enable
    catch-all handling when needed while maintaining type specificity.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller may safely retry the operation
    """

    recoverable_default = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = self.recoverable_default if recoverable is None else recoverable


# ==================== Validation Errors ====================


class VestingValidationError(VestingError):
    """Raised when an argument fails ledger validation rules."""
    pass


class InvalidScheduleError(VestingValidationError):
    """Raised at construction when the window end is not after the window start."""
    pass


class InvalidAccountError(VestingValidationError):
    """Raised when an account is the null identity (None, empty or zero address)."""
    pass


class InvalidAmountError(VestingValidationError):
    """Raised when an amount is zero, negative or not an integer."""
    pass


# ==================== Authorization & Claim Errors ====================


class UnauthorizedError(VestingError):
    """Raised when a non-admin caller invokes an admin-only operation."""
    pass


class NothingToClaimError(VestingError):
    """Raised when a release finds no due amount.

    Covers both accounts that were never granted anything and accounts that
    already claimed everything releasable at the current progress.
    """
    pass


# ==================== Asset Errors ====================


class TokenError(VestingError):
    """Raised by the token when a movement is rejected.

    Examples: balance exceeded, allowance exceeded, zero-address recipient.
    """
    pass


class TransferFailure(VestingError):
    """Raised when the asset collaborator rejects a movement.

    Ledger state is rolled back before this propagates, so retrying the
    same call is safe.
    """

    recoverable_default = True

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason


# ==================== State Errors ====================


class LedgerStateError(VestingError):
    """Raised when a persisted ledger snapshot is missing fields or inconsistent."""
    pass


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

    recoverable_types = (
        ConnectionError,
        TimeoutError,
        OSError,
    )
    return isinstance(exc, recoverable_types)


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

    if isinstance(exc, TransferFailure) and exc.reason:
        context["transfer_reason"] = exc.reason

    return context

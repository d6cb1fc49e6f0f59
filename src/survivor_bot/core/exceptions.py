"""Custom exception hierarchy for survivor-bot.

Every error raised by the bot inherits from SurvivorBotError so the
execution loop can tell its own failures apart from bugs in third-party
code. Subclasses carry structured context in ``details`` which ends up
in the structured log line.

Example:
    >>> from survivor_bot.core.exceptions import DecodeError
    >>> raise DecodeError("Snapshot too short", word_count=12)
"""

from __future__ import annotations

from typing import Any


class SurvivorBotError(Exception):
    """Base exception for all survivor-bot errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(SurvivorBotError):
    """Raised when bot configuration is invalid or incomplete.

    Missing contract addresses and malformed RPC endpoints end up here.
    These are surfaced to the operator and never retried.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(SurvivorBotError):
    """Raised when a call builder receives structurally invalid arguments."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# State Decoding
# =============================================================================


class DecodeError(SurvivorBotError):
    """Raised when a raw state snapshot cannot be decoded.

    Fatal for the current cycle only; the loop backs off and fetches
    the state again.
    """

    def __init__(
        self,
        message: str,
        *,
        word_count: int | None = None,
        index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize decode error with layout context.

        Args:
            message: Human-readable error description.
            word_count: Number of words in the offending snapshot.
            index: Position of the offending word.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if word_count is not None:
            combined_details["word_count"] = word_count
        if index is not None:
            combined_details["index"] = index
        super().__init__(message, details=combined_details)


# =============================================================================
# Randomness Exceptions
# =============================================================================


class RandomnessError(SurvivorBotError):
    """Base exception for randomness request failures.

    All randomness errors are retriable: the loop resubmits the request
    together with the action that consumes it.
    """

    def __init__(
        self,
        message: str,
        *,
        salt: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize randomness error with salt context.

        Args:
            message: Human-readable error description.
            salt: The salt of the pending request.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if salt is not None:
            combined_details["salt"] = hex(salt)
        super().__init__(message, details=combined_details)


class SaltMismatchError(RandomnessError):
    """Raised when the state moved while waiting for a fulfilment.

    The requested salt was derived from the old xp and action count, so
    the consuming calls are not sent and the next cycle decides again.
    """


class RandomnessTimeoutError(RandomnessError):
    """Raised when a randomness request is not fulfilled in time."""


# =============================================================================
# Transaction Exceptions
# =============================================================================


class SubmissionError(SurvivorBotError):
    """Raised when the transport or signing layer fails to submit calls.

    Attributes:
        retriable: Whether resubmitting the same calls is safe.
    """

    def __init__(
        self,
        message: str,
        *,
        action: str | None = None,
        retriable: bool = True,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize submission error with action context.

        Args:
            message: Human-readable error description.
            action: The action whose calls failed to submit.
            retriable: Whether resubmitting the same calls is safe.
            details: Optional dictionary containing additional error context.
        """
        self.retriable = retriable
        combined_details = details or {}
        if action:
            combined_details["action"] = action
        super().__init__(message, details=combined_details)


class TransactionRevertedError(SubmissionError):
    """Raised when a transaction was included but reverted on-chain.

    Never resubmitted: the next decision is recomputed from fresh state.
    """

    def __init__(
        self,
        message: str,
        *,
        action: str | None = None,
        revert_reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize revert error with the contract's revert reason.

        Args:
            message: Human-readable error description.
            action: The action whose transaction reverted.
            revert_reason: Reason string reported by the node.
            details: Optional dictionary containing additional error context.
        """
        self.revert_reason = revert_reason or ""
        combined_details = details or {}
        if revert_reason:
            combined_details["revert_reason"] = revert_reason
        super().__init__(message, action=action, retriable=False, details=combined_details)


class RetriesExhaustedError(SurvivorBotError):
    """Raised when the loop gives up after too many consecutive failures."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the number of attempts made.

        Args:
            message: Human-readable error description.
            attempts: How many attempts were made before giving up.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if attempts is not None:
            combined_details["attempts"] = attempts
        super().__init__(message, details=combined_details)


# =============================================================================
# Decision Engine Exceptions
# =============================================================================


class IllegalActionError(SurvivorBotError):
    """Raised when the engine produces an action the contract would reject.

    This is a programming defect. The loop logs it and skips the cycle
    rather than retrying.
    """

    def __init__(
        self,
        message: str,
        *,
        phase: str | None = None,
        action: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the phase and action involved.

        Args:
            message: Human-readable error description.
            phase: The game phase the engine was in.
            action: The rejected action.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if phase:
            combined_details["phase"] = phase
        if action:
            combined_details["action"] = action
        super().__init__(message, details=combined_details)


__all__ = [
    "SurvivorBotError",
    "ConfigurationError",
    "ValidationError",
    "DecodeError",
    "RandomnessError",
    "SaltMismatchError",
    "RandomnessTimeoutError",
    "SubmissionError",
    "TransactionRevertedError",
    "RetriesExhaustedError",
    "IllegalActionError",
]

"""
Failure description — structured error information for the failure track.

Every failure carries an ErrorCode from the revocation taxonomy, a
human-readable message and, where an adapter caught one, the original
exception. The CLI dispatcher renders these and exits non-zero.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Error taxonomy for administrative revocation.

    None of these are retried: each one ends the current operation.
    """

    INVALID_REASON = "INVALID_REASON"
    """Reason code outside the allowed set; detected before any side effect."""

    NOT_FOUND = "NOT_FOUND"
    """Serial or registration does not exist (operator error)."""

    MALFORMED_CERTIFICATE = "MALFORMED_CERTIFICATE"
    """Stored certificate bytes fail to decode (store corruption)."""

    REMOTE_CALL_FAILURE = "REMOTE_CALL_FAILURE"
    """An authority call failed: network, authorization or business rejection."""

    STORE_FAILURE = "STORE_FAILURE"
    """Connection, query, commit or rollback failure in the certificate store."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Unreadable or invalid configuration."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.INVALID_REASON, "Invalid reason code: 7")
    >>> desc.code
    <ErrorCode.INVALID_REASON: 'INVALID_REASON'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def full_stack_trace(self) -> str:
        """Message plus the formatted exception chain, when there is one."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"

"""
Railway-Oriented Programming primitives used across admin-revoker.

Explicit, composable error handling — no exceptions in the orchestrator.

    from admin_revoker.railway import ErrorCode, Result

    def validate_reason(code: int) -> Result[int]:
        if code == 7:
            return Result.failure(ErrorCode.INVALID_REASON, "Invalid reason code: 7")
        return Result.success(code)
"""

from admin_revoker.railway.assertions import ResultAssertions
from admin_revoker.railway.failure import ErrorCode, FailureDescription
from admin_revoker.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]

"""
Result monad — the success/failure railway every revocation step runs on.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Orchestrator steps return Result and never raise; a failure at any step
short-circuits the remaining ones through .flat_map():

    ┌──────────┐  flat_map  ┌──────────┐  flat_map  ┌──────────┐  flat_map  ┌──────────┐
    │ validate │──Success───│  lookup  │──Success───│  decode  │──Success───│  revoke  │──→ Result[T]
    └────┬─────┘            └────┬─────┘            └────┬─────┘            └────┬─────┘
         │ Failure               │ Failure               │ Failure               │ Failure
         └───────────────────────┴───────────────────────┴───────────────────────┴──→ Result[T]
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from admin_revoker.railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Railway-Oriented Programming Result monad.

    Usage:
        >>> Result.success(4).map(lambda x: x * 2).value()
        8
        >>> Result.failure(ErrorCode.NOT_FOUND, "no such serial").map(str).is_failure()
        True
    """

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def value(self) -> T:
        """Extract the success value. Raises ValueError if called on a Failure."""
        match self:
            case Success(v):
                return v
            case Failure(err):
                raise ValueError(f"Cannot get value from a Failure: {err.message}")
        raise TypeError("unreachable")  # pragma: no cover

    def error(self) -> FailureDescription:
        """Extract the failure description. Raises ValueError if called on a Success."""
        match self:
            case Failure(err):
                return err
            case Success(v):
                raise ValueError(f"Cannot get error from a Success: {v}")
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Core Transformations ────────────────────────

    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[FailureDescription], R],
    ) -> R:
        """Apply one of two functions depending on the state."""
        match self:
            case Success(v):
                return on_success(v)
            case Failure(err):
                return on_failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        """Transform the success value. Short-circuits on failure."""
        match self:
            case Success(v):
                return Success(mapper(v))
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def map_failure(
        self, mapper: Callable[[FailureDescription], FailureDescription]
    ) -> Result[T]:
        """Transform the failure description. Passes through success unchanged."""
        match self:
            case Success(_):
                return self
            case Failure(err):
                return Failure(mapper(err))
        raise TypeError("unreachable")  # pragma: no cover

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """
        Chain a Result-returning function. Short-circuits on failure.

        This is the operator that connects railway segments:

            validate_reason(7).flat_map(lookup)  # lookup is never called
        """
        match self:
            case Success(v):
                return mapper(v)
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Run a side effect on the success value (audit, logging) and pass the Result on."""
        match self:
            case Success(v):
                action(v)
        return self

    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]:
        """Run a side effect on failure without altering the Result."""
        match self:
            case Failure(err):
                action(err)
        return self

    def get_or_else(self, default: T) -> T:
        match self:
            case Success(v):
                return v
            case _:
                return default

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure_from(error: FailureDescription) -> Result[T]:
        return Failure(error)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
    ) -> Result[T]:
        """
        Create a failed Result with error code, message, and optional exception.

            Result.failure(ErrorCode.NOT_FOUND, "certificate with serial '00ab' not found")
        """
        return Failure(FailureDescription(code=code, message=message, exception=exception))

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
    ) -> Result[T]:
        """
        Create a Result from a computation that may raise.

        This is how adapters keep exceptions out of the orchestrator:

            return Result.from_computation(
                lambda: x509.load_der_x509_certificate(der),
                ErrorCode.MALFORMED_CERTIFICATE,
                "Stored certificate could not be decoded",
            )
        """
        try:
            return Result.success(computation())
        except Exception as e:
            return Result.failure(error_code, f"{error_message}: {e}", e)

    @staticmethod
    def from_optional(
        value: T | None,
        error_message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
    ) -> Result[T]:
        """Success for a present value, failure for None."""
        if value is not None:
            return Result.success(value)
        return Result.failure(error_code, error_message)

    # ──────────────────────── Dunder methods ────────────────────────

    def __bool__(self) -> bool:
        return self.is_success()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        match (self, other):
            case (Success(a), Success(b)):
                return a == b
            case (Failure(a), Failure(b)):
                return a.code == b.code and a.message == b.message
            case _:
                return False

    def __hash__(self) -> int:
        match self:
            case Success(v):
                return hash(("Success", v))
            case Failure(err):
                return hash(("Failure", err.code, err.message))
        raise TypeError("unreachable")  # pragma: no cover


class Success(Result[T]):
    """The success track — wraps a value of type T."""

    __slots__ = ("_value",)
    __match_args__ = ("_value",)

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        self._value = value

    def __repr__(self) -> str:
        return f"Success({self._value!r})"


class Failure(Result[T]):
    """The failure track — wraps a FailureDescription."""

    __slots__ = ("_error",)
    __match_args__ = ("_error",)

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        self._error = error

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

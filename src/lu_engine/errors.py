# src/lu_engine/errors.py
"""Error types and standardized raise helpers for lu_engine.

This module centralizes:
- explicit error classes with actionable messages, and
- small helpers that build those messages consistently.

Design intent:
- every failure is synchronous and typed; callers can catch the lu_engine base
  class or the matching builtin (ValueError, IndexError, ...).
- validation runs before any in-place mutation, so a raised error means the
  operand buffers are untouched.
- a zero pivot during factorization is *not* an error (see
  :mod:`lu_engine.factorize`); only the high-level helpers elevate it.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable classification for lu_engine failures.

    Use these codes to support consistent reporting and programmatic recovery
    (for example, falling back to an external LAPACK on ``NOT_IMPLEMENTED``).
    """

    DIMENSION_MISMATCH = "dimension_mismatch"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    UNSUPPORTED_DTYPE = "unsupported_dtype"
    NOT_IMPLEMENTED = "not_implemented"
    INVALID_PERMUTATION = "invalid_permutation"
    INVALID_ARGUMENT = "invalid_argument"
    ARITHMETIC_RANGE = "arithmetic_range"
    SINGULAR_MATRIX = "singular_matrix"


class LuEngineError(Exception):
    """Base exception for lu_engine errors."""

    default_code: ErrorCode | None = None

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize an LuEngineError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code; defaults to the
                class-level code of the concrete subclass.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code if code is not None else self.default_code


class DimensionMismatchError(LuEngineError, ValueError):
    """Raised when shapes, strides or leading dimensions are incompatible."""

    default_code = ErrorCode.DIMENSION_MISMATCH


class IndexOutOfRangeError(LuEngineError, IndexError):
    """Raised when an index or pivot lies outside the valid bounds."""

    default_code = ErrorCode.INDEX_OUT_OF_RANGE


class UnsupportedDTypeError(LuEngineError, TypeError):
    """Raised when a dtype is unknown or cannot perform the requested operation."""

    default_code = ErrorCode.UNSUPPORTED_DTYPE


class NotImplementedLapackError(LuEngineError, NotImplementedError):
    """Raised when the internal path has no routine for a dtype/storage combination."""

    default_code = ErrorCode.NOT_IMPLEMENTED


class InvalidPermutationError(LuEngineError, ValueError):
    """Raised when an intuitive permutation is not a permutation of its axis."""

    default_code = ErrorCode.INVALID_PERMUTATION


class InvalidArgumentError(LuEngineError, ValueError):
    """Raised when a symbolic option (order, transpose, side, ...) is not recognized."""

    default_code = ErrorCode.INVALID_ARGUMENT


class ArithmeticRangeError(LuEngineError, OverflowError):
    """Raised when an integer result does not fit its storage dtype."""

    default_code = ErrorCode.ARITHMETIC_RANGE


class SingularMatrixError(LuEngineError, ArithmeticError):
    """Raised by strict high-level helpers when a factorization is singular."""

    default_code = ErrorCode.SINGULAR_MATRIX


def raise_dimension_mismatch(*, name: str, expected: str, got: object) -> None:
    """Raise a standardized DimensionMismatchError.

    Args:
        name: Name of the argument with the dimension issue.
        expected: Human-readable expected shape/size description.
        got: Actual observed shape/value.

    Raises:
        DimensionMismatchError: Always.
    """
    msg = f"{name} has incompatible dimensions. Expected {expected}. Got: {got!r}."
    raise DimensionMismatchError(msg)


def raise_index_out_of_range(*, name: str, index: object, size: int) -> None:
    """Raise a standardized IndexOutOfRangeError.

    Args:
        name: Name of the index or pivot argument.
        index: Offending value.
        size: Exclusive upper bound of the valid range.

    Raises:
        IndexOutOfRangeError: Always.
    """
    msg = f"{name} value {index!r} is out of range [0, {size})."
    raise IndexOutOfRangeError(msg)


def raise_not_implemented(routine: str, *, dtype: object, reason: str) -> None:
    """Raise a standardized NotImplementedLapackError.

    Args:
        routine: Routine name (for example, "getri").
        dtype: Dtype the routine was called with.
        reason: Human-readable reason the internal path cannot run.

    Raises:
        NotImplementedLapackError: Always.
    """
    msg = (
        f"{routine} is not implemented by the internal path for dtype {dtype}.\n"
        f"Reason: {reason}\n\n"
        "Use backend='scipy' (lu_engine.external) for an external LAPACK path."
    )
    raise NotImplementedLapackError(msg)

# src/lu_engine/dtypes.py
"""Closed dtype enumeration and per-dtype arithmetic kernels.

Every numeric representation lu_engine stores is one member of :class:`DType`.
Generic code never touches a concrete representation directly; it asks
:func:`kernel_for` for the :class:`DTypeKernel` of a dtype and uses its
primitives. Kernels are looked up in an explicit dispatch table, so adding a
dtype means adding an enum member and a table entry.

Kernel primitives accept NumPy scalars or arrays and broadcast like NumPy.

Arithmetic policy:
    * float32/float64/complex64/complex128 follow IEEE arithmetic in the
      storage precision.
    * Integer dtypes (including the unsigned ``byte``) are exact: intermediate
      values are Python ints, results that do not fit the storage dtype raise
      ArithmeticRangeError, and ``divide`` succeeds only when every quotient
      is exact. Fractional results over integer storage are left to callers
      to avoid.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import numpy as np

from .errors import ArithmeticRangeError, UnsupportedDTypeError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


_UNKNOWN_DTYPE_ERROR = "Unsupported dtype: {dtype!r}. Expected one of {names}."
_INEXACT_DIVISION_ERROR = (
    "{op} over integer dtype {dtype} requires exact division; "
    "got a fractional quotient. Convert to a floating dtype first."
)
_INTEGER_RANGE_ERROR = "{op} result does not fit integer dtype {dtype} [{lo}, {hi}]"


class DType(StrEnum):
    """Element types supported by lu_engine storage and kernels."""

    BYTE = "byte"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"

    @property
    def numpy_dtype(self) -> np.dtype[Any]:
        """NumPy dtype backing this element type."""
        return np.dtype(_NUMPY_NAMES[self])

    @property
    def is_integer(self) -> bool:
        """True for the exact integer dtypes (signed and unsigned)."""
        return self in _INTEGER_DTYPES

    @property
    def is_complex(self) -> bool:
        """True for complex64 and complex128."""
        return self in (DType.COMPLEX64, DType.COMPLEX128)

    @property
    def supports_division(self) -> bool:
        """True when division is defined for every nonzero divisor."""
        return not self.is_integer

    @classmethod
    def of(cls, value: object) -> DType:
        """Resolve a DType from a member, its name, or a NumPy dtype-like.

        Args:
            value: DType member, name such as "float64" or "byte", a NumPy
                dtype, or a scalar type such as ``np.int16``.

        Raises:
            UnsupportedDTypeError: If the value does not name a supported dtype.

        Returns:
            The matching DType member.
        """
        if isinstance(value, DType):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            if name in cls._value2member_map_:
                return cls(name)
        try:
            np_dtype = np.dtype(value)  # type: ignore[call-overload]
        except TypeError as exc:
            raise UnsupportedDTypeError(
                _UNKNOWN_DTYPE_ERROR.format(dtype=value, names=[m.value for m in cls])
            ) from exc
        found = _FROM_NUMPY.get(np_dtype)
        if found is None:
            raise UnsupportedDTypeError(
                _UNKNOWN_DTYPE_ERROR.format(dtype=value, names=[m.value for m in cls])
            )
        return found


_NUMPY_NAMES: Final[dict[DType, str]] = {
    DType.BYTE: "uint8",
    DType.INT8: "int8",
    DType.INT16: "int16",
    DType.INT32: "int32",
    DType.INT64: "int64",
    DType.FLOAT32: "float32",
    DType.FLOAT64: "float64",
    DType.COMPLEX64: "complex64",
    DType.COMPLEX128: "complex128",
}

_FROM_NUMPY: Final[dict[np.dtype[Any], DType]] = {
    np.dtype(name): member for member, name in _NUMPY_NAMES.items()
}

_INTEGER_DTYPES: Final[frozenset[DType]] = frozenset({
    DType.BYTE,
    DType.INT8,
    DType.INT16,
    DType.INT32,
    DType.INT64,
})


# =============================================================================
# Kernels
# =============================================================================


class DTypeKernel:
    """Arithmetic primitives for one floating-point dtype.

    Subclasses override the primitives whose semantics differ (complex
    comparison, exact integer arithmetic). All primitives return values of the
    kernel's storage dtype.
    """

    def __init__(self, dtype: DType) -> None:
        """
        Initialize a kernel.

        Args:
            dtype: Element type served by this kernel.
        """
        self.dtype = dtype
        self.np_dtype = dtype.numpy_dtype

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.dtype.value})"

    # -- construction ---------------------------------------------------------

    def zero(self) -> Any:
        """Additive identity of the dtype."""
        return self.np_dtype.type(0)

    def one(self) -> Any:
        """Multiplicative identity of the dtype."""
        return self.np_dtype.type(1)

    def cast(self, values: ArrayLike) -> NDArray[Any]:
        """Convert values to an array of the storage dtype."""
        return np.asarray(values, dtype=self.np_dtype)

    def _finish(self, result: Any) -> Any:
        arr = np.asarray(result, dtype=self.np_dtype)
        if arr.ndim == 0:
            return arr[()]
        return arr

    # -- arithmetic -----------------------------------------------------------

    def add(self, a: Any, b: Any) -> Any:
        return self._finish(np.add(a, b))

    def subtract(self, a: Any, b: Any) -> Any:
        return self._finish(np.subtract(a, b))

    def multiply(self, a: Any, b: Any) -> Any:
        return self._finish(np.multiply(a, b))

    def divide(self, a: Any, b: Any) -> Any:
        return self._finish(np.divide(a, b))

    def negate(self, a: Any) -> Any:
        return self._finish(np.negative(a))

    def reciprocal(self, a: Any) -> Any:
        return self.divide(self.one(), a)

    def multiply_subtract(self, c: Any, a: Any, b: Any) -> Any:
        """Return ``c - a*b`` with NumPy broadcasting."""
        return self._finish(np.subtract(c, np.multiply(a, b)))

    def multiply_add(self, c: Any, a: Any, b: Any) -> Any:
        """Return ``c + a*b`` with NumPy broadcasting."""
        return self._finish(np.add(c, np.multiply(a, b)))

    def conjugate(self, a: Any) -> Any:
        return self._finish(a)

    # -- comparison -----------------------------------------------------------

    def magnitude(self, a: Any) -> Any:
        """Pivoting measure: ``|x|`` for real dtypes."""
        return np.abs(a)

    def iamax(self, vector: NDArray[Any]) -> int:
        """Index of the first element with the largest magnitude."""
        return int(np.argmax(self.magnitude(vector)))

    def is_zero(self, a: Any) -> bool:
        return bool(a == 0)

    def approx_equal(self, a: Any, b: Any, eps: float) -> bool:
        """True when ``|a - b| <= eps`` elementwise.

        Args:
            a: First value or array.
            b: Second value or array (broadcast against ``a``).
            eps: Absolute tolerance supplied by the caller.

        Returns:
            Whether every element pair is within ``eps``.
        """
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return bool(np.all(np.abs(diff) <= eps))


class ComplexKernel(DTypeKernel):
    """Kernel for complex64/complex128."""

    def conjugate(self, a: Any) -> Any:
        return self._finish(np.conjugate(a))

    def magnitude(self, a: Any) -> Any:
        """Pivoting measure ``|re| + |im|`` (the BLAS ``i?amax`` convention)."""
        arr = np.asarray(a)
        return np.abs(arr.real) + np.abs(arr.imag)

    def approx_equal(self, a: Any, b: Any, eps: float) -> bool:
        """Compare real and imaginary parts independently against ``eps``."""
        diff = np.asarray(a, dtype=np.complex128) - np.asarray(b, dtype=np.complex128)
        return bool(np.all(np.abs(diff.real) <= eps) and np.all(np.abs(diff.imag) <= eps))


class IntegerKernel(DTypeKernel):
    """Exact kernel for the integer dtypes.

    Intermediate values are Python ints (object arrays), so no operation wraps
    around silently; results are range-checked before being cast back.
    """

    def __init__(self, dtype: DType) -> None:
        super().__init__(dtype)
        info = np.iinfo(self.np_dtype)
        self._lo = int(info.min)
        self._hi = int(info.max)

    @staticmethod
    def _exact(a: Any) -> Any:
        return np.asarray(a).astype(object)

    def _checked(self, result: Any, op: str) -> Any:
        arr = np.asarray(result, dtype=object)
        if arr.size:
            lo = min(arr.flat)
            hi = max(arr.flat)
            if lo < self._lo or hi > self._hi:
                raise ArithmeticRangeError(
                    _INTEGER_RANGE_ERROR.format(
                        op=op, dtype=self.dtype.value, lo=self._lo, hi=self._hi
                    )
                )
        return self._finish(arr)

    def add(self, a: Any, b: Any) -> Any:
        return self._checked(self._exact(a) + self._exact(b), "add")

    def subtract(self, a: Any, b: Any) -> Any:
        return self._checked(self._exact(a) - self._exact(b), "subtract")

    def multiply(self, a: Any, b: Any) -> Any:
        return self._checked(self._exact(a) * self._exact(b), "multiply")

    def divide(self, a: Any, b: Any) -> Any:
        num = self._exact(a)
        den = self._exact(b)
        if np.any(den == 0):
            msg = f"integer division by zero in dtype {self.dtype.value}"
            raise ZeroDivisionError(msg)
        if np.any(num % den != 0):
            raise UnsupportedDTypeError(
                _INEXACT_DIVISION_ERROR.format(op="divide", dtype=self.dtype.value)
            )
        return self._checked(num // den, "divide")

    def negate(self, a: Any) -> Any:
        return self._checked(-self._exact(a), "negate")

    def multiply_subtract(self, c: Any, a: Any, b: Any) -> Any:
        return self._checked(
            self._exact(c) - self._exact(a) * self._exact(b), "multiply_subtract"
        )

    def multiply_add(self, c: Any, a: Any, b: Any) -> Any:
        return self._checked(
            self._exact(c) + self._exact(a) * self._exact(b), "multiply_add"
        )

    def magnitude(self, a: Any) -> Any:
        return np.abs(self._exact(a))

    def approx_equal(self, a: Any, b: Any, eps: float) -> bool:  # noqa: ARG002
        """Integers compare exactly; ``eps`` is accepted for a uniform signature."""
        return bool(np.all(self._exact(a) == self._exact(b)))


_KERNELS: Final[dict[DType, DTypeKernel]] = {
    DType.BYTE: IntegerKernel(DType.BYTE),
    DType.INT8: IntegerKernel(DType.INT8),
    DType.INT16: IntegerKernel(DType.INT16),
    DType.INT32: IntegerKernel(DType.INT32),
    DType.INT64: IntegerKernel(DType.INT64),
    DType.FLOAT32: DTypeKernel(DType.FLOAT32),
    DType.FLOAT64: DTypeKernel(DType.FLOAT64),
    DType.COMPLEX64: ComplexKernel(DType.COMPLEX64),
    DType.COMPLEX128: ComplexKernel(DType.COMPLEX128),
}


def kernel_for(dtype: object) -> DTypeKernel:
    """Return the arithmetic kernel for a dtype.

    Args:
        dtype: Anything :meth:`DType.of` accepts.

    Returns:
        The shared kernel instance for the dtype.
    """
    return _KERNELS[DType.of(dtype)]

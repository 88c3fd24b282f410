# tests/lu_engine/test_inverse.py
"""Unit tests for lu_engine.inverse."""

from __future__ import annotations

import numpy as np
import pytest

from lu_engine import (
    Backend,
    DenseMatrix,
    LapackOptions,
    clapack_getrf,
    clapack_getri,
    inverse,
    invert_inplace,
)
from lu_engine.errors import (
    DimensionMismatchError,
    NotImplementedLapackError,
    SingularMatrixError,
)

A_VALUES = [[1.0, 0.0, 4.0], [1.0, 1.0, 6.0], [-3.0, 0.0, -10.0]]
A_INVERSE = [[-5.0, 0.0, -2.0], [-4.0, 1.0, -1.0], [1.5, 0.0, 0.5]]

# Column-major factors have U(3,3) = 4 - 10/3, which cancels; the inverse
# carries a few ulps more than the factors.
INVERSE_TOLERANCE = {
    "float32": 5e-6,
    "float64": 1e-13,
    "complex64": 5e-6,
    "complex128": 1e-13,
}


# -----------------------------------------------------------------------------
# clapack_getri
# -----------------------------------------------------------------------------


@pytest.mark.parametrize("order", ["row", "col"])
@pytest.mark.parametrize("dtype", ["float32", "float64", "complex64", "complex128"])
def test_clapack_getri_golden(order: str, dtype: str) -> None:
    """getrf followed by getri inverts in place in either storage order."""
    a = DenseMatrix.from_array(A_VALUES, dtype=dtype, order=order)
    ipiv = clapack_getrf(order, 3, 3, a, 3)
    assert clapack_getri(order, 3, a, 3, ipiv) == 0
    assert a.approx_equal(A_INVERSE, INVERSE_TOLERANCE[dtype])


def test_clapack_getri_random_complex_matches_numpy() -> None:
    """A larger complex inverse agrees with numpy.linalg.inv."""
    rng = np.random.default_rng(5)
    values = rng.normal(size=(6, 6)) + 1j * rng.normal(size=(6, 6))
    a = DenseMatrix.from_array(values, order="col")
    ipiv = clapack_getrf("col", 6, 6, a, 6)
    assert clapack_getri("col", 6, a, 6, ipiv) == 0
    np.testing.assert_allclose(a.array, np.linalg.inv(values), atol=1e-10)


def test_clapack_getri_integer_not_implemented() -> None:
    """Integer dtypes have no internal inverse; the error is a NotImplementedError."""
    a = DenseMatrix.new(2, [1, 0, 0, 1], dtype="int32")
    with pytest.raises(NotImplementedError, match="backend='scipy'"):
        clapack_getri("row", 2, a, 2, [0, 1])
    assert a.flat() == [1, 0, 0, 1]


def test_clapack_getri_singular_reports_info_without_mutation() -> None:
    """A zero diagonal in U returns its 1-based index and leaves the buffer."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0], order="col")
    ipiv = clapack_getrf("col", 2, 2, a, 2)
    factors = a.flat()
    assert clapack_getri("col", 2, a, 2, ipiv) == 2
    assert a.flat() == factors


def test_clapack_getri_validates_sizes() -> None:
    """Negative n and short pivot vectors are dimension errors."""
    a = DenseMatrix.identity(2)
    with pytest.raises(DimensionMismatchError):
        clapack_getri("row", -1, a, 2, [0, 1])
    with pytest.raises(DimensionMismatchError):
        clapack_getri("row", 2, a, 2, [0])
    assert clapack_getri("row", 0, a, 2, []) == 0


# -----------------------------------------------------------------------------
# invert_inplace / inverse
# -----------------------------------------------------------------------------


def test_invert_inplace() -> None:
    """invert_inplace overwrites the matrix with its inverse."""
    a = DenseMatrix.from_array(A_VALUES)
    invert_inplace(a)
    assert a.approx_equal(A_INVERSE, 1e-12)


def test_invert_inplace_singular_leaves_matrix() -> None:
    """A singular matrix raises and is not modified."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0])
    with pytest.raises(SingularMatrixError):
        invert_inplace(a)
    assert a.flat() == [1.0, 2.0, 2.0, 4.0]


def test_inverse_returns_new_matrix() -> None:
    """inverse leaves its argument untouched."""
    a = DenseMatrix.from_array(A_VALUES)
    inv = inverse(a)
    assert inv.approx_equal(A_INVERSE, 1e-12)
    assert a.tolist() == A_VALUES
    assert not inv.shares_buffer(a)


def test_inverse_singular_always_raises() -> None:
    """There is no inverse to return for a singular matrix."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0])
    with pytest.raises(SingularMatrixError):
        inverse(a)
    with pytest.raises(SingularMatrixError):
        inverse(a, options=LapackOptions(strict=True))


def test_inverse_integer_falls_back_to_scipy() -> None:
    """Integer input is inverted by the scipy backend with a warning."""
    a = DenseMatrix.new(2, [2, 1, 1, 1], dtype="int64")
    with pytest.warns(RuntimeWarning, match="falling back"):
        inv = inverse(a)
    assert inv.approx_equal([[1.0, -1.0], [-1.0, 2.0]], 1e-12)


def test_inverse_integer_without_fallback() -> None:
    """With fallback disabled the error propagates."""
    a = DenseMatrix.new(2, [2, 1, 1, 1], dtype="int64")
    with pytest.raises(NotImplementedLapackError):
        inverse(a, options=LapackOptions(fallback=False))


def test_inverse_scipy_backend() -> None:
    """backend='scipy' bypasses the internal kernels."""
    inv = inverse(
        DenseMatrix.from_array(A_VALUES), options=LapackOptions(backend=Backend.SCIPY)
    )
    assert inv.approx_equal(A_INVERSE, 1e-12)


def test_inverse_requires_square() -> None:
    """Rectangular matrices are rejected."""
    with pytest.raises(DimensionMismatchError):
        inverse(DenseMatrix.zeros((2, 3)))
    with pytest.raises(DimensionMismatchError):
        invert_inplace(DenseMatrix.zeros((3, 2)))

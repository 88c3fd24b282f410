# tests/lu_engine/test_external.py
"""Cross-checks between the internal kernels and the scipy backend."""

from __future__ import annotations

import numpy as np
import pytest
import scipy.linalg

from lu_engine import DenseMatrix, DType, LapackOptions, lu_factor, solve
from lu_engine.errors import SingularMatrixError
from lu_engine.external import (
    scipy_getri,
    scipy_inverse,
    scipy_lu_factor,
    scipy_lu_solve,
    scipy_solve,
)

pytestmark = pytest.mark.scipy


def _random(n: int, dtype: DType, seed: int) -> DenseMatrix:
    rng = np.random.default_rng(seed)
    values = rng.normal(size=(n, n))
    if dtype.is_complex:
        values = values + 1j * rng.normal(size=(n, n))
    return DenseMatrix.from_array(values, dtype=dtype)


@pytest.mark.parametrize("dtype", [DType.FLOAT64, DType.COMPLEX128])
def test_internal_factorization_matches_scipy(dtype: DType) -> None:
    """Packed factors and pivots agree with LAPACK ?getrf."""
    a = _random(6, dtype, seed=21)
    ours = lu_factor(a)
    theirs = scipy_lu_factor(a)
    assert ours.pivots == theirs.pivots
    np.testing.assert_allclose(ours.lu.array, theirs.lu.array, atol=1e-10)


def test_scipy_lu_factor_matches_scipy_directly() -> None:
    """The adapter keeps scipy's zero-indexed pivots."""
    a = _random(4, DType.FLOAT64, seed=1)
    lu, piv = scipy.linalg.lu_factor(a.array)
    fact = scipy_lu_factor(a)
    assert list(fact.pivots) == piv.tolist()
    np.testing.assert_array_equal(fact.lu.array, lu)
    assert fact.info == 0


def test_scipy_lu_factor_reports_singularity() -> None:
    """A zero on U's diagonal is translated into info."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0])
    with pytest.warns(RuntimeWarning):
        fact = scipy_lu_factor(a)
    assert fact.info == 2
    assert fact.is_singular


@pytest.mark.parametrize("trans", ["no_transpose", "transpose", "complex_conjugate"])
def test_scipy_lu_solve_accepts_internal_factors(trans: str) -> None:
    """Internal factors can be handed to LAPACK ?getrs unchanged."""
    a = _random(5, DType.COMPLEX128, seed=9)
    b = DenseMatrix.from_array(np.arange(10.0).reshape(5, 2) + 0j)
    x = scipy_lu_solve(lu_factor(a), b, trans=trans)
    op = {"no_transpose": a.array, "transpose": a.array.T}.get(
        trans, a.array.conj().T
    )
    np.testing.assert_allclose(op @ x.array, b.array, atol=1e-10)


def test_scipy_getri_accepts_internal_factors() -> None:
    """Internal factors can be handed to LAPACK ?getri unchanged."""
    a = _random(4, DType.FLOAT64, seed=4)
    inv = scipy_getri(lu_factor(a))
    np.testing.assert_allclose(inv.array @ a.array, np.eye(4), atol=1e-10)


def test_scipy_inverse_singular_raises() -> None:
    """The scipy path maps singularity to SingularMatrixError."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0])
    with pytest.warns(RuntimeWarning), pytest.raises(SingularMatrixError):
        scipy_inverse(a)


def test_scipy_solve_strict() -> None:
    """scipy_solve follows the same strictness policy as the internal path."""
    a = DenseMatrix.new(2, [1.0, 2.0, 2.0, 4.0])
    b = DenseMatrix.from_array([1.0, 1.0])
    with pytest.warns(RuntimeWarning), pytest.raises(SingularMatrixError):
        scipy_solve(a, b, strict=True)


def test_solve_backends_agree() -> None:
    """solve gives the same answer from both backends."""
    a = _random(5, DType.FLOAT64, seed=17)
    b = DenseMatrix.from_array(np.linspace(-1.0, 1.0, 5))
    internal = solve(a, b)
    external = solve(a, b, options=LapackOptions(backend="scipy"))
    np.testing.assert_allclose(internal.array, external.array, atol=1e-12)

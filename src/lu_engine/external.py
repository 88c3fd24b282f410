# src/lu_engine/external.py
"""External LAPACK path backed by SciPy.

The functions here mirror the internal routines with the same standard
conventions (``P*A = L*U``, zero-indexed sequential row pivots) so results
are interchangeable with :mod:`lu_engine.factorize`. They are selected with
``LapackOptions(backend="scipy")`` and used as the fallback after a
:class:`~lu_engine.errors.NotImplementedLapackError`.

Integer inputs are promoted to float64 by SciPy, so results from this path
are always inexact.
"""

from __future__ import annotations

import numpy as np
import scipy.linalg
from scipy.linalg import lapack

from .errors import SingularMatrixError, raise_dimension_mismatch
from .factorize import LUFactorization, check_singular
from .options import Transpose, parse_transpose
from .storage import DenseMatrix

_SCIPY_TRANS = {
    Transpose.NO_TRANS: 0,
    Transpose.TRANS: 1,
    Transpose.CONJ_TRANS: 2,
}


def scipy_lu_factor(matrix: DenseMatrix) -> LUFactorization:
    """Factorize a copy of ``matrix`` with LAPACK ``?getrf``.

    Args:
        matrix: Rank-2 matrix; left untouched.

    Returns:
        Factorization whose ``lu`` is a new root matrix.
    """
    matrix.require_rank2()
    lu, piv = scipy.linalg.lu_factor(matrix.array, check_finite=False)
    zero = np.flatnonzero(np.diagonal(lu) == 0)
    info = int(zero[0]) + 1 if zero.size else 0
    return LUFactorization(
        lu=DenseMatrix.from_array(lu),
        pivots=tuple(int(p) for p in piv),
        info=info,
    )


def scipy_lu_solve(
    factorization: LUFactorization,
    b: DenseMatrix,
    *,
    trans: Transpose | str | bool | None = Transpose.NO_TRANS,
) -> DenseMatrix:
    """Solve ``op(A) X = B`` with LAPACK ``?getrs``; returns a new matrix."""
    lu = factorization.lu
    b.require_rank2()
    if b.rows != lu.rows:
        raise_dimension_mismatch(name="b", expected=f"{lu.rows} rows", got=b.shape)
    x = scipy.linalg.lu_solve(
        (lu.array, np.asarray(factorization.pivots, dtype=np.int32)),
        b.array,
        trans=_SCIPY_TRANS[parse_transpose(trans)],
        check_finite=False,
    )
    return DenseMatrix.from_array(x)


def scipy_getri(factorization: LUFactorization) -> DenseMatrix:
    """Invert from a square factorization with LAPACK ``?getri``.

    Raises:
        SingularMatrixError: If LAPACK reports a zero diagonal in ``U``.

    Returns:
        New matrix holding ``A^-1``.
    """
    lu = factorization.lu
    if not lu.is_square:
        raise_dimension_mismatch(name="factorization", expected="square factors", got=lu.shape)
    lu_arr = np.array(lu.array, dtype=np.result_type(lu.array.dtype, np.float32))
    (getri,) = lapack.get_lapack_funcs(("getri",), (lu_arr,))
    inv, info = getri(lu_arr, np.asarray(factorization.pivots, dtype=np.int32))
    if info > 0:
        msg = f"getri: matrix is singular, U({info},{info}) is exactly zero."
        raise SingularMatrixError(msg)
    return DenseMatrix.from_array(inv)


def scipy_solve(
    a: DenseMatrix,
    b: DenseMatrix,
    *,
    trans: Transpose | str | bool | None = Transpose.NO_TRANS,
    strict: bool = False,
) -> DenseMatrix:
    """Factorize and solve through SciPy, with the internal singularity policy."""
    fact = scipy_lu_factor(a)
    check_singular(fact, strict=strict, routine="solve")
    return scipy_lu_solve(fact, b, trans=trans)


def scipy_inverse(matrix: DenseMatrix) -> DenseMatrix:
    """Inverse through SciPy; a singular matrix raises SingularMatrixError."""
    if not matrix.is_square:
        raise_dimension_mismatch(name="matrix", expected="a square matrix", got=matrix.shape)
    return scipy_getri(scipy_lu_factor(matrix))

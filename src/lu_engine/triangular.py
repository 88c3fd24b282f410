# src/lu_engine/triangular.py
"""Triangular substitution and LU-based solves (``trsm``, ``getrs``, ``gesv``).

Every solve reduces to two column-oriented substitutions written over
:class:`~lu_engine.dtypes.DTypeKernel` primitives. A substitution updates all
right-hand sides at once, one outer-product row/column update per step, so
integer dtypes stay exact and inexact dtypes stay in storage precision.

The row-major CLAPACK convention is handled the same way as in
:mod:`lu_engine.factorize`: row-major factors are the column-major factors of
the transposed matrix, so a row-major solve is a column-major solve of the
transposed system.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING, Any

import numpy as np

from . import external
from .errors import (
    NotImplementedLapackError,
    UnsupportedDTypeError,
    raise_dimension_mismatch,
    raise_not_implemented,
)
from .factorize import LUFactorization, check_singular, lu_factor
from .options import (
    Backend,
    Diag,
    LapackOptions,
    Side,
    StorageOrder,
    Transpose,
    Uplo,
    parse_diag,
    parse_order,
    parse_side,
    parse_transpose,
    parse_uplo,
)
from .pivoting import check_pivots, laswp_array

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from .dtypes import DTypeKernel
    from .storage import DenseMatrix


_DTYPE_MISMATCH_ERROR = (
    "Coefficient and right-hand side dtypes differ: {a} vs {b}. "
    "Cast one of them with DenseMatrix.astype first."
)
_FALLBACK_WARNING = (
    "{routine}: internal path unavailable for dtype {dtype}; "
    "falling back to the scipy backend."
)


# =============================================================================
# Substitution primitives
# =============================================================================


def _solve_lower(
    t: NDArray[Any], b: NDArray[Any], kernel: DTypeKernel, *, unit: bool
) -> None:
    """Forward substitution ``T X = B`` for lower-triangular ``T``; B in place."""
    n = t.shape[0]
    for k in range(n):
        if not unit:
            b[k, :] = kernel.divide(b[k, :], t[k, k])
        if k + 1 < n:
            b[k + 1 :, :] = kernel.multiply_subtract(
                b[k + 1 :, :], t[k + 1 :, k, np.newaxis], b[np.newaxis, k, :]
            )


def _solve_upper(
    t: NDArray[Any], b: NDArray[Any], kernel: DTypeKernel, *, unit: bool
) -> None:
    """Back substitution ``T X = B`` for upper-triangular ``T``; B in place."""
    n = t.shape[0]
    for k in range(n - 1, -1, -1):
        if not unit:
            b[k, :] = kernel.divide(b[k, :], t[k, k])
        if k > 0:
            b[:k, :] = kernel.multiply_subtract(
                b[:k, :], t[:k, k, np.newaxis], b[np.newaxis, k, :]
            )


def trsm(
    a: DenseMatrix,
    b: DenseMatrix,
    *,
    side: Side | str = Side.LEFT,
    uplo: Uplo | str = Uplo.LOWER,
    trans: Transpose | str | bool | None = Transpose.NO_TRANS,
    diag: Diag | str | bool = Diag.NON_UNIT,
    alpha: Any = None,
) -> None:
    """Solve a triangular system with many right-hand sides, in place.

    Solves ``op(A) X = alpha B`` (LEFT) or ``X op(A) = alpha B`` (RIGHT) and
    overwrites ``b`` with ``X``. Only the ``uplo`` triangle of ``a`` is read;
    with UNIT the diagonal is not read either. Integer solves run on a scratch
    copy, so ``b`` is only written once every step has succeeded.

    Args:
        a: Square triangular coefficient matrix.
        b: Right-hand sides; overwritten with the solution.
        side: Side of ``op(A)``.
        uplo: Triangle of ``a`` holding the factor.
        trans: Operation applied to ``a``.
        diag: Whether ``a`` has an implicit unit diagonal.
        alpha: Optional scale applied to ``b`` first.

    Raises:
        DimensionMismatchError: If ``a`` is not square or does not conform
            with ``b``.
        UnsupportedDTypeError: If ``a`` and ``b`` have different dtypes, or
            an integer division is not exact.
    """
    side_e = parse_side(side)
    lower = parse_uplo(uplo) is Uplo.LOWER
    trans_e = parse_transpose(trans)
    unit = parse_diag(diag) is Diag.UNIT

    a.require_rank2()
    b.require_rank2()
    if not a.is_square:
        raise_dimension_mismatch(name="a", expected="a square matrix", got=a.shape)
    conform = b.rows if side_e is Side.LEFT else b.cols
    if conform != a.rows:
        raise_dimension_mismatch(
            name="b", expected=f"{a.rows} along the solved axis", got=b.shape
        )
    if a.dtype is not b.dtype:
        raise UnsupportedDTypeError(_DTYPE_MISMATCH_ERROR.format(a=a.dtype, b=b.dtype))

    kernel = b.kernel
    t = a.array
    if trans_e is Transpose.TRANS:
        t, lower = t.T, not lower
    elif trans_e is Transpose.CONJ_TRANS:
        t, lower = kernel.conjugate(t).T, not lower

    target = b.array
    work = target.copy() if kernel.dtype.is_integer else target
    if alpha is not None:
        work[...] = kernel.multiply(work, alpha)
    rhs = work
    # X op(A) = B  <=>  op(A)^T X^T = B^T
    if side_e is Side.RIGHT:
        t, lower, rhs = t.T, not lower, rhs.T

    if lower:
        _solve_lower(t, rhs, kernel, unit=unit)
    else:
        _solve_upper(t, rhs, kernel, unit=unit)

    if work is not target:
        target[...] = work


# =============================================================================
# getrs
# =============================================================================


def _getrs_colmajor(
    trans: Transpose,
    lu: NDArray[Any],
    ipiv: Sequence[int],
    b: NDArray[Any],
    kernel: DTypeKernel,
) -> None:
    """Solve with packed ``P*A = L*U`` factors; ``b`` is (n, nrhs), in place."""
    n = lu.shape[0]
    if trans is Transpose.NO_TRANS:
        laswp_array(b, ipiv, 0, n, 1, 0)
        _solve_lower(lu, b, kernel, unit=True)
        _solve_upper(lu, b, kernel, unit=False)
        return

    at = lu.T if trans is Transpose.TRANS else kernel.conjugate(lu).T
    _solve_lower(at, b, kernel, unit=False)
    _solve_upper(at, b, kernel, unit=True)
    laswp_array(b, ipiv, 0, n, -1, 0)


def clapack_getrs(
    order: StorageOrder | str,
    trans: Transpose | str | bool | None,
    n: int,
    nrhs: int,
    a: DenseMatrix,
    lda: int,
    ipiv: Sequence[int],
    b: DenseMatrix,
    ldb: int,
) -> None:
    """CLAPACK-compatible ``getrs`` over the raw buffers of ``a`` and ``b``.

    ``a`` and ``ipiv`` must come from :func:`~lu_engine.factorize.clapack_getrf`
    called with the same ``order``. With COL order ``b`` holds ``nrhs``
    columns of length ``n``; with ROW order it holds ``nrhs`` *rows* of length
    ``n``, so a column-shaped right-hand side must be transposed into a
    contiguous copy first. ``b`` is overwritten with the solution.

    Args:
        order: Storage order of both blocks.
        trans: NO_TRANS, TRANS or CONJ_TRANS applied to ``A``.
        n: Order of ``A``.
        nrhs: Number of right-hand sides.
        a: Matrix holding the packed factors.
        lda: Leading dimension of ``a``.
        ipiv: Zero-indexed pivots from ``clapack_getrf``.
        b: Matrix holding the right-hand sides.
        ldb: Leading dimension of ``b``.

    Raises:
        DimensionMismatchError: For negative sizes, too-small leading
            dimensions, too few pivots, or blocks that do not fit.
        IndexOutOfRangeError: If a pivot lies outside ``[0, n)``.
        UnsupportedDTypeError: If ``a`` and ``b`` have different dtypes.
    """
    order_e = parse_order(order)
    trans_e = parse_transpose(trans)
    if n < 0 or nrhs < 0:
        raise_dimension_mismatch(name="n, nrhs", expected="non-negative", got=(n, nrhs))
    if n == 0 or nrhs == 0:
        return
    if a.dtype is not b.dtype:
        raise UnsupportedDTypeError(_DTYPE_MISMATCH_ERROR.format(a=a.dtype, b=b.dtype))
    if len(ipiv) < n:
        raise_dimension_mismatch(name="ipiv", expected=f"at least {n} entries", got=len(ipiv))

    a_block = a.lapack_view(order_e, n, n, lda)
    if order_e is StorageOrder.COL:
        b_block = b.lapack_view(order_e, n, nrhs, ldb)
    else:
        b_block = b.lapack_view(order_e, nrhs, n, ldb)
    piv = check_pivots(list(ipiv)[:n], n)

    kernel = b.kernel
    lu = a_block.array
    target = b_block.array
    if order_e is StorageOrder.ROW:
        lu, target = lu.T, target.T
    work = target.copy() if kernel.dtype.is_integer else target

    if order_e is StorageOrder.COL:
        _getrs_colmajor(trans_e, lu, piv, work, kernel)
    elif trans_e is Transpose.NO_TRANS:
        _getrs_colmajor(Transpose.TRANS, lu, piv, work, kernel)
    elif trans_e is Transpose.TRANS:
        _getrs_colmajor(Transpose.NO_TRANS, lu, piv, work, kernel)
    else:
        # A^H x = b  <=>  A^T conj(x) = conj(b)
        work[...] = kernel.conjugate(work)
        _getrs_colmajor(Transpose.NO_TRANS, lu, piv, work, kernel)
        work[...] = kernel.conjugate(work)

    if work is not target:
        target[...] = work


# =============================================================================
# High-level solves
# =============================================================================


def lu_solve(
    factorization: LUFactorization,
    b: DenseMatrix,
    *,
    trans: Transpose | str | bool | None = Transpose.NO_TRANS,
) -> DenseMatrix:
    """Solve ``op(A) X = B`` from a standard-convention factorization.

    Args:
        factorization: Output of :func:`~lu_engine.factorize.lu_factor`.
        b: Right-hand sides, shape (n, nrhs); a rank-1 ``b`` is not accepted,
            use :meth:`DenseMatrix.from_array` which makes a column.
        trans: Operation applied to ``A``.

    Raises:
        DimensionMismatchError: If the factors are not square or do not
            conform with ``b``.

    Returns:
        New matrix ``X`` in the factorization's dtype; ``b`` is untouched.
    """
    lu = factorization.lu
    b.require_rank2()
    if not lu.is_square:
        raise_dimension_mismatch(name="factorization", expected="square factors", got=lu.shape)
    if b.rows != lu.rows:
        raise_dimension_mismatch(name="b", expected=f"{lu.rows} rows", got=b.shape)
    out = b.astype(lu.dtype)
    _getrs_colmajor(
        parse_transpose(trans), lu.array, factorization.pivots, out.array, out.kernel
    )
    return out


def solve(
    a: DenseMatrix,
    b: DenseMatrix,
    *,
    options: LapackOptions | None = None,
) -> DenseMatrix:
    """Solve ``op(A) X = B`` (``gesv``) without touching the inputs.

    Args:
        a: Square coefficient matrix.
        b: Right-hand sides, shape (n, nrhs).
        options: Transpose, backend, fallback and strictness settings.

    Raises:
        DimensionMismatchError: If ``a`` is not square or does not conform
            with ``b``.
        SingularMatrixError: If ``a`` is singular and ``options.strict``.
        NotImplementedLapackError: For integer dtypes when fallback is off.

    Returns:
        New matrix ``X``.

    Warns:
        RuntimeWarning: When ``a`` is singular and not strict, or when the
            scipy fallback is taken.
    """
    opts = options or LapackOptions()
    a.require_rank2()
    b.require_rank2()
    if not a.is_square:
        raise_dimension_mismatch(name="a", expected="a square matrix", got=a.shape)
    if b.rows != a.rows:
        raise_dimension_mismatch(name="b", expected=f"{a.rows} rows", got=b.shape)

    if opts.backend is Backend.SCIPY:
        return external.scipy_solve(a, b, trans=opts.trans, strict=opts.strict)

    try:
        if a.dtype.is_integer:
            raise_not_implemented(
                "gesv", dtype=a.dtype, reason="solutions over integers are not exact"
            )
        fact = lu_factor(a)
        check_singular(fact, strict=opts.strict, routine="solve")
        with np.errstate(divide="ignore", invalid="ignore"):
            return lu_solve(fact, b, trans=opts.trans)
    except NotImplementedLapackError:
        if not opts.fallback:
            raise
        warnings.warn(
            _FALLBACK_WARNING.format(routine="solve", dtype=a.dtype),
            RuntimeWarning,
            stacklevel=2,
        )
        return external.scipy_solve(a, b, trans=opts.trans, strict=opts.strict)

# src/lu_engine/inverse.py
"""Matrix inversion from LU factors (``getri``).

The inverse is formed in place from the packed ``P*A = L*U`` factors in
three passes: invert ``U``, solve ``inv(A)*L = inv(U)`` for ``inv(A)``
column by column, then undo the row pivots as column swaps in reverse order.
Row-major factors from ``clapack_getrf`` are the factors of ``A^T``, and
``inv(A^T) = inv(A)^T``, so the same passes run on the transposed view.

Integer dtypes have no exact inverse in general and are rejected with
:class:`~lu_engine.errors.NotImplementedLapackError`; the high-level
:func:`inverse` can fall back to the scipy backend instead.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING, Any

from . import external
from .errors import (
    NotImplementedLapackError,
    SingularMatrixError,
    raise_dimension_mismatch,
    raise_not_implemented,
)
from .factorize import check_singular, lu_factor_inplace
from .options import Backend, LapackOptions, StorageOrder, parse_order
from .pivoting import check_pivots, swap_lines

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from .dtypes import DTypeKernel
    from .storage import DenseMatrix


_INTEGER_REASON = "the inverse of an integer matrix is generally not integral"
_SINGULAR_ERROR = "{routine}: matrix is singular, U({info},{info}) is exactly zero."
_FALLBACK_WARNING = (
    "inverse: internal path unavailable for dtype {dtype}; "
    "falling back to the scipy backend."
)


def _getri_colmajor(
    a: NDArray[Any], ipiv: Sequence[int], kernel: DTypeKernel
) -> int:
    """Overwrite packed factors with the inverse; returns LAPACK ``info``.

    A zero on the diagonal of ``U`` leaves ``a`` untouched and returns its
    1-based index.
    """
    n = a.shape[0]
    for i in range(n):
        if kernel.is_zero(a[i, i]):
            return i + 1

    # inv(U), one column at a time
    for j in range(n):
        a[j, j] = kernel.reciprocal(a[j, j])
        neg_ajj = kernel.negate(a[j, j])
        col = a[:j, j]
        for k in range(j):
            temp = col[k]
            if kernel.is_zero(temp):
                continue
            if k > 0:
                col[:k] = kernel.multiply_add(col[:k], temp, a[:k, k])
            col[k] = kernel.multiply(temp, a[k, k])
        if j > 0:
            col[...] = kernel.multiply(col, neg_ajj)

    # inv(A)*L = inv(U)
    for j in range(n - 2, -1, -1):
        work = a[j + 1 :, j].copy()
        a[j + 1 :, j] = kernel.zero()
        for k in range(j + 1, n):
            a[:, j] = kernel.multiply_subtract(a[:, j], a[:, k], work[k - j - 1])

    for j in range(n - 2, -1, -1):
        swap_lines(a, j, int(ipiv[j]), 1)
    return 0


def clapack_getri(
    order: StorageOrder | str,
    n: int,
    a: DenseMatrix,
    lda: int,
    ipiv: Sequence[int],
) -> int:
    """CLAPACK-compatible ``getri`` over the raw buffer of ``a``.

    Args:
        order: Storage order used by the preceding ``clapack_getrf``.
        n: Order of the matrix.
        a: Matrix holding the packed factors; overwritten with the inverse.
        lda: Leading dimension.
        ipiv: Zero-indexed pivots from ``clapack_getrf``.

    Raises:
        NotImplementedLapackError: For integer dtypes.
        DimensionMismatchError: For a negative ``n``, too few pivots, or a
            block that does not fit.
        IndexOutOfRangeError: If a pivot lies outside ``[0, n)``.

    Returns:
        0 on success, or the 1-based index of a zero diagonal entry of ``U``
        (the buffer is then left unchanged).
    """
    if a.dtype.is_integer:
        raise_not_implemented("getri", dtype=a.dtype, reason=_INTEGER_REASON)
    order_e = parse_order(order)
    if n < 0:
        raise_dimension_mismatch(name="n", expected="non-negative", got=n)
    if n == 0:
        return 0
    if len(ipiv) < n:
        raise_dimension_mismatch(name="ipiv", expected=f"at least {n} entries", got=len(ipiv))
    block = a.lapack_view(order_e, n, n, lda)
    piv = check_pivots(list(ipiv)[:n], n)
    arr = block.array if order_e is StorageOrder.COL else block.array.T
    return _getri_colmajor(arr, piv, a.kernel)


def invert_inplace(matrix: DenseMatrix) -> None:
    """Replace a square matrix with its inverse.

    The factorization runs on a scratch copy, so a singular input is left
    unchanged.

    Raises:
        DimensionMismatchError: If the matrix is not square.
        NotImplementedLapackError: For integer dtypes.
        SingularMatrixError: If the matrix is singular.
    """
    if not matrix.is_square:
        raise_dimension_mismatch(name="matrix", expected="a square matrix", got=matrix.shape)
    if matrix.dtype.is_integer:
        raise_not_implemented("getri", dtype=matrix.dtype, reason=_INTEGER_REASON)
    work = matrix.copy()
    fact = lu_factor_inplace(work)
    if fact.is_singular:
        raise SingularMatrixError(
            _SINGULAR_ERROR.format(routine="invert_inplace", info=fact.info)
        )
    _getri_colmajor(work.array, fact.pivots, work.kernel)
    matrix.array[...] = work.array


def inverse(
    matrix: DenseMatrix, *, options: LapackOptions | None = None
) -> DenseMatrix:
    """Return the inverse of a square matrix as a new matrix.

    A singular matrix has no inverse, so it always raises
    SingularMatrixError; ``options.strict`` is not consulted.

    Args:
        matrix: Square matrix; left untouched.
        options: Backend and fallback settings.

    Raises:
        DimensionMismatchError: If the matrix is not square.
        SingularMatrixError: If the matrix is singular.
        NotImplementedLapackError: For integer dtypes when fallback is off.

    Returns:
        New matrix holding the inverse.

    Warns:
        RuntimeWarning: When the scipy fallback is taken.
    """
    opts = options or LapackOptions()
    if not matrix.is_square:
        raise_dimension_mismatch(name="matrix", expected="a square matrix", got=matrix.shape)

    if opts.backend is Backend.SCIPY:
        return external.scipy_inverse(matrix)

    try:
        if matrix.dtype.is_integer:
            raise_not_implemented("getri", dtype=matrix.dtype, reason=_INTEGER_REASON)
        work = matrix.copy()
        fact = lu_factor_inplace(work)
        check_singular(fact, strict=True, routine="inverse")
        _getri_colmajor(work.array, fact.pivots, work.kernel)
        return work
    except NotImplementedLapackError:
        if not opts.fallback:
            raise
        warnings.warn(
            _FALLBACK_WARNING.format(dtype=matrix.dtype), RuntimeWarning, stacklevel=2
        )
        return external.scipy_inverse(matrix)

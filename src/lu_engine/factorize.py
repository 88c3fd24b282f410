# src/lu_engine/factorize.py
"""LU factorization with partial pivoting (``getrf``) and derived helpers.

Conventions
-----------
Every factorization here is computed by one column-oriented kernel: Gaussian
elimination on the columns of a 2-D block with row pivoting, packing a
unit-diagonal lower factor and an upper factor into the block.

* ``StorageOrder.COL``: the kernel runs on the logical matrix itself. This is
  the textbook LAPACK result ``P*A = L*U`` with a unit-diagonal ``L`` and
  pivots that name rows.
* ``StorageOrder.ROW``: the kernel runs on the transposed view. The result is
  the CLAPACK row-major convention: pivoting is done on *columns* and the
  *upper* factor carries the unit diagonal (``A*Q = L*U``). This layout is
  kept exactly for compatibility with existing row-major callers.

Pivot vectors are zero-indexed and use the sequential-swap convention
(see :mod:`lu_engine.pivoting`), except :func:`getrf_inplace`, which returns
1-indexed LAPACK pivots.

Pivot selection picks the first entry of largest magnitude in the active
column (``|re| + |im|`` for complex dtypes).

Singular matrices
-----------------
A zero pivot is **not** an error: the elimination step is skipped, the
factorization continues, and the packed result is left with a zero on the
diagonal. :func:`clapack_getrf` reports nothing; the lower-level
:func:`factor_inplace` and :class:`LUFactorization` expose the 1-based index
of the first zero pivot as ``info`` so callers can detect singularity.

Integer dtypes are factorized on a scratch copy that is written back only if
every division was exact.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from .errors import SingularMatrixError, raise_dimension_mismatch
from .options import StorageOrder, parse_order
from .pivoting import permutation_matrix
from .storage import DenseMatrix

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .dtypes import DTypeKernel
    from .options import LapackOptions


_SQUARE_ERROR = "a square matrix"
_SINGULAR_MSG = (
    "{routine}: matrix is singular, U({info},{info}) is exactly zero; "
    "the result contains non-finite values."
)


def _getrf_colmajor(arr: NDArray[Any], kernel: DTypeKernel) -> tuple[list[int], int]:
    """Right-looking LU with row pivoting on a 2-D view, in place.

    Args:
        arr: (m, n) array view; overwritten with the packed factors.
        kernel: Arithmetic kernel of the view's dtype.

    Returns:
        (ipiv, info): zero-indexed row pivots of length min(m, n), and the
        1-based step of the first zero pivot (0 if none).
    """
    m, n = arr.shape
    ipiv: list[int] = []
    info = 0
    for k in range(min(m, n)):
        p = k + kernel.iamax(arr[k:, k])
        ipiv.append(p)
        if p != k:
            arr[[k, p], :] = arr[[p, k], :]

        pivot = arr[k, k]
        if kernel.is_zero(pivot):
            if info == 0:
                info = k + 1
            continue

        if k + 1 < m:
            arr[k + 1 :, k] = kernel.divide(arr[k + 1 :, k], pivot)
            if k + 1 < n:
                arr[k + 1 :, k + 1 :] = kernel.multiply_subtract(
                    arr[k + 1 :, k + 1 :],
                    arr[k + 1 :, k, np.newaxis],
                    arr[np.newaxis, k, k + 1 :],
                )
    return ipiv, info


def factor_inplace(
    matrix: DenseMatrix,
    *,
    order: StorageOrder | str | None = None,
    options: LapackOptions | None = None,
) -> tuple[list[int], int]:
    """Factorize a rank-2 matrix in place under the given convention.

    Args:
        matrix: Matrix (or view) to overwrite with its packed factors.
        order: ROW for column pivoting with unit-upper factor, COL for row
            pivoting with unit-lower factor. Overrides ``options.order``;
            ROW when neither is given.
        options: Options whose ``order`` is used when ``order`` is not given.

    Returns:
        (ipiv, info) with zero-indexed sequential-swap pivots and the 1-based
        step of the first zero pivot (0 when none was met).
    """
    matrix.require_rank2()
    if order is not None:
        order_e = parse_order(order)
    elif options is not None:
        order_e = options.order
    else:
        order_e = StorageOrder.ROW
    kernel = matrix.kernel
    arr = matrix.array
    target = arr.T if order_e is StorageOrder.ROW else arr

    if kernel.dtype.is_integer:
        work = target.copy()
        ipiv, info = _getrf_colmajor(work, kernel)
        target[...] = work
        return ipiv, info

    return _getrf_colmajor(target, kernel)


def clapack_getrf(
    order: StorageOrder | str,
    m: int,
    n: int,
    a: DenseMatrix,
    lda: int,
) -> list[int]:
    """CLAPACK-compatible ``getrf`` over the raw buffer of ``a``.

    Factorizes the ``m x n`` block that starts at ``a``'s offset and has
    leading dimension ``lda``. With ROW order the pivots name *columns* and
    the upper factor has the unit diagonal; with COL order this is standard
    LAPACK. Pivots are zero-indexed. A zero pivot is skipped silently.

    Args:
        order: Storage order of the block.
        m: Rows of the block.
        n: Columns of the block.
        a: Matrix whose buffer is overwritten with the packed factors.
        lda: Leading dimension.

    Raises:
        DimensionMismatchError: If m/n are negative, lda is too small, or the
            block does not fit the buffer.

    Returns:
        Zero-indexed sequential-swap pivot vector of length min(m, n).
    """
    if m < 0 or n < 0:
        raise_dimension_mismatch(name="m, n", expected="non-negative", got=(m, n))
    if m == 0 or n == 0:
        return []
    order_e = parse_order(order)
    block = a.lapack_view(order_e, m, n, lda)
    ipiv, _ = factor_inplace(block, order=order_e)
    return ipiv


def getrf_inplace(matrix: DenseMatrix) -> list[int]:
    """Standard LAPACK ``getrf`` on a logical matrix: ``P*A = L*U``.

    Unlike :func:`clapack_getrf` with ROW order, the lower factor has the unit
    diagonal and rows are pivoted, whatever the storage order of ``matrix``.

    Args:
        matrix: Matrix overwritten with the packed factors.

    Returns:
        **1-indexed** LAPACK row pivots.
    """
    ipiv, _ = factor_inplace(matrix, order=StorageOrder.COL)
    return [p + 1 for p in ipiv]


@dataclass(frozen=True, slots=True)
class LUFactorization:
    """Packed LU factors of ``A`` with ``P*A = L*U``.

    Attributes:
        lu: Packed factors; strictly-lower part holds ``L`` (unit diagonal
            implied), upper part holds ``U``.
        pivots: Zero-indexed sequential row swaps.
        info: 1-based index of the first zero pivot, 0 when nonsingular.
    """

    lu: DenseMatrix
    pivots: tuple[int, ...]
    info: int = 0

    @property
    def is_singular(self) -> bool:
        return self.info > 0

    @property
    def shape(self) -> tuple[int, ...]:
        return self.lu.shape

    def lower(self) -> DenseMatrix:
        """Unit-diagonal lower factor, shape (m, min(m, n))."""
        arr = self.lu.array
        k = min(arr.shape)
        low = np.tril(arr[:, :k], -1)
        np.fill_diagonal(low, self.lu.kernel.one())
        return DenseMatrix.from_array(low, dtype=self.lu.dtype)

    def upper(self) -> DenseMatrix:
        """Upper factor, shape (min(m, n), n)."""
        arr = self.lu.array
        k = min(arr.shape)
        return DenseMatrix.from_array(np.triu(arr[:k, :]), dtype=self.lu.dtype)

    def permutation_matrix(self) -> DenseMatrix:
        """``P`` such that ``P @ A == L @ U``."""
        return permutation_matrix(self.pivots, self.lu.shape[0], dtype=self.lu.dtype)


def lu_factor_inplace(matrix: DenseMatrix) -> LUFactorization:
    """Factorize ``matrix`` in place (standard convention).

    The returned factorization's ``lu`` is ``matrix`` itself.
    """
    ipiv, info = factor_inplace(matrix, order=StorageOrder.COL)
    return LUFactorization(lu=matrix, pivots=tuple(ipiv), info=info)


def lu_factor(matrix: DenseMatrix) -> LUFactorization:
    """Factorize a copy of ``matrix``; the input is left untouched."""
    return lu_factor_inplace(matrix.copy())


def factorize_lu(
    matrix: DenseMatrix,
    *,
    with_permutation_matrix: bool = False,
) -> tuple[DenseMatrix, ...]:
    """Unpacked LU factors of a copy of ``matrix``.

    Args:
        matrix: Rank-2 matrix.
        with_permutation_matrix: Also return ``P`` with ``P @ A == L @ U``.

    Returns:
        ``(L, U)`` or ``(L, U, P)``.
    """
    fact = lu_factor(matrix)
    if with_permutation_matrix:
        return fact.lower(), fact.upper(), fact.permutation_matrix()
    return fact.lower(), fact.upper()


def _bareiss_det(rows: list[list[int]]) -> int:
    """Fraction-free (Bareiss) determinant of a square integer matrix."""
    a = [list(r) for r in rows]
    n = len(a)
    sign = 1
    prev = 1
    for k in range(n - 1):
        if a[k][k] == 0:
            swap = next((i for i in range(k + 1, n) if a[i][k] != 0), None)
            if swap is None:
                return 0
            a[k], a[swap] = a[swap], a[k]
            sign = -sign
        for i in range(k + 1, n):
            for j in range(k + 1, n):
                a[i][j] = (a[i][j] * a[k][k] - a[i][k] * a[k][j]) // prev
        prev = a[k][k]
    return sign * a[n - 1][n - 1]


def det(matrix: DenseMatrix) -> Any:
    """Determinant of a square matrix.

    Integer dtypes use exact fraction-free elimination and return a Python
    ``int`` (which may exceed the storage range). Inexact dtypes use the LU
    factorization of a copy and return a scalar of the storage dtype.

    Raises:
        DimensionMismatchError: If the matrix is not square.
    """
    if not matrix.is_square:
        raise_dimension_mismatch(name="matrix", expected=_SQUARE_ERROR, got=matrix.shape)

    if matrix.dtype.is_integer:
        return _bareiss_det([[int(v) for v in row] for row in matrix.tolist()])

    fact = lu_factor(matrix)
    kernel = matrix.kernel
    value = kernel.one()
    for d in np.diagonal(fact.lu.array):
        value = kernel.multiply(value, d)
    swaps = sum(1 for i, p in enumerate(fact.pivots) if p != i)
    return kernel.negate(value) if swaps % 2 else value


def check_singular(fact: LUFactorization, *, strict: bool, routine: str) -> None:
    """Elevate a silent zero pivot for the high-level helpers.

    Args:
        fact: Factorization to inspect.
        strict: Raise instead of warning.
        routine: Name of the calling routine, used in the message.

    Raises:
        SingularMatrixError: If the factorization is singular and strict is set.
    """
    if not fact.is_singular:
        return
    msg = _SINGULAR_MSG.format(routine=routine, info=fact.info)
    if strict:
        raise SingularMatrixError(msg)
    warnings.warn(msg, RuntimeWarning, stacklevel=3)

# src/lu_engine/pivoting.py
"""Row/column permutations driven by pivot vectors.

Two conventions coexist and are kept as separately named operations:

- **Sequential swaps** (LAPACK ``laswp``): for step ``i`` in order, line ``i``
  is exchanged with line ``ipiv[i]``. Earlier entries may point backwards;
  the steps compose. This is the convention of every pivot vector produced
  by :mod:`lu_engine.factorize` (zero-indexed).
- **Intuitive permutation**: line ``i`` of the result is source line
  ``order[i]``. This is a pure relabeling.

For some vectors the two agree (``[2, 1, 3, 0]`` on the columns of a 3x4
matrix, where only the first three swaps are applied) but in general they do
not; :func:`intuitive_to_sequential` and :func:`sequential_to_intuitive`
convert between them.

All pivot values are validated before the target is touched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import (
    InvalidArgumentError,
    InvalidPermutationError,
    raise_dimension_mismatch,
    raise_index_out_of_range,
)
from .options import Axis, PermutationConvention, parse_convention
from .storage import DenseMatrix

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from .options import LapackOptions


_INCX_ERROR = "incx must be nonzero"
_RANGE_ERROR = "k1/k2 must satisfy 0 <= k1 <= k2 with (k2-1)*|incx| < {n}; got k1={k1}, k2={k2}"
_LENGTH_ERROR = "permutation length {actual} does not match axis size {expected}"
_DUPLICATE_ERROR = (
    "No duplicated entries in the order array are allowed under the intuitive "
    "convention; got {order}"
)


def _axis_index(axis: Axis | str) -> int:
    return 0 if Axis(axis) is Axis.ROWS else 1


def check_pivots(ipiv: Sequence[int], size: int, name: str = "pivot") -> list[int]:
    """Validate that every pivot lies in ``[0, size)``.

    Raises:
        IndexOutOfRangeError: On the first out-of-range entry.

    Returns:
        The pivots as plain ints.
    """
    piv = [int(p) for p in ipiv]
    for p in piv:
        if not 0 <= p < size:
            raise_index_out_of_range(name=name, index=p, size=size)
    return piv


def swap_lines(arr: NDArray[Any], i: int, j: int, axis: int) -> None:
    """Exchange lines ``i`` and ``j`` of a 2-D array along ``axis`` in place."""
    if i == j:
        return
    if axis == 0:
        arr[[i, j], :] = arr[[j, i], :]
    else:
        arr[:, [i, j]] = arr[:, [j, i]]


def laswp_array(
    arr: NDArray[Any],
    ipiv: Sequence[int],
    k1: int,
    k2: int,
    incx: int,
    axis: int,
) -> None:
    """Apply sequential swaps to a 2-D NumPy view (no validation).

    Steps run ``k1 .. k2-1`` for positive ``incx`` and ``k2-1 .. k1`` for
    negative ``incx``; step ``i`` reads ``ipiv[i*|incx|]``.
    """
    inc = abs(incx)
    steps = range(k1, k2) if incx > 0 else range(k2 - 1, k1 - 1, -1)
    for i in steps:
        swap_lines(arr, i, int(ipiv[i * inc]), axis)


def _validate_laswp(
    ipiv: Sequence[int], size: int, k1: int, k2: int, incx: int
) -> list[int]:
    if incx == 0:
        raise InvalidArgumentError(_INCX_ERROR)
    if k1 < 0 or k2 < k1 or (k2 > k1 and (k2 - 1) * abs(incx) >= len(ipiv)):
        raise InvalidArgumentError(_RANGE_ERROR.format(n=len(ipiv), k1=k1, k2=k2))
    for i in range(k1, k2):
        if not 0 <= i < size:
            raise_index_out_of_range(name="swap step", index=i, size=size)
    return check_pivots(ipiv, size)


# =============================================================================
# Sequential swaps (LAPACK convention)
# =============================================================================


def laswp(
    view: DenseMatrix,
    ipiv: Sequence[int],
    *,
    axis: Axis | str,
    k1: int = 0,
    k2: int | None = None,
    incx: int = 1,
) -> None:
    """Apply sequential-swap pivots to a matrix in place.

    For step ``i`` from ``k1`` to ``k2 - 1`` (reversed for negative ``incx``),
    line ``i`` of ``view`` along ``axis`` is swapped with line ``ipiv[i]``.
    The pivot vector itself is never modified.

    Args:
        view: Rank-2 matrix to permute; mutated in place.
        ipiv: Zero-indexed sequential-swap pivots.
        axis: ROWS swaps rows, COLUMNS swaps columns.
        k1: First step.
        k2: One past the last step. Defaults to ``min(len(ipiv), *view.shape)``,
            the length of a pivot vector produced by factorizing ``view``;
            trailing entries beyond it are ignored.
        incx: Pivot stride; negative applies the steps in reverse order.

    Raises:
        IndexOutOfRangeError: If any pivot lies outside the axis.
        InvalidArgumentError: For incx == 0 or an invalid k1/k2 range.
    """
    view.require_rank2()
    ax = _axis_index(axis)
    size = view.shape[ax]
    stop = min(len(ipiv), *view.shape) if k2 is None else int(k2)
    piv = _validate_laswp(ipiv, size, int(k1), stop, int(incx))
    laswp_array(view.array, piv, int(k1), stop, int(incx), ax)


def apply_sequential_swaps(
    view: DenseMatrix, ipiv: Sequence[int], *, axis: Axis | str
) -> None:
    """Alias of :func:`laswp` with the default step range."""
    laswp(view, ipiv, axis=axis)


def clapack_laswp(
    n: int,
    a: DenseMatrix,
    lda: int,
    k1: int,
    k2: int,
    ipiv: Sequence[int],
    incx: int = 1,
) -> None:
    """CLAPACK-shaped ``laswp`` over the raw buffer of ``a``.

    The buffer (from ``a``'s offset) is read as ``n`` lines of ``lda``
    elements each; within every line, elements ``i`` and ``ipiv[i]`` are
    exchanged for each step. For a row-major matrix with ``lda`` columns this
    permutes columns.

    Args:
        n: Number of lines.
        a: Matrix whose buffer is permuted in place.
        lda: Line length (leading dimension).
        k1: First step.
        k2: One past the last step.
        ipiv: Zero-indexed sequential-swap pivots.
        incx: Pivot stride.

    Raises:
        DimensionMismatchError: If ``n`` lines of ``lda`` do not fit the buffer.
    """
    if n <= 0 or k2 <= k1:
        return
    if lda < 1:
        raise_dimension_mismatch(name="lda", expected=">= 1", got=lda)
    block = a.lapack_view("row", n, lda, lda)
    piv = _validate_laswp(ipiv, lda, int(k1), int(k2), int(incx))
    laswp_array(block.array, piv, int(k1), int(k2), int(incx), 1)


# =============================================================================
# Intuitive permutation
# =============================================================================


def _check_permutation(order: Sequence[int], size: int) -> list[int]:
    perm = check_pivots(order, size, name="order")
    if len(perm) != size:
        raise InvalidPermutationError(
            _LENGTH_ERROR.format(actual=len(perm), expected=size)
        )
    if len(set(perm)) != len(perm):
        raise InvalidPermutationError(_DUPLICATE_ERROR.format(order=list(order)))
    return perm


def apply_intuitive_permutation_inplace(
    view: DenseMatrix, order: Sequence[int], *, axis: Axis | str
) -> None:
    """Relabel lines in place: line ``i`` becomes source line ``order[i]``.

    Args:
        view: Rank-2 matrix; mutated in place.
        order: Permutation of ``range(view.shape[axis])``.
        axis: ROWS or COLUMNS.

    Raises:
        IndexOutOfRangeError: If an entry lies outside the axis.
        InvalidPermutationError: If ``order`` has the wrong length or repeats.
    """
    view.require_rank2()
    ax = _axis_index(axis)
    perm = _check_permutation(order, view.shape[ax])
    arr = view.array
    if ax == 0:
        arr[...] = arr[perm, :]
    else:
        arr[...] = arr[:, perm]


def apply_intuitive_permutation(
    view: DenseMatrix, order: Sequence[int], *, axis: Axis | str
) -> DenseMatrix:
    """Copying variant of :func:`apply_intuitive_permutation_inplace`."""
    out = view.copy()
    apply_intuitive_permutation_inplace(out, order, axis=axis)
    return out


# =============================================================================
# Conversions
# =============================================================================


def intuitive_to_sequential(order: Sequence[int]) -> list[int]:
    """Convert an intuitive permutation into an equivalent sequential-swap vector.

    Example: ``[2, 1, 3, 0]`` becomes ``[2, 1, 3, 3]``.

    Args:
        order: Permutation of ``range(len(order))``.

    Returns:
        Pivots ``p`` such that applying swaps ``i <-> p[i]`` in order produces
        the relabeling ``order``.
    """
    n = len(order)
    perm = _check_permutation(order, n)
    current = list(range(n))
    piv: list[int] = []
    for i in range(n - 1):
        p = current.index(perm[i])
        piv.append(p)
        current[i], current[p] = current[p], current[i]
    if n:
        piv.append(n - 1)
    return piv


def sequential_to_intuitive(ipiv: Sequence[int], size: int) -> list[int]:
    """Final-position form of a sequential-swap vector over ``size`` lines.

    Args:
        ipiv: Zero-indexed sequential-swap pivots (all entries are applied).
        size: Number of lines being permuted.

    Returns:
        ``order`` with ``order[i]`` the source line that ends at position ``i``.
    """
    piv = check_pivots(ipiv, size)
    if len(piv) > size:
        raise InvalidArgumentError(_RANGE_ERROR.format(n=size, k1=0, k2=len(piv)))
    current = list(range(size))
    for i, p in enumerate(piv):
        current[i], current[p] = current[p], current[i]
    return current


def permutation_matrix(
    ipiv: Sequence[int], size: int, *, dtype: object = "float64"
) -> DenseMatrix:
    """Permutation matrix ``P`` with ``P @ A`` equal to the row swaps applied to ``A``.

    Args:
        ipiv: Zero-indexed sequential row-swap pivots.
        size: Number of rows of ``A``.
        dtype: Element type of the result.

    Returns:
        ``size x size`` permutation matrix.
    """
    eye = DenseMatrix.identity(size, dtype=dtype)
    piv = check_pivots(ipiv, size)
    laswp_array(eye.array, piv, 0, min(len(piv), size), 1, 0)
    return eye


# =============================================================================
# User-facing permute_columns / permute_rows
# =============================================================================


def _resolve_convention(
    convention: PermutationConvention | str | None,
    options: LapackOptions | None,
) -> PermutationConvention:
    if convention is not None:
        return parse_convention(convention)
    if options is not None:
        return options.convention
    return PermutationConvention.INTUITIVE


def _permute_inplace(
    view: DenseMatrix,
    order: Sequence[int],
    axis: Axis,
    conv: PermutationConvention,
) -> None:
    if conv is PermutationConvention.INTUITIVE:
        apply_intuitive_permutation_inplace(view, order, axis=axis)
        return
    laswp(view, order, axis=axis, k2=len(order))


def permute_columns_inplace(
    view: DenseMatrix,
    order: Sequence[int],
    *,
    convention: PermutationConvention | str | None = None,
    options: LapackOptions | None = None,
) -> None:
    """Permute columns in place.

    Args:
        view: Rank-2 matrix; mutated in place.
        order: With INTUITIVE (default), column ``i`` becomes source column
            ``order[i]``. With LAPACK, ``order`` is a sequential-swap vector
            and every entry is applied.
        convention: How ``order`` is read. Overrides ``options.convention``.
        options: Options whose ``convention`` is used when ``convention`` is
            not given.
    """
    _permute_inplace(view, order, Axis.COLUMNS, _resolve_convention(convention, options))


def permute_columns(
    view: DenseMatrix,
    order: Sequence[int],
    *,
    convention: PermutationConvention | str | None = None,
    options: LapackOptions | None = None,
) -> DenseMatrix:
    """Copying variant of :func:`permute_columns_inplace`."""
    out = view.copy()
    _permute_inplace(out, order, Axis.COLUMNS, _resolve_convention(convention, options))
    return out


def permute_rows_inplace(
    view: DenseMatrix,
    order: Sequence[int],
    *,
    convention: PermutationConvention | str | None = None,
    options: LapackOptions | None = None,
) -> None:
    """Row counterpart of :func:`permute_columns_inplace`."""
    _permute_inplace(view, order, Axis.ROWS, _resolve_convention(convention, options))


def permute_rows(
    view: DenseMatrix,
    order: Sequence[int],
    *,
    convention: PermutationConvention | str | None = None,
    options: LapackOptions | None = None,
) -> DenseMatrix:
    """Copying variant of :func:`permute_rows_inplace`."""
    out = view.copy()
    _permute_inplace(out, order, Axis.ROWS, _resolve_convention(convention, options))
    return out

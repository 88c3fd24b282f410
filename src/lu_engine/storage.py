# src/lu_engine/storage.py
"""Dense matrix storage: flat typed buffers and strided views over them.

Ownership model:
    * A :class:`NumericBuffer` is a flat, contiguous, homogeneously typed array.
    * Every :class:`DenseMatrix` is a view: a shape, per-axis element strides
      and an element offset into one buffer. A *root* matrix owns its buffer
      (``owns_buffer=True``); sub-views, transposes and LAPACK blocks hold a
      non-owning reference plus their own offset/stride transform.
    * Mutation through any view is visible through every other view of the
      same buffer. Routines that work in place document what they alias.

Element ``(i, j)`` of a rank-2 view lives at buffer position
``offset + i*strides[0] + j*strides[1]``. Construction verifies that every
valid index maps inside the buffer.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np

from .dtypes import DType, DTypeKernel, kernel_for
from .errors import (
    DimensionMismatchError,
    raise_dimension_mismatch,
    raise_index_out_of_range,
)
from .options import StorageOrder, parse_order

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from numpy.typing import ArrayLike, NDArray


_SHAPE_ERROR = "shape must be a non-empty sequence of positive integers; got {shape}"
_STRIDES_LEN_ERROR = "strides length {actual} does not match rank {expected}"
_STRIDES_SIGN_ERROR = "strides must be positive; got {strides}"
_SLICE_STEP_ERROR = "subview slices must have a positive step; got {step}"
_SLICE_EMPTY_ERROR = "subview slice {index} selects no elements along axis {axis}"
_RANK2_ERROR = "operation requires a rank-2 matrix; got shape {shape}"
_INDEX_RANK_ERROR = "index {index} does not match rank {rank}"


def _normalize_shape(shape: int | Sequence[int]) -> tuple[int, ...]:
    if isinstance(shape, int | np.integer):
        dims: tuple[Any, ...] = (int(shape), int(shape))
    else:
        dims = tuple(shape)
    if not dims or any(int(d) != d or d < 1 for d in dims):
        raise DimensionMismatchError(_SHAPE_ERROR.format(shape=shape))
    return tuple(int(d) for d in dims)


def contiguous_strides(shape: Sequence[int], order: StorageOrder) -> tuple[int, ...]:
    """Element strides of a contiguous block in the given storage order.

    Args:
        shape: Logical shape.
        order: Row-major (last axis fastest) or column-major (first axis fastest).

    Returns:
        Tuple of element strides, one per axis.
    """
    dims = list(shape) if order is StorageOrder.ROW else list(reversed(shape))
    strides: list[int] = []
    step = 1
    for d in reversed(dims):
        strides.append(step)
        step *= d
    strides.reverse()
    return tuple(strides) if order is StorageOrder.ROW else tuple(reversed(strides))


class NumericBuffer:
    """Flat, contiguous, homogeneously typed storage plus its dtype tag."""

    __slots__ = ("data", "dtype")

    def __init__(
        self,
        size: int,
        dtype: object = DType.FLOAT64,
        values: Iterable[Any] | ArrayLike | None = None,
    ) -> None:
        """
        Allocate a buffer.

        Args:
            size: Number of elements.
            dtype: Element type (anything DType.of accepts).
            values: Optional initial values in buffer order. A shorter
                sequence is repeated cyclically to fill the buffer; no values
                means a zero-filled buffer.

        Raises:
            DimensionMismatchError: If size is negative, values is longer than
                size, or values is empty while size is positive.
        """
        self.dtype = DType.of(dtype)
        np_dtype = self.dtype.numpy_dtype
        if size < 0:
            raise_dimension_mismatch(name="size", expected="size >= 0", got=size)

        if values is None:
            self.data: NDArray[Any] = np.zeros(size, dtype=np_dtype)
            return

        flat = np.asarray(
            list(values) if not isinstance(values, np.ndarray) else values
        ).ravel()
        if flat.size > size or (flat.size == 0 and size > 0):
            raise_dimension_mismatch(
                name="values", expected=f"1..{size} elements", got=flat.size
            )
        self.data = np.resize(flat, size).astype(np_dtype)

    @classmethod
    def wrap(cls, data: NDArray[Any]) -> NumericBuffer:
        """Adopt an existing 1-D NumPy array without copying.

        Args:
            data: Contiguous 1-D array of a supported dtype.

        Raises:
            DimensionMismatchError: If data is not 1-D and contiguous.

        Returns:
            Buffer whose storage is ``data``.
        """
        if data.ndim != 1 or not data.flags.c_contiguous:
            raise_dimension_mismatch(
                name="data", expected="a contiguous 1-D array", got=data.shape
            )
        buf = cls.__new__(cls)
        buf.dtype = DType.of(data.dtype)
        buf.data = data
        return buf

    @property
    def kernel(self) -> DTypeKernel:
        return kernel_for(self.dtype)

    def __len__(self) -> int:
        return int(self.data.size)

    def __repr__(self) -> str:
        return f"NumericBuffer(size={len(self)}, dtype={self.dtype.value})"

    def copy(self) -> NumericBuffer:
        return NumericBuffer.wrap(self.data.copy())


class DenseMatrix:
    """A shaped, strided view over a NumericBuffer."""

    def __init__(
        self,
        buffer: NumericBuffer,
        shape: int | Sequence[int],
        strides: Sequence[int] | None = None,
        offset: int = 0,
        *,
        owns_buffer: bool = False,
    ) -> None:
        """
        Build a view over an existing buffer.

        Args:
            buffer: Storage to address.
            shape: Logical shape (an int means a square rank-2 shape).
            strides: Element stride per axis; defaults to contiguous row-major.
            offset: Element offset of index (0, ..., 0).
            owns_buffer: True only for the root matrix that owns ``buffer``.

        Raises:
            DimensionMismatchError: If the shape/strides/offset reach outside
                the buffer or are malformed.
        """
        self.buffer = buffer
        self.shape = _normalize_shape(shape)
        if strides is None:
            strides = contiguous_strides(self.shape, StorageOrder.ROW)
        self.strides = tuple(int(s) for s in strides)
        self.offset = int(offset)
        self.owns_buffer = owns_buffer

        if len(self.strides) != len(self.shape):
            raise DimensionMismatchError(
                _STRIDES_LEN_ERROR.format(
                    actual=len(self.strides), expected=len(self.shape)
                )
            )
        if any(s < 1 for s in self.strides):
            raise DimensionMismatchError(_STRIDES_SIGN_ERROR.format(strides=strides))
        last = self.offset + sum(
            (d - 1) * s for d, s in zip(self.shape, self.strides, strict=True)
        )
        if self.offset < 0 or last >= len(buffer):
            raise_dimension_mismatch(
                name="view",
                expected=f"elements inside a buffer of length {len(buffer)}",
                got={"shape": self.shape, "strides": self.strides, "offset": offset},
            )

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def new(
        cls,
        shape: int | Sequence[int],
        values: Iterable[Any] | ArrayLike | None = None,
        *,
        dtype: object = DType.FLOAT64,
        order: StorageOrder | str = StorageOrder.ROW,
    ) -> DenseMatrix:
        """Create a root matrix that owns a fresh contiguous buffer.

        Args:
            shape: Logical shape; an int ``n`` means ``(n, n)``.
            values: Optional initial values in *storage* order (row-major for
                ROW, column-major for COL). Shorter sequences are repeated.
            dtype: Element type.
            order: Storage order of the new buffer.

        Returns:
            New root matrix.
        """
        dims = _normalize_shape(shape)
        order_e = parse_order(order)
        buf = NumericBuffer(math.prod(dims), dtype, values)
        return cls(buf, dims, contiguous_strides(dims, order_e), owns_buffer=True)

    @classmethod
    def zeros(
        cls,
        shape: int | Sequence[int],
        *,
        dtype: object = DType.FLOAT64,
        order: StorageOrder | str = StorageOrder.ROW,
    ) -> DenseMatrix:
        return cls.new(shape, dtype=dtype, order=order)

    @classmethod
    def identity(cls, n: int, *, dtype: object = DType.FLOAT64) -> DenseMatrix:
        out = cls.new((n, n), dtype=dtype)
        out.array[...] = np.eye(n, dtype=out.dtype.numpy_dtype)
        return out

    @classmethod
    def from_array(
        cls,
        values: ArrayLike,
        *,
        dtype: object | None = None,
        order: StorageOrder | str = StorageOrder.ROW,
    ) -> DenseMatrix:
        """Create a root matrix from a (nested) array-like in logical order.

        Args:
            values: Array-like; a scalar or 1-D input becomes a column vector.
            dtype: Element type; defaults to the input's dtype.
            order: Storage order of the new buffer.

        Returns:
            New root matrix holding a copy of the values.
        """
        arr = np.asarray(values)
        dt = DType.of(arr.dtype if dtype is None else dtype)
        if arr.ndim == 0:
            arr = arr.reshape(1, 1)
        elif arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        out = cls.new(arr.shape, dtype=dt, order=order)
        out.array[...] = arr.astype(dt.numpy_dtype)
        return out

    @classmethod
    def from_buffer(
        cls,
        buffer: NumericBuffer,
        shape: int | Sequence[int],
        *,
        order: StorageOrder | str = StorageOrder.ROW,
        leading_dimension: int | None = None,
        offset: int = 0,
    ) -> DenseMatrix:
        """Build a rank-2 non-owning view with a LAPACK leading dimension.

        Args:
            buffer: Storage to address.
            shape: (rows, cols).
            order: ROW: rows are ``leading_dimension`` apart; COL: columns are.
            leading_dimension: Distance between consecutive rows (ROW) or
                columns (COL); defaults to the contiguous value.
            offset: Element offset of (0, 0).

        Raises:
            DimensionMismatchError: If the leading dimension is smaller than
                the contiguous extent or the view does not fit the buffer.

        Returns:
            Non-owning view.
        """
        rows, cols = _normalize_shape(shape)
        order_e = parse_order(order)
        minor = cols if order_e is StorageOrder.ROW else rows
        ld = minor if leading_dimension is None else int(leading_dimension)
        if ld < minor:
            raise_dimension_mismatch(
                name="leading dimension", expected=f">= {minor}", got=ld
            )
        strides = (ld, 1) if order_e is StorageOrder.ROW else (1, ld)
        return cls(buffer, (rows, cols), strides, offset)

    # =========================================================================
    # Basic properties
    # =========================================================================

    @property
    def dtype(self) -> DType:
        return self.buffer.dtype

    @property
    def kernel(self) -> DTypeKernel:
        return kernel_for(self.buffer.dtype)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return math.prod(self.shape)

    @property
    def rows(self) -> int:
        self.require_rank2()
        return self.shape[0]

    @property
    def cols(self) -> int:
        self.require_rank2()
        return self.shape[1]

    @property
    def order(self) -> StorageOrder:
        """Storage order inferred from the strides (ties resolve to ROW)."""
        if self.ndim < 2 or self.strides[-1] <= self.strides[0]:  # noqa: PLR2004
            return StorageOrder.ROW
        return StorageOrder.COL

    @property
    def is_square(self) -> bool:
        return self.ndim == 2 and self.shape[0] == self.shape[1]  # noqa: PLR2004

    @property
    def array(self) -> NDArray[Any]:
        """NumPy strided view aliasing this matrix's elements (no copy)."""
        itemsize = self.buffer.data.itemsize
        return np.lib.stride_tricks.as_strided(
            self.buffer.data[self.offset :],
            shape=self.shape,
            strides=tuple(s * itemsize for s in self.strides),
        )

    def shares_buffer(self, other: DenseMatrix) -> bool:
        return self.buffer is other.buffer

    def require_rank2(self) -> None:
        if self.ndim != 2:  # noqa: PLR2004
            raise DimensionMismatchError(_RANK2_ERROR.format(shape=self.shape))

    # =========================================================================
    # Element addressing
    # =========================================================================

    def index(self, *idx: int) -> int:
        """Buffer position of a logical index.

        A single index on a matrix of rank >= 2 addresses elements in logical
        row-major order (convenient for column vectors).

        Raises:
            IndexOutOfRangeError: If any index component is out of bounds.

        Returns:
            Position of the element in ``self.buffer``.
        """
        if len(idx) == 1 and self.ndim > 1:
            (flat,) = idx
            if not 0 <= flat < self.size:
                raise_index_out_of_range(name="index", index=flat, size=self.size)
            idx = tuple(int(i) for i in np.unravel_index(flat, self.shape))
        if len(idx) != self.ndim:
            raise DimensionMismatchError(
                _INDEX_RANK_ERROR.format(index=idx, rank=self.ndim)
            )
        pos = self.offset
        for axis, (i, d, s) in enumerate(
            zip(idx, self.shape, self.strides, strict=True)
        ):
            if not 0 <= i < d:
                raise_index_out_of_range(name=f"index[{axis}]", index=i, size=d)
            pos += i * s
        return pos

    def __getitem__(self, key: int | slice | tuple[int | slice, ...]) -> Any:
        keys = key if isinstance(key, tuple) else (key,)
        if any(isinstance(k, slice) for k in keys):
            return self.subview(*keys)
        return self.buffer.data[self.index(*(int(k) for k in keys))]

    def __setitem__(self, key: int | slice | tuple[int | slice, ...], value: Any) -> None:
        keys = key if isinstance(key, tuple) else (key,)
        if any(isinstance(k, slice) for k in keys):
            self.subview(*keys).array[...] = self.kernel.cast(value)
            return
        self.buffer.data[self.index(*(int(k) for k in keys))] = value

    # =========================================================================
    # Views and copies
    # =========================================================================

    def subview(self, *slices: slice | int) -> DenseMatrix:
        """Non-owning view of a rectangular block sharing this buffer.

        Args:
            *slices: One slice (or int, meaning a length-1 slice) per axis;
                missing trailing axes are taken whole.

        Raises:
            DimensionMismatchError: For a negative step or an empty selection.

        Returns:
            View whose mutations are visible through this matrix.
        """
        padded = list(slices) + [slice(None)] * (self.ndim - len(slices))
        if len(padded) != self.ndim:
            raise DimensionMismatchError(
                _INDEX_RANK_ERROR.format(index=slices, rank=self.ndim)
            )
        offset = self.offset
        shape: list[int] = []
        strides: list[int] = []
        for axis, (sel, d, s) in enumerate(
            zip(padded, self.shape, self.strides, strict=True)
        ):
            if isinstance(sel, int):
                if not 0 <= sel < d:
                    raise_index_out_of_range(name=f"index[{axis}]", index=sel, size=d)
                sel = slice(sel, sel + 1)
            start, stop, step = sel.indices(d)
            if step < 1:
                raise DimensionMismatchError(_SLICE_STEP_ERROR.format(step=step))
            n = len(range(start, stop, step))
            if n == 0:
                raise DimensionMismatchError(
                    _SLICE_EMPTY_ERROR.format(index=sel, axis=axis)
                )
            offset += start * s
            shape.append(n)
            strides.append(s * step)
        return DenseMatrix(self.buffer, shape, strides, offset)

    def transpose(self) -> DenseMatrix:
        """Non-owning view with reversed axes (no data movement)."""
        return DenseMatrix(
            self.buffer, self.shape[::-1], self.strides[::-1], self.offset
        )

    @property
    def T(self) -> DenseMatrix:  # noqa: N802
        return self.transpose()

    def lapack_view(
        self,
        order: StorageOrder | str,
        rows: int,
        cols: int,
        leading_dimension: int,
    ) -> DenseMatrix:
        """View the raw buffer from this matrix's offset as a LAPACK block.

        The block ignores this matrix's logical shape and strides, exactly as
        a CLAPACK routine addresses the pointer it receives.

        Args:
            order: Storage order of the block.
            rows: Block rows (``m``).
            cols: Block columns (``n``).
            leading_dimension: LAPACK ``lda``.

        Returns:
            Non-owning view over this buffer.
        """
        return DenseMatrix.from_buffer(
            self.buffer,
            (rows, cols),
            order=order,
            leading_dimension=leading_dimension,
            offset=self.offset,
        )

    def copy(self, *, order: StorageOrder | str = StorageOrder.ROW) -> DenseMatrix:
        """New root matrix with the same logical contents."""
        out = DenseMatrix.new(self.shape, dtype=self.dtype, order=order)
        out.array[...] = self.array
        return out

    def astype(self, dtype: object) -> DenseMatrix:
        """New root matrix with values cast to another dtype."""
        out = DenseMatrix.new(self.shape, dtype=dtype)
        out.array[...] = self.array.astype(out.dtype.numpy_dtype)
        return out

    # =========================================================================
    # Conversion and comparison
    # =========================================================================

    def tolist(self) -> list[Any]:
        return self.array.tolist()

    def flat(self) -> list[Any]:
        """Values in logical row-major order."""
        return self.array.ravel(order="C").tolist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DenseMatrix):
            return NotImplemented
        return self.shape == other.shape and bool(
            np.array_equal(self.array, other.array)
        )

    __hash__ = None  # type: ignore[assignment]

    def approx_equal(self, other: DenseMatrix | ArrayLike, eps: float) -> bool:
        """Tolerance-aware equality; integer dtypes compare exactly.

        Args:
            other: Matrix or array-like of the same logical shape.
            eps: Absolute tolerance (complex parts are checked independently).

        Returns:
            False when the shapes differ, otherwise the kernel comparison.
        """
        other_arr = other.array if isinstance(other, DenseMatrix) else np.asarray(other)
        if other_arr.shape != self.shape:
            return False
        kernel = self.kernel
        if isinstance(other, DenseMatrix) and other.dtype.is_complex:
            kernel = other.kernel
        return kernel.approx_equal(self.array, other_arr, eps)

    def __repr__(self) -> str:
        kind = "root" if self.owns_buffer else "view"
        return (
            f"DenseMatrix(shape={self.shape}, dtype={self.dtype.value}, "
            f"order={self.order.value}, {kind})"
        )

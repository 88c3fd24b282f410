# tests/lu_engine/test_storage.py
"""Unit tests for lu_engine.storage (NumericBuffer and DenseMatrix views)."""

from __future__ import annotations

import numpy as np
import pytest

from lu_engine import DenseMatrix, DType, NumericBuffer, StorageOrder
from lu_engine.errors import DimensionMismatchError, IndexOutOfRangeError
from lu_engine.storage import contiguous_strides

# -----------------------------------------------------------------------------
# NumericBuffer
# -----------------------------------------------------------------------------


def test_buffer_zero_filled_and_cast(any_dtype: DType) -> None:
    """A buffer without values is zero-filled in the requested dtype."""
    buf = NumericBuffer(5, any_dtype)
    assert len(buf) == 5
    assert buf.data.dtype == any_dtype.numpy_dtype
    assert not np.any(buf.data)


def test_buffer_repeats_short_values() -> None:
    """Shorter initial values are repeated cyclically."""
    buf = NumericBuffer(7, "int32", [1, 2, 3])
    np.testing.assert_array_equal(buf.data, [1, 2, 3, 1, 2, 3, 1])


@pytest.mark.parametrize("values", [[1, 2, 3, 4], []])
def test_buffer_rejects_long_or_empty_values(values: list[int]) -> None:
    """Values longer than the buffer (or empty) are a dimension mismatch."""
    with pytest.raises(DimensionMismatchError):
        NumericBuffer(3, "float64", values)


def test_buffer_wrap_adopts_array_without_copy() -> None:
    """wrap shares memory with the given array."""
    data = np.arange(4, dtype=np.float32)
    buf = NumericBuffer.wrap(data)
    assert buf.data is data
    assert buf.dtype is DType.FLOAT32
    with pytest.raises(DimensionMismatchError):
        NumericBuffer.wrap(np.zeros((2, 2)))


# -----------------------------------------------------------------------------
# Construction and addressing
# -----------------------------------------------------------------------------


def test_contiguous_strides() -> None:
    """Row-major makes the last axis fastest; column-major the first."""
    assert contiguous_strides((3, 4), StorageOrder.ROW) == (4, 1)
    assert contiguous_strides((3, 4), StorageOrder.COL) == (1, 3)


def test_new_uses_storage_order_for_values() -> None:
    """Values given to new() are laid out in the buffer's storage order."""
    row = DenseMatrix.new((2, 3), [1, 2, 3, 4, 5, 6], dtype="int64")
    col = DenseMatrix.new((2, 3), [1, 2, 3, 4, 5, 6], dtype="int64", order="col")
    assert row.tolist() == [[1, 2, 3], [4, 5, 6]]
    assert col.tolist() == [[1, 3, 5], [2, 4, 6]]
    assert row.order is StorageOrder.ROW
    assert col.order is StorageOrder.COL
    assert row.owns_buffer


@pytest.mark.parametrize("shape", [(), (0, 3), (2, -1)])
def test_new_rejects_bad_shapes(shape: tuple[int, ...]) -> None:
    """Empty shapes and non-positive dimensions are rejected."""
    with pytest.raises(DimensionMismatchError):
        DenseMatrix.new(shape)


def test_int_shape_means_square() -> None:
    """An integer shape builds a square matrix."""
    assert DenseMatrix.zeros(3).shape == (3, 3)
    assert DenseMatrix.identity(2, dtype="complex64").tolist() == [[1, 0], [0, 1]]


def test_index_and_item_access() -> None:
    """Element (i, j) lives at offset + i*strides[0] + j*strides[1]."""
    m = DenseMatrix.new((3, 4), list(range(12)), dtype="int32")
    assert m.index(1, 2) == 6
    assert m[2, 3] == 11
    m[0, 1] = 42
    assert m.buffer.data[1] == 42
    with pytest.raises(IndexOutOfRangeError):
        m.index(3, 0)
    with pytest.raises(IndexError):
        _ = m[0, 4]


def test_single_index_addresses_row_major_order() -> None:
    """One index on a rank-2 matrix walks the logical elements row by row."""
    col = DenseMatrix.new((2, 2), [1, 2, 3, 4], dtype="int64", order="col")
    assert [col[i] for i in range(4)] == [1, 3, 2, 4]


def test_view_must_fit_buffer() -> None:
    """Construction checks that every index maps inside the buffer."""
    buf = NumericBuffer(6)
    with pytest.raises(DimensionMismatchError):
        DenseMatrix(buf, (2, 4))
    with pytest.raises(DimensionMismatchError):
        DenseMatrix(buf, (2, 2), offset=3)


# -----------------------------------------------------------------------------
# Views, aliasing and copies
# -----------------------------------------------------------------------------


def test_subview_aliases_parent() -> None:
    """Writes through a subview are visible in the parent and vice versa."""
    m = DenseMatrix.new((3, 4), list(range(12)), dtype="float64")
    sub = m.subview(slice(1, 3), slice(1, 3))
    assert sub.shares_buffer(m)
    assert not sub.owns_buffer
    assert sub.tolist() == [[5.0, 6.0], [9.0, 10.0]]
    sub[0, 0] = -1.0
    assert m[1, 1] == -1.0
    m[2, 2] = 99.0
    assert sub[1, 1] == 99.0


def test_slice_item_access_returns_view() -> None:
    """Indexing with slices returns a subview; assigning fills the block."""
    m = DenseMatrix.zeros((3, 3), dtype="int16")
    m[0:2, 1:3] = 7
    assert m.tolist() == [[0, 7, 7], [0, 7, 7], [0, 0, 0]]
    row = m[1, :]
    assert row.shape == (1, 3)


def test_transpose_is_a_view() -> None:
    """transpose swaps shape and strides without moving data."""
    m = DenseMatrix.new((2, 3), [1, 2, 3, 4, 5, 6], dtype="int64")
    t = m.T
    assert t.shape == (3, 2)
    assert t.tolist() == [[1, 4], [2, 5], [3, 6]]
    assert t.order is StorageOrder.COL
    t[0, 1] = 40
    assert m[1, 0] == 40


def test_from_buffer_leading_dimension() -> None:
    """A padded view skips lda - cols elements between rows."""
    buf = NumericBuffer(8, "int64", list(range(8)))
    padded = DenseMatrix.from_buffer(buf, (2, 3), leading_dimension=4)
    assert padded.tolist() == [[0, 1, 2], [4, 5, 6]]
    colmajor = DenseMatrix.from_buffer(buf, (3, 2), order="col", leading_dimension=4)
    assert colmajor.tolist() == [[0, 4], [1, 5], [2, 6]]
    with pytest.raises(DimensionMismatchError):
        DenseMatrix.from_buffer(buf, (2, 3), leading_dimension=2)


def test_lapack_view_starts_at_offset() -> None:
    """lapack_view reads the raw buffer from the matrix offset."""
    m = DenseMatrix.new((3, 3), list(range(9)), dtype="int64")
    sub = m.subview(slice(1, 3), slice(0, 3))
    block = sub.lapack_view("col", 2, 2, 2)
    assert block.tolist() == [[3, 5], [4, 6]]


def test_copy_is_independent_root() -> None:
    """copy() builds a new root in the requested order."""
    m = DenseMatrix.new((2, 2), [1.0, 2.0, 3.0, 4.0])
    c = m.copy(order="col")
    assert c.owns_buffer
    assert not c.shares_buffer(m)
    assert c == m
    assert c.buffer.data.tolist() == [1.0, 3.0, 2.0, 4.0]
    c[0, 0] = 10.0
    assert m[0, 0] == 1.0


def test_from_array_and_astype() -> None:
    """from_array infers the dtype; 1-D input becomes a column."""
    v = DenseMatrix.from_array([1.5, 2.5])
    assert v.shape == (2, 1)
    assert v.dtype is DType.FLOAT64
    ints = DenseMatrix.from_array([[1, 2], [3, 4]], dtype="byte")
    assert ints.dtype is DType.BYTE
    assert ints.astype("complex128").tolist() == [[1 + 0j, 2 + 0j], [3 + 0j, 4 + 0j]]
    assert ints.flat() == [1, 2, 3, 4]


# -----------------------------------------------------------------------------
# Comparison
# -----------------------------------------------------------------------------


def test_exact_equality_compares_shape_and_values() -> None:
    """== is exact; shapes must match."""
    a = DenseMatrix.new((2, 2), [1, 2, 3, 4], dtype="int32")
    assert a == DenseMatrix.new((2, 2), [1, 2, 3, 4], dtype="int32")
    assert a != DenseMatrix.new((4, 1), [1, 2, 3, 4], dtype="int32")
    assert a != DenseMatrix.new((2, 2), [1, 2, 3, 5], dtype="int32")


def test_approx_equal_uses_caller_tolerance() -> None:
    """approx_equal compares within eps and rejects shape mismatches."""
    a = DenseMatrix.from_array([[1.0, 2.0]])
    assert a.approx_equal([[1.0 + 1e-9, 2.0]], 1e-8)
    assert not a.approx_equal([[1.1, 2.0]], 1e-8)
    assert not a.approx_equal([[1.0], [2.0]], 1.0)

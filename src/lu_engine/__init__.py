"""lu_engine dense matrix storage and internal LAPACK-compatible kernels."""

from __future__ import annotations

from .dtypes import DType, DTypeKernel, kernel_for
from .errors import (
    ArithmeticRangeError,
    DimensionMismatchError,
    ErrorCode,
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvalidPermutationError,
    LuEngineError,
    NotImplementedLapackError,
    SingularMatrixError,
    UnsupportedDTypeError,
)
from .factorize import (
    LUFactorization,
    clapack_getrf,
    det,
    factor_inplace,
    factorize_lu,
    getrf_inplace,
    lu_factor,
    lu_factor_inplace,
)
from .inverse import clapack_getri, inverse, invert_inplace
from .options import (
    Axis,
    Backend,
    Diag,
    LapackOptions,
    PermutationConvention,
    Side,
    StorageOrder,
    Transpose,
    Uplo,
)
from .pivoting import (
    apply_intuitive_permutation,
    apply_intuitive_permutation_inplace,
    apply_sequential_swaps,
    clapack_laswp,
    intuitive_to_sequential,
    laswp,
    permutation_matrix,
    permute_columns,
    permute_columns_inplace,
    permute_rows,
    permute_rows_inplace,
    sequential_to_intuitive,
)
from .storage import DenseMatrix, NumericBuffer
from .triangular import clapack_getrs, lu_solve, solve, trsm

__all__ = [
    "ArithmeticRangeError",
    "Axis",
    "Backend",
    "DType",
    "DTypeKernel",
    "DenseMatrix",
    "Diag",
    "DimensionMismatchError",
    "ErrorCode",
    "IndexOutOfRangeError",
    "InvalidArgumentError",
    "InvalidPermutationError",
    "LUFactorization",
    "LapackOptions",
    "LuEngineError",
    "NotImplementedLapackError",
    "NumericBuffer",
    "PermutationConvention",
    "Side",
    "SingularMatrixError",
    "StorageOrder",
    "Transpose",
    "UnsupportedDTypeError",
    "Uplo",
    "apply_intuitive_permutation",
    "apply_intuitive_permutation_inplace",
    "apply_sequential_swaps",
    "clapack_getrf",
    "clapack_getri",
    "clapack_getrs",
    "clapack_laswp",
    "det",
    "factor_inplace",
    "factorize_lu",
    "getrf_inplace",
    "intuitive_to_sequential",
    "inverse",
    "invert_inplace",
    "kernel_for",
    "laswp",
    "lu_factor",
    "lu_factor_inplace",
    "lu_solve",
    "permutation_matrix",
    "permute_columns",
    "permute_columns_inplace",
    "permute_rows",
    "permute_rows_inplace",
    "sequential_to_intuitive",
    "solve",
    "trsm",
]

__version__ = "0.1.0"

# src/lu_engine/options.py
"""Enumerated options and the symbol-to-enum adapter layer.

The kernels in lu_engine only consume the enums defined here. Everything that
arrives as loose user input (strings such as ``"row_major"``, booleans used as
transpose flags, YAML configuration) is translated at this boundary by the
``parse_*`` functions or by :class:`LapackOptions`.

Accepted spellings:
    order:      row, row_major | col, column, col_major, column_major
    transpose:  False, no_transpose, n | transpose, t | complex_conjugate, c
    side:       left | right
    uplo:       upper | lower
    diag:       unit or True -> UNIT; anything else -> NON_UNIT

Each enum also exposes its CBLAS integer code and LAPACKE character so a thin
adapter can hand them to an external library unchanged.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidArgumentError

_ORDER_ERROR = "Expected :row or :col for order argument; got {value!r}"
_TRANSPOSE_ERROR = (
    "Expected False, :transpose, or :complex_conjugate for transpose argument; "
    "got {value!r}"
)
_SIDE_ERROR = "Expected :left or :right for side argument; got {value!r}"
_UPLO_ERROR = "Expected :upper or :lower for uplo argument; got {value!r}"
_CONVENTION_ERROR = "Expected :intuitive or :lapack for convention; got {value!r}"
_BACKEND_ERROR = "Expected 'internal' or 'scipy' for backend; got {value!r}"


class StorageOrder(StrEnum):
    """Memory layout of a matrix block."""

    ROW = "row"
    COL = "col"

    @property
    def cblas(self) -> int:
        return 101 if self is StorageOrder.ROW else 102


class Transpose(StrEnum):
    """Operation applied to a coefficient matrix before solving."""

    NO_TRANS = "no_transpose"
    TRANS = "transpose"
    CONJ_TRANS = "complex_conjugate"

    @property
    def cblas(self) -> int:
        return _TRANSPOSE_CBLAS[self]

    @property
    def lapacke(self) -> str:
        return _TRANSPOSE_LAPACKE[self]


class Side(StrEnum):
    """Side on which a triangular matrix multiplies the unknowns."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def cblas(self) -> int:
        return 141 if self is Side.LEFT else 142


class Uplo(StrEnum):
    """Which triangle of a matrix holds the factor."""

    UPPER = "upper"
    LOWER = "lower"

    @property
    def cblas(self) -> int:
        return 121 if self is Uplo.UPPER else 122

    @property
    def lapacke(self) -> str:
        return "U" if self is Uplo.UPPER else "L"


class Diag(StrEnum):
    """Whether a triangular factor has an implicit unit diagonal."""

    NON_UNIT = "non_unit"
    UNIT = "unit"

    @property
    def cblas(self) -> int:
        return 131 if self is Diag.NON_UNIT else 132


class Axis(StrEnum):
    """Axis along which a permutation moves whole lines of a matrix."""

    ROWS = "rows"
    COLUMNS = "columns"


class PermutationConvention(StrEnum):
    """How a permutation vector is read.

    LAPACK: sequential swaps, entry ``i`` is swapped with line ``i`` at step ``i``.
    INTUITIVE: entry ``i`` names the source line that ends at position ``i``.
    """

    INTUITIVE = "intuitive"
    LAPACK = "lapack"


class Backend(StrEnum):
    """Which implementation performs a high-level operation."""

    INTERNAL = "internal"
    SCIPY = "scipy"


_TRANSPOSE_CBLAS: Final[dict[Transpose, int]] = {
    Transpose.NO_TRANS: 111,
    Transpose.TRANS: 112,
    Transpose.CONJ_TRANS: 113,
}
_TRANSPOSE_LAPACKE: Final[dict[Transpose, str]] = {
    Transpose.NO_TRANS: "N",
    Transpose.TRANS: "T",
    Transpose.CONJ_TRANS: "C",
}

_ORDER_SPELLINGS: Final[dict[str, StorageOrder]] = {
    "row": StorageOrder.ROW,
    "row_major": StorageOrder.ROW,
    "col": StorageOrder.COL,
    "column": StorageOrder.COL,
    "col_major": StorageOrder.COL,
    "column_major": StorageOrder.COL,
}
_TRANSPOSE_SPELLINGS: Final[dict[str, Transpose]] = {
    "no_transpose": Transpose.NO_TRANS,
    "n": Transpose.NO_TRANS,
    "transpose": Transpose.TRANS,
    "t": Transpose.TRANS,
    "complex_conjugate": Transpose.CONJ_TRANS,
    "c": Transpose.CONJ_TRANS,
}


def _symbol(value: object) -> str | None:
    if isinstance(value, str):
        return value.strip().lower().lstrip(":")
    return None


def parse_order(value: object) -> StorageOrder:
    """Translate an order argument into a StorageOrder.

    Args:
        value: StorageOrder member or one of its accepted spellings.

    Raises:
        InvalidArgumentError: If the value is not recognized.

    Returns:
        The matching StorageOrder.
    """
    if isinstance(value, StorageOrder):
        return value
    found = _ORDER_SPELLINGS.get(_symbol(value) or "")
    if found is None:
        raise InvalidArgumentError(_ORDER_ERROR.format(value=value))
    return found


def parse_transpose(value: object) -> Transpose:
    """Translate a transpose argument into a Transpose.

    ``False`` and ``None`` mean no transpose, matching the CBLAS bindings.

    Args:
        value: Transpose member, False/None, or an accepted spelling.

    Raises:
        InvalidArgumentError: If the value is not recognized.

    Returns:
        The matching Transpose.
    """
    if isinstance(value, Transpose):
        return value
    if value is False or value is None:
        return Transpose.NO_TRANS
    found = _TRANSPOSE_SPELLINGS.get(_symbol(value) or "")
    if found is None:
        raise InvalidArgumentError(_TRANSPOSE_ERROR.format(value=value))
    return found


def parse_side(value: object) -> Side:
    """Translate a side argument (``left``/``right``) into a Side."""
    if isinstance(value, Side):
        return value
    sym = _symbol(value)
    if sym == "left":
        return Side.LEFT
    if sym == "right":
        return Side.RIGHT
    raise InvalidArgumentError(_SIDE_ERROR.format(value=value))


def parse_uplo(value: object) -> Uplo:
    """Translate an uplo argument (``upper``/``lower``) into an Uplo."""
    if isinstance(value, Uplo):
        return value
    sym = _symbol(value)
    if sym == "upper":
        return Uplo.UPPER
    if sym == "lower":
        return Uplo.LOWER
    raise InvalidArgumentError(_UPLO_ERROR.format(value=value))


def parse_diag(value: object) -> Diag:
    """Translate a diag argument: ``unit`` or True is UNIT, anything else NON_UNIT."""
    if isinstance(value, Diag):
        return value
    if value is True or _symbol(value) == "unit":
        return Diag.UNIT
    return Diag.NON_UNIT


def parse_convention(value: object) -> PermutationConvention:
    """Translate a permutation convention (``intuitive``/``lapack``)."""
    if isinstance(value, PermutationConvention):
        return value
    sym = _symbol(value) or ""
    if sym in PermutationConvention._value2member_map_:
        return PermutationConvention(sym)
    raise InvalidArgumentError(_CONVENTION_ERROR.format(value=value))


def parse_backend(value: object) -> Backend:
    """Translate a backend name (``internal``/``scipy``)."""
    if isinstance(value, Backend):
        return value
    sym = _symbol(value) or ""
    if sym in Backend._value2member_map_:
        return Backend(sym)
    raise InvalidArgumentError(_BACKEND_ERROR.format(value=value))


class LapackOptions(BaseModel):
    """Validated options for the high-level lu_engine helpers.

    The model accepts the same loose spellings as the ``parse_*`` functions,
    so it can be built directly from YAML/JSON configuration:

        LapackOptions.model_validate({"order": "row_major", "backend": "scipy"})

    Attributes:
        order: Convention used by factor_inplace when no order is passed.
        trans: Transpose applied to the coefficient matrix when solving.
        convention: How permute_columns/permute_rows read their vector when
            no convention is passed.
        backend: Implementation used by solve/inverse.
        fallback: Fall back to the scipy backend when the internal path raises
            NotImplementedLapackError.
        strict: Raise SingularMatrixError on a singular factorization instead
            of warning.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    order: StorageOrder = Field(default=StorageOrder.ROW)
    trans: Transpose = Field(default=Transpose.NO_TRANS)
    convention: PermutationConvention = Field(
        default=PermutationConvention.INTUITIVE
    )
    backend: Backend = Field(default=Backend.INTERNAL)
    fallback: bool = Field(default=True)
    strict: bool = Field(default=False)

    @field_validator("order", mode="before")
    @classmethod
    def _validate_order(cls, value: object) -> StorageOrder:
        return parse_order(value)

    @field_validator("trans", mode="before")
    @classmethod
    def _validate_trans(cls, value: object) -> Transpose:
        return parse_transpose(value)

    @field_validator("convention", mode="before")
    @classmethod
    def _validate_convention(cls, value: object) -> PermutationConvention:
        return parse_convention(value)

    @field_validator("backend", mode="before")
    @classmethod
    def _validate_backend(cls, value: object) -> Backend:
        return parse_backend(value)

"""Global pytest configuration and shared fixtures for lu_engine."""

from __future__ import annotations

from typing import Final

import pytest

from lu_engine import DenseMatrix, DType

# -----------------------------------------------------------------------------
# Dtype groups
# -----------------------------------------------------------------------------

INEXACT_DTYPES: Final[tuple[DType, ...]] = tuple(d for d in DType if not d.is_integer)

# Reconstruction tolerance per precision.
TOLERANCE: Final[dict[DType, float]] = {
    DType.FLOAT32: 1e-6,
    DType.FLOAT64: 1e-14,
    DType.COMPLEX64: 1e-6,
    DType.COMPLEX128: 1e-14,
}


# -----------------------------------------------------------------------------
# Markers
# -----------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used by the test suite."""
    config.addinivalue_line(
        "markers",
        "scipy: compares the internal kernels against scipy.linalg",
    )


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(params=list(DType), ids=lambda d: d.value)
def any_dtype(request: pytest.FixtureRequest) -> DType:
    """Every supported dtype."""
    return request.param


@pytest.fixture(params=INEXACT_DTYPES, ids=lambda d: d.value)
def inexact_dtype(request: pytest.FixtureRequest) -> DType:
    """Floating and complex dtypes."""
    return request.param


@pytest.fixture
def tolerance(inexact_dtype: DType) -> float:
    """Absolute tolerance matching the precision of ``inexact_dtype``."""
    return TOLERANCE[inexact_dtype]


@pytest.fixture
def laswp_matrix() -> DenseMatrix:
    """3x4 row-major matrix holding 1..12, used by the permutation tests."""
    return DenseMatrix.new((3, 4), list(range(1, 13)), dtype=DType.INT64)


@pytest.fixture
def getrs_system() -> tuple[list[list[float]], list[float], list[float]]:
    """(A, b, x) with ``A @ x == b`` and a nontrivial pivot sequence."""
    a = [[-2.0, 4.0, -3.0], [3.0, -2.0, 1.0], [0.0, -4.0, 3.0]]
    b = [-1.0, 17.0, -9.0]
    x = [5.0, -7.5, -13.0]
    return a, b, x

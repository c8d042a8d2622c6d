"""Pytest configuration and shared fixtures.

Provides common test fixtures and configuration for the brepkit test suite.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import structlog

from kernel.geometry import SweptCurve
from kernel.linalg import Point
from kernel.objects import FaceBRep, Sketch, VertexArena
from kernel.tolerance import Tolerance
from kernel.validation import Validated, ValidationConfig, validate


def _configure_test_logging() -> None:
    # Drop level filters and stream factories left behind by configure_logging
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.testing.LogCapture(),
        ],
        logger_factory=structlog.testing.CapturingLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# Configure test logging
_configure_test_logging()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Restore test logging after tests that reconfigure structlog (the CLI does)."""
    yield
    _configure_test_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def tolerance() -> Tolerance:
    return Tolerance(1e-9)


@pytest.fixture
def config() -> ValidationConfig:
    return ValidationConfig.default()


@pytest.fixture
def arena() -> VertexArena:
    return VertexArena()


@pytest.fixture
def xy_plane() -> SweptCurve:
    return SweptCurve.xy_plane()


@pytest.fixture
def unit_square(xy_plane: SweptCurve, arena: VertexArena, tolerance: Tolerance) -> FaceBRep:
    """Unit square face in the XY plane."""
    return FaceBRep.polygon(
        xy_plane,
        [Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0, 1.0), Point(0.0, 1.0)],
        arena=arena,
        tolerance=tolerance,
    )


@pytest.fixture
def unit_square_sketch(unit_square: FaceBRep) -> Sketch:
    return Sketch([unit_square])


@pytest.fixture
def validated_square(unit_square_sketch: Sketch, config: ValidationConfig) -> Validated[Sketch]:
    return validate(unit_square_sketch, config)

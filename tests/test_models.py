"""Tests for the built-in models."""

from __future__ import annotations

import math

import pytest

from brepkit.models import MODELS, UnknownModel, cuboid, get_model, run_model, spacer, star
from shape_ir.schema import (
    CircleDef,
    Difference2dDef,
    ParameterError,
    Parameters,
    SketchDef,
    SweepDef,
)


class TestRegistry:
    """Test cases for looking up models."""

    def test_registered_models(self):
        """Test that all built-in models are registered."""
        assert set(MODELS) == {"cuboid", "spacer", "star"}
        assert get_model("cuboid") is cuboid

    def test_unknown_model(self):
        """Test that unknown names raise with the available models listed."""
        with pytest.raises(UnknownModel, match="cuboid"):
            get_model("teapot")

    def test_unknown_model_is_key_error(self):
        """Test that callers can treat unknown models as missing keys."""
        with pytest.raises(KeyError):
            run_model("teapot", Parameters())

    def test_run_model(self):
        """Test calling a model by name."""
        shape = run_model("cuboid", Parameters().insert("z", 4))
        assert shape.path == (0.0, 0.0, 4.0)


class TestCuboid:
    """Test cases for the cuboid model."""

    def test_defaults(self):
        """Test the default box."""
        shape = cuboid(Parameters())
        assert isinstance(shape, SweepDef)
        assert shape.path == (0.0, 0.0, 1.0)
        assert shape.shape.points == ((-1.5, -1.0), (1.5, -1.0), (1.5, 1.0), (-1.5, 1.0))
        assert shape.color == (100, 255, 0, 200)

    def test_parameters(self):
        """Test custom dimensions."""
        shape = cuboid(Parameters({"x": "4", "y": "6", "z": "2"}))
        assert shape.shape.points[2] == (2.0, 3.0)
        assert shape.path == (0.0, 0.0, 2.0)

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_non_positive(self, value):
        """Test that dimensions must be positive."""
        with pytest.raises(ParameterError, match="positive"):
            cuboid(Parameters({"x": value}))

    def test_not_a_number(self):
        """Test that dimensions must be numbers."""
        with pytest.raises(ParameterError):
            cuboid(Parameters({"y": "wide"}))


class TestSpacer:
    """Test cases for the spacer model."""

    def test_defaults(self):
        """Test the default ring."""
        shape = spacer(Parameters())
        ring = shape.shape
        assert isinstance(ring, Difference2dDef)
        assert ring.exterior == CircleDef(1.0)
        assert ring.interior == CircleDef(0.5)
        assert shape.path == (0.0, 0.0, 1.0)

    def test_inner_must_be_smaller(self):
        """Test that the hole must fit inside the ring."""
        with pytest.raises(ParameterError):
            spacer(Parameters({"outer": "1", "inner": "1"}))


class TestStar:
    """Test cases for the star model."""

    def test_defaults(self):
        """Test the default five-pointed star with a star-shaped hole."""
        shape = star(Parameters())
        cut = shape.shape
        assert isinstance(cut, Difference2dDef)
        assert isinstance(cut.exterior, SketchDef)
        assert len(cut.exterior.points) == 10
        assert cut.exterior.points[0] == (1.0, 0.0)
        tip = cut.exterior.points[1]
        assert math.hypot(*tip) == pytest.approx(2.0)
        assert math.hypot(*cut.interior.points[1]) == pytest.approx(1.0)

    def test_num_points(self):
        """Test a star with more points."""
        shape = star(Parameters({"num_points": "8"}))
        assert len(shape.shape.exterior.points) == 16

    def test_too_few_points(self):
        """Test that a star needs at least three points."""
        with pytest.raises(ParameterError, match="at least 3"):
            star(Parameters({"num_points": "2"}))

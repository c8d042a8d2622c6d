"""Tests for the model host."""

from __future__ import annotations

import time

import orjson
import pytest

import brepkit.host as host_module
from brepkit.host import (
    Handoff,
    HostError,
    ModelError,
    ModelHost,
    is_relevant_change,
)
from brepkit.models import UnknownModel
from kernel.validation import ValidationConfig
from shape_ir.schema import Parameters
from shape_ir.serialize import encode_shape


def _wait_for_result(host: ModelHost, timeout: float = 10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = host.receive()
        if result is not None:
            return result
        time.sleep(0.01)
    pytest.fail("No result from model host")


class TestHandoff:
    """Test cases for the single-slot handoff."""

    def test_empty(self):
        """Test that polling an empty slot returns None."""
        assert Handoff().poll() is None

    def test_offer_and_poll(self):
        """Test passing one item."""
        handoff = Handoff()
        assert handoff.offer(1) is False
        assert handoff.poll() == 1
        assert handoff.poll() is None

    def test_newer_item_replaces_pending(self):
        """Test that an unreceived item is superseded."""
        handoff = Handoff()
        handoff.offer("old")
        assert handoff.offer("new") is True
        assert handoff.poll() == "new"
        assert handoff.superseded == 1


class TestRelevantChange:
    """Test cases for filtering change signals."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("model.py", True),
            ("model/.model.py.swp", False),
            ("build.TMP", False),
            ("notes.swx", False),
            ("Makefile", True),
        ],
    )
    def test_extensions(self, path, expected):
        """Test that editor swap and temporary files are ignored."""
        assert is_relevant_change(path) is expected


class TestBuildOnce:
    """Test cases for single builds."""

    def test_cuboid(self):
        """Test building the default cuboid."""
        result = ModelHost("cuboid").build_once()
        assert result.ok
        assert result.kind == "solid"
        assert result.face_count == 6
        bbox = result.bounding_box
        assert (bbox.min_x, bbox.min_y, bbox.min_z) == pytest.approx((-1.5, -1.0, 0.0))
        assert (bbox.max_x, bbox.max_y, bbox.max_z) == pytest.approx((1.5, 1.0, 1.0))

    def test_parameters(self):
        """Test that parameters reach the model."""
        host = ModelHost("cuboid", Parameters({"z": "4"}))
        assert host.build_once().bounding_box.max_z == pytest.approx(4.0)

    def test_request(self):
        """Test the request the host sends."""
        config = ValidationConfig.from_dict({"tolerance": 1e-6, "checks": ["join", "closure"]})
        request = ModelHost("spacer", config=config).request()
        assert request.model == "spacer"
        assert request.tolerance == 1e-6
        assert request.checks == ("closure", "join")

    def test_bad_parameters(self):
        """Test that rejected parameters raise a model error with a failed result."""
        host = ModelHost("spacer", Parameters({"inner": "2"}))
        with pytest.raises(ModelError) as exc_info:
            host.build_once()
        result = exc_info.value.result
        assert not result.ok
        assert result.model == "spacer"
        assert "smaller" in result.error

    def test_unknown_model(self):
        """Test that the host refuses unknown models up front."""
        with pytest.raises(UnknownModel):
            ModelHost("teapot")

    def test_shape_crosses_interchange(self, monkeypatch):
        """Test that the model's shape definition is encoded before the kernel sees it."""
        payloads = []

        def recording_encode(shape):
            payload = encode_shape(shape)
            payloads.append(payload)
            return payload

        monkeypatch.setattr(host_module, "encode_shape", recording_encode)
        assert ModelHost("spacer").build_once().ok
        (payload,) = payloads
        data = orjson.loads(payload)
        assert data["shape"]["type"] == "sweep"
        assert data["shape"]["shape"]["type"] == "difference_2d"

    def test_corrupt_shape_payload(self, monkeypatch):
        """Test that an undecodable shape payload fails the build, not the host."""
        monkeypatch.setattr(host_module, "encode_shape", lambda shape: b"{not json")
        with pytest.raises(ModelError) as exc_info:
            ModelHost("cuboid").build_once()
        assert "Malformed payload" in exc_info.value.result.error


class TestWorker:
    """Test cases for the background rebuild loop."""

    def test_initial_build(self):
        """Test that starting the host schedules a build."""
        host = ModelHost("cuboid")
        host.start()
        try:
            result = _wait_for_result(host)
        finally:
            host.stop()
        assert result.ok
        assert result.face_count == 6
        assert host.last_good == result

    def test_rebuild_on_change(self):
        """Test that a relevant change triggers another build."""
        host = ModelHost("cuboid")
        host.start()
        try:
            _wait_for_result(host)
            assert host.notify_change("model.py") is True
            assert _wait_for_result(host).ok
        finally:
            host.stop()

    def test_ignored_change(self):
        """Test that swap files do not trigger a build."""
        host = ModelHost("cuboid")
        assert host.notify_change(".model.swp") is False

    def test_failed_build_keeps_last_good(self):
        """Test that a failed build is reported without a last good result."""
        host = ModelHost("spacer", Parameters({"inner": "3"}))
        host.start()
        try:
            result = _wait_for_result(host)
        finally:
            host.stop()
        assert not result.ok
        assert host.last_good is None

    def test_start_twice(self):
        """Test that a host can only be started once."""
        host = ModelHost("cuboid")
        host.start()
        try:
            with pytest.raises(HostError):
                host.start()
        finally:
            host.stop()

    def test_receive_before_start(self):
        """Test that receiving before any build returns None."""
        assert ModelHost("cuboid").receive() is None

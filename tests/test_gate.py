"""Tests for single-flight frame admission."""

from __future__ import annotations

from src.models import ThermalLevel
from src.processing.gate import FrameGate


class TestFrameGate:
    def test_admits_when_idle(self, governor):
        gate = FrameGate(governor)
        assert gate.admit()
        assert gate.in_flight

    def test_drops_while_in_flight(self, governor):
        """Frames arriving during inference are dropped, never queued."""
        gate = FrameGate(governor)
        assert gate.admit()
        assert not gate.admit()
        assert not gate.admit()
        assert gate.dropped == 2

        gate.release()
        assert gate.admit()

    def test_skip_pattern(self, governor):
        """Under a skip pattern of 2 only every second frame is admitted."""
        governor.report_thermal(ThermalLevel.SERIOUS)
        gate = FrameGate(governor)

        admitted = []
        for _ in range(6):
            ok = gate.admit()
            admitted.append(ok)
            if ok:
                gate.release()
        assert admitted == [False, True, False, True, False, True]

    def test_paused_governor_blocks_admission(self, governor, clock):
        gate = FrameGate(governor)
        governor.report_thermal(ThermalLevel.CRITICAL)
        assert not gate.admit()

        clock.advance(3.0)
        # Skip pattern is 4 at the lowest tier
        results = [gate.admit() for _ in range(3)]
        assert results == [False, False, True]

    def test_reset(self, governor):
        gate = FrameGate(governor)
        gate.admit()
        gate.admit()
        gate.reset()

        assert not gate.in_flight
        assert gate.frames_seen == 0
        assert gate.dropped == 0

    def test_min_interval_caps_admitted_rate(self, governor, clock):
        """Frames closer than the interval to the last admitted one are dropped."""
        gate = FrameGate(governor, clock=clock)
        assert gate.admit(min_interval=0.05)
        gate.release()

        clock.advance(0.03)
        assert not gate.admit(min_interval=0.05)

        clock.advance(0.03)
        assert gate.admit(min_interval=0.05)

    def test_skip_then_interval_do_not_compound(self, governor, clock):
        """At 30 fps offered under the 20 fps / every-2nd tier, 15 fps get through."""
        governor.report_thermal(ThermalLevel.SERIOUS)
        gate = FrameGate(governor, clock=clock)

        admitted = 0
        for _ in range(60):
            clock.advance(1 / 30)
            if gate.admit(min_interval=1 / 20):
                admitted += 1
                gate.release()
        assert admitted == 30

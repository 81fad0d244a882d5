"""Tests for the resource governor and system sampling."""

from __future__ import annotations

import pytest

from src.config import GovernorConfig
from src.models import ThermalLevel
from src.monitoring.governor import LOWEST_TIER, TIERS, select_tier
from src.monitoring.system import SystemSampler, classify_temperature


def targets(state) -> tuple[int, int]:
    return state.frame_rate_target, state.frame_skip_pattern


class TestSelectTier:
    @pytest.mark.parametrize("thermal, pressure, expected", [
        (ThermalLevel.NOMINAL, 0, (30, 1)),
        (ThermalLevel.FAIR, 0, (25, 1)),
        (ThermalLevel.SERIOUS, 0, (20, 2)),
        (ThermalLevel.SERIOUS, 2, (15, 3)),
        (ThermalLevel.NOMINAL, 2, (20, 2)),
        (ThermalLevel.NOMINAL, 4, (15, 3)),
        (ThermalLevel.NOMINAL, 6, (10, 4)),
        (ThermalLevel.CRITICAL, 0, (10, 4)),
    ])
    def test_tier_table(self, thermal, pressure, expected):
        assert TIERS[select_tier(thermal, pressure)] == expected

    def test_lowest_tier(self):
        assert TIERS[LOWEST_TIER] == (10, 4)


class TestResourceGovernor:
    def test_starts_at_full_rate(self, governor):
        state = governor.snapshot()
        assert targets(state) == (30, 1)
        assert not governor.is_paused()

    def test_degrades_through_tiers(self, governor, clock):
        """fair → serious walks down the table, one step per cooldown."""
        assert targets(governor.report_thermal(ThermalLevel.FAIR)) == (25, 1)

        clock.advance(3.0)
        assert targets(governor.report_thermal(ThermalLevel.SERIOUS)) == (20, 2)

    def test_cooldown_defers_changes(self, governor, clock):
        """A second change inside the cooldown is applied only once it expires."""
        governor.report_thermal(ThermalLevel.FAIR)
        clock.advance(1.0)
        assert targets(governor.report_thermal(ThermalLevel.SERIOUS)) == (25, 1)

        clock.advance(2.0)
        assert targets(governor.update()) == (20, 2)

    def test_critical_pauses_then_resumes_at_lowest_tier(self, governor, clock):
        """Critical bypasses the cooldown and pauses for three seconds."""
        governor.report_thermal(ThermalLevel.FAIR)
        state = governor.report_thermal(ThermalLevel.CRITICAL)

        assert targets(state) == (10, 4)
        assert governor.is_paused()

        clock.advance(2.0)
        assert governor.is_paused()

        clock.advance(1.0)
        assert not governor.is_paused()
        state = governor.report_thermal(ThermalLevel.NOMINAL)
        assert targets(state) == (10, 4)

        clock.advance(3.0)
        assert targets(governor.update()) == (30, 1)

    def test_memory_pressure_hysteresis(self, governor):
        """Pressure rises above the high mark, falls below the low mark."""
        assert governor.report_memory(500.0).memory_pressure == 1
        assert governor.report_memory(400.0).memory_pressure == 1
        assert governor.report_memory(500.0).memory_pressure == 2
        assert governor.report_memory(300.0).memory_pressure == 1

    def test_memory_pressure_is_capped(self, governor):
        for _ in range(20):
            state = governor.report_memory(900.0)
        assert state.memory_pressure == 8

    def test_memory_pressure_lowers_throughput(self, governor, clock):
        governor.report_memory(500.0)
        clock.advance(3.0)
        state = governor.report_memory(500.0)
        assert state.memory_pressure == 2
        assert targets(state) == (20, 2)

    def test_start_without_sampler_is_noop(self, governor):
        governor.start()
        governor.stop()
        assert targets(governor.snapshot()) == (30, 1)


class TestSystemSampler:
    @pytest.mark.parametrize("temp, level", [
        (40.0, ThermalLevel.NOMINAL),
        (60.0, ThermalLevel.FAIR),
        (80.0, ThermalLevel.SERIOUS),
        (95.0, ThermalLevel.CRITICAL),
    ])
    def test_classify_temperature(self, temp, level):
        assert classify_temperature(temp, GovernorConfig()) == level

    def test_memory_reading(self):
        assert SystemSampler(GovernorConfig()).memory_mb() > 0


class TestThermalSequence:
    def test_nominal_to_critical(self, governor, clock):
        """Each step lowers the rate target; critical also pauses."""
        seen = [targets(governor.snapshot())]
        for level in (ThermalLevel.FAIR, ThermalLevel.SERIOUS, ThermalLevel.CRITICAL):
            clock.advance(3.0)
            seen.append(targets(governor.report_thermal(level)))

        rates = [fps for fps, _ in seen]
        skips = [skip for _, skip in seen]
        assert rates == [30, 25, 20, 10]
        assert skips == sorted(skips)
        assert governor.is_paused()

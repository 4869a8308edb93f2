"""
Unit tests for economic ratio limits and worst-offending completion ranking.
"""

import attrs
import numpy as np
import pytest

from conftest import make_producer, make_state
from wellcheck import (
    INVALID_COMPLETION,
    Connection,
    Constants,
    EconomicLimits,
    ParallelWellInfo,
    PhaseUsage,
    RatioLimitCheckReport,
    check_max_ratio_limit_completions,
    check_ratio_economic_limits,
    gas_oil_ratio,
    water_cut,
    water_gas_ratio,
)


@attrs.define
class RecordingCommunicator:
    """Communicator adding fixed remote contributions to each reduced buffer."""

    remote: np.ndarray
    calls: int = 0

    def sum(self, buffer):
        buffer += self.remote
        self.calls += 1


class TestRatioFunctions:
    """Test the rate ratio functions."""

    def test_water_cut(self, pu):
        assert np.isclose(water_cut(np.array([-50.0, -50.0, 0.0]), pu), 0.5)
        assert water_cut(np.zeros(3), pu) == 0.0

    def test_gas_oil_ratio_zero_oil(self, pu):
        """No oil gives 0 without gas, and the sentinel with gas."""
        assert gas_oil_ratio(np.array([0.0, 0.0, 0.0]), pu) == 0.0
        assert gas_oil_ratio(np.array([0.0, 0.0, -10.0]), pu) == 1.0e100

    def test_water_gas_ratio(self, pu):
        assert np.isclose(water_gas_ratio(np.array([-5.0, 0.0, -100.0]), pu), 0.05)
        assert water_gas_ratio(np.array([-5.0, 0.0, 0.0]), pu) == 1.0e100

    def test_opposite_directions_rejected(self, pu):
        with pytest.raises(AssertionError):
            gas_oil_ratio(np.array([0.0, 10.0, -5.0]), pu)

    def test_sentinel_follows_constants(self, pu):
        constants = Constants()
        constants.RATIO_SENTINEL = 1.0e30
        with constants():
            assert gas_oil_ratio(np.array([0.0, 0.0, -10.0]), pu) == 1.0e30
        assert gas_oil_ratio(np.array([0.0, 0.0, -10.0]), pu) == 1.0e100


class TestRatioLimitReport:
    """Test filling the ratio limit report."""

    def test_water_cut_violation_extent(self, pu, deferred_logger):
        """Water cut 0.5 against a 0.4 limit gives an extent of 1.25."""
        well = make_producer()
        state = make_state("P1", [-50.0, -50.0, 0.0])
        limits = EconomicLimits(max_water_cut=0.4)
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well, limits, state, pu, ParallelWellInfo(), report, deferred_logger
        )
        assert report.violated
        assert report.worst_offending_completion == 1
        assert np.isclose(report.violation_extent, 1.25)

    def test_water_cut_violation_extent_oil_water(self, deferred_logger):
        """The same water cut violation in an oil-water model, where water sits at position 0."""
        pu = PhaseUsage.from_phases("oil", "water")
        well = make_producer()
        state = make_state("P1", [-50.0, -50.0])
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well,
            EconomicLimits(max_water_cut=0.4),
            state,
            pu,
            ParallelWellInfo(),
            report,
            deferred_logger,
        )
        assert report.violated
        assert report.worst_offending_completion == 1
        assert np.isclose(report.violation_extent, 1.25)

    def test_no_violation_leaves_report_untouched(self, pu, deferred_logger):
        well = make_producer()
        state = make_state("P1", [-10.0, -90.0, 0.0])
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well,
            EconomicLimits(max_water_cut=0.4),
            state,
            pu,
            ParallelWellInfo(),
            report,
            deferred_logger,
        )
        assert not report.violated
        assert report.worst_offending_completion == INVALID_COMPLETION
        assert report.violation_extent == 0.0

    def test_largest_extent_across_limits_wins(self, pu, deferred_logger):
        """Water cut picks completion 1 (extent 1.5), GOR picks completion 2 (extent 3.0)."""
        well = make_producer(
            connections=[
                Connection(index=0, completion=1),
                Connection(index=1, completion=2),
            ]
        )
        perforation_rates = [[-60.0, -40.0, -10000.0], [0.0, -10.0, -3000.0]]
        state = make_state(
            "P1", np.sum(perforation_rates, axis=0), perforation_rates=perforation_rates
        )
        limits = EconomicLimits(max_water_cut=0.4, max_gas_oil_ratio=100.0)
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well, limits, state, pu, ParallelWellInfo(), report, deferred_logger
        )
        assert report.violated
        assert report.worst_offending_completion == 2
        assert np.isclose(report.violation_extent, 3.0)

    def test_smaller_extent_does_not_overwrite(self, pu):
        well = make_producer()
        state = make_state("P1", [-60.0, -40.0, 0.0])
        report = RatioLimitCheckReport(
            violated=True, worst_offending_completion=7, violation_extent=3.0
        )

        check_max_ratio_limit_completions(
            well, state, 0.4, water_cut, pu, ParallelWellInfo(), report
        )
        assert report.worst_offending_completion == 7
        assert report.violation_extent == 3.0

    def test_connections_without_completion(self, pu, deferred_logger):
        """Connections without a completion number are ranked on their own."""
        well = make_producer(
            connections=[Connection(index=0), Connection(index=1)]
        )
        perforation_rates = [[-10.0, -90.0, 0.0], [-80.0, -20.0, 0.0]]
        state = make_state(
            "P1", np.sum(perforation_rates, axis=0), perforation_rates=perforation_rates
        )
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well,
            EconomicLimits(max_water_cut=0.4),
            state,
            pu,
            ParallelWellInfo(),
            report,
            deferred_logger,
        )
        assert report.worst_offending_completion == -2
        assert np.isclose(report.violation_extent, 2.0)

    def test_gas_liquid_ratio_not_supported(self, pu, deferred_logger):
        well = make_producer()
        state = make_state("P1", [-10.0, -90.0, -100.0])
        report = RatioLimitCheckReport()

        check_ratio_economic_limits(
            well,
            EconomicLimits(max_gas_liquid_ratio=0.5),
            state,
            pu,
            ParallelWellInfo(),
            report,
            deferred_logger,
        )
        assert not report.violated
        assert deferred_logger.tags() == ["NOT_SUPPORTING_MAX_GLR"]


class TestDistributedCompletions:
    """Test per-completion rate reduction across ranks."""

    def test_only_owned_connections_are_summed(self, pu):
        well = make_producer(
            connections=[
                Connection(index=0, completion=1),
                Connection(index=1, completion=1),
            ]
        )
        # Connection 1 belongs to another rank; its local entry must be ignored.
        perforation_rates = [[-30.0, -20.0, 0.0], [-1000.0, -1.0, 0.0]]
        state = make_state("P1", [-60.0, -40.0, 0.0], perforation_rates=perforation_rates)
        communicator = RecordingCommunicator(remote=np.array([-30.0, -20.0, 0.0]))
        parallel_info = ParallelWellInfo(
            communicator=communicator, owned_connections={0}
        )
        report = RatioLimitCheckReport(violated=True)

        check_max_ratio_limit_completions(
            well, state, 0.4, water_cut, pu, parallel_info, report
        )
        assert communicator.calls == 1
        assert report.worst_offending_completion == 1
        assert np.isclose(report.violation_extent, 1.5)

    def test_ownership(self):
        info = ParallelWellInfo(owned_connections=[0, 2])
        assert info.is_owner(0)
        assert not info.is_owner(1)
        assert ParallelWellInfo().is_owner(5)

"""
Unit tests for the per-well evaluator and the per-step evaluation pass.
"""

import logging

import numpy as np

from conftest import make_producer, make_state
from wellcheck import (
    ClosureReason,
    Config,
    DeferredLogger,
    EconomicLimits,
    Group,
    GroupProductionControls,
    GroupState,
    GuideRateGroupHelper,
    ProducerControlMode,
    RatioLimitCheckReport,
    Schedule,
    StepReport,
    WellEvaluator,
    WellStates,
    Wells,
    evaluate_step,
)


def _schedule(*wells, target=1000.0):
    group = Group(
        "G1",
        production_controls=GroupProductionControls(mode="orat", oil_target=target),
    )
    return Schedule(groups={"G1": group}, wells=Wells(production_wells=list(wells)))


class TestWellEvaluator:
    """Test the evaluator bound to a single well."""

    def test_defaults(self, pu, converter):
        evaluator = WellEvaluator(make_producer(), pu, converter)
        assert evaluator.name == "P1"
        assert isinstance(evaluator.group_helper, GuideRateGroupHelper)
        assert evaluator.parallel_info.is_owner(0)

    def test_check_constraints(self, pu, converter, deferred_logger):
        well = make_producer(modes={"orat"}, oil_rate=100.0)
        states = WellStates.from_states(make_state("P1", [0.0, -150.0, 0.0]))
        evaluator = WellEvaluator(well, pu, converter)

        assert evaluator.check_constraints(
            states, GroupState(), _schedule(well), deferred_logger
        )
        assert states["P1"].production_control == ProducerControlMode.ORAT

    def test_calculate_reservoir_rates(self, pu, converter):
        evaluator = WellEvaluator(make_producer(), pu, converter)
        state = make_state("P1", [0.0, -100.0, 0.0])
        evaluator.calculate_reservoir_rates(state)
        assert np.allclose(state.reservoir_rates, [0.0, -120.0, 0.0])

    def test_economic_checks(self, pu, converter, well_test_state, deferred_logger):
        well = make_producer(
            economic_limits=EconomicLimits(max_water_cut=0.4, workover="well")
        )
        state = make_state("P1", [-50.0, -50.0, 0.0])
        evaluator = WellEvaluator(well, pu, converter)

        report = RatioLimitCheckReport()
        evaluator.check_ratio_economic_limits(state, report, deferred_logger)
        assert np.isclose(report.violation_extent, 1.25)
        assert not evaluator.check_rate_economic_limits(
            state.surface_rates, deferred_logger
        )

        evaluator.update_well_test_state(state, 0.0, well_test_state, deferred_logger)
        assert well_test_state.has_well_closed("P1", ClosureReason.ECONOMIC)

    def test_config_silences_messages(
        self, pu, converter, well_test_state, deferred_logger
    ):
        well = make_producer(economic_limits=EconomicLimits(min_oil_rate=100.0))
        state = make_state("P1", [0.0, -50.0, 0.0])
        evaluator = WellEvaluator(
            well, pu, converter, config=Config(write_messages=False)
        )
        evaluator.update_well_test_state_economic(
            state, 0.0, well_test_state, deferred_logger
        )
        assert well_test_state.has_well_closed("P1")
        assert len(deferred_logger) == 0


class TestEvaluateStep:
    """Test a full evaluation pass over several wells."""

    def test_step_report(self, pu, converter, well_test_state):
        p1 = make_producer("P1", modes={"bhp"}, bhp_limit=1000.0)
        p2 = make_producer(
            "P2",
            economic_limits=EconomicLimits(max_water_cut=0.4, workover="con"),
        )
        states = WellStates.from_states(
            make_state("P1", [0.0, -100.0, 0.0], bhp=900.0),
            make_state("P2", [-60.0, -40.0, 0.0], bhp=2000.0),
        )
        evaluators = [WellEvaluator(well, pu, converter) for well in (p1, p2)]
        deferred_logger = DeferredLogger()

        report = evaluate_step(
            evaluators,
            states,
            GroupState(),
            _schedule(p1, p2),
            well_test_state,
            simulation_time=86400.0,
            deferred_logger=deferred_logger,
        )
        assert isinstance(report, StepReport)
        assert report.switched == ("P1",)
        assert report.closed_wells == ("P2",)
        assert report.closed_completions == (("P2", 1),)
        assert "P2 will be shut due to last completion closed" in deferred_logger.messages

    def test_second_pass_changes_nothing(self, pu, converter, well_test_state):
        p1 = make_producer(
            "P1",
            modes={"bhp"},
            bhp_limit=1000.0,
            economic_limits=EconomicLimits(min_oil_rate=500.0),
        )
        states = WellStates.from_states(make_state("P1", [0.0, -100.0, 0.0], bhp=900.0))
        evaluators = [WellEvaluator(p1, pu, converter)]
        schedule = _schedule(p1)

        first = evaluate_step(
            evaluators, states, GroupState(), schedule, well_test_state, 0.0
        )
        second = evaluate_step(
            evaluators, states, GroupState(), schedule, well_test_state, 0.0
        )
        assert first.switched == ("P1",)
        assert first.closed_wells == ("P1",)
        assert second == StepReport()
        assert well_test_state.num_closed_wells == 1

    def test_empty_caller_logger_receives_messages(self, pu, converter, well_test_state):
        """A fresh, empty logger passed in collects the pass's messages and is not flushed."""
        p1 = make_producer(
            "P1",
            economic_limits=EconomicLimits(
                min_reservoir_fluid_rate=1.0, max_water_cut=0.4, workover="well"
            ),
        )
        states = WellStates.from_states(make_state("P1", [-60.0, -40.0, 0.0], bhp=2000.0))
        deferred_logger = DeferredLogger()
        assert len(deferred_logger) == 0

        evaluate_step(
            [WellEvaluator(p1, pu, converter)],
            states,
            GroupState(),
            _schedule(p1),
            well_test_state,
            0.0,
            deferred_logger=deferred_logger,
        )
        assert deferred_logger.tags() == ["NOT_SUPPORTING_MIN_RESERVOIR_FLUID_RATE"]
        assert deferred_logger.messages[-1] == "P1 will be shut due to ratio economic limit"

    def test_new_closure_reason_is_reported(self, pu, converter, well_test_state):
        """A well already closed for a physical reason is reported when closed economically."""
        well_test_state.close_well("P1", ClosureReason.PHYSICAL, 0.0)
        p1 = make_producer("P1", economic_limits=EconomicLimits(min_oil_rate=100.0))
        states = WellStates.from_states(make_state("P1", [0.0, -10.0, 0.0], bhp=2000.0))

        report = evaluate_step(
            [WellEvaluator(p1, pu, converter)],
            states,
            GroupState(),
            _schedule(p1),
            well_test_state,
            86400.0,
            deferred_logger=DeferredLogger(),
        )
        assert well_test_state.has_well_closed("P1", ClosureReason.ECONOMIC)
        assert report.closed_wells == ("P1",)

    def test_owned_logger_is_flushed(self, pu, converter, well_test_state, caplog):
        p1 = make_producer("P1", economic_limits=EconomicLimits(min_oil_rate=500.0))
        states = WellStates.from_states(make_state("P1", [0.0, -100.0, 0.0], bhp=2000.0))

        with caplog.at_level(logging.INFO, logger="wellcheck"):
            evaluate_step(
                [WellEvaluator(p1, pu, converter)],
                states,
                GroupState(),
                _schedule(p1),
                well_test_state,
                0.0,
            )
        assert "well P1 will be shut due to rate economic limit" in caplog.messages

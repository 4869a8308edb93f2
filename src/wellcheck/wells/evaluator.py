"""Per-well evaluation of control constraints and economic closures."""

import logging
import typing

import attrs

from wellcheck.config import Config
from wellcheck.logs import DeferredLogger
from wellcheck.parallel import ParallelWellInfo
from wellcheck.phases import PhaseUsage
from wellcheck.rates import RateConverter
from wellcheck.types import ClosureReason
from wellcheck.wells.base import Well
from wellcheck.wells.closures import WellTestState
from wellcheck.wells.constraints import (
    calculate_reservoir_rates,
    check_constraints,
    check_group_constraints,
    check_individual_constraints,
)
from wellcheck.wells.limits import (
    PhysicalLimitCheck,
    check_rate_economic_limits,
    update_well_test_state,
    update_well_test_state_economic,
)
from wellcheck.wells.ratios import RatioLimitCheckReport, check_ratio_economic_limits
from wellcheck.wells.states import WellState, WellStates

if typing.TYPE_CHECKING:
    from wellcheck.groups import GroupHelper, GroupState, GuideRates, Schedule

logger = logging.getLogger(__name__)

__all__ = ["WellEvaluator", "StepReport", "evaluate_step"]


def _default_group_helper() -> "GroupHelper":
    from wellcheck.groups import GuideRateGroupHelper

    return GuideRateGroupHelper()


@attrs.define
class WellEvaluator:
    """
    Binds a well to the collaborators needed to evaluate it each step.

    The evaluator never owns well state. Callers pass the well's `WellState`
    and the `WellTestState` in, and must not evaluate the same well twice
    concurrently within a step.
    """

    well: Well
    """The well being evaluated."""
    phase_usage: PhaseUsage
    """Active phases of the model."""
    rate_converter: RateConverter
    """Surface to reservoir rate conversion service."""
    parallel_info: ParallelWellInfo = attrs.field(factory=ParallelWellInfo)
    """Connection ownership and communicator of the well."""
    group_helper: "GroupHelper" = attrs.field(factory=_default_group_helper)
    """Group constraint helper."""
    physical_limit_check: typing.Optional[PhysicalLimitCheck] = None
    """Optional check closing wells on physical (BHP/THP) limits."""
    config: Config = attrs.field(factory=Config)
    current_step: int = attrs.field(default=0, validator=attrs.validators.ge(0))
    """Report step index, used to look up group definitions."""
    guide_rates: typing.Optional["GuideRates"] = None
    """Guide rates of the wells, keyed by name."""

    @property
    def name(self) -> str:
        return self.well.name

    def calculate_reservoir_rates(self, well_state: WellState) -> None:
        calculate_reservoir_rates(self.well, well_state, self.rate_converter)

    def check_individual_constraints(self, well_state: WellState) -> bool:
        return check_individual_constraints(
            self.well, well_state, self.phase_usage, self.rate_converter
        )

    def check_group_constraints(
        self,
        well_states: WellStates,
        group_state: "GroupState",
        schedule: "Schedule",
        deferred_logger: DeferredLogger,
    ) -> bool:
        return check_group_constraints(
            well=self.well,
            well_state=well_states[self.name],
            well_states=well_states,
            group_state=group_state,
            schedule=schedule,
            phase_usage=self.phase_usage,
            rate_converter=self.rate_converter,
            group_helper=self.group_helper,
            step=self.current_step,
            deferred_logger=deferred_logger,
            guide_rates=self.guide_rates,
        )

    def check_constraints(
        self,
        well_states: WellStates,
        group_state: "GroupState",
        schedule: "Schedule",
        deferred_logger: DeferredLogger,
    ) -> bool:
        """
        Check the well's individual limits, then its group's, switching control as needed.

        :return: True if the control mode changed.
        """
        return check_constraints(
            well=self.well,
            well_state=well_states[self.name],
            well_states=well_states,
            group_state=group_state,
            schedule=schedule,
            phase_usage=self.phase_usage,
            rate_converter=self.rate_converter,
            group_helper=self.group_helper,
            step=self.current_step,
            deferred_logger=deferred_logger,
            guide_rates=self.guide_rates,
        )

    def check_rate_economic_limits(
        self, rates_or_potentials, deferred_logger: DeferredLogger
    ) -> bool:
        return check_rate_economic_limits(
            self.well.economic_limits,
            rates_or_potentials,
            self.phase_usage,
            deferred_logger,
        )

    def check_ratio_economic_limits(
        self,
        well_state: WellState,
        report: RatioLimitCheckReport,
        deferred_logger: DeferredLogger,
    ) -> None:
        check_ratio_economic_limits(
            well=self.well,
            limits=self.well.economic_limits,
            well_state=well_state,
            phase_usage=self.phase_usage,
            parallel_info=self.parallel_info,
            report=report,
            deferred_logger=deferred_logger,
        )

    def update_well_test_state_economic(
        self,
        well_state: WellState,
        simulation_time: float,
        well_test_state: WellTestState,
        deferred_logger: DeferredLogger,
    ) -> None:
        update_well_test_state_economic(
            well=self.well,
            well_state=well_state,
            phase_usage=self.phase_usage,
            parallel_info=self.parallel_info,
            simulation_time=simulation_time,
            write_messages=self.config.write_messages,
            well_test_state=well_test_state,
            deferred_logger=deferred_logger,
        )

    def update_well_test_state(
        self,
        well_state: WellState,
        simulation_time: float,
        well_test_state: WellTestState,
        deferred_logger: DeferredLogger,
    ) -> None:
        update_well_test_state(
            well=self.well,
            well_state=well_state,
            phase_usage=self.phase_usage,
            parallel_info=self.parallel_info,
            simulation_time=simulation_time,
            write_messages=self.config.write_messages,
            well_test_state=well_test_state,
            deferred_logger=deferred_logger,
            physical_limit_check=self.physical_limit_check,
        )


@attrs.frozen
class StepReport:
    """Summary of one evaluation pass over a set of wells."""

    switched: typing.Tuple[str, ...] = ()
    """Wells whose control mode changed."""
    closed_wells: typing.Tuple[str, ...] = ()
    """Wells closed for a new reason during the pass."""
    closed_completions: typing.Tuple[typing.Tuple[str, int], ...] = ()
    """(well, completion) pairs newly closed during the pass."""


def _closure_reasons(
    well_test_state: WellTestState, name: str
) -> typing.Set[ClosureReason]:
    return {closed.reason for closed in well_test_state.closed_wells(name)}


def evaluate_step(
    evaluators: typing.Iterable[WellEvaluator],
    well_states: WellStates,
    group_state: "GroupState",
    schedule: "Schedule",
    well_test_state: WellTestState,
    simulation_time: float,
    deferred_logger: typing.Optional[DeferredLogger] = None,
    config: typing.Optional[Config] = None,
) -> StepReport:
    """
    Run one evaluation pass: constraint checks then well-test updates, well by well.

    For each well the order is individual constraints, group constraints,
    then economic closure, since later checks read rates changed by earlier ones.

    :param evaluators: One evaluator per well handled on this rank.
    :param well_states: Operating states of the wells. Modified in place.
    :param group_state: Group aggregate rates for the step.
    :param schedule: Groups and wells of the run.
    :param well_test_state: Closure record. Modified in place.
    :param simulation_time: Current simulation time (seconds).
    :param deferred_logger: Logger collecting messages. A new one is created and flushed if None.
    :param config: Configuration whose constants apply during the pass.
    :return: A `StepReport` of the changes made.
    """
    if config is None:
        config = Config()
    owns_logger = deferred_logger is None
    if deferred_logger is None:
        deferred_logger = DeferredLogger()

    switched = []
    closed_wells = []
    closed_completions = []
    with config.constants():
        for evaluator in evaluators:
            name = evaluator.name
            well_state = well_states[name]
            if evaluator.check_constraints(
                well_states, group_state, schedule, deferred_logger
            ):
                switched.append(name)

            reasons_before = _closure_reasons(well_test_state, name)
            completions_before = set(well_test_state.closed_completions(name))
            evaluator.update_well_test_state(
                well_state, simulation_time, well_test_state, deferred_logger
            )
            if _closure_reasons(well_test_state, name) - reasons_before:
                closed_wells.append(name)
            closed_completions.extend(
                (name, completion)
                for completion in well_test_state.closed_completions(name)
                if completion not in completions_before
            )

    logger.debug(
        f"Step evaluated at t={simulation_time}: {len(switched)} control switches, "
        f"{len(closed_wells)} wells closed, {len(closed_completions)} completions closed"
    )
    if owns_logger:
        deferred_logger.flush(logger, info_level=config.log_level)
    return StepReport(
        switched=tuple(switched),
        closed_wells=tuple(closed_wells),
        closed_completions=tuple(closed_completions),
    )

"""Economic rate limits and well-test closure policy."""

import logging
import typing

from wellcheck.logs import DeferredLogger
from wellcheck.parallel import ParallelWellInfo
from wellcheck.phases import PhaseUsage
from wellcheck.types import (
    ClosureReason,
    EconomicWorkover,
    Phase,
    QuantityLimit,
    RateArray,
)
from wellcheck.wells.base import ProductionWell, Well
from wellcheck.wells.closures import WellTestState
from wellcheck.wells.economics import EconomicLimits
from wellcheck.wells.ratios import RatioLimitCheckReport, check_ratio_economic_limits
from wellcheck.wells.states import WellState

logger = logging.getLogger(__name__)

__all__ = [
    "PhysicalLimitCheck",
    "check_rate_economic_limits",
    "update_well_test_state_economic",
    "update_well_test_state",
]


@typing.runtime_checkable
class PhysicalLimitCheck(typing.Protocol):
    """
    Protocol for closing wells that cannot operate within their physical (BHP/THP) limits.

    Runs before the economic checks. Implementations record closures in the well-test state.
    """

    def __call__(
        self,
        well: Well,
        well_state: WellState,
        simulation_time: float,
        write_messages: bool,
        well_test_state: WellTestState,
        deferred_logger: DeferredLogger,
    ) -> None: ...


def check_rate_economic_limits(
    limits: EconomicLimits,
    rates_or_potentials: RateArray,
    phase_usage: PhaseUsage,
    deferred_logger: DeferredLogger,
) -> bool:
    """
    Check the minimum oil, gas and liquid rate limits.

    :param limits: Economic limits of the well.
    :param rates_or_potentials: Per-phase rates or potentials, depending on `limits.quantity_limit`.
    :param phase_usage: Active phases of the model.
    :param deferred_logger: Logger for unsupported limits.
    :return: True if any minimum rate limit is violated.
    """
    if limits.on_min_oil_rate:
        assert phase_usage.is_active(Phase.OIL)
        oil_rate = phase_usage.rate(rates_or_potentials, Phase.OIL)
        if abs(oil_rate) < limits.min_oil_rate:
            return True

    if limits.on_min_gas_rate:
        assert phase_usage.is_active(Phase.GAS)
        gas_rate = phase_usage.rate(rates_or_potentials, Phase.GAS)
        if abs(gas_rate) < limits.min_gas_rate:
            return True

    if limits.on_min_liquid_rate:
        assert phase_usage.is_active(Phase.OIL)
        assert phase_usage.is_active(Phase.WATER)
        liquid_rate = phase_usage.rate(
            rates_or_potentials, Phase.OIL
        ) + phase_usage.rate(rates_or_potentials, Phase.WATER)
        if abs(liquid_rate) < limits.min_liquid_rate:
            return True

    if limits.on_min_reservoir_fluid_rate:
        deferred_logger.warning(
            "NOT_SUPPORTING_MIN_RESERVOIR_FLUID_RATE",
            "Minimum reservoir fluid production rate limit is not supported yet",
        )
    return False


def _closed_verb(well: Well) -> str:
    return "shut" if well.automatic_shut_in else "stopped"


def _close_worst_completion(
    well: Well,
    report: RatioLimitCheckReport,
    simulation_time: float,
    write_messages: bool,
    well_test_state: WellTestState,
    deferred_logger: DeferredLogger,
) -> None:
    worst_offending_completion = report.worst_offending_completion
    well_test_state.add_closed_completion(
        well.name, worst_offending_completion, simulation_time
    )
    if write_messages:
        if worst_offending_completion < 0:
            deferred_logger.info(
                f"Connection {-worst_offending_completion} for well {well.name} "
                "will be closed due to economic limit"
            )
        else:
            deferred_logger.info(
                f"Completion {worst_offending_completion} for well {well.name} "
                "will be closed due to economic limit"
            )

    all_completions_closed = all(
        well_test_state.has_completion(well.name, connection.completion_id)
        for connection in well.open_connections()
    )
    if all_completions_closed:
        well_test_state.close_well(well.name, ClosureReason.ECONOMIC, simulation_time)
        if write_messages:
            deferred_logger.info(
                f"{well.name} will be {_closed_verb(well)} due to last completion closed"
            )


def update_well_test_state_economic(
    well: ProductionWell,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    simulation_time: float,
    write_messages: bool,
    well_test_state: WellTestState,
    deferred_logger: DeferredLogger,
) -> None:
    """
    Close a well, or its worst completion, when its economic limits are violated.

    A violated minimum rate closes the whole well and skips the ratio checks.
    A violated ratio limit applies the well's workover policy.

    :param well: The production well.
    :param well_state: Operating state of the well.
    :param phase_usage: Active phases of the model.
    :param parallel_info: Connection ownership and communicator of the well.
    :param simulation_time: Current simulation time (seconds).
    :param write_messages: Whether closure messages are logged.
    :param well_test_state: Closure record. Modified in place.
    :param deferred_logger: Logger for messages and warnings.
    """
    if well_state.is_stopped:
        return

    if well_test_state.has_well_closed(well.name, ClosureReason.ECONOMIC):
        return

    limits = well.economic_limits
    if not limits.on_any_effective_limit:
        return

    rate_limit_violated = False
    if limits.on_any_rate_limit:
        if limits.quantity_limit == QuantityLimit.POTN:
            quantities = well_state.potentials
        else:
            quantities = well_state.surface_rates
        rate_limit_violated = check_rate_economic_limits(
            limits, quantities, phase_usage, deferred_logger
        )

    if rate_limit_violated:
        if limits.end_run:
            deferred_logger.warning(
                "NOT_SUPPORTING_ENDRUN",
                "ending run after well closed due to economic limits is not supported yet\n"
                f"the program will keep running after {well.name} is closed",
            )

        if limits.valid_followon_well:
            deferred_logger.warning(
                "NOT_SUPPORTING_FOLLOWONWELL",
                "opening following on well after well closed is not supported yet",
            )

        well_test_state.close_well(well.name, ClosureReason.ECONOMIC, simulation_time)
        if write_messages:
            deferred_logger.info(
                f"well {well.name} will be {_closed_verb(well)} due to rate economic limit"
            )
        return

    if not limits.on_any_ratio_limit:
        return

    report = RatioLimitCheckReport()
    check_ratio_economic_limits(
        well=well,
        limits=limits,
        well_state=well_state,
        phase_usage=phase_usage,
        parallel_info=parallel_info,
        report=report,
        deferred_logger=deferred_logger,
    )
    if not report.violated:
        return

    workover = limits.workover
    if workover == EconomicWorkover.CON:
        _close_worst_completion(
            well=well,
            report=report,
            simulation_time=simulation_time,
            write_messages=write_messages,
            well_test_state=well_test_state,
            deferred_logger=deferred_logger,
        )
    elif workover == EconomicWorkover.WELL:
        well_test_state.close_well(well.name, ClosureReason.ECONOMIC, simulation_time)
        if write_messages:
            deferred_logger.info(
                f"{well.name} will be {_closed_verb(well)} due to ratio economic limit"
            )
    elif workover == EconomicWorkover.NONE:
        pass
    else:
        deferred_logger.warning(
            "NOT_SUPPORTED_WORKOVER_TYPE",
            f"not supporting workover type {workover.value.upper()}",
        )


def update_well_test_state(
    well: Well,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    simulation_time: float,
    write_messages: bool,
    well_test_state: WellTestState,
    deferred_logger: DeferredLogger,
    physical_limit_check: typing.Optional[PhysicalLimitCheck] = None,
) -> None:
    """
    Update the closure record of a well for the current step.

    Only producers in prediction mode are considered. Physical-limit closure
    (if a check is given) runs before economic closure.
    """
    if not isinstance(well, ProductionWell):
        return

    if not well.under_prediction_mode:
        return

    if physical_limit_check is not None:
        physical_limit_check(
            well=well,
            well_state=well_state,
            simulation_time=simulation_time,
            write_messages=write_messages,
            well_test_state=well_test_state,
            deferred_logger=deferred_logger,
        )

    update_well_test_state_economic(
        well=well,
        well_state=well_state,
        phase_usage=phase_usage,
        parallel_info=parallel_info,
        simulation_time=simulation_time,
        write_messages=write_messages,
        well_test_state=well_test_state,
        deferred_logger=deferred_logger,
    )

"""Economic ratio limits (water cut, GOR, WGR) and worst-offending completion ranking."""

import logging
import typing

import attrs

from wellcheck.constants import INVALID_COMPLETION, c
from wellcheck.errors import ValidationError
from wellcheck.logs import DeferredLogger
from wellcheck.parallel import ParallelWellInfo
from wellcheck.phases import PhaseUsage
from wellcheck.types import CompletionID, Phase, RateArray
from wellcheck.wells.base import Well
from wellcheck.wells.economics import EconomicLimits
from wellcheck.wells.states import WellState

logger = logging.getLogger(__name__)

__all__ = [
    "RatioFunc",
    "RatioLimitCheckReport",
    "water_cut",
    "gas_oil_ratio",
    "water_gas_ratio",
    "check_max_ratio_limit_well",
    "check_max_ratio_limit_completions",
    "check_max_water_cut_limit",
    "check_max_gas_oil_ratio_limit",
    "check_max_water_gas_ratio_limit",
    "check_ratio_economic_limits",
]

RatioFunc = typing.Callable[[RateArray, PhaseUsage], float]
"""Computes a ratio of phase rates from a per-phase rate array."""


@attrs.define
class RatioLimitCheckReport:
    """Outcome of checking the ratio limits of a well for one economic pass."""

    violated: bool = False
    """Whether any ratio limit is violated."""
    worst_offending_completion: CompletionID = INVALID_COMPLETION
    """Completion with the largest violation, or `INVALID_COMPLETION`."""
    violation_extent: float = 0.0
    """Ratio of the worst completion's value to its limit."""


def _ratio(numerator: float, denominator: float) -> float:
    """
    Ratio of two rates flowing in the same direction.

    A zero denominator gives `c.RATIO_SENTINEL` when the numerator is nonzero
    (so the limit reads as violated) and 0.0 otherwise.
    """
    assert numerator * denominator >= 0.0, "both rates should be in the same direction"
    if denominator != 0.0:
        return numerator / denominator
    if numerator != 0.0:
        return c.RATIO_SENTINEL
    return 0.0


def water_cut(rates: RateArray, phase_usage: PhaseUsage) -> float:
    """Water cut, water / (oil + water). Zero when there is no liquid flow."""
    oil_rate = phase_usage.rate(rates, Phase.OIL)
    water_rate = phase_usage.rate(rates, Phase.WATER)
    assert oil_rate * water_rate >= 0.0, "both rates should be in the same direction"

    liquid_rate = oil_rate + water_rate
    if liquid_rate != 0.0:
        return water_rate / liquid_rate
    return 0.0


def gas_oil_ratio(rates: RateArray, phase_usage: PhaseUsage) -> float:
    """Gas-oil ratio, gas / oil."""
    return _ratio(
        phase_usage.rate(rates, Phase.GAS), phase_usage.rate(rates, Phase.OIL)
    )


def water_gas_ratio(rates: RateArray, phase_usage: PhaseUsage) -> float:
    """Water-gas ratio, water / gas."""
    return _ratio(
        phase_usage.rate(rates, Phase.WATER), phase_usage.rate(rates, Phase.GAS)
    )


def check_max_ratio_limit_well(
    well_state: WellState,
    max_ratio_limit: float,
    ratio_func: RatioFunc,
    phase_usage: PhaseUsage,
) -> bool:
    """Check whether the well-level ratio exceeds `max_ratio_limit`."""
    well_ratio = ratio_func(well_state.surface_rates.copy(), phase_usage)
    return well_ratio > max_ratio_limit


def check_max_ratio_limit_completions(
    well: Well,
    well_state: WellState,
    max_ratio_limit: float,
    ratio_func: RatioFunc,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
) -> None:
    """
    Find the completion with the largest ratio and record it if it is the worst so far.

    Every completion's connection rates are summed across the ranks owning
    them, so every such rank must call this function for the same completions.
    The report is only updated when the new violation extent is strictly
    larger than the one already recorded.

    :raises ValidationError: If the well state has no perforation rates for some connection.
    """
    num_connections = max(
        (connection.index + 1 for connection in well.connections), default=0
    )
    if well_state.num_connections < num_connections:
        raise ValidationError(
            f"State of well {well.name!r} has perforation rates for "
            f"{well_state.num_connections} connections, expected at least {num_connections}."
        )

    worst_offending_completion = INVALID_COMPLETION
    max_ratio_completion = 0.0

    for completion, connection_indices in well.completions.items():
        completion_rates = phase_usage.zeros()
        for index in connection_indices:
            if parallel_info.is_owner(index):
                completion_rates += well_state.perforation_rates[index]

        completion_rates = parallel_info.sum_rates(completion_rates)
        ratio_completion = ratio_func(completion_rates, phase_usage)

        if ratio_completion > max_ratio_completion:
            worst_offending_completion = completion
            max_ratio_completion = ratio_completion

    assert max_ratio_completion > max_ratio_limit
    assert worst_offending_completion != INVALID_COMPLETION
    violation_extent = max_ratio_completion / max_ratio_limit
    assert violation_extent > 1.0

    logger.debug(
        f"Worst completion of well {well.name!r}: {worst_offending_completion} "
        f"(ratio {max_ratio_completion:.4g}, limit {max_ratio_limit:.4g})"
    )
    if violation_extent > report.violation_extent:
        report.worst_offending_completion = worst_offending_completion
        report.violation_extent = violation_extent


def _check_max_limit(
    well: Well,
    well_state: WellState,
    max_ratio_limit: float,
    ratio_func: RatioFunc,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
) -> None:
    assert max_ratio_limit > 0.0
    if check_max_ratio_limit_well(well_state, max_ratio_limit, ratio_func, phase_usage):
        report.violated = True
        check_max_ratio_limit_completions(
            well=well,
            well_state=well_state,
            max_ratio_limit=max_ratio_limit,
            ratio_func=ratio_func,
            phase_usage=phase_usage,
            parallel_info=parallel_info,
            report=report,
        )


def check_max_water_cut_limit(
    well: Well,
    limits: EconomicLimits,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
) -> None:
    assert phase_usage.is_active(Phase.OIL) and phase_usage.is_active(Phase.WATER)
    _check_max_limit(
        well, well_state, limits.max_water_cut, water_cut, phase_usage, parallel_info, report
    )


def check_max_gas_oil_ratio_limit(
    well: Well,
    limits: EconomicLimits,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
) -> None:
    assert phase_usage.is_active(Phase.OIL) and phase_usage.is_active(Phase.GAS)
    _check_max_limit(
        well,
        well_state,
        limits.max_gas_oil_ratio,
        gas_oil_ratio,
        phase_usage,
        parallel_info,
        report,
    )


def check_max_water_gas_ratio_limit(
    well: Well,
    limits: EconomicLimits,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
) -> None:
    assert phase_usage.is_active(Phase.WATER) and phase_usage.is_active(Phase.GAS)
    _check_max_limit(
        well,
        well_state,
        limits.max_water_gas_ratio,
        water_gas_ratio,
        phase_usage,
        parallel_info,
        report,
    )


def check_ratio_economic_limits(
    well: Well,
    limits: EconomicLimits,
    well_state: WellState,
    phase_usage: PhaseUsage,
    parallel_info: ParallelWellInfo,
    report: RatioLimitCheckReport,
    deferred_logger: DeferredLogger,
) -> None:
    """
    Check all enabled ratio limits of a well and fill `report`.

    When more than one ratio limit is violated, each limit picks its own
    worst-offending completion, and the report keeps the one whose ratio is
    furthest above its limit (largest value / limit).
    """
    if limits.on_max_water_cut:
        check_max_water_cut_limit(
            well, limits, well_state, phase_usage, parallel_info, report
        )

    if limits.on_max_gas_oil_ratio:
        check_max_gas_oil_ratio_limit(
            well, limits, well_state, phase_usage, parallel_info, report
        )

    if limits.on_max_water_gas_ratio:
        check_max_water_gas_ratio_limit(
            well, limits, well_state, phase_usage, parallel_info, report
        )

    if limits.on_max_gas_liquid_ratio:
        deferred_logger.warning(
            "NOT_SUPPORTING_MAX_GLR",
            "the support for max Gas-Liquid ratio is not implemented yet!",
        )

    if report.violated:
        assert report.worst_offending_completion != INVALID_COMPLETION
        assert report.violation_extent > 1.0

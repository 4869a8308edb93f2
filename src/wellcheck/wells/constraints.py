"""Control-mode switching from individual and group well constraints."""

import logging
import typing

import numpy as np

from wellcheck.constants import c
from wellcheck.errors import InjectorTypeError
from wellcheck.logs import DeferredLogger
from wellcheck.phases import PhaseUsage
from wellcheck.rates import RateConverter
from wellcheck.types import (
    InjectorControlMode,
    InjectorType,
    Phase,
    ProducerControlMode,
    RateArray,
)
from wellcheck.wells.base import InjectionWell, ProductionWell, Well
from wellcheck.wells.states import WellState, WellStates

if typing.TYPE_CHECKING:
    from wellcheck.groups import GroupHelper, GroupState, GuideRates, Schedule

logger = logging.getLogger(__name__)

__all__ = [
    "injection_phase",
    "calculate_reservoir_rates",
    "check_individual_constraints",
    "check_group_constraints",
    "check_constraints",
]

_INJECTION_PHASES = {
    InjectorType.WATER: Phase.WATER,
    InjectorType.OIL: Phase.OIL,
    InjectorType.GAS: Phase.GAS,
}


def injection_phase(well: InjectionWell) -> Phase:
    """
    Return the phase injected by a well.

    :raises InjectorTypeError: If the declared injector type is not water, oil or gas.
    """
    injector_type = well.controls.injector_type
    try:
        return _INJECTION_PHASES[injector_type]
    except KeyError:
        raise InjectorTypeError(
            f"Expected WATER, OIL or GAS as type for injector {well.name!r}, "
            f"got {injector_type.value!r}"
        ) from None


def _phase_rate(phase_usage: PhaseUsage, rates: RateArray, phase: Phase) -> float:
    """Rate of `phase` in `rates`, or 0.0 when the phase is not active in the model."""
    if not phase_usage.is_active(phase):
        return 0.0
    return phase_usage.rate(rates, phase)


def _total_reservoir_rate(phase_usage: PhaseUsage, reservoir_rates: RateArray) -> float:
    return sum(
        _phase_rate(phase_usage, reservoir_rates, phase)
        for phase in (Phase.WATER, Phase.OIL, Phase.GAS)
    )


def calculate_reservoir_rates(
    well: Well, well_state: WellState, rate_converter: RateConverter
) -> None:
    """
    Recompute the reservoir rates of a well from its surface rates, in place.

    Conversion uses the fixed fluid-in-place region `c.RESERVOIR_RATE_FIP_REGION`.
    """
    voidage_rates = rate_converter.calc_reservoir_voidage_rates(
        c.RESERVOIR_RATE_FIP_REGION, well.pvt_region, well_state.surface_rates.copy()
    )
    well_state.reservoir_rates[:] = voidage_rates


def _check_injector_constraints(
    well: InjectionWell, well_state: WellState, phase_usage: PhaseUsage
) -> bool:
    controls = well.controls
    current = well_state.injection_control

    if controls.has_control(InjectorControlMode.BHP) and current != InjectorControlMode.BHP:
        if controls.bhp_limit < well_state.bhp:
            well_state.injection_control = InjectorControlMode.BHP
            return True

    if controls.has_control(InjectorControlMode.RATE) and current != InjectorControlMode.RATE:
        phase = injection_phase(well)
        current_rate = _phase_rate(phase_usage, well_state.surface_rates, phase)
        if controls.surface_rate < current_rate:
            well_state.injection_control = InjectorControlMode.RATE
            return True

    if controls.has_control(InjectorControlMode.RESV) and current != InjectorControlMode.RESV:
        current_rate = _total_reservoir_rate(phase_usage, well_state.reservoir_rates)
        if controls.reservoir_rate < current_rate:
            well_state.injection_control = InjectorControlMode.RESV
            return True

    if controls.has_control(InjectorControlMode.THP) and current != InjectorControlMode.THP:
        if controls.thp_limit < well_state.thp:
            well_state.injection_control = InjectorControlMode.THP
            return True

    return False


def _history_reservoir_rate(
    well: ProductionWell, phase_usage: PhaseUsage, rate_converter: RateConverter
) -> float:
    """Voidage rate equivalent of the observed surface rates of a history-matched producer."""
    controls = well.controls
    historical_rates = {
        Phase.WATER: controls.water_rate,
        Phase.OIL: controls.oil_rate,
        Phase.GAS: controls.gas_rate,
    }
    surface_rates = phase_usage.zeros()
    for phase, rate in historical_rates.items():
        if phase_usage.is_active(phase):
            surface_rates[phase_usage.position(phase)] = rate

    voidage_rates = rate_converter.calc_reservoir_voidage_rates(
        c.RESERVOIR_RATE_FIP_REGION, well.pvt_region, surface_rates
    )
    return float(np.sum(voidage_rates))


def _check_producer_constraints(
    well: ProductionWell,
    well_state: WellState,
    phase_usage: PhaseUsage,
    rate_converter: RateConverter,
) -> bool:
    controls = well.controls
    current = well_state.production_control
    rates = well_state.surface_rates

    def switch(mode: ProducerControlMode) -> bool:
        well_state.production_control = mode
        return True

    if controls.has_control(ProducerControlMode.BHP) and current != ProducerControlMode.BHP:
        if controls.bhp_limit > well_state.bhp:
            return switch(ProducerControlMode.BHP)

    if controls.has_control(ProducerControlMode.ORAT) and current != ProducerControlMode.ORAT:
        current_rate = -_phase_rate(phase_usage, rates, Phase.OIL)
        if controls.oil_rate < current_rate:
            return switch(ProducerControlMode.ORAT)

    if controls.has_control(ProducerControlMode.WRAT) and current != ProducerControlMode.WRAT:
        current_rate = -_phase_rate(phase_usage, rates, Phase.WATER)
        if controls.water_rate < current_rate:
            return switch(ProducerControlMode.WRAT)

    if controls.has_control(ProducerControlMode.GRAT) and current != ProducerControlMode.GRAT:
        current_rate = -_phase_rate(phase_usage, rates, Phase.GAS)
        if controls.gas_rate < current_rate:
            return switch(ProducerControlMode.GRAT)

    if controls.has_control(ProducerControlMode.LRAT) and current != ProducerControlMode.LRAT:
        current_rate = -_phase_rate(phase_usage, rates, Phase.OIL)
        current_rate -= _phase_rate(phase_usage, rates, Phase.WATER)
        if controls.liquid_rate < current_rate:
            return switch(ProducerControlMode.LRAT)

    if controls.has_control(ProducerControlMode.RESV) and current != ProducerControlMode.RESV:
        current_rate = -_total_reservoir_rate(phase_usage, well_state.reservoir_rates)
        if controls.prediction_mode:
            if controls.resv_rate < current_rate:
                return switch(ProducerControlMode.RESV)
        else:
            # History mode: the limit is the voidage of the observed surface rates.
            resv_rate = _history_reservoir_rate(well, phase_usage, rate_converter)
            if resv_rate < current_rate:
                return switch(ProducerControlMode.RESV)

    if controls.has_control(ProducerControlMode.THP) and current != ProducerControlMode.THP:
        if controls.thp_limit > well_state.thp:
            return switch(ProducerControlMode.THP)

    return False


def check_individual_constraints(
    well: Well,
    well_state: WellState,
    phase_usage: PhaseUsage,
    rate_converter: RateConverter,
) -> bool:
    """
    Check a well's own limits and switch its control mode if one is violated.

    Limits are visited in a fixed order (injectors: BHP, RATE, RESV, THP;
    producers: BHP, ORAT, WRAT, GRAT, LRAT, RESV, THP). The first active
    limit that is violated and is not the current mode becomes the current
    mode in `well_state`.

    :param well: The well definition.
    :param well_state: Operating state of the well. Modified in place.
    :param phase_usage: Active phases of the model.
    :param rate_converter: Converter used for history-mode voidage limits.
    :return: True if the control mode was changed.
    :raises InjectorTypeError: If an injector under a RATE limit declares an unsupported fluid.
    """
    if isinstance(well, InjectionWell):
        changed = _check_injector_constraints(well, well_state, phase_usage)
        if changed:
            logger.debug(
                f"Well {well.name!r} switched to {well_state.injection_control.value!r} control"
            )
        return changed
    if isinstance(well, ProductionWell):
        changed = _check_producer_constraints(
            well, well_state, phase_usage, rate_converter
        )
        if changed:
            logger.debug(
                f"Well {well.name!r} switched to {well_state.production_control.value!r} control"
            )
        return changed
    return False


def _apply_group_control(
    well_state: WellState, group_constraint: typing.Tuple[bool, float]
) -> bool:
    violated, scale = group_constraint
    if violated:
        well_state.scale_surface_rates(scale)
    return violated


def check_group_constraints(
    well: Well,
    well_state: WellState,
    well_states: WellStates,
    group_state: "GroupState",
    schedule: "Schedule",
    phase_usage: PhaseUsage,
    rate_converter: RateConverter,
    group_helper: "GroupHelper",
    step: int,
    deferred_logger: DeferredLogger,
    guide_rates: typing.Optional["GuideRates"] = None,
) -> bool:
    """
    Check a well against its parent group's target and switch it to group control if exceeded.

    Only the first encountered group limit, that of the immediate parent group,
    is checked. Higher-level groups may also constrain the well, but they are
    not inspected here. Wells already under group control are not checked.

    On violation the control mode becomes GRUP and every phase's surface rate
    is scaled by the factor returned by the group helper.

    :return: True if the well was switched to group control.
    :raises InjectorTypeError: If an injector declares an unsupported fluid.
    """
    if isinstance(well, InjectionWell):
        if well_state.injection_control == InjectorControlMode.GRUP:
            return False

        phase = injection_phase(well)
        group = schedule.get_group(well.group_name, step)
        # FIP region is fixed here; the well's own region should be used.
        resv_coefficients = rate_converter.calc_coefficients(
            c.RESERVOIR_RATE_FIP_REGION, well.pvt_region
        )
        group_constraint = group_helper.check_group_constraints_injection(
            well_name=well.name,
            group=group,
            well_states=well_states,
            group_state=group_state,
            step=step,
            guide_rates=guide_rates,
            rates=well_state.surface_rates,
            injection_phase=phase,
            phase_usage=phase_usage,
            efficiency_factor=well.efficiency_factor,
            schedule=schedule,
            resv_coefficients=resv_coefficients,
            deferred_logger=deferred_logger,
        )
        if _apply_group_control(well_state, group_constraint):
            well_state.injection_control = InjectorControlMode.GRUP
            logger.debug(
                f"Injector {well.name!r} switched to group control under {group.name!r}, "
                f"rates scaled by {group_constraint[1]:.4f}"
            )
            return True
        return False

    if isinstance(well, ProductionWell):
        if well_state.production_control == ProducerControlMode.GRUP:
            return False

        group = schedule.get_group(well.group_name, step)
        resv_coefficients = rate_converter.calc_coefficients(
            c.RESERVOIR_RATE_FIP_REGION, well.pvt_region
        )
        group_constraint = group_helper.check_group_constraints_production(
            well_name=well.name,
            group=group,
            well_states=well_states,
            group_state=group_state,
            step=step,
            guide_rates=guide_rates,
            rates=well_state.surface_rates,
            phase_usage=phase_usage,
            efficiency_factor=well.efficiency_factor,
            schedule=schedule,
            resv_coefficients=resv_coefficients,
            deferred_logger=deferred_logger,
        )
        if _apply_group_control(well_state, group_constraint):
            well_state.production_control = ProducerControlMode.GRUP
            logger.debug(
                f"Producer {well.name!r} switched to group control under {group.name!r}, "
                f"rates scaled by {group_constraint[1]:.4f}"
            )
            return True
        return False

    return False


def check_constraints(
    well: Well,
    well_state: WellState,
    well_states: WellStates,
    group_state: "GroupState",
    schedule: "Schedule",
    phase_usage: PhaseUsage,
    rate_converter: RateConverter,
    group_helper: "GroupHelper",
    step: int,
    deferred_logger: DeferredLogger,
    guide_rates: typing.Optional["GuideRates"] = None,
) -> bool:
    """
    Check individual constraints, then group constraints if no individual limit was broken.

    A well whose own limit is tighter than its group's is never reported as
    group-limited: once the individual check switches the mode, the group
    check is skipped for this step.

    :return: True if the control mode was changed by either check.
    """
    if check_individual_constraints(well, well_state, phase_usage, rate_converter):
        return True
    return check_group_constraints(
        well=well,
        well_state=well_state,
        well_states=well_states,
        group_state=group_state,
        schedule=schedule,
        phase_usage=phase_usage,
        rate_converter=rate_converter,
        group_helper=group_helper,
        step=step,
        deferred_logger=deferred_logger,
        guide_rates=guide_rates,
    )

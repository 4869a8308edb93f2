"""Well groups, group targets and the group constraint helper."""

import logging
import typing

import attrs
import numpy as np

from wellcheck.constants import c
from wellcheck.errors import ValidationError
from wellcheck.logs import DeferredLogger
from wellcheck.phases import PhaseUsage
from wellcheck.types import (
    GroupInjectionMode,
    GroupProductionMode,
    InjectorType,
    Phase,
    RateArray,
)
from wellcheck.wells.base import InjectionWell, ProductionWell, Well, Wells
from wellcheck.wells.states import WellStates

logger = logging.getLogger(__name__)

__all__ = [
    "GuideRates",
    "GroupProductionControls",
    "GroupInjectionControls",
    "Group",
    "GroupState",
    "Schedule",
    "GroupHelper",
    "GuideRateGroupHelper",
]

GuideRates = typing.Mapping[str, float]
"""Guide rate of each well, keyed by well name."""

_optional_non_negative = attrs.validators.optional(attrs.validators.ge(0.0))


@attrs.frozen
class GroupProductionControls:
    """Production target of a group. Only the target of the active mode applies."""

    mode: GroupProductionMode = attrs.field(
        default=GroupProductionMode.NONE, converter=GroupProductionMode
    )
    oil_target: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    water_target: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    gas_target: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    liquid_target: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    resv_target: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )

    def target(self) -> typing.Optional[float]:
        """Return the target of the active mode, or None if the mode sets no target."""
        return {
            GroupProductionMode.ORAT: self.oil_target,
            GroupProductionMode.WRAT: self.water_target,
            GroupProductionMode.GRAT: self.gas_target,
            GroupProductionMode.LRAT: self.liquid_target,
            GroupProductionMode.RESV: self.resv_target,
        }.get(self.mode)


@attrs.frozen
class GroupInjectionControls:
    """Injection target of a group for one phase."""

    mode: GroupInjectionMode = attrs.field(
        default=GroupInjectionMode.NONE, converter=GroupInjectionMode
    )
    surface_max_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    resv_max_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )

    def target(self) -> typing.Optional[float]:
        return {
            GroupInjectionMode.RATE: self.surface_max_rate,
            GroupInjectionMode.RESV: self.resv_max_rate,
        }.get(self.mode)


def _injection_controls_by_phase(
    value: typing.Mapping[typing.Union[str, Phase], GroupInjectionControls],
) -> typing.Dict[Phase, GroupInjectionControls]:
    return {Phase(phase): controls for phase, controls in value.items()}


@attrs.frozen
class Group:
    """A group of wells with aggregate production and injection targets."""

    name: str
    parent: typing.Optional[str] = None
    """Name of the parent group. None for the field group."""
    production_controls: typing.Optional[GroupProductionControls] = None
    injection_controls: typing.Mapping[Phase, GroupInjectionControls] = attrs.field(
        factory=dict, converter=_injection_controls_by_phase
    )
    """Injection targets keyed by injected phase."""

    def has_injection_control(self, phase: typing.Union[str, Phase]) -> bool:
        return Phase(phase) in self.injection_controls


@attrs.define
class GroupState:
    """
    Aggregate rates of groups for the current step.

    Reduction rates are the rates of group members not under group control.
    They are subtracted from a group's target before it is shared among the
    wells under group control.
    """

    production_reduction_rates: typing.Dict[str, RateArray] = attrs.field(
        factory=dict
    )
    """Per-phase production rates (positive) to remove from each group's target."""
    injection_reduction_rates: typing.Dict[str, RateArray] = attrs.field(
        factory=dict
    )
    """Per-phase injection rates to remove from each group's targets."""

    def production_reduction(self, group_name: str, phase_usage: PhaseUsage) -> RateArray:
        rates = self.production_reduction_rates.get(group_name)
        return phase_usage.zeros() if rates is None else np.asarray(rates, dtype=float)

    def injection_reduction(self, group_name: str, phase_usage: PhaseUsage) -> RateArray:
        rates = self.injection_reduction_rates.get(group_name)
        return phase_usage.zeros() if rates is None else np.asarray(rates, dtype=float)


@attrs.frozen
class Schedule:
    """Groups and wells of the run, with per-step group overrides."""

    groups: typing.Mapping[str, Group] = attrs.field(factory=dict)
    """Groups keyed by name."""
    wells: Wells = attrs.field(factory=Wells)
    """All wells of the run."""
    step_groups: typing.Mapping[int, typing.Mapping[str, Group]] = attrs.field(
        factory=dict
    )
    """Group definitions that replace `groups` from a given report step onwards."""

    def get_group(self, name: str, step: int) -> Group:
        """
        Return the definition of a group in effect at a report step.

        :param name: Name of the group.
        :param step: Report step index.
        :raises ValidationError: If the group is not defined.
        """
        for start in sorted(self.step_groups, reverse=True):
            if start <= step and name in self.step_groups[start]:
                return self.step_groups[start][name]
        try:
            return self.groups[name]
        except KeyError:
            raise ValidationError(
                f"Group {name!r} is not defined at step {step}."
            ) from None


@typing.runtime_checkable
class GroupHelper(typing.Protocol):
    """
    Protocol for checking a well against its parent group's aggregate target.

    Implementations aggregate group rates, share targets among wells by guide
    rate and apply efficiency factors. They must give every rank the same
    group aggregates. Both methods return (violated, scale_factor), where the
    scale factor brings the well's rates down to its share of the target.
    """

    def check_group_constraints_injection(
        self,
        well_name: str,
        group: Group,
        well_states: WellStates,
        group_state: GroupState,
        step: int,
        guide_rates: typing.Optional[GuideRates],
        rates: RateArray,
        injection_phase: Phase,
        phase_usage: PhaseUsage,
        efficiency_factor: float,
        schedule: Schedule,
        resv_coefficients: RateArray,
        deferred_logger: DeferredLogger,
    ) -> typing.Tuple[bool, float]: ...

    def check_group_constraints_production(
        self,
        well_name: str,
        group: Group,
        well_states: WellStates,
        group_state: GroupState,
        step: int,
        guide_rates: typing.Optional[GuideRates],
        rates: RateArray,
        phase_usage: PhaseUsage,
        efficiency_factor: float,
        schedule: Schedule,
        resv_coefficients: RateArray,
        deferred_logger: DeferredLogger,
    ) -> typing.Tuple[bool, float]: ...


RateQuantity = typing.Callable[[RateArray], float]


def _phase_rate(phase_usage: PhaseUsage, rates: RateArray, phase: Phase) -> float:
    if not phase_usage.is_active(phase):
        return 0.0
    return phase_usage.rate(rates, phase)


def production_quantity(
    mode: GroupProductionMode, phase_usage: PhaseUsage, resv_coefficients: RateArray
) -> RateQuantity:
    """
    Build the function giving the produced amount (positive) of a group
    production mode from a per-phase rate array (negative for production).
    """
    if mode == GroupProductionMode.ORAT:
        return lambda rates: -_phase_rate(phase_usage, rates, Phase.OIL)
    if mode == GroupProductionMode.WRAT:
        return lambda rates: -_phase_rate(phase_usage, rates, Phase.WATER)
    if mode == GroupProductionMode.GRAT:
        return lambda rates: -_phase_rate(phase_usage, rates, Phase.GAS)
    if mode == GroupProductionMode.LRAT:
        return lambda rates: -(
            _phase_rate(phase_usage, rates, Phase.OIL)
            + _phase_rate(phase_usage, rates, Phase.WATER)
        )
    if mode == GroupProductionMode.RESV:
        return lambda rates: -float(np.dot(resv_coefficients, rates))
    raise ValidationError(f"Group production mode {mode.value!r} has no rate quantity.")


def injection_quantity(
    mode: GroupInjectionMode,
    phase: Phase,
    phase_usage: PhaseUsage,
    resv_coefficients: RateArray,
) -> RateQuantity:
    """Build the function giving the injected amount of `phase` for a group injection mode."""
    position = phase_usage.position(phase)
    if mode == GroupInjectionMode.RATE:
        return lambda rates: float(rates[position])
    if mode == GroupInjectionMode.RESV:
        return lambda rates: float(rates[position] * resv_coefficients[position])
    raise ValidationError(f"Group injection mode {mode.value!r} has no rate quantity.")


def _injects(well: Well, phase: Phase) -> bool:
    return (
        isinstance(well, InjectionWell)
        and well.controls.injector_type != InjectorType.MULTI
        and Phase(well.controls.injector_type.value) == phase
    )


@attrs.frozen
class GuideRateGroupHelper:
    """
    Group helper sharing a group's target among its wells by guide rate.

    A well's share of the target is
    ``(target - reduction) * guide_rate / sum(sibling guide rates) / efficiency_factor``.
    Wells without a guide rate use their current rate of the controlled
    quantity as guide rate. Only the immediate parent group is considered.
    """

    def _fraction(
        self,
        well_name: str,
        siblings: typing.Sequence[Well],
        guide_rates: typing.Optional[GuideRates],
        well_states: WellStates,
        quantity: RateQuantity,
    ) -> float:
        def guide_rate(name: str) -> float:
            if guide_rates is not None and name in guide_rates:
                return max(float(guide_rates[name]), 0.0)
            state = well_states.get(name)
            if state is None:
                return 0.0
            return max(quantity(state.surface_rates), 0.0)

        total = sum(guide_rate(well.name) for well in siblings)
        if total <= c.GROUP_RATE_EPSILON:
            return 1.0
        return guide_rate(well_name) / total

    def _check(
        self,
        well_name: str,
        group: Group,
        target: float,
        reduction: float,
        fraction: float,
        current_rate: float,
        efficiency_factor: float,
    ) -> typing.Tuple[bool, float]:
        well_target = max(target - reduction, 0.0) * fraction / efficiency_factor
        logger.debug(
            f"Well {well_name!r} under group {group.name!r}: rate {current_rate:.4f}, "
            f"share of group target {well_target:.4f} (fraction {fraction:.4f})"
        )
        if current_rate <= c.GROUP_RATE_EPSILON or current_rate <= well_target:
            return False, 1.0
        return True, well_target / current_rate

    def check_group_constraints_injection(
        self,
        well_name: str,
        group: Group,
        well_states: WellStates,
        group_state: GroupState,
        step: int,
        guide_rates: typing.Optional[GuideRates],
        rates: RateArray,
        injection_phase: Phase,
        phase_usage: PhaseUsage,
        efficiency_factor: float,
        schedule: Schedule,
        resv_coefficients: RateArray,
        deferred_logger: DeferredLogger,
    ) -> typing.Tuple[bool, float]:
        controls = group.injection_controls.get(injection_phase)
        if controls is None:
            return False, 1.0
        target = controls.target()
        if target is None:
            # NONE and FLD leave the check to higher-level groups, which are not inspected.
            return False, 1.0

        quantity = injection_quantity(
            controls.mode, injection_phase, phase_usage, resv_coefficients
        )
        reduction = quantity(group_state.injection_reduction(group.name, phase_usage))
        siblings = [
            well
            for well in schedule.wells.in_group(group.name)
            if _injects(well, injection_phase)
        ]
        fraction = self._fraction(well_name, siblings, guide_rates, well_states, quantity)
        return self._check(
            well_name=well_name,
            group=group,
            target=target,
            reduction=reduction,
            fraction=fraction,
            current_rate=quantity(rates),
            efficiency_factor=efficiency_factor,
        )

    def check_group_constraints_production(
        self,
        well_name: str,
        group: Group,
        well_states: WellStates,
        group_state: GroupState,
        step: int,
        guide_rates: typing.Optional[GuideRates],
        rates: RateArray,
        phase_usage: PhaseUsage,
        efficiency_factor: float,
        schedule: Schedule,
        resv_coefficients: RateArray,
        deferred_logger: DeferredLogger,
    ) -> typing.Tuple[bool, float]:
        controls = group.production_controls
        if controls is None:
            return False, 1.0
        target = controls.target()
        if target is None:
            return False, 1.0

        quantity = production_quantity(controls.mode, phase_usage, resv_coefficients)
        reduction = quantity(-group_state.production_reduction(group.name, phase_usage))
        siblings = [
            well
            for well in schedule.wells.in_group(group.name)
            if isinstance(well, ProductionWell)
        ]
        fraction = self._fraction(well_name, siblings, guide_rates, well_states, quantity)
        return self._check(
            well_name=well_name,
            group=group,
            target=target,
            reduction=reduction,
            fraction=fraction,
            current_rate=quantity(rates),
            efficiency_factor=efficiency_factor,
        )

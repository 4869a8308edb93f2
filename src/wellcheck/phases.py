"""Mapping from logical fluid phases to active-phase array positions."""

import typing

import attrs
import numpy as np
from typing_extensions import Self

from wellcheck.errors import PhaseError, ValidationError
from wellcheck.types import Phase, RateArray

__all__ = ["PhaseUsage"]

_CANONICAL_ORDER = (Phase.WATER, Phase.OIL, Phase.GAS)


def _build_positions(
    active: typing.Tuple[Phase, ...],
) -> typing.Dict[Phase, int]:
    return {phase: position for position, phase in enumerate(active)}


@attrs.frozen(slots=True)
class PhaseUsage:
    """
    Active phases of the model and their positions in every rate array.

    Resolved once when the model is set up. Rate arrays handled by the evaluators
    only have entries for active phases, so inactive phases must never be indexed.
    """

    active_phases: typing.Tuple[Phase, ...] = attrs.field(
        converter=lambda phases: tuple(Phase(p) for p in phases)
    )
    """Active phases, in array order."""
    positions: typing.Dict[Phase, int] = attrs.field(init=False, eq=False, repr=False)
    """Array position of each active phase."""

    @active_phases.validator
    def _check_active_phases(self, attribute, value) -> None:
        if not value:
            raise ValidationError("At least one phase must be active.")
        if len(set(value)) != len(value):
            raise ValidationError(f"Duplicate phases in phase usage: {value}")

    def __attrs_post_init__(self) -> None:
        object.__setattr__(self, "positions", _build_positions(self.active_phases))

    @classmethod
    def from_phases(cls, *phases: typing.Union[str, Phase]) -> Self:
        """
        Build a phase usage from a set of active phases.

        Phases are placed in canonical order (water, oil, gas) regardless of
        the order they are given in.

        :param phases: Active phases, as `Phase` members or their string values.
        :return: A new `PhaseUsage`.
        """
        requested = {Phase(phase) for phase in phases}
        return cls(tuple(p for p in _CANONICAL_ORDER if p in requested))

    @classmethod
    def black_oil(cls) -> Self:
        """Phase usage with water, oil and gas all active."""
        return cls(_CANONICAL_ORDER)

    @property
    def num_phases(self) -> int:
        return len(self.active_phases)

    def is_active(self, phase: typing.Union[str, Phase]) -> bool:
        return Phase(phase) in self.positions

    def position(self, phase: typing.Union[str, Phase]) -> int:
        """
        Return the array position of an active phase.

        :raises PhaseError: If the phase is not active.
        """
        phase = Phase(phase)
        try:
            return self.positions[phase]
        except KeyError:
            raise PhaseError(
                f"Phase {phase.value!r} is not active in this model."
            ) from None

    def rate(self, rates: RateArray, phase: typing.Union[str, Phase]) -> float:
        """Return the entry of a rate array for an active phase."""
        return float(rates[self.position(phase)])

    def zeros(self) -> RateArray:
        """Return a zero-filled rate array sized for the active phases."""
        return np.zeros(self.num_phases, dtype=float)

    def to_array(
        self, rates: typing.Mapping[typing.Union[str, Phase], float]
    ) -> RateArray:
        """
        Build a rate array from a phase-to-rate mapping.

        Phases missing from the mapping get a zero rate. Rates for inactive
        phases are rejected.
        """
        array = self.zeros()
        for phase, rate in rates.items():
            array[self.position(phase)] = rate
        return array

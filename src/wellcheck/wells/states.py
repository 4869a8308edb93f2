"""Operating state of wells during a time step."""

import typing

import attrs
import numpy as np
from typing_extensions import Self

from wellcheck.errors import ValidationError
from wellcheck.phases import PhaseUsage
from wellcheck.types import (
    InjectorControlMode,
    ProducerControlMode,
    RateArray,
    WellStatus,
)

__all__ = ["WellState", "WellStates"]


def _as_rate_array(value: typing.Any) -> RateArray:
    return np.array(value, dtype=float)


def _as_perforation_array(value: typing.Any) -> np.typing.NDArray[np.floating]:
    array = np.array(value, dtype=float)
    if array.ndim == 1 and array.size == 0:
        return array.reshape(0, 0)
    return array


@attrs.define(eq=False)
class WellState:
    """
    Operating state of a single well.

    Injection rates are positive and production rates negative. Evaluators
    mutate the state in place; the surrounding simulation loop owns it.
    """

    name: str
    """Name of the well this state belongs to."""
    surface_rates: RateArray = attrs.field(converter=_as_rate_array)
    """Per-phase surface rates."""
    reservoir_rates: RateArray = attrs.field(converter=_as_rate_array)
    """Per-phase reservoir (voidage) rates."""
    bhp: float = 0.0
    """Bottom-hole pressure (psi)."""
    thp: float = 0.0
    """Tubing-head pressure (psi)."""
    potentials: RateArray = attrs.field(
        default=None, converter=attrs.converters.optional(_as_rate_array)
    )
    """Per-phase well potentials. Defaults to zeros."""
    perforation_rates: np.typing.NDArray[np.floating] = attrs.field(
        factory=lambda: np.zeros((0, 0)), converter=_as_perforation_array
    )
    """Per-connection per-phase surface rates, shape (connections, phases)."""
    injection_control: InjectorControlMode = attrs.field(
        default=InjectorControlMode.NONE, converter=InjectorControlMode
    )
    production_control: ProducerControlMode = attrs.field(
        default=ProducerControlMode.NONE, converter=ProducerControlMode
    )
    status: WellStatus = attrs.field(default=WellStatus.OPEN, converter=WellStatus)

    def __attrs_post_init__(self) -> None:
        if self.surface_rates.ndim != 1:
            raise ValidationError("Surface rates must be a 1D array.")
        num_phases = self.surface_rates.shape[0]
        if self.reservoir_rates.shape != self.surface_rates.shape:
            raise ValidationError(
                f"Reservoir rates of well {self.name!r} have shape {self.reservoir_rates.shape}, "
                f"expected {self.surface_rates.shape}."
            )
        if self.potentials is None:
            self.potentials = np.zeros(num_phases)
        elif self.potentials.shape != self.surface_rates.shape:
            raise ValidationError(
                f"Potentials of well {self.name!r} have shape {self.potentials.shape}, "
                f"expected {self.surface_rates.shape}."
            )
        if self.perforation_rates.size == 0:
            self.perforation_rates = np.zeros((0, num_phases))
        elif (
            self.perforation_rates.ndim != 2
            or self.perforation_rates.shape[1] != num_phases
        ):
            raise ValidationError(
                f"Perforation rates of well {self.name!r} must have shape (connections, {num_phases}), "
                f"got {self.perforation_rates.shape}."
            )

    @classmethod
    def zeros(
        cls, name: str, phase_usage: PhaseUsage, num_connections: int = 0, **kwargs
    ) -> Self:
        """
        Create a state with all rates set to zero.

        :param name: Name of the well.
        :param phase_usage: Active phases of the model.
        :param num_connections: Number of connections of the well.
        :param kwargs: Additional fields of the state.
        """
        num_phases = phase_usage.num_phases
        return cls(
            name=name,
            surface_rates=np.zeros(num_phases),
            reservoir_rates=np.zeros(num_phases),
            potentials=np.zeros(num_phases),
            perforation_rates=np.zeros((num_connections, num_phases)),
            **kwargs,
        )

    @property
    def num_phases(self) -> int:
        return self.surface_rates.shape[0]

    @property
    def num_connections(self) -> int:
        return self.perforation_rates.shape[0]

    @property
    def is_stopped(self) -> bool:
        return self.status == WellStatus.STOP

    def scale_surface_rates(self, factor: float) -> None:
        """Multiply every phase's surface rate by `factor`, in place."""
        self.surface_rates[:] = self.surface_rates * factor


@attrs.define
class WellStates:
    """Operating states of all wells handled on this rank, keyed by well name."""

    states: typing.Dict[str, WellState] = attrs.field(factory=dict)

    @classmethod
    def from_states(cls, *states: WellState) -> Self:
        return cls({state.name: state for state in states})

    def add(self, state: WellState) -> None:
        if state.name in self.states:
            raise ValidationError(f"A state for well {state.name!r} already exists.")
        self.states[state.name] = state

    def get(self, name: str) -> typing.Optional[WellState]:
        return self.states.get(name)

    def __getitem__(self, name: str) -> WellState:
        return self.states[name]

    def __contains__(self, name: object) -> bool:
        return name in self.states

    def __iter__(self) -> typing.Iterator[WellState]:
        return iter(self.states.values())

    def __len__(self) -> int:
        return len(self.states)

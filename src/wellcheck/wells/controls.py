"""Operating limits (constraint sets) of injection and production wells."""

import typing

import attrs

from wellcheck.errors import ValidationError
from wellcheck.types import InjectorControlMode, InjectorType, ProducerControlMode

__all__ = ["InjectionControls", "ProductionControls"]


def _non_negative(instance, attribute, value) -> None:
    if value < 0.0:
        raise ValidationError(f"'{attribute.name}' must be non-negative, got {value}")


def _injector_modes(
    modes: typing.Iterable[typing.Union[str, InjectorControlMode]],
) -> typing.FrozenSet[InjectorControlMode]:
    return frozenset(InjectorControlMode(mode) for mode in modes)


def _producer_modes(
    modes: typing.Iterable[typing.Union[str, ProducerControlMode]],
) -> typing.FrozenSet[ProducerControlMode]:
    return frozenset(ProducerControlMode(mode) for mode in modes)


@attrs.frozen
class InjectionControls:
    """
    Limits of an injection well for the current schedule step.

    Only limits whose mode is listed in `modes` are active.
    """

    injector_type: InjectorType = attrs.field(converter=InjectorType)
    """Fluid injected by the well."""
    modes: typing.FrozenSet[InjectorControlMode] = attrs.field(
        factory=frozenset, converter=_injector_modes
    )
    """Control modes with an active limit."""
    bhp_limit: float = attrs.field(default=0.0, validator=_non_negative)
    """Maximum bottom-hole pressure (psi)."""
    thp_limit: float = attrs.field(default=0.0, validator=_non_negative)
    """Maximum tubing-head pressure (psi)."""
    surface_rate: float = attrs.field(default=0.0, validator=_non_negative)
    """Maximum surface injection rate of the injected phase."""
    reservoir_rate: float = attrs.field(default=0.0, validator=_non_negative)
    """Maximum reservoir voidage injection rate."""
    prediction_mode: bool = True
    """Whether the well runs in prediction mode (as opposed to history matching)."""

    def has_control(self, mode: typing.Union[str, InjectorControlMode]) -> bool:
        return InjectorControlMode(mode) in self.modes


@attrs.frozen
class ProductionControls:
    """
    Limits of a production well for the current schedule step.

    Rates are positive magnitudes. In history mode the rate fields hold the
    observed (historical) surface rates.
    """

    modes: typing.FrozenSet[ProducerControlMode] = attrs.field(
        factory=frozenset, converter=_producer_modes
    )
    """Control modes with an active limit."""
    bhp_limit: float = attrs.field(default=0.0, validator=_non_negative)
    """Minimum bottom-hole pressure (psi)."""
    thp_limit: float = attrs.field(default=0.0, validator=_non_negative)
    """Minimum tubing-head pressure (psi)."""
    oil_rate: float = attrs.field(default=0.0, validator=_non_negative)
    water_rate: float = attrs.field(default=0.0, validator=_non_negative)
    gas_rate: float = attrs.field(default=0.0, validator=_non_negative)
    liquid_rate: float = attrs.field(default=0.0, validator=_non_negative)
    resv_rate: float = attrs.field(default=0.0, validator=_non_negative)
    """Maximum reservoir voidage production rate."""
    prediction_mode: bool = True
    """Whether the well runs in prediction mode (as opposed to history matching)."""

    def has_control(self, mode: typing.Union[str, ProducerControlMode]) -> bool:
        return ProducerControlMode(mode) in self.modes

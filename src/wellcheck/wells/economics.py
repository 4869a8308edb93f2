"""Economic production limits of a well."""

import typing

import attrs

from wellcheck.types import EconomicWorkover, QuantityLimit

__all__ = ["EconomicLimits"]


def _is_on(value: typing.Optional[float]) -> bool:
    return value is not None and value > 0.0


_optional_non_negative = attrs.validators.optional(attrs.validators.ge(0.0))


@attrs.frozen
class EconomicLimits:
    """
    Economic limits of a production well.

    A limit is considered on when it is set and strictly positive.
    """

    min_oil_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    """Minimum oil production rate."""
    min_gas_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    """Minimum gas production rate."""
    min_liquid_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    """Minimum liquid (oil + water) production rate."""
    min_reservoir_fluid_rate: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    """Minimum reservoir fluid production rate. Not supported, reported when set."""
    max_water_cut: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    max_gas_oil_ratio: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    max_water_gas_ratio: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    max_gas_liquid_ratio: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_non_negative
    )
    """Maximum gas-liquid ratio. Not supported, reported when set."""
    workover: EconomicWorkover = attrs.field(
        default=EconomicWorkover.NONE, converter=EconomicWorkover
    )
    """Action taken when a ratio limit is violated."""
    quantity_limit: QuantityLimit = attrs.field(
        default=QuantityLimit.RATE, converter=QuantityLimit
    )
    """Whether minimum rate limits apply to rates or potentials."""
    end_run: bool = False
    """Whether the run should end once the well is closed. Not supported."""
    followon_well: typing.Optional[str] = None
    """Well to open once this one is closed. Not supported."""

    @property
    def on_min_oil_rate(self) -> bool:
        return _is_on(self.min_oil_rate)

    @property
    def on_min_gas_rate(self) -> bool:
        return _is_on(self.min_gas_rate)

    @property
    def on_min_liquid_rate(self) -> bool:
        return _is_on(self.min_liquid_rate)

    @property
    def on_min_reservoir_fluid_rate(self) -> bool:
        return _is_on(self.min_reservoir_fluid_rate)

    @property
    def on_max_water_cut(self) -> bool:
        return _is_on(self.max_water_cut)

    @property
    def on_max_gas_oil_ratio(self) -> bool:
        return _is_on(self.max_gas_oil_ratio)

    @property
    def on_max_water_gas_ratio(self) -> bool:
        return _is_on(self.max_water_gas_ratio)

    @property
    def on_max_gas_liquid_ratio(self) -> bool:
        return _is_on(self.max_gas_liquid_ratio)

    @property
    def valid_followon_well(self) -> bool:
        return bool(self.followon_well)

    @property
    def on_any_rate_limit(self) -> bool:
        return (
            self.on_min_oil_rate
            or self.on_min_gas_rate
            or self.on_min_liquid_rate
            or self.on_min_reservoir_fluid_rate
        )

    @property
    def on_any_ratio_limit(self) -> bool:
        return (
            self.on_max_water_cut
            or self.on_max_gas_oil_ratio
            or self.on_max_water_gas_ratio
            or self.on_max_gas_liquid_ratio
        )

    @property
    def on_any_effective_limit(self) -> bool:
        """Whether any limit that can close the well or a completion is on."""
        return self.on_any_rate_limit or self.on_any_ratio_limit

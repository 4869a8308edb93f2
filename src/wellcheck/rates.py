"""Surface and reservoir (voidage) rate conversion."""

import logging
import typing

import attrs
import numpy as np

from wellcheck.errors import ValidationError
from wellcheck.phases import PhaseUsage
from wellcheck.types import Phase, RateArray

__all__ = [
    "RateConverter",
    "RegionProperties",
    "FormationVolumeRateConverter",
]

logger = logging.getLogger(__name__)


@typing.runtime_checkable
class RateConverter(typing.Protocol):
    """
    Protocol for converting surface rates to reservoir voidage rates.

    Implementations are pure functions of the current PVT and region state and
    must not modify well state.
    """

    def calc_reservoir_voidage_rates(
        self, fip_region: int, pvt_region: int, surface_rates: RateArray
    ) -> RateArray:
        """
        Convert surface rates to reservoir voidage rates.

        :param fip_region: Fluid-in-place region whose averaged conditions are used.
        :param pvt_region: PVT region of the fluid tables.
        :param surface_rates: Per-phase surface rates.
        :return: Per-phase reservoir rates.
        """
        ...

    def calc_coefficients(self, fip_region: int, pvt_region: int) -> RateArray:
        """
        Compute per-phase coefficients such that the total voidage rate is
        the dot product of the coefficients with the surface rates.
        """
        ...


@attrs.frozen(slots=True)
class RegionProperties:
    """Black-oil properties at the averaged conditions of a region."""

    water_formation_volume_factor: float = attrs.field(
        default=1.0, validator=attrs.validators.gt(0)
    )
    """Water formation volume factor (bbl/STB)."""
    oil_formation_volume_factor: float = attrs.field(
        default=1.0, validator=attrs.validators.gt(0)
    )
    """Oil formation volume factor (bbl/STB)."""
    gas_formation_volume_factor: float = attrs.field(
        default=1.0, validator=attrs.validators.gt(0)
    )
    """Gas formation volume factor (bbl/SCF)."""
    solution_gas_oil_ratio: float = attrs.field(
        default=0.0, validator=attrs.validators.ge(0)
    )
    """Dissolved gas-oil ratio, Rs (SCF/STB)."""
    vaporized_oil_gas_ratio: float = attrs.field(
        default=0.0, validator=attrs.validators.ge(0)
    )
    """Vaporized oil-gas ratio, Rv (STB/SCF)."""

    def __attrs_post_init__(self) -> None:
        if self.solution_gas_oil_ratio * self.vaporized_oil_gas_ratio >= 1.0:
            raise ValidationError(
                "The product of the dissolved gas-oil ratio and the vaporized "
                "oil-gas ratio must be less than 1."
            )


@attrs.frozen
class FormationVolumeRateConverter:
    """
    Rate converter using formation volume factors and dissolution ratios per region.

    Properties are looked up by (fluid-in-place region, PVT region), falling
    back to `default` when a pair is not listed.
    """

    phase_usage: PhaseUsage
    """Active phases of the model."""
    properties: typing.Mapping[typing.Tuple[int, int], RegionProperties] = attrs.field(
        factory=dict
    )
    """Region properties keyed by (fip_region, pvt_region)."""
    default: typing.Optional[RegionProperties] = None
    """Properties used for regions without an entry."""

    def get_properties(self, fip_region: int, pvt_region: int) -> RegionProperties:
        properties = self.properties.get((fip_region, pvt_region), self.default)
        if properties is None:
            raise ValidationError(
                f"No region properties for FIP region {fip_region} and PVT region {pvt_region}."
            )
        return properties

    def _dissolution_terms(
        self, properties: RegionProperties
    ) -> typing.Tuple[float, float, float]:
        pu = self.phase_usage
        both = pu.is_active(Phase.OIL) and pu.is_active(Phase.GAS)
        rs = properties.solution_gas_oil_ratio if both else 0.0
        rv = properties.vaporized_oil_gas_ratio if both else 0.0
        return rs, rv, 1.0 - rs * rv

    def calc_reservoir_voidage_rates(
        self, fip_region: int, pvt_region: int, surface_rates: RateArray
    ) -> RateArray:
        pu = self.phase_usage
        surface_rates = np.asarray(surface_rates, dtype=float)
        if surface_rates.shape != (pu.num_phases,):
            raise ValidationError(
                f"Expected {pu.num_phases} surface rates, got shape {surface_rates.shape}."
            )

        properties = self.get_properties(fip_region, pvt_region)
        rs, rv, determinant = self._dissolution_terms(properties)
        oil = pu.rate(surface_rates, Phase.OIL) if pu.is_active(Phase.OIL) else 0.0
        gas = pu.rate(surface_rates, Phase.GAS) if pu.is_active(Phase.GAS) else 0.0

        voidage_rates = pu.zeros()
        if pu.is_active(Phase.WATER):
            position = pu.position(Phase.WATER)
            voidage_rates[position] = (
                surface_rates[position] * properties.water_formation_volume_factor
            )
        if pu.is_active(Phase.OIL):
            voidage_rates[pu.position(Phase.OIL)] = (
                (oil - rv * gas) * properties.oil_formation_volume_factor / determinant
            )
        if pu.is_active(Phase.GAS):
            voidage_rates[pu.position(Phase.GAS)] = (
                (gas - rs * oil) * properties.gas_formation_volume_factor / determinant
            )

        logger.debug(
            f"Voidage rates {voidage_rates} from surface rates {surface_rates} "
            f"(FIP region {fip_region}, PVT region {pvt_region})"
        )
        return voidage_rates

    def calc_coefficients(self, fip_region: int, pvt_region: int) -> RateArray:
        pu = self.phase_usage
        properties = self.get_properties(fip_region, pvt_region)
        rs, rv, determinant = self._dissolution_terms(properties)
        bo = properties.oil_formation_volume_factor
        bg = properties.gas_formation_volume_factor

        coefficients = pu.zeros()
        if pu.is_active(Phase.WATER):
            coefficients[pu.position(Phase.WATER)] = (
                properties.water_formation_volume_factor
            )
        if pu.is_active(Phase.OIL):
            coefficients[pu.position(Phase.OIL)] = (bo - rs * bg) / determinant
        if pu.is_active(Phase.GAS):
            coefficients[pu.position(Phase.GAS)] = (bg - rv * bo) / determinant
        return coefficients

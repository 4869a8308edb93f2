"""Well definitions: connections, completions and well collections."""

from abc import ABC, abstractmethod
import itertools
import logging
import typing

import attrs

from wellcheck.errors import ValidationError
from wellcheck.types import CompletionID, ConnectionState
from wellcheck.wells.controls import InjectionControls, ProductionControls
from wellcheck.wells.economics import EconomicLimits

logger = logging.getLogger(__name__)

__all__ = [
    "Connection",
    "Well",
    "InjectionWell",
    "ProductionWell",
    "Wells",
]


def _optional_positive(instance, attribute, value) -> None:
    if value is not None and value <= 0:
        raise ValidationError(
            f"'{attribute.name}' must be a positive completion number, got {value}"
        )


@attrs.frozen(slots=True)
class Connection:
    """A connection (perforation) between a well and a reservoir cell."""

    index: int = attrs.field(validator=attrs.validators.ge(0))
    """Position of the connection in the well's perforation arrays (0-based)."""
    completion: typing.Optional[int] = attrs.field(
        default=None, validator=_optional_positive
    )
    """Completion number the connection belongs to, if any."""
    state: ConnectionState = attrs.field(
        default=ConnectionState.OPEN, converter=ConnectionState
    )
    """Whether the connection is open or shut in the schedule."""

    @property
    def number(self) -> int:
        """1-based connection number."""
        return self.index + 1

    @property
    def completion_id(self) -> CompletionID:
        """
        Completion this connection is shut in with.

        Connections without a completion number form their own completion,
        identified by their negated connection number.
        """
        if self.completion is not None:
            return self.completion
        return -self.number

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN


def _check_connections(instance, attribute, value) -> None:
    indices = [connection.index for connection in value]
    if len(set(indices)) != len(indices):
        raise ValidationError(f"Duplicate connection indices in well: {indices}")


@attrs.define(hash=True)
class Well(ABC):
    """A well as seen by the constraint and economic evaluators."""

    name: str
    """Name of the well."""
    group_name: str
    """Name of the immediate parent group."""
    connections: typing.Sequence[Connection] = attrs.field(
        factory=tuple, converter=tuple, validator=_check_connections
    )
    """Connections of the well, in perforation order."""
    efficiency_factor: float = attrs.field(
        default=1.0,
        validator=attrs.validators.and_(attrs.validators.gt(0), attrs.validators.le(1)),
    )
    """Fraction of time the well is operating, used when aggregating to groups."""
    automatic_shut_in: bool = True
    """Whether closed wells are shut (True) or stopped (False)."""
    pvt_region: int = attrs.field(default=0, validator=attrs.validators.ge(0))
    """PVT region of the well's fluids."""

    @property
    @abstractmethod
    def under_prediction_mode(self) -> bool:
        """Whether the well runs on its prediction-mode (not history-matching) controls."""
        ...

    @property
    def num_connections(self) -> int:
        return len(self.connections)

    @property
    def completions(self) -> typing.Dict[CompletionID, typing.List[int]]:
        """
        Connection indices grouped by completion.

        Completions appear in the order of their first connection.
        """
        completions: typing.Dict[CompletionID, typing.List[int]] = {}
        for connection in self.connections:
            completions.setdefault(connection.completion_id, []).append(
                connection.index
            )
        return completions

    def open_connections(self) -> typing.Iterator[Connection]:
        return (connection for connection in self.connections if connection.is_open)


@typing.final
@attrs.define(hash=True)
class InjectionWell(Well):
    """A well injecting a single declared fluid into the reservoir."""

    controls: InjectionControls = attrs.field(kw_only=True)
    """Injection limits for the current schedule step."""

    @property
    def under_prediction_mode(self) -> bool:
        return self.controls.prediction_mode


@typing.final
@attrs.define(hash=True)
class ProductionWell(Well):
    """A well producing fluids from the reservoir."""

    controls: ProductionControls = attrs.field(kw_only=True)
    """Production limits for the current schedule step."""
    economic_limits: EconomicLimits = attrs.field(factory=EconomicLimits, kw_only=True)
    """Economic limits checked once per step."""

    @property
    def under_prediction_mode(self) -> bool:
        return self.controls.prediction_mode


@typing.final
@attrs.frozen
class Wells:
    """A collection of injection and production wells."""

    injection_wells: typing.Sequence[InjectionWell] = attrs.field(factory=list)
    production_wells: typing.Sequence[ProductionWell] = attrs.field(factory=list)

    def __attrs_post_init__(self) -> None:
        names = [well.name for well in self]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValidationError(f"Duplicate well names: {sorted(duplicates)}")

    def __iter__(self) -> typing.Iterator[Well]:
        return itertools.chain(self.injection_wells, self.production_wells)

    def __len__(self) -> int:
        return len(self.injection_wells) + len(self.production_wells)

    def get_by_name(self, name: str) -> typing.Optional[Well]:
        return next((well for well in self if well.name == name), None)

    def __getitem__(self, name: str) -> Well:
        well = self.get_by_name(name)
        if well is None:
            raise KeyError(name)
        return well

    def in_group(self, group_name: str) -> typing.List[Well]:
        """Return the wells whose immediate parent is `group_name`."""
        return [well for well in self if well.group_name == group_name]

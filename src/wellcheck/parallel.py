"""Cross-rank reduction used for per-completion connection rates."""

import typing

import attrs
import numpy as np

from wellcheck.types import RateArray

__all__ = ["Communicator", "SerialCommunicator", "ParallelWellInfo"]


@typing.runtime_checkable
class Communicator(typing.Protocol):
    """
    Protocol for a collective in-place sum across the ranks owning a well's connections.

    Every rank owning any connection of the well must make the same sequence
    of calls, or the collective blocks.
    """

    def sum(self, buffer: RateArray) -> None:
        """
        Replace `buffer` in place by its element-wise sum over all participating ranks.

        :param buffer: 1D array of per-phase values on this rank.
        """
        ...


@attrs.frozen(slots=True)
class SerialCommunicator:
    """Communicator for a single rank. Reductions leave the buffer unchanged."""

    def sum(self, buffer: RateArray) -> None:
        return None


@attrs.frozen
class ParallelWellInfo:
    """Connection ownership of a well on this rank and its communicator."""

    communicator: Communicator = attrs.field(factory=SerialCommunicator)
    """Communicator spanning the ranks that own connections of the well."""
    owned_connections: typing.Optional[typing.FrozenSet[int]] = attrs.field(
        default=None,
        converter=attrs.converters.optional(frozenset),
    )
    """
    Indices of the connections owned by this rank.

    None means every connection of the well is owned locally.
    """

    def is_owner(self, connection_index: int) -> bool:
        if self.owned_connections is None:
            return True
        return connection_index in self.owned_connections

    def sum_rates(self, rates: RateArray) -> RateArray:
        """
        Sum a per-phase rate vector over all ranks owning connections of the well.

        :param rates: Rates accumulated on this rank. Reduced in place.
        :return: The reduced rates (the same array).
        """
        rates = np.ascontiguousarray(rates, dtype=float)
        self.communicator.sum(rates)
        return rates

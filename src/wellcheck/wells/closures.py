"""Run-durable record of wells and completions closed during the simulation."""

import logging
import typing

import attrs

from wellcheck.types import ClosureReason, CompletionID

logger = logging.getLogger(__name__)

__all__ = ["ClosedWell", "ClosedCompletion", "WellTestState"]


@attrs.define
class ClosedWell:
    """A well closed for a given reason."""

    name: str
    reason: ClosureReason
    last_test: float
    """Simulation time (seconds) at which the well was closed."""


@attrs.frozen
class ClosedCompletion:
    """A completion (or single connection) closed in a well."""

    name: str
    completion: CompletionID
    last_test: float
    """Simulation time (seconds) at which the completion was closed."""


@attrs.define
class WellTestState:
    """
    Wells and completions closed during the run, with reasons and times.

    Closures are only ever added by the evaluators. Reopening is decided by an
    external policy through `open_well` and `drop_completion`. Adding a closure
    that is already recorded leaves the existing record untouched.
    """

    _wells: typing.Dict[typing.Tuple[str, ClosureReason], ClosedWell] = attrs.field(
        factory=dict, alias="wells"
    )
    _completions: typing.Dict[
        typing.Tuple[str, CompletionID], ClosedCompletion
    ] = attrs.field(factory=dict, alias="completions")

    def close_well(
        self,
        name: str,
        reason: typing.Union[str, ClosureReason],
        simulation_time: float,
    ) -> bool:
        """
        Record that a well is closed.

        :param name: Name of the well.
        :param reason: Why the well is closed.
        :param simulation_time: Current simulation time (seconds).
        :return: True if a new closure was recorded, False if it already existed.
        """
        reason = ClosureReason(reason)
        key = (name, reason)
        if key in self._wells:
            logger.debug(
                f"Well {name!r} already closed for reason {reason.value!r}; not recording again"
            )
            return False
        self._wells[key] = ClosedWell(
            name=name, reason=reason, last_test=simulation_time
        )
        logger.debug(
            f"Closed well {name!r} for reason {reason.value!r} at t={simulation_time}"
        )
        return True

    def add_closed_completion(
        self, name: str, completion: CompletionID, simulation_time: float
    ) -> bool:
        """
        Record that a completion of a well is closed.

        :param name: Name of the well.
        :param completion: Completion id (negative for a single connection).
        :param simulation_time: Current simulation time (seconds).
        :return: True if a new closure was recorded, False if it already existed.
        """
        key = (name, completion)
        if key in self._completions:
            return False
        self._completions[key] = ClosedCompletion(
            name=name, completion=completion, last_test=simulation_time
        )
        logger.debug(
            f"Closed completion {completion} of well {name!r} at t={simulation_time}"
        )
        return True

    def has_well_closed(
        self,
        name: str,
        reason: typing.Optional[typing.Union[str, ClosureReason]] = None,
    ) -> bool:
        """Check whether a well is closed, optionally for a specific reason."""
        if reason is not None:
            return (name, ClosureReason(reason)) in self._wells
        return any(key[0] == name for key in self._wells)

    def has_completion(self, name: str, completion: CompletionID) -> bool:
        return (name, completion) in self._completions

    def closed_wells(
        self, name: typing.Optional[str] = None
    ) -> typing.List[ClosedWell]:
        return [
            closed for closed in self._wells.values() if name is None or closed.name == name
        ]

    def closed_completions(self, name: str) -> typing.List[CompletionID]:
        """Return the ids of the closed completions of a well, in closure order."""
        return [
            closed.completion
            for closed in self._completions.values()
            if closed.name == name
        ]

    @property
    def num_closed_wells(self) -> int:
        return len(self._wells)

    @property
    def num_closed_completions(self) -> int:
        return len(self._completions)

    def open_well(
        self,
        name: str,
        reason: typing.Optional[typing.Union[str, ClosureReason]] = None,
    ) -> None:
        """Forget the closures of a well, optionally only those for `reason`."""
        if reason is not None:
            self._wells.pop((name, ClosureReason(reason)), None)
            return
        for key in [key for key in self._wells if key[0] == name]:
            del self._wells[key]

    def drop_completion(self, name: str, completion: CompletionID) -> None:
        self._completions.pop((name, completion), None)

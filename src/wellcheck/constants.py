"""Evaluation constants and sentinels"""

from contextvars import ContextVar
import typing

import attrs


__all__ = ["Constants", "ConstantsContext", "c", "INVALID_COMPLETION"]


INVALID_COMPLETION = 2**31 - 1
"""Completion id marking that no worst-offending completion has been found."""


@attrs.define
class Constants:
    """
    Tunable values read while checking well constraints and economic limits.

    An instance applies to the code run inside `with constants():`, and is
    read there through the module proxy `c`.
    """

    RATIO_SENTINEL: float = attrs.field(
        default=1.0e100, validator=attrs.validators.gt(0.0)
    )
    """Ratio reported when the denominator rate is zero but the numerator is not."""

    RESERVOIR_RATE_FIP_REGION: int = attrs.field(
        default=0, validator=attrs.validators.ge(0)
    )
    """Fluid-in-place region used to convert between surface and reservoir rates."""

    GROUP_RATE_EPSILON: float = attrs.field(
        default=1e-12, validator=attrs.validators.ge(0.0)
    )
    """Rates at or below this magnitude count as zero when scaling to a group target."""

    def __call__(self) -> "ConstantsContext":
        return ConstantsContext(self)


_constants_context: ContextVar[Constants] = ContextVar(
    "constants_context", default=Constants()
)


class ConstantsContext:
    """Makes a `Constants` instance current for a block, restoring the previous one on exit."""

    def __init__(self, constants: Constants) -> None:
        self._constants = constants
        self._token = None

    def __enter__(self) -> Constants:
        self._token = _constants_context.set(self._constants)
        return self._constants

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._token is not None:
            _constants_context.reset(self._token)
            self._token = None


class _ConstantsProxy:
    def __getattr__(self, name: str) -> typing.Any:
        return getattr(_constants_context.get(), name)


c = _ConstantsProxy()
"""Proxy to the `Constants` current in this context."""

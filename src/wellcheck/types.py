import enum

import numpy as np
import numpy.typing  # noqa: F401
from typing_extensions import TypeAlias


__all__ = [
    "Phase",
    "InjectorType",
    "InjectorControlMode",
    "ProducerControlMode",
    "GroupInjectionMode",
    "GroupProductionMode",
    "QuantityLimit",
    "EconomicWorkover",
    "ClosureReason",
    "ConnectionState",
    "WellStatus",
    "RateArray",
    "CompletionID",
]

RateArray: TypeAlias = np.typing.NDArray[np.floating]
"""1D array of per-phase rates, indexed through a `PhaseUsage`."""
CompletionID: TypeAlias = int
"""
Completion identifier.

Positive values are completion numbers. Negative values are negated (1-based)
connection numbers for connections that do not belong to any completion.
"""


class Phase(enum.Enum):
    """Fluid phases of the black-oil model, in canonical order."""

    WATER = "water"
    OIL = "oil"
    GAS = "gas"


class InjectorType(enum.Enum):
    """Fluid declared as injected by an injection well."""

    WATER = "water"
    OIL = "oil"
    GAS = "gas"
    MULTI = "multi"


class InjectorControlMode(enum.Enum):
    """Control modes for injection wells."""

    NONE = "none"
    BHP = "bhp"
    RATE = "rate"
    RESV = "resv"
    THP = "thp"
    GRUP = "grup"


class ProducerControlMode(enum.Enum):
    """Control modes for production wells."""

    NONE = "none"
    BHP = "bhp"
    ORAT = "orat"
    WRAT = "wrat"
    GRAT = "grat"
    LRAT = "lrat"
    RESV = "resv"
    THP = "thp"
    GRUP = "grup"


class GroupInjectionMode(enum.Enum):
    """Control modes for group injection targets."""

    NONE = "none"
    RATE = "rate"
    RESV = "resv"
    FLD = "fld"


class GroupProductionMode(enum.Enum):
    """Control modes for group production targets."""

    NONE = "none"
    ORAT = "orat"
    WRAT = "wrat"
    GRAT = "grat"
    LRAT = "lrat"
    RESV = "resv"
    FLD = "fld"


class QuantityLimit(enum.Enum):
    """Quantity compared against minimum economic rates."""

    RATE = "rate"
    """Compare instantaneous well rates."""
    POTN = "potn"
    """Compare well potentials."""


class EconomicWorkover(enum.Enum):
    """Action taken when an economic ratio limit is violated."""

    NONE = "none"
    CON = "con"
    """Close the worst-offending completion (or connection)."""
    CON_PLUS = "+con"
    WELL = "well"
    """Close the whole well."""
    PLUG = "plug"
    LAST = "last"
    RED = "red"


class ClosureReason(enum.Enum):
    """Reason a well was closed by the well-test bookkeeping."""

    NONE = "none"
    PHYSICAL = "physical"
    ECONOMIC = "economic"
    GROUP = "group"
    THP_DESIGN = "thp_design"
    COMPLETION = "completion"


class ConnectionState(enum.Enum):
    """State of a single well connection (perforation)."""

    OPEN = "open"
    SHUT = "shut"


class WellStatus(enum.Enum):
    """Operational status of a well."""

    OPEN = "open"
    STOP = "stop"
    SHUT = "shut"


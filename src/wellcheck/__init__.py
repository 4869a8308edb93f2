"""
*WELLCHECK*

Per-step well constraint and economic limit evaluation for black-oil reservoir simulation.
"""

from .constants import *  # noqa
from .errors import *  # noqa
from .types import *  # noqa
from .config import *  # noqa
from .phases import *  # noqa
from .logs import *  # noqa
from .parallel import *  # noqa
from .rates import *  # noqa
from .wells import *  # noqa
from .groups import *  # noqa

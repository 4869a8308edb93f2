from .controls import *  # noqa
from .economics import *  # noqa
from .base import *  # noqa
from .states import *  # noqa
from .closures import *  # noqa
from .constraints import *  # noqa
from .ratios import *  # noqa
from .limits import *  # noqa
from .evaluator import *  # noqa

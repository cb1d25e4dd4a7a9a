# -*- coding: utf-8 -*
"""R's condition system for Python: errors, warnings and messages, signaled and handled.

See ``dir(rconditions)`` and submodule docstrings for more. Start from
``rconditions.conditions``.
"""

__version__ = '0.1.0'

from .box import *  # noqa: F401, F403
from .channel import *  # noqa: F401, F403
from .condition import *  # noqa: F401, F403
from .conditions import *  # noqa: F401, F403
from .config import *  # noqa: F401, F403
from .errors import *  # noqa: F401, F403
from .restarts import *  # noqa: F401, F403
from .unit import *  # noqa: F401, F403

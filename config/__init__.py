"""Configuration package for passvault.

Application code imports constants from `config.settings`; they are
re-exported here so `from config import DEFAULT_ITERATIONS` keeps working.
"""

from .settings import *  # noqa: F401,F403
from .settings import __all__  # noqa: F401

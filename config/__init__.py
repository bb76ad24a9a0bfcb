"""
Configuration package
"""
from .settings import *  # noqa: F401,F403
from .settings import SYSTEM_NAME, SYSTEM_VERSION

__all__ = ['SYSTEM_NAME', 'SYSTEM_VERSION']

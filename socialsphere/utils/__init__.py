# socialsphere/utils/__init__.py
"""
Utility package

Helpers shared across the whole project.
"""

from .datetime_utils import DateTimeUtils
from . import text_utils

__all__ = ['DateTimeUtils', 'text_utils']

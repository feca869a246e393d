"""
Job page extraction pipeline.
"""

from .extractor import JobExtractor
from .context import FieldResult, PageContext

__all__ = ['JobExtractor', 'FieldResult', 'PageContext']

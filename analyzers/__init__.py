"""
Analyzers package.

Re-exports all analyzer classes.
"""

from analyzers.image_cache import ImageCache
from analyzers.technical import TechnicalAnalyzer
from analyzers.composition import CompositionAnalyzer
from analyzers.aesthetic import AestheticAnalyzer
from analyzers.face import ExpressionAnalyzer

"""
Utilities package.

Re-exports the error taxonomy. Loaders live in utils.image_loading and
utils.detection, which depend on the analyzers package.
"""

from utils.errors import ScoringError, DecodeError, DetectionError, DegenerateImageError

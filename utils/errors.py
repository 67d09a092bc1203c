"""
Error taxonomy for the scoring engine.
"""


class ScoringError(Exception):
    """Base class for scoring engine errors."""


class DecodeError(ScoringError):
    """Raster is unavailable, corrupt, or not a valid RGBA8 buffer."""


class DetectionError(ScoringError):
    """The external expression detector failed for a photo."""


class DegenerateImageError(ScoringError):
    """Image is too small for an analyzer's kernel or block size.

    Always recovered inside the analyzer that raised it by substituting
    that metric's neutral default.
    """

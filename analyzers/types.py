"""
Data model for the scoring engine.

Result records are immutable; every bounded score is clamped before storage.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Tuple

import numpy as np

from utils.errors import DecodeError


EXPRESSION_LABELS = ('happy', 'sad', 'angry', 'fearful', 'disgusted', 'surprised', 'neutral')


def clamp(value, low=0.0, high=1.0):
    """Clamp value into [low, high]; NaN collapses to low."""
    value = float(value)
    if math.isnan(value):
        return low
    return max(low, min(high, value))


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded photo: RGBA8 pixels of shape (height, width, 4)."""
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray) or pixels.dtype != np.uint8:
            raise DecodeError("Raster pixels must be a uint8 numpy array")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise DecodeError(f"Raster must be RGBA (H, W, 4), got shape {pixels.shape}")
        if self.width <= 0 or self.height <= 0:
            raise DecodeError(f"Raster has no pixels ({self.width}x{self.height})")
        if pixels.shape[:2] != (self.height, self.width):
            raise DecodeError(
                f"Raster size {self.width}x{self.height} does not match buffer shape {pixels.shape}"
            )

    @classmethod
    def from_array(cls, arr):
        """Build a raster from a gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) array."""
        arr = np.asarray(arr)
        if arr.dtype != np.uint8:
            raise DecodeError(f"Expected uint8 pixel data, got {arr.dtype}")
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise DecodeError(f"Unsupported pixel array shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        arr = np.ascontiguousarray(arr)
        return cls(width=arr.shape[1], height=arr.shape[0], pixels=arr)


@dataclass(frozen=True)
class ColorSample:
    """A quantized dominant color with the HSV of its first sampled pixel."""
    r: int
    g: int
    b: int
    hue: float
    saturation: float
    value: float
    count: int


@dataclass(frozen=True)
class TechnicalQualityResult:
    blur_score: float
    noise_score: float
    exposure_score: float
    overall_score: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class AestheticResult:
    """Composition/color/contrast verdict.

    score_distribution is a simulated confidence spread around mean_score,
    not a fitted model.
    """
    mean_score: float
    score_distribution: Tuple[float, ...]
    harmony_score: float = 0.0
    composition_score: float = 0.0
    contrast_score: float = 0.0

    def to_dict(self):
        data = asdict(self)
        data['score_distribution'] = list(self.score_distribution)
        return data


@dataclass(frozen=True)
class ExpressionVector:
    """Per-face probabilities over the fixed emotion vocabulary."""
    happy: float = 0.0
    sad: float = 0.0
    angry: float = 0.0
    fearful: float = 0.0
    disgusted: float = 0.0
    surprised: float = 0.0
    neutral: float = 0.0

    @classmethod
    def from_detection(cls, detection):
        """Validate a detector record (mapping or attribute object).

        Missing or non-numeric components become 0.0; the rest are clipped
        into [0, 1].
        """
        values = {}
        for label in EXPRESSION_LABELS:
            if isinstance(detection, dict):
                raw = detection.get(label, 0.0)
            else:
                raw = getattr(detection, label, 0.0)
            try:
                raw = float(raw)
            except (TypeError, ValueError):
                raw = 0.0
            values[label] = clamp(raw) if math.isfinite(raw) else 0.0
        return cls(**values)

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class FaceExpressionResult:
    face_count: int = 0
    expressions: Tuple[ExpressionVector, ...] = ()
    best_expression_score: float = 0.0

    def to_dict(self):
        return {
            'face_count': self.face_count,
            'expressions': [e.to_dict() for e in self.expressions],
            'best_expression_score': self.best_expression_score,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Per-photo final verdict."""
    photo_id: str
    technical_quality: TechnicalQualityResult
    aesthetics: AestheticResult
    face_expressions: FaceExpressionResult
    overall_score: float

    def to_dict(self):
        return {
            'photo_id': self.photo_id,
            'technical_quality': self.technical_quality.to_dict(),
            'aesthetics': self.aesthetics.to_dict(),
            'face_expressions': self.face_expressions.to_dict(),
            'overall_score': self.overall_score,
        }

"""
Aesthetic evaluation.

Color harmony of dominant hues, composition, tonal contrast, and the 1-10
aesthetic score with its simulated distribution.
"""

import numpy as np

from analyzers.composition import CompositionAnalyzer
from analyzers.types import AestheticResult, clamp
from config import get_default_config


def hue_distance(h1, h2):
    """Shortest angular distance between two hues in degrees."""
    diff = abs(h1 - h2)
    return min(diff, 360.0 - diff)


def score_distribution(mean_score, std_dev=1.0, buckets=10):
    """
    Discrete Gaussian over the score values 1..buckets, normalized to sum to 1.

    This is a presentation artifact: a simulated confidence spread around the
    heuristic mean, not a distribution fitted to any rating data.
    """
    values = np.arange(1, buckets + 1, dtype=np.float64)
    z = (values - mean_score) / std_dev
    weights = np.exp(-0.5 * z * z)
    return tuple(float(w) for w in weights / weights.sum())


class AestheticAnalyzer:
    """Deterministic stand-in for a learned aesthetic model."""

    @staticmethod
    def get_color_harmony_data(cache, config=None):
        """Count complementary, analogous and triadic pairs among dominant colors.

        Args:
            cache: ImageCache for the photo
            config: Optional ScoringConfig
        """
        settings = (config or get_default_config()).get_aesthetic_settings()
        harmony = settings['harmony']
        colors = cache.dominant_colors(
            max_colors=settings['max_colors'],
            max_samples=settings['max_color_samples'],
            quantization=settings['color_quantization'],
        )

        counts = {'complementary': 0, 'analogous': 0, 'triadic': 0}
        if len(colors) < 2:
            return dict(counts, color_count=len(colors), harmony_score=0.0)

        comp_low, comp_high = harmony['complementary_range']
        tri_low, tri_high = harmony['triadic_range']
        for i in range(len(colors)):
            for j in range(i + 1, len(colors)):
                d = hue_distance(colors[i].hue, colors[j].hue)
                if comp_low < d < comp_high:
                    counts['complementary'] += 1
                elif d < harmony['analogous_max']:
                    counts['analogous'] += 1
                elif tri_low < d < tri_high:
                    counts['triadic'] += 1

        weighted = (counts['complementary'] * harmony['complementary_weight']
                    + counts['analogous'] * harmony['analogous_weight']
                    + counts['triadic'] * harmony['triadic_weight'])
        return dict(counts, color_count=len(colors), harmony_score=clamp(weighted / len(colors)))

    @staticmethod
    def get_contrast_data(cache, config=None):
        """Percentile spread of the luma histogram.

        p5 is the first level where the cumulative count from black reaches
        the percentile share of pixels; p95 is found the same way from white.
        """
        settings = (config or get_default_config()).get_aesthetic_settings()
        hist = cache.histogram
        target = cache.pixel_count * settings['contrast_percentile']

        p5 = int(np.argmax(np.cumsum(hist) >= target))
        p95 = 255 - int(np.argmax(np.cumsum(hist[::-1]) >= target))

        return {
            'p5': p5,
            'p95': p95,
            'contrast_score': clamp((p95 - p5) / settings['contrast_range'])
        }

    @staticmethod
    def analyze(cache, config=None):
        """Combine harmony, composition and contrast onto the 1-10 scale."""
        settings = (config or get_default_config()).get_aesthetic_settings()
        weights = settings['weights']

        harmony_score = AestheticAnalyzer.get_color_harmony_data(cache, config)['harmony_score']
        composition_score = CompositionAnalyzer.get_composition_data(cache, config)['composition_score']
        contrast_score = AestheticAnalyzer.get_contrast_data(cache, config)['contrast_score']

        combined = (weights['harmony'] * harmony_score
                    + weights['composition'] * composition_score
                    + weights['contrast'] * contrast_score)
        mean_score = clamp(combined * 9 + 1, 1.0, 10.0)

        return AestheticResult(
            mean_score=mean_score,
            score_distribution=score_distribution(mean_score, settings['distribution_std_dev']),
            harmony_score=harmony_score,
            composition_score=composition_score,
            contrast_score=contrast_score
        )

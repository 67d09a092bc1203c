"""
Technical image analysis.

Sharpness (Laplacian variance), sensor noise in uniform blocks, exposure.
"""

import cv2
import numpy as np

from analyzers.types import TechnicalQualityResult, clamp
from config import get_default_config
from utils.errors import DegenerateImageError

LAPLACIAN_KERNEL = np.array([[-1, -1, -1],
                             [-1, 8, -1],
                             [-1, -1, -1]], dtype=np.float64)


def laplacian_variance(gray):
    """Population variance of the 8-neighbour Laplacian over interior pixels.

    Raises:
        DegenerateImageError: If the image is smaller than 3x3
    """
    h, w = gray.shape
    if h < 3 or w < 3:
        raise DegenerateImageError(f"Laplacian needs at least 3x3 pixels, got {w}x{h}")
    # Kernel is symmetric, so filter2D's correlation equals convolution;
    # border responses are discarded
    response = cv2.filter2D(gray.astype(np.float64), -1, LAPLACIAN_KERNEL)[1:-1, 1:-1]
    return float(response.var())


def block_statistics(gray, block_size=8):
    """
    Per-block luma variance and noise level over non-overlapping square blocks.

    Noise level is the mean absolute difference of every horizontally and
    vertically adjacent pixel pair inside the block. Partial blocks at the
    right and bottom edges are ignored.

    Returns:
        tuple: (variances, noise_levels), each shaped (rows, cols)

    Raises:
        DegenerateImageError: If no complete block fits in the image
    """
    if block_size < 2:
        raise ValueError(f"block_size must be at least 2, got {block_size}")
    h, w = gray.shape
    rows, cols = h // block_size, w // block_size
    if rows == 0 or cols == 0:
        raise DegenerateImageError(f"No {block_size}x{block_size} block fits in {w}x{h}")

    blocks = gray[:rows * block_size, :cols * block_size].astype(np.float64)
    blocks = blocks.reshape(rows, block_size, cols, block_size).swapaxes(1, 2)

    variances = blocks.var(axis=(2, 3))
    horizontal = np.abs(np.diff(blocks, axis=3)).sum(axis=(2, 3))
    vertical = np.abs(np.diff(blocks, axis=2)).sum(axis=(2, 3))
    pair_count = 2 * block_size * (block_size - 1)
    return variances, (horizontal + vertical) / pair_count


class TechnicalAnalyzer:
    """Computes objective sharpness, noise and exposure scores in [0, 1]."""

    @staticmethod
    def get_blur_data(cache, config=None):
        """Returns raw Laplacian variance and the normalized blur score (higher = sharper).

        Args:
            cache: ImageCache for the photo
            config: Optional ScoringConfig
        """
        settings = (config or get_default_config()).get_technical_settings()
        try:
            variance = laplacian_variance(cache.gray)
        except DegenerateImageError:
            return {'laplacian_variance': 0.0, 'blur_score': 0.0}

        return {
            'laplacian_variance': variance,
            'blur_score': clamp(variance / settings['laplacian_variance_divisor'])
        }

    @staticmethod
    def get_noise_data(cache, config=None):
        """Estimate sensor noise from uniform blocks (higher score = cleaner).

        Uniform blocks are assumed to hold no structure, so pixel-to-pixel
        variation inside them is attributed to noise. With no uniform block
        the score is neutral.

        Args:
            cache: ImageCache for the photo
            config: Optional ScoringConfig
        """
        settings = (config or get_default_config()).get_technical_settings()
        neutral = {
            'uniform_blocks': 0,
            'average_noise_level': None,
            'noise_score': settings['neutral_noise_score']
        }

        try:
            variances, noise_levels = block_statistics(cache.gray, settings['block_size'])
        except DegenerateImageError:
            return neutral

        uniform = variances < settings['uniform_block_variance']
        uniform_count = int(np.count_nonzero(uniform))
        if uniform_count == 0:
            return neutral

        average_noise = float(noise_levels[uniform].mean())
        return {
            'uniform_blocks': uniform_count,
            'average_noise_level': average_noise,
            'noise_score': clamp(1.0 - average_noise / settings['noise_level_divisor'])
        }

    @staticmethod
    def get_exposure_data(cache, config=None):
        """Histogram-based exposure: mid-tone mean, tonal spread, clipping penalty.

        Args:
            cache: ImageCache for the photo
            config: Optional ScoringConfig
        """
        settings = (config or get_default_config()).get_technical_settings()
        hist_normalized = cache.histogram / cache.pixel_count

        bins = np.arange(256)
        mean_val = float(np.sum(bins * hist_normalized))
        std_dev = float(np.sqrt(np.sum(((bins - mean_val) ** 2) * hist_normalized)))

        target = settings['target_mean_luminance']
        mean_score = 1.0 - abs(mean_val - target) / target
        std_dev_score = min(std_dev / settings['std_dev_divisor'], 1.0)

        dark_ratio = float(np.sum(hist_normalized[:settings['dark_bin_end']]))
        bright_ratio = float(np.sum(hist_normalized[settings['bright_bin_start']:]))
        penalty = (max(0.0, dark_ratio - settings['dark_ratio_threshold'])
                   + max(0.0, bright_ratio - settings['bright_ratio_threshold']))

        exposure_score = clamp(0.5 * mean_score + 0.5 * std_dev_score - penalty)

        return {
            'mean_luminance': mean_val,
            'std_dev': std_dev,
            'mean_score': mean_score,
            'std_dev_score': std_dev_score,
            'dark_ratio': dark_ratio,
            'bright_ratio': bright_ratio,
            'exposure_score': exposure_score
        }

    @staticmethod
    def analyze(cache, config=None):
        """Run blur, noise and exposure analysis and combine them."""
        weights = (config or get_default_config()).get_technical_settings()['weights']

        blur_score = TechnicalAnalyzer.get_blur_data(cache, config)['blur_score']
        noise_score = TechnicalAnalyzer.get_noise_data(cache, config)['noise_score']
        exposure_score = TechnicalAnalyzer.get_exposure_data(cache, config)['exposure_score']

        overall = (weights['blur'] * blur_score
                   + weights['noise'] * noise_score
                   + weights['exposure'] * exposure_score)

        return TechnicalQualityResult(
            blur_score=blur_score,
            noise_score=noise_score,
            exposure_score=exposure_score,
            overall_score=clamp(overall)
        )

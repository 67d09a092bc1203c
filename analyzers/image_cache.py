"""
Pixel sampling: luma conversion, luma histogram, dominant colors.
"""

import numpy as np

from analyzers.types import ColorSample

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def to_luma(pixels):
    """Convert RGB(A) uint8 pixels to 8-bit luma, rounding half up. Alpha is ignored."""
    rgb = pixels[..., :3].astype(np.float64)
    luma = LUMA_WEIGHTS[0] * rgb[..., 0] + LUMA_WEIGHTS[1] * rgb[..., 1] + LUMA_WEIGHTS[2] * rgb[..., 2]
    # cv2.cvtColor uses fixed-point weights, so round explicitly
    return np.floor(luma + 0.5).astype(np.uint8)


def rgb_to_hsv(r, g, b):
    """Hexagonal HSV projection of 0-255 RGB. Returns (hue 0-360, sat 0-1, val 0-1)."""
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    max_c = max(r, g, b)
    min_c = min(r, g, b)
    diff = max_c - min_c

    if diff == 0:
        h = 0.0
    elif max_c == r:
        h = 60.0 * ((g - b) / diff % 6)
    elif max_c == g:
        h = 60.0 * ((b - r) / diff + 2)
    else:
        h = 60.0 * ((r - g) / diff + 4)
    if h < 0:
        h += 360.0
    if h >= 360.0:
        h -= 360.0

    s = 0.0 if max_c == 0 else diff / max_c
    return h, s, max_c


def extract_dominant_colors(rgba, max_colors=5, max_samples=1000, quantization=16):
    """
    Find the most frequent quantized colors in a stride sample of the image.

    Every stride-th pixel is visited in row-major order, with
    stride = max(1, pixel_count // max_samples). That caps the sample near
    max_samples for large images but can approach 2 * max_samples (a
    1999-pixel image is sampled in full). Colors are ranked by count, ties by first occurrence.

    Args:
        rgba: (H, W, 4) uint8 pixel array
        max_colors: Number of colors to return
        max_samples: Target sample size used to derive the stride
        quantization: Channel bucket width

    Returns:
        List of ColorSample, most frequent first
    """
    flat = rgba.reshape(-1, rgba.shape[-1])[:, :3]
    pixel_count = flat.shape[0]
    if pixel_count == 0:
        return []
    stride = max(1, pixel_count // max_samples)
    sampled = flat[::stride].astype(np.int64)

    quantized = (sampled // quantization) * quantization
    keys = (quantized[:, 0] << 16) | (quantized[:, 1] << 8) | quantized[:, 2]
    unique_keys, first_index, counts = np.unique(keys, return_index=True, return_counts=True)

    order = np.lexsort((first_index, -counts))[:max_colors]

    colors = []
    for idx in order:
        first = first_index[idx]
        r, g, b = (int(v) for v in sampled[first])
        h, s, v = rgb_to_hsv(r, g, b)
        qr, qg, qb = (int(v) for v in quantized[first])
        colors.append(ColorSample(r=qr, g=qg, b=qb, hue=h, saturation=s, value=v,
                                  count=int(counts[idx])))
    return colors


class ImageCache:
    """
    Per-photo working buffers shared read-only by every analyzer.

    Built once per raster and discarded after that photo is scored, so no
    scratch state outlives a single pipeline invocation.

    Usage:
        cache = ImageCache(raster)
        technical = TechnicalAnalyzer.analyze(cache)
        aesthetics = AestheticAnalyzer.analyze(cache)
    """
    __slots__ = ['rgba', 'gray', 'histogram', 'height', 'width', 'pixel_count']

    def __init__(self, raster):
        """
        Initialize cache with pre-computed transformations.

        Args:
            raster: RasterImage
        """
        self.height, self.width = raster.height, raster.width
        self.pixel_count = self.width * self.height
        self.rgba = raster.pixels
        self.gray = to_luma(raster.pixels)
        self.histogram = np.bincount(self.gray.ravel(), minlength=256).astype(np.float64)

    def dominant_colors(self, max_colors=5, max_samples=1000, quantization=16):
        return extract_dominant_colors(self.rgba, max_colors, max_samples, quantization)

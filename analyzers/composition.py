"""
Composition analysis.

Gradient edge map, rule-of-thirds edge concentration, visual balance.
"""

import numpy as np

from analyzers.types import clamp
from config import get_default_config
from utils.errors import DegenerateImageError


def find_edges(gray, threshold=30.0):
    """
    Binary edge map from central-difference gradient magnitude.

    Only interior pixels can be edges; the 1-pixel border stays 0.

    Returns:
        (H, W) uint8 array of {0, 255}
    """
    h, w = gray.shape
    edges = np.zeros((h, w), dtype=np.uint8)
    if h < 3 or w < 3:
        return edges

    luma = gray.astype(np.float64)
    gx = np.abs(luma[1:-1, :-2] - luma[1:-1, 2:])
    gy = np.abs(luma[:-2, 1:-1] - luma[2:, 1:-1])
    magnitude = np.sqrt(gx * gx + gy * gy)
    edges[1:-1, 1:-1] = np.where(magnitude > threshold, 255, 0)
    return edges


def thirds_radius(width, height, divisor=10):
    """Half-width of the square capture region around each thirds intersection.

    Raises:
        DegenerateImageError: If the image is too small for a non-empty region
    """
    radius = min(width, height) // divisor
    if radius == 0:
        raise DegenerateImageError(f"Image {width}x{height} too small for thirds regions")
    return radius


class CompositionAnalyzer:
    """Evaluates where edge detail sits within the frame."""

    @staticmethod
    def get_thirds_points(width, height):
        """The four rule-of-thirds intersections as integer (x, y) pixels."""
        xs = (width // 3, (2 * width) // 3)
        ys = (height // 3, (2 * height) // 3)
        return [(x, y) for y in ys for x in xs]

    @staticmethod
    def get_rule_of_thirds_data(edges, config=None):
        """Share of edge pixels near the thirds intersections versus chance.

        A pixel is near an intersection when it lies inside the square of
        half-width r = min(w, h) // divisor around it. The score reaches 1
        once the observed share is twice the share the squares cover.

        When r is 0 (short side under divisor pixels) the expected share is
        0 and the ratio is undefined, so the neutral score is returned
        even if an edge pixel sits exactly on an intersection. The unguarded
        formula would give 1 in that case and NaN otherwise.

        Args:
            edges: EdgeMap from find_edges()
            config: Optional ScoringConfig
        """
        settings = (config or get_default_config()).get_aesthetic_settings()
        neutral = settings['neutral_thirds_score']
        h, w = edges.shape

        ys, xs = np.nonzero(edges)
        total = int(xs.size)
        if total == 0:
            return {'edge_pixels': 0, 'intersection_pixels': 0, 'thirds_score': neutral}

        try:
            radius = thirds_radius(w, h, settings['thirds_radius_divisor'])
        except DegenerateImageError:
            return {'edge_pixels': total, 'intersection_pixels': 0, 'thirds_score': neutral}

        near = np.zeros(total, dtype=bool)
        for px, py in CompositionAnalyzer.get_thirds_points(w, h):
            near |= (np.abs(xs - px) <= radius) & (np.abs(ys - py) <= radius)
        intersection = int(np.count_nonzero(near))

        expected_ratio = (4 * radius * radius) / (w * h)
        actual_ratio = intersection / total
        return {
            'edge_pixels': total,
            'intersection_pixels': intersection,
            'thirds_score': clamp(actual_ratio / (expected_ratio * 2))
        }

    @staticmethod
    def get_balance_data(edges):
        """Left/right and top/bottom symmetry of edge counts.

        Each axis scores min/max of its two halves; an axis with no edges on
        either side counts as perfectly balanced.
        """
        h, w = edges.shape
        center_x, center_y = w // 2, h // 2
        ys, xs = np.nonzero(edges)

        left = int(np.count_nonzero(xs < center_x))
        right = int(xs.size) - left
        top = int(np.count_nonzero(ys < center_y))
        bottom = int(ys.size) - top

        def _axis_balance(a, b):
            larger = max(a, b)
            return 1.0 if larger == 0 else min(a, b) / larger

        horizontal = _axis_balance(left, right)
        vertical = _axis_balance(top, bottom)
        return {
            'left': left, 'right': right, 'top': top, 'bottom': bottom,
            'horizontal_balance': horizontal,
            'vertical_balance': vertical,
            'balance_score': clamp(0.5 * horizontal + 0.5 * vertical)
        }

    @staticmethod
    def get_composition_data(cache, config=None):
        """Edge map plus the weighted thirds/balance composition score."""
        settings = (config or get_default_config()).get_aesthetic_settings()
        weights = settings['composition_weights']

        edges = find_edges(cache.gray, settings['edge_threshold'])
        thirds = CompositionAnalyzer.get_rule_of_thirds_data(edges, config)
        balance = CompositionAnalyzer.get_balance_data(edges)

        score = weights['thirds'] * thirds['thirds_score'] + weights['balance'] * balance['balance_score']
        return {
            'thirds_score': thirds['thirds_score'],
            'balance_score': balance['balance_score'],
            'edge_pixels': thirds['edge_pixels'],
            'composition_score': clamp(score)
        }

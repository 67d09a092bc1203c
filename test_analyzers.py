"""
Tests for the pixel sampler and the technical, composition, aesthetic and
expression analyzers.

Run: python3 -m pytest test_analyzers.py -v
  or: python3 test_analyzers.py
"""

import os
import sys
import math
import unittest
from types import SimpleNamespace

import numpy as np

# Ensure project root is on sys.path
_script_dir = os.path.dirname(os.path.abspath(__file__))
if _script_dir not in sys.path:
    sys.path.insert(0, _script_dir)


def _cache(arr):
    from analyzers import ImageCache
    from analyzers.types import RasterImage
    return ImageCache(RasterImage.from_array(arr))


def _flat(value=128, width=64, height=64):
    return np.full((height, width, 3), value, dtype=np.uint8)


def _checkerboard(low, high, width=64, height=64):
    yy, xx = np.indices((height, width))
    board = np.where((xx + yy) % 2 == 0, high, low).astype(np.uint8)
    return np.stack([board, board, board], axis=-1)


def _halves(top_color, bottom_color, width=10, height=10, split_row=5):
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[:split_row] = top_color
    arr[split_row:] = bottom_color
    return arr


# ============================================================
# Tier 1: Pixel sampling
# ============================================================

class TestRasterImage(unittest.TestCase):

    def test_from_rgb_adds_opaque_alpha(self):
        from analyzers.types import RasterImage
        raster = RasterImage.from_array(_flat(10, width=5, height=3))
        self.assertEqual((raster.width, raster.height), (5, 3))
        self.assertEqual(raster.pixels.shape, (3, 5, 4))
        self.assertTrue(np.all(raster.pixels[..., 3] == 255))

    def test_from_gray(self):
        from analyzers.types import RasterImage
        raster = RasterImage.from_array(np.zeros((4, 6), dtype=np.uint8))
        self.assertEqual(raster.pixels.shape, (4, 6, 4))

    def test_rejects_malformed_buffers(self):
        from analyzers.types import RasterImage
        from utils.errors import DecodeError
        with self.assertRaises(DecodeError):
            RasterImage.from_array(np.zeros((4, 4, 3), dtype=np.float32))
        with self.assertRaises(DecodeError):
            RasterImage.from_array(np.zeros((0, 4, 3), dtype=np.uint8))
        with self.assertRaises(DecodeError):
            RasterImage(width=3, height=3, pixels=np.zeros((4, 4, 4), dtype=np.uint8))


class TestPixelSampler(unittest.TestCase):

    def test_luma_weights(self):
        from analyzers.image_cache import to_luma
        pixels = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 0], [128, 128, 128, 7]]],
                          dtype=np.uint8)
        self.assertEqual(to_luma(pixels).tolist(), [[76, 150, 29, 128]])

    def test_histogram_counts_every_pixel(self):
        cache = _cache(_flat(128))
        self.assertEqual(cache.histogram.sum(), 64 * 64)
        self.assertEqual(cache.histogram[128], 64 * 64)
        self.assertEqual(cache.pixel_count, 4096)

    def test_rgb_to_hsv(self):
        from analyzers.image_cache import rgb_to_hsv
        self.assertEqual(rgb_to_hsv(255, 0, 0), (0.0, 1.0, 1.0))
        self.assertAlmostEqual(rgb_to_hsv(0, 255, 0)[0], 120.0)
        self.assertAlmostEqual(rgb_to_hsv(0, 0, 255)[0], 240.0)
        self.assertAlmostEqual(rgb_to_hsv(255, 0, 255)[0], 300.0)
        h, s, v = rgb_to_hsv(128, 128, 128)
        self.assertEqual((h, s), (0.0, 0.0))
        self.assertAlmostEqual(v, 128 / 255)

    def test_dominant_colors_ranked_by_count(self):
        cache = _cache(_halves((250, 10, 10), (10, 10, 250), split_row=6))
        colors = cache.dominant_colors()
        self.assertEqual(len(colors), 2)
        red, blue = colors
        self.assertEqual((red.r, red.g, red.b, red.count), (240, 0, 0, 60))
        self.assertEqual((blue.r, blue.g, blue.b, blue.count), (0, 0, 240, 40))
        self.assertAlmostEqual(red.hue, 0.0)
        self.assertAlmostEqual(blue.hue, 240.0)

    def test_dominant_color_ties_keep_first_seen(self):
        cache = _cache(_halves((0, 200, 0), (200, 0, 0)))
        colors = cache.dominant_colors()
        self.assertEqual(colors[0].count, colors[1].count)
        self.assertEqual((colors[0].r, colors[0].g), (0, 192))

    def test_dominant_colors_stride_sampling(self):
        # stride = max(1, pixels // 1000)
        for width, height, sampled in [(100, 100, 1000), (1999, 1, 1999), (1000, 3, 1000), (2999, 1, 1500)]:
            colors = _cache(_flat(90, width=width, height=height)).dominant_colors()
            self.assertEqual(len(colors), 1)
            self.assertEqual(colors[0].count, sampled)

    def test_dominant_colors_capped_at_five(self):
        arr = np.zeros((8, 8, 3), dtype=np.uint8)
        for row in range(8):
            arr[row] = (row * 32, 0, 0)
        self.assertEqual(len(_cache(arr).dominant_colors()), 5)


# ============================================================
# Tier 2: Technical quality
# ============================================================

class TestTechnicalAnalyzer(unittest.TestCase):

    def test_flat_gray(self):
        from analyzers import TechnicalAnalyzer
        result = TechnicalAnalyzer.analyze(_cache(_flat(128)))
        self.assertEqual(result.blur_score, 0.0)
        self.assertEqual(result.noise_score, 1.0)
        self.assertAlmostEqual(result.exposure_score, 0.5)
        self.assertAlmostEqual(result.overall_score, 0.4 * 0 + 0.3 * 1 + 0.3 * 0.5)

    def test_low_amplitude_checkerboard_is_sharp_and_noisy(self):
        from analyzers import TechnicalAnalyzer
        cache = _cache(_checkerboard(119, 137))
        blur = TechnicalAnalyzer.get_blur_data(cache)
        self.assertAlmostEqual(blur['laplacian_variance'], 72.0 ** 2)
        self.assertEqual(blur['blur_score'], 1.0)

        noise = TechnicalAnalyzer.get_noise_data(cache)
        self.assertEqual(noise['uniform_blocks'], 64)
        self.assertAlmostEqual(noise['average_noise_level'], 18.0)
        self.assertAlmostEqual(noise['noise_score'], 0.1)

    def test_no_uniform_blocks_is_neutral(self):
        from analyzers import TechnicalAnalyzer
        noise = TechnicalAnalyzer.get_noise_data(_cache(_checkerboard(0, 255)))
        self.assertEqual(noise['uniform_blocks'], 0)
        self.assertEqual(noise['noise_score'], 0.5)

    def test_tiny_images_use_neutral_defaults(self):
        from analyzers import TechnicalAnalyzer
        for width, height in [(1, 1), (2, 2), (2, 9), (7, 7)]:
            cache = _cache(_checkerboard(0, 255, width, height))
            result = TechnicalAnalyzer.analyze(cache)
            if width < 3 or height < 3:
                self.assertEqual(result.blur_score, 0.0)
            self.assertEqual(result.noise_score, 0.5)
            for score in (result.blur_score, result.noise_score, result.exposure_score, result.overall_score):
                self.assertFalse(math.isnan(score))
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)

    def test_underexposed_image_scores_zero(self):
        from analyzers import TechnicalAnalyzer
        data = TechnicalAnalyzer.get_exposure_data(_cache(_flat(20)))
        self.assertAlmostEqual(data['dark_ratio'], 1.0)
        self.assertEqual(data['exposure_score'], 0.0)

    def test_clipped_extremes_are_penalized(self):
        from analyzers import TechnicalAnalyzer
        data = TechnicalAnalyzer.get_exposure_data(_cache(_halves(0, 255, 64, 64, 32)))
        self.assertAlmostEqual(data['mean_luminance'], 127.5)
        self.assertAlmostEqual(data['std_dev'], 127.5)
        expected = 0.5 * (1 - 0.5 / 128) + 0.5 * 1.0 - (0.4 + 0.4)
        self.assertAlmostEqual(data['exposure_score'], expected)

    def test_block_statistics_ignores_partial_blocks(self):
        from analyzers.technical import block_statistics
        variances, levels = block_statistics(np.zeros((20, 17), dtype=np.uint8))
        self.assertEqual(variances.shape, (2, 2))
        self.assertEqual(levels.shape, (2, 2))


# ============================================================
# Tier 3: Composition
# ============================================================

class TestComposition(unittest.TestCase):

    def test_flat_image_has_no_edges(self):
        from analyzers.composition import find_edges
        self.assertEqual(int(find_edges(np.full((20, 20), 77, dtype=np.uint8)).sum()), 0)

    def test_vertical_step_edges(self):
        from analyzers.composition import find_edges
        gray = np.zeros((30, 30), dtype=np.uint8)
        gray[:, 15:] = 255
        edges = find_edges(gray)
        self.assertEqual(set(np.unique(edges).tolist()), {0, 255})
        ys, xs = np.nonzero(edges)
        self.assertEqual(set(xs.tolist()), {14, 15})
        self.assertEqual(xs.size, 56)
        self.assertEqual(int(edges[0].sum() + edges[-1].sum()), 0)

    def test_thirds_points(self):
        from analyzers import CompositionAnalyzer
        self.assertEqual(CompositionAnalyzer.get_thirds_points(30, 30),
                         [(10, 10), (20, 10), (10, 20), (20, 20)])
        self.assertEqual(CompositionAnalyzer.get_thirds_points(100, 50),
                         [(33, 16), (66, 16), (33, 33), (66, 33)])

    def test_thirds_no_edges_is_neutral(self):
        from analyzers import CompositionAnalyzer
        data = CompositionAnalyzer.get_rule_of_thirds_data(np.zeros((30, 30), dtype=np.uint8))
        self.assertEqual(data['thirds_score'], 0.5)

    def test_thirds_ratio(self):
        from analyzers import CompositionAnalyzer
        edges = np.zeros((30, 30), dtype=np.uint8)
        edges[0, :24] = 255
        edges[10, 10] = 255
        data = CompositionAnalyzer.get_rule_of_thirds_data(edges)
        self.assertEqual(data['edge_pixels'], 25)
        self.assertEqual(data['intersection_pixels'], 1)
        # actual 1/25 against expected 4*3^2/900, doubled
        self.assertAlmostEqual(data['thirds_score'], 0.5)

    def test_thirds_edges_only_at_intersections(self):
        from analyzers import CompositionAnalyzer
        edges = np.zeros((30, 30), dtype=np.uint8)
        edges[20, 20] = 255
        self.assertEqual(CompositionAnalyzer.get_rule_of_thirds_data(edges)['thirds_score'], 1.0)

    def test_thirds_on_image_too_small_for_regions(self):
        from analyzers import CompositionAnalyzer
        edges = np.zeros((8, 8), dtype=np.uint8)
        edges[3, 3] = 255
        self.assertEqual(CompositionAnalyzer.get_rule_of_thirds_data(edges)['thirds_score'], 0.5)
        # an edge exactly on an intersection still scores neutral
        edges[2, 2] = 255
        self.assertEqual(CompositionAnalyzer.get_thirds_points(8, 8)[0], (2, 2))
        self.assertEqual(CompositionAnalyzer.get_rule_of_thirds_data(edges)['thirds_score'], 0.5)

    def test_balance_without_edges_is_perfect(self):
        from analyzers import CompositionAnalyzer
        self.assertEqual(CompositionAnalyzer.get_balance_data(np.zeros((10, 10), dtype=np.uint8))['balance_score'], 1.0)

    def test_balance_lopsided(self):
        from analyzers import CompositionAnalyzer
        edges = np.zeros((10, 10), dtype=np.uint8)
        edges[2, 2] = edges[2, 3] = edges[7, 2] = 255
        data = CompositionAnalyzer.get_balance_data(edges)
        self.assertEqual((data['left'], data['right'], data['top'], data['bottom']), (3, 0, 2, 1))
        self.assertAlmostEqual(data['balance_score'], 0.25)

    def test_composition_of_flat_image(self):
        from analyzers import CompositionAnalyzer
        data = CompositionAnalyzer.get_composition_data(_cache(_flat(128)))
        self.assertAlmostEqual(data['composition_score'], 0.6 * 0.5 + 0.4 * 1.0)


# ============================================================
# Tier 4: Aesthetics
# ============================================================

class TestAestheticAnalyzer(unittest.TestCase):

    def _harmony(self, top, bottom):
        from analyzers import AestheticAnalyzer
        return AestheticAnalyzer.get_color_harmony_data(_cache(_halves(top, bottom)))

    def test_single_color_has_no_harmony(self):
        from analyzers import AestheticAnalyzer
        self.assertEqual(AestheticAnalyzer.get_color_harmony_data(_cache(_flat(128)))['harmony_score'], 0.0)

    def test_complementary_pair(self):
        data = self._harmony((255, 0, 0), (0, 255, 255))
        self.assertEqual(data['complementary'], 1)
        self.assertAlmostEqual(data['harmony_score'], 0.3 / 2)

    def test_analogous_pair(self):
        data = self._harmony((255, 0, 0), (255, 64, 0))
        self.assertEqual(data['analogous'], 1)
        self.assertAlmostEqual(data['harmony_score'], 0.2 / 2)

    def test_triadic_pair(self):
        data = self._harmony((255, 0, 0), (0, 255, 0))
        self.assertEqual(data['triadic'], 1)
        self.assertAlmostEqual(data['harmony_score'], 0.2 / 2)

    def test_unrelated_hues(self):
        self.assertEqual(self._harmony((255, 0, 0), (255, 255, 0))['harmony_score'], 0.0)

    def test_hue_distance_wraps(self):
        from analyzers.aesthetic import hue_distance
        self.assertEqual(hue_distance(350, 10), 20)
        self.assertEqual(hue_distance(0, 180), 180)

    def test_contrast_percentiles(self):
        from analyzers import AestheticAnalyzer
        ramp = np.tile(np.arange(100, dtype=np.uint8), (10, 1))
        data = AestheticAnalyzer.get_contrast_data(_cache(ramp))
        self.assertEqual((data['p5'], data['p95']), (4, 95))
        self.assertAlmostEqual(data['contrast_score'], 91 / 200)

    def test_contrast_caps_at_one(self):
        from analyzers import AestheticAnalyzer
        data = AestheticAnalyzer.get_contrast_data(_cache(_halves(0, 255, 64, 64, 32)))
        self.assertEqual((data['p5'], data['p95']), (0, 255))
        self.assertEqual(data['contrast_score'], 1.0)

    def test_score_distribution(self):
        from analyzers.aesthetic import score_distribution
        dist = score_distribution(5.5)
        self.assertEqual(len(dist), 10)
        self.assertAlmostEqual(sum(dist), 1.0, places=9)
        self.assertAlmostEqual(dist[4], dist[5])
        self.assertEqual(int(np.argmax(score_distribution(1.0))), 0)
        self.assertTrue(all(p >= 0 for p in dist))

    def test_flat_gray_mean_score(self):
        from analyzers import AestheticAnalyzer
        result = AestheticAnalyzer.analyze(_cache(_flat(128)))
        self.assertEqual(result.harmony_score, 0.0)
        self.assertEqual(result.contrast_score, 0.0)
        self.assertAlmostEqual(result.mean_score, (0.4 * 0.7) * 9 + 1)
        self.assertAlmostEqual(sum(result.score_distribution), 1.0, places=6)


# ============================================================
# Tier 5: Expressions
# ============================================================

class TestExpressionAnalyzer(unittest.TestCase):

    def test_no_faces(self):
        from analyzers import ExpressionAnalyzer
        result = ExpressionAnalyzer().score([])
        self.assertEqual((result.face_count, result.best_expression_score), (0, 0.0))
        self.assertEqual(result.expressions, ())

    def test_weighted_expression(self):
        from analyzers import ExpressionAnalyzer
        result = ExpressionAnalyzer().score([{'happy': 0.5, 'neutral': 0.2, 'surprised': 0.2, 'sad': 0.1}])
        self.assertEqual(result.face_count, 1)
        self.assertAlmostEqual(result.best_expression_score, 0.5 + 0.14 + 0.1 - 0.01)

    def test_best_face_wins(self):
        from analyzers import ExpressionAnalyzer
        result = ExpressionAnalyzer().score([{'neutral': 1.0}, {'happy': 0.9}, {'angry': 1.0}])
        self.assertEqual(result.face_count, 3)
        self.assertAlmostEqual(result.best_expression_score, 0.9)

    def test_negative_only_clamps_to_zero(self):
        from analyzers import ExpressionAnalyzer
        result = ExpressionAnalyzer().score([{'sad': 1.0, 'angry': 1.0}])
        self.assertEqual(result.face_count, 1)
        self.assertEqual(result.best_expression_score, 0.0)

    def test_total_clamps_to_one(self):
        from analyzers import ExpressionAnalyzer
        result = ExpressionAnalyzer().score([{'happy': 1.0, 'neutral': 1.0}])
        self.assertEqual(result.best_expression_score, 1.0)

    def test_detection_records_are_validated(self):
        from analyzers.types import ExpressionVector
        vec = ExpressionVector.from_detection({'happy': 1.5, 'sad': -0.2, 'angry': float('nan'),
                                               'fearful': None, 'neutral': '0.25'})
        self.assertEqual(vec, ExpressionVector(happy=1.0, neutral=0.25))
        obj = SimpleNamespace(happy=0.4, surprised=float('inf'))
        self.assertEqual(ExpressionVector.from_detection(obj), ExpressionVector(happy=0.4))

    def test_detector_failure_means_no_faces(self):
        from analyzers import ExpressionAnalyzer

        def broken(raster):
            raise RuntimeError("model not loaded")

        with self.assertLogs(level='WARNING'):
            self.assertEqual(ExpressionAnalyzer.collect_detections(broken, None), ())

    def test_detector_failure_can_propagate(self):
        from analyzers import ExpressionAnalyzer
        from utils.errors import DetectionError

        def broken(raster):
            raise RuntimeError("model not loaded")

        with self.assertRaises(DetectionError):
            ExpressionAnalyzer.collect_detections(broken, None, skip_on_error=True)

    def test_no_detector(self):
        from analyzers import ExpressionAnalyzer
        self.assertEqual(ExpressionAnalyzer.collect_detections(None, None), ())


if __name__ == '__main__':
    unittest.main()

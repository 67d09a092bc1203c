"""
Batch processor for photo scoring.

Drives the per-photo pipeline over an ordered photo set with a bounded
worker pool, ordered progress reporting and a stable final ranking.
"""

import logging
import math
import os
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor

from tqdm import tqdm

from analyzers import ExpressionAnalyzer
from config import get_default_config
from processing.metrics_reporter import MetricsReporter
from processing.scorer import score_photo, rank_results
from utils.errors import DetectionError

_END = object()


def progress_percent(processed, total):
    """Integer percentage of processed photos, rounding half up."""
    if total <= 0:
        return 100
    return int(math.floor(100 * processed / total + 0.5))


class BatchState:
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class BatchProcessor:
    """
    Scores a batch of photos and ranks them.

    - Photos run through a thread pool with at most
      num_workers * prefetch_multiplier photos in flight (backpressure)
    - Results are consumed in input order, so progress for a photo is only
      reported after every earlier photo was scored or skipped
    - A photo whose raster can't be loaded or whose analysis fails is logged
      and skipped; the batch always completes
    - cancel() stops submitting new photos; the partial ranking is delivered
    """

    def __init__(self, raster_provider, expression_detector=None, config=None,
                 num_workers=None, prefetch_multiplier=None, show_progress=False,
                 show_metrics=False):
        """
        Args:
            raster_provider: Callable(photo_reference) -> RasterImage, raising DecodeError
            expression_detector: Optional callable(RasterImage) -> per-face expression records
            config: Optional ScoringConfig
            num_workers: Worker threads (default: config, then CPU count). 1 runs
                sequentially in the calling thread
            prefetch_multiplier: In-flight photos per worker
            show_progress: Show a tqdm progress bar
            show_metrics: Print a summary when the batch finishes
        """
        self.config = config or get_default_config()
        proc_settings = self.config.get_processing_settings()

        self.raster_provider = raster_provider
        self.expression_detector = expression_detector
        self.num_workers = max(1, int(num_workers or proc_settings.get('num_workers') or os.cpu_count() or 1))
        self.prefetch_multiplier = max(1, int(prefetch_multiplier or proc_settings.get('prefetch_multiplier', 2)))
        self.skip_on_detection_error = bool(proc_settings.get('skip_on_detection_error', False))
        self.show_progress = show_progress
        self.show_metrics = show_metrics

        self.state = BatchState.IDLE
        self.stop_event = threading.Event()

        # Metrics (thread-safe with lock)
        self._metrics_lock = threading.Lock()
        self.metrics = self._empty_metrics()

    @staticmethod
    def _empty_metrics():
        return {
            'images_processed': 0,
            'images_scored': 0,
            'images_skipped': 0,
            'total_load_time': 0.0,
            'total_score_time': 0.0,
            'start_time': None,
            'elapsed_time': 0.0,
        }

    def get_metrics(self):
        """Get current processing metrics (thread-safe)."""
        with self._metrics_lock:
            return self.metrics.copy()

    def cancel(self):
        """Stop after the photos already in flight."""
        self.stop_event.set()

    def _process_photo(self, photo):
        """Load, detect and score a single photo (runs in worker thread).

        Args:
            photo: (photo_id, photo_reference) or
                (photo_id, photo_reference, detections) with precomputed
                expression detections

        Returns:
            AnalysisResult, or None if the photo was skipped
        """
        photo_id, reference = photo[0], photo[1]
        detections = photo[2] if len(photo) > 2 else None

        start_time = time.time()
        try:
            raster = self.raster_provider(reference)
        except Exception as e:
            logging.warning(f"Skipping photo {photo_id}: could not load raster: {e}")
            return None
        load_time = time.time() - start_time

        try:
            if detections is None:
                detections = ExpressionAnalyzer.collect_detections(
                    self.expression_detector, raster, skip_on_error=self.skip_on_detection_error
                )
            result = score_photo(photo_id, raster, detections, self.config)
        except DetectionError as e:
            logging.warning(f"Skipping photo {photo_id}: expression detection failed: {e}")
            return None
        except Exception:
            logging.exception(f"Skipping photo {photo_id}: analysis failed")
            return None

        with self._metrics_lock:
            self.metrics['total_load_time'] += load_time
            self.metrics['total_score_time'] += time.time() - start_time - load_time
        return result

    def _iter_results(self, photos):
        """Yield one result (or None for a skipped photo) per photo, in input order."""
        if self.num_workers == 1:
            for photo in photos:
                if self.stop_event.is_set():
                    return
                yield self._process_photo(photo)
            return

        max_in_flight = self.num_workers * self.prefetch_multiplier
        photo_iter = iter(photos)
        pending = deque()
        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            while True:
                while len(pending) < max_in_flight and not self.stop_event.is_set():
                    photo = next(photo_iter, _END)
                    if photo is _END:
                        break
                    pending.append(executor.submit(self._process_photo, photo))
                if not pending:
                    return
                yield pending.popleft().result()

    def run(self, photos, progress_callback=None, completion_callback=None):
        """Score and rank a batch of photos.

        Args:
            photos: Ordered list of (photo_id, photo_reference[, detections])
            progress_callback: Optional fn(percent) called after each photo
            completion_callback: Optional fn(ranked_results) called once

        Returns:
            List of AnalysisResult sorted by overall_score descending, ties in
            input order. Skipped photos are absent.

        Exceptions from the callbacks propagate. A batch interrupted that way
        ends CANCELLED, so the processor can run again.
        """
        if self.state == BatchState.RUNNING:
            raise RuntimeError("Batch is already running")

        photos = list(photos)
        total = len(photos)
        self.stop_event.clear()
        with self._metrics_lock:
            self.metrics = self._empty_metrics()
            self.metrics['start_time'] = time.time()
        self.state = BatchState.RUNNING
        reporter = MetricsReporter(total) if self.show_metrics else None

        results = []
        processed = 0
        result_iter = self._iter_results(photos)
        try:
            with tqdm(total=total, desc="Scoring photos", unit="img", disable=not self.show_progress) as pbar:
                for result in result_iter:
                    processed += 1
                    with self._metrics_lock:
                        self.metrics['images_processed'] = processed
                        if result is None:
                            self.metrics['images_skipped'] += 1
                        else:
                            self.metrics['images_scored'] += 1
                    if result is not None:
                        results.append(result)
                    pbar.update(1)
                    if progress_callback:
                        progress_callback(progress_percent(processed, total))

            ranked = rank_results(results)

            with self._metrics_lock:
                self.metrics['elapsed_time'] = time.time() - self.metrics['start_time']
            if processed < total:
                logging.info(f"Batch cancelled after {processed} of {total} photos")
                self.state = BatchState.CANCELLED
            else:
                self.state = BatchState.COMPLETED

            if reporter is not None:
                reporter.print_summary(self.get_metrics())
            if completion_callback:
                completion_callback(ranked)
            return ranked
        finally:
            # A raising callback ends the batch early; in-flight photos
            # finish and nothing new is submitted
            if self.state == BatchState.RUNNING:
                self.stop_event.set()
                self.state = BatchState.CANCELLED
            result_iter.close()

"""
Metrics reporting for batch scoring.
"""

import time

import psutil


class MetricsReporter:
    """
    Final summary report for a scoring batch.

    Tracks wall time from construction and the process's resident memory.
    """

    def __init__(self, total_images):
        """
        Initialize metrics reporter.

        Args:
            total_images: Total number of photos submitted
        """
        self.total_images = total_images
        self.start_time = time.time()
        self._process = psutil.Process()

    def memory_gb(self):
        """Resident set size of this process in GB."""
        return self._process.memory_info().rss / (1024**3)

    def format_summary(self, processor_metrics):
        """Summary lines for BatchProcessor.get_metrics() output."""
        elapsed = time.time() - self.start_time
        processed = processor_metrics.get('images_processed', 0)
        scored = processor_metrics.get('images_scored', 0)
        skipped = processor_metrics.get('images_skipped', 0)
        throughput = processed / elapsed if elapsed > 0 else 0

        # Format elapsed time
        minutes = int(elapsed // 60)
        seconds = int(elapsed % 60)
        if minutes > 0:
            time_str = f"{minutes}m {seconds}s"
        else:
            time_str = f"{seconds}s"

        lines = [
            "=== Batch Scoring Complete ===",
            f"Total: {processed}/{self.total_images} photos in {time_str} ({throughput:.1f} img/s)",
            f"Scored: {scored} | Skipped: {skipped}",
        ]

        if scored:
            load_ms = processor_metrics.get('total_load_time', 0.0) / scored * 1000
            score_ms = processor_metrics.get('total_score_time', 0.0) / scored * 1000
            lines.append(f"Per photo: load {load_ms:.0f} ms | score {score_ms:.0f} ms")

        lines.append(f"Memory: {self.memory_gb():.2f} GB")
        return lines

    def print_summary(self, processor_metrics):
        """Print final summary report."""
        print()
        for line in self.format_summary(processor_metrics):
            print(line)

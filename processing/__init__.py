"""
Processing package.

Re-exports the scoring pipeline and the batch processor.
"""

from processing.scorer import calculate_overall_score, score_photo, rank_results
from processing.batch_processor import BatchProcessor, BatchState, progress_percent

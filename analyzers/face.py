"""
Facial expression scoring.

Reduces externally detected per-face expression probabilities to a single
desirability score. Detection itself is done by an external detector.
"""

import logging

from analyzers.types import ExpressionVector, FaceExpressionResult, clamp
from config import get_default_config
from utils.errors import DetectionError


class ExpressionAnalyzer:
    """Scores expression vectors: happy dominates, neutral is acceptable,
    surprise is mildly positive, negative affect is lightly penalized."""

    def __init__(self, config=None):
        self.config = config or get_default_config()
        self.weights = self.config.get_expression_weights()

    def expression_score(self, vector):
        """Desirability of a single face."""
        w = self.weights
        negative = vector.sad + vector.angry + vector.fearful + vector.disgusted
        return (w['happy'] * vector.happy
                + w['neutral'] * vector.neutral
                + w['surprised'] * vector.surprised
                - w['negative'] * negative)

    def score(self, detections):
        """
        Build a FaceExpressionResult from detector output.

        Args:
            detections: Iterable of per-face records (ExpressionVector, dict
                or attribute object with the seven expression labels)

        Returns:
            FaceExpressionResult; best_expression_score is the clamped
            maximum over faces, 0 when there are none
        """
        vectors = tuple(
            d if isinstance(d, ExpressionVector) else ExpressionVector.from_detection(d)
            for d in (detections or ())
        )
        if not vectors:
            return FaceExpressionResult(face_count=0, expressions=(), best_expression_score=0.0)

        best = max(self.expression_score(v) for v in vectors)
        return FaceExpressionResult(
            face_count=len(vectors),
            expressions=vectors,
            best_expression_score=clamp(best)
        )

    @staticmethod
    def collect_detections(detector, raster, skip_on_error=False):
        """
        Call the external detector and validate its per-face records.

        Detector failures count as a photo with no faces. With skip_on_error
        the failure is re-raised as DetectionError so the caller can skip the
        photo instead.

        Returns:
            tuple of ExpressionVector
        """
        if detector is None:
            return ()
        try:
            return tuple(
                d if isinstance(d, ExpressionVector) else ExpressionVector.from_detection(d)
                for d in (detector(raster) or ())
            )
        except Exception as e:
            if skip_on_error:
                if isinstance(e, DetectionError):
                    raise
                raise DetectionError(str(e)) from e
            logging.warning(f"Expression detection failed, scoring without faces: {e}")
            return ()

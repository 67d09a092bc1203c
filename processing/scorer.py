"""
Scoring engine.

Score fusion and the pure per-photo pipeline: sample pixels, run the
technical and aesthetic analyzers on the same buffers, score expressions,
fuse. No I/O and no callbacks happen here.
"""

from analyzers import ImageCache, TechnicalAnalyzer, AestheticAnalyzer, ExpressionAnalyzer
from analyzers.types import AnalysisResult, clamp
from config import get_default_config


def calculate_overall_score(technical_quality, aesthetics, face_expressions, config=None):
    """
    Fuse component results into the ranking score.

    With faces: 0.4 * technical + 0.4 * aesthetic/10 + 0.2 * expression.
    Without faces the two weighted terms are each halved again, so their
    effective weights are 0.2 rather than a renormalized 0.5. That
    arithmetic is kept as-is for score compatibility.
    """
    weights = (config or get_default_config()).get_fusion_weights()

    technical_score = technical_quality.overall_score * weights['technical_weight']
    aesthetic_score = (aesthetics.mean_score / 10) * weights['aesthetic_weight']

    if face_expressions.face_count > 0:
        face_score = face_expressions.best_expression_score * weights['face_weight']
        overall = technical_score + aesthetic_score + face_score
    else:
        factor = weights['no_face_factor']
        overall = technical_score * factor + aesthetic_score * factor

    return clamp(overall)


def score_photo(photo_id, raster, detections=(), config=None):
    """
    Run the full pipeline on one decoded raster.

    Args:
        photo_id: Caller's identifier, copied into the result
        raster: RasterImage
        detections: Per-face expression records from an external detector
        config: Optional ScoringConfig

    Returns:
        AnalysisResult
    """
    config = config or get_default_config()

    cache = ImageCache(raster)
    technical_quality = TechnicalAnalyzer.analyze(cache, config)
    aesthetics = AestheticAnalyzer.analyze(cache, config)
    face_expressions = ExpressionAnalyzer(config).score(detections)

    return AnalysisResult(
        photo_id=photo_id,
        technical_quality=technical_quality,
        aesthetics=aesthetics,
        face_expressions=face_expressions,
        overall_score=calculate_overall_score(technical_quality, aesthetics, face_expressions, config)
    )


def rank_results(results):
    """Sort by overall score, best first; ties keep their input order."""
    return sorted(results, key=lambda r: r.overall_score, reverse=True)

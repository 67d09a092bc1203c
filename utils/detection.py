"""
Precomputed expression detections.

Loads per-face expression probabilities produced by an external facial
expression detector and saved as JSON:

    {
        "IMG_0001.jpg": [{"happy": 0.91, "neutral": 0.05, ...}, ...],
        "IMG_0002.jpg": []
    }
"""

import json
from pathlib import Path

from analyzers.types import ExpressionVector


def load_expression_file(path):
    """
    Read a detections file into {key: tuple of ExpressionVector}.

    Keys are kept as written (usually a file name or photo id). Each face
    record is validated and clipped on ingestion.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a JSON object of face lists
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse detections file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Detections file {path} must contain a JSON object")

    detections = {}
    for key, faces in data.items():
        if faces is None:
            faces = []
        if not isinstance(faces, list):
            raise ValueError(f"Detections for {key!r} must be a list of faces")
        detections[key] = tuple(ExpressionVector.from_detection(face) for face in faces)
    return detections


def lookup_detections(detections, photo_path):
    """Detections for a photo by full path, then file name; empty when unknown."""
    photo = Path(photo_path)
    for key in (str(photo), photo.name):
        if key in detections:
            return detections[key]
    return ()

"""
Raster loading utilities.

Decodes JPEG/PNG/WebP (and HEIC/HEIF when pillow-heif is installed) into the
RGBA8 working raster the analyzers consume, with EXIF transpose.
"""

from pathlib import Path

import numpy as np

from analyzers.types import RasterImage
from utils.errors import DecodeError

# Register HEIC/HEIF support via pillow-heif (if available)
try:
    import pillow_heif
    pillow_heif.register_heif_opener()
except ImportError:
    pass

# Working raster requested per photo (longest side, pixels)
DEFAULT_MAX_SIZE = 1024

# Lazy imports for heavy modules
_Image = None
_ImageOps = None


def _ensure_pil():
    """Lazy load PIL."""
    global _Image, _ImageOps
    if _Image is None:
        from PIL import Image, ImageOps
        _Image = Image
        _ImageOps = ImageOps
    return _Image, _ImageOps


def load_raster_from_path(photo_path, max_size=DEFAULT_MAX_SIZE):
    """
    Decode an image file into an RGBA8 RasterImage.

    The image is EXIF-transposed and downscaled (aspect preserved) so its
    longest side is at most max_size. Smaller images are kept as-is.

    Args:
        photo_path: Path to image file (str or Path)
        max_size: Longest side of the working raster, or None for full size

    Returns:
        RasterImage

    Raises:
        DecodeError: If the file is missing or cannot be decoded
    """
    Image, ImageOps = _ensure_pil()
    photo = Path(photo_path)

    try:
        with Image.open(photo) as opened:
            pil_img = ImageOps.exif_transpose(opened)
            if pil_img.mode != 'RGBA':
                pil_img = pil_img.convert('RGBA')
            else:
                pil_img = pil_img.copy()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode {photo}: {e}") from e

    if max_size and max(pil_img.size) > max_size:
        pil_img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    return load_raster_from_array(np.asarray(pil_img))


def load_raster_from_array(arr):
    """Wrap an in-memory gray/RGB/RGBA uint8 array as a RasterImage.

    Raises:
        DecodeError: If the array is not a supported pixel layout
    """
    return RasterImage.from_array(arr)


class RasterLoader:
    """Raster provider for file paths: loader(path) -> RasterImage."""

    def __init__(self, max_size=DEFAULT_MAX_SIZE):
        self.max_size = max_size

    def __call__(self, photo_reference):
        return load_raster_from_path(photo_reference, max_size=self.max_size)

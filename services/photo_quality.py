# services/photo_quality.py
import io
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from schemas import PhotoQuality

MIN_WIDTH, MIN_HEIGHT = 300, 400
IDEAL_ASPECT = 3 / 4  # portrait
ASPECT_TOLERANCE = 0.3


def image_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError):
        return None


def quality_score(has_resolution: bool, has_good_aspect: bool, has_front: bool, has_side: bool) -> int:
    score = 50
    if has_resolution:
        score += 20
    if has_good_aspect:
        score += 10
    if has_front:
        score += 10
    if has_side:
        score += 10
    return min(100, score)


def check_photos(front: bytes, side: Optional[bytes] = None) -> Tuple[PhotoQuality, List[str]]:
    """Heuristic checks before the model sees the photo. Returns (quality, warnings)."""
    issues, warnings = [], []
    has_resolution = has_good_aspect = True

    dims = image_dimensions(front)
    if dims is None:
        warnings.append("Front photo could not be decoded")
        has_resolution = has_good_aspect = False
    else:
        width, height = dims
        if width < MIN_WIDTH or height < MIN_HEIGHT:
            issues.append("low_resolution")
            has_resolution = False
        if abs(width / height - IDEAL_ASPECT) > ASPECT_TOLERANCE:
            warnings.append("Image aspect ratio may affect analysis accuracy")
            has_good_aspect = False

    if not side:
        issues.append("side_missing")
        warnings.append("Side photo recommended for better accuracy")

    score = quality_score(has_resolution, has_good_aspect, dims is not None, bool(side))
    return PhotoQuality(score=score, issues=issues), warnings

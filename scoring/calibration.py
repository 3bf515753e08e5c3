"""Score calibration.

The vision model drifts toward flattering scores. When the mean of the feature
ratings is above the inflation threshold, every rating is pulled toward the
anchor with one affine map, which keeps the ordering and the relative spread of
the features intact. Low sets are left alone.
"""

import logging
from statistics import mean, pvariance
from typing import Iterable, List, Optional

from schemas import CompositeRating, FeatureResult, SubRating
from scoring.config import DEFAULT_CALIBRATION, CalibrationConfig

logger = logging.getLogger(__name__)

LOW_VARIANCE = 0.3
LOW_VARIANCE_MIN_RATINGS = 4


def numeric_ratings(features: Iterable[FeatureResult]) -> List[float]:
    return [f.rating10 for f in features if f.rating10 is not None]


def compression_factor(
    ratings: Iterable[float], config: CalibrationConfig = DEFAULT_CALIBRATION
) -> Optional[float]:
    """`target_mean / mean` when the ratings are inflated, otherwise None."""
    ratings = list(ratings)
    if len(ratings) < config.min_ratings:
        return None
    mu = mean(ratings)
    if mu <= config.inflation_threshold:
        return None
    return config.target_mean / mu


def compress(rating: float, factor: float, config: CalibrationConfig = DEFAULT_CALIBRATION) -> float:
    value = config.anchor + (rating - config.anchor) * factor
    value = max(config.floor, min(config.cap, value))
    if config.precision is not None:
        value = round(value, config.precision)
    return value


def _compress_sub(sub: SubRating, factor: float, config: CalibrationConfig) -> SubRating:
    if sub.rating10 is None:
        return sub.model_copy(deep=True)
    return sub.model_copy(update={"rating10": compress(sub.rating10, factor, config)}, deep=True)


def _compress_feature(feature: FeatureResult, factor: float, config: CalibrationConfig) -> FeatureResult:
    update = {"subFeatures": [_compress_sub(s, factor, config) for s in feature.subFeatures]}
    if feature.rating10 is not None:
        update["rating10"] = compress(feature.rating10, factor, config)
    return feature.model_copy(update=update, deep=True)


def _warn_if_clustered(ratings: List[float]) -> None:
    if len(ratings) >= LOW_VARIANCE_MIN_RATINGS and pvariance(ratings) < LOW_VARIANCE:
        logger.warning(
            "low rating variance (%.3f over %d features); scores may be too similar",
            pvariance(ratings),
            len(ratings),
        )


def calibrate(
    features: Iterable[FeatureResult], config: CalibrationConfig = DEFAULT_CALIBRATION
) -> List[FeatureResult]:
    """Return calibrated copies of `features`; the input is never mutated."""
    features = list(features)
    ratings = numeric_ratings(features)
    _warn_if_clustered(ratings)

    factor = compression_factor(ratings, config)
    if factor is None:
        return [f.model_copy(deep=True) for f in features]

    logger.info(
        "compressing %d ratings (mean %.2f > %.2f, factor %.3f)",
        len(ratings),
        mean(ratings),
        config.inflation_threshold,
        factor,
    )
    return [_compress_feature(f, factor, config) for f in features]


def calibrate_composite(
    composite: Optional[CompositeRating], config: CalibrationConfig = DEFAULT_CALIBRATION
) -> Optional[CompositeRating]:
    """Harmony, symmetry and hair are judged on their own against the threshold."""
    if composite is None:
        return None
    if composite.rating10 is None or composite.rating10 <= config.inflation_threshold:
        return composite.model_copy(deep=True)
    factor = config.target_mean / composite.rating10
    return composite.model_copy(
        update={"rating10": compress(composite.rating10, factor, config)}, deep=True
    )


def calibrate_current_score(
    current: Optional[float], factor: Optional[float], config: CalibrationConfig = DEFAULT_CALIBRATION
) -> Optional[float]:
    """The overall score follows the feature factor when it is itself above the threshold."""
    if current is None or factor is None or current <= config.inflation_threshold:
        return current
    return compress(current, factor, config)

import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from schemas import DraftRange, ImprovementDelta, ImprovementLever, PotentialRange, TopLever
from scoring.config import DEFAULT_POTENTIAL, PotentialConfig
from scoring.errors import LeverRangeViolation
from scoring.levers import FACE_LEVERS, find_lever

logger = logging.getLogger(__name__)

RANGE_NOTE = "Based on modifiable levers (hair, skin, brows, posture, photo optimization)"


class PotentialResult(BaseModel):
    current: float
    potential: float
    total_gain: float
    range: PotentialRange
    top3: List[TopLever] = Field(default_factory=list)
    retained: List[ImprovementDelta] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list)


def validate_deltas(
    deltas: Iterable[ImprovementDelta], registry: Mapping[str, ImprovementLever] = FACE_LEVERS
) -> Tuple[List[ImprovementDelta], List[LeverRangeViolation]]:
    """Split deltas into those within their lever's range and the violations."""
    retained, violations = [], []
    for d in deltas:
        lever = find_lever(d.lever, registry)
        if lever is None:
            violation = LeverRangeViolation(d.lever, d.delta)
        elif not lever.allows(d.delta):
            violation = LeverRangeViolation(d.lever, d.delta, (lever.min_delta, lever.max_delta))
        else:
            retained.append(d)
            continue
        logger.warning("dropping improvement delta: %s", violation)
        violations.append(violation)
    return retained, violations


def rank_levers(
    deltas: Iterable[ImprovementDelta],
    registry: Mapping[str, ImprovementLever] = FACE_LEVERS,
    top_n: int = 3,
) -> List[TopLever]:
    # sorted() is stable, so equal magnitudes keep their listed order
    ranked = sorted(deltas, key=lambda d: -abs(d.delta))[:top_n]
    top = []
    for priority, d in enumerate(ranked, start=1):
        lever = find_lever(d.lever, registry)
        top.append(
            TopLever(
                lever=d.lever,
                label=lever.label if lever else d.lever,
                delta=d.delta,
                timeline=d.timeline,
                difficulty=d.difficulty,
                priority=priority,
            )
        )
    return top


def clamp_range(
    current: float, potential: float, low: float, high: float, config: PotentialConfig = DEFAULT_POTENTIAL
) -> Tuple[float, float]:
    """Force `current <= low <= potential <= high <= max_score`."""
    low = min(max(low, current), potential)
    high = max(min(high, config.max_score), potential)
    return low, high


def fallback_range(
    current: float, potential: float, config: PotentialConfig = DEFAULT_POTENTIAL
) -> Tuple[float, float]:
    low = min(current + config.range_low_offset, potential - config.range_potential_margin)
    high = min(potential + config.range_high_offset, config.max_score)
    return clamp_range(current, potential, low, high, config)


def compute_potential(
    current: float,
    deltas: Iterable[ImprovementDelta],
    registry: Mapping[str, ImprovementLever] = FACE_LEVERS,
    config: PotentialConfig = DEFAULT_POTENTIAL,
    supplied_range: Optional[DraftRange] = None,
) -> PotentialResult:
    current = max(0.0, min(config.max_score, current))
    retained, violations = validate_deltas(deltas, registry)

    total_gain = sum(d.delta for d in retained)
    potential = min(config.max_score, current + total_gain)

    if supplied_range is not None and (supplied_range.min is not None or supplied_range.max is not None):
        default_low, default_high = fallback_range(current, potential, config)
        low, high = clamp_range(
            current,
            potential,
            supplied_range.min if supplied_range.min is not None else default_low,
            supplied_range.max if supplied_range.max is not None else default_high,
            config,
        )
        rng = PotentialRange(
            min=low,
            max=high,
            confidence=supplied_range.confidence,
            note=supplied_range.note or RANGE_NOTE,
        )
    else:
        low, high = fallback_range(current, potential, config)
        rng = PotentialRange(min=low, max=high, confidence="medium", note=RANGE_NOTE)

    return PotentialResult(
        current=current,
        potential=potential,
        total_gain=total_gain,
        range=rng,
        top3=rank_levers(retained, registry, config.top_n),
        retained=retained,
        dropped=[str(v) for v in violations],
    )
